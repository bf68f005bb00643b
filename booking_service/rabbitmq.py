import logging

import aio_pika

from .config import RABBIT_URL, EXCHANGE_NAME
from .events import to_json

logger = logging.getLogger(__name__)


class EventPublisher:
    """
    Publishes booking/payment domain events to a topic exchange, routed by
    event_type. Delivery is best-effort: a broker outage is logged, never
    raised to the request that produced the event.
    """

    def __init__(self, url: str | None = RABBIT_URL, exchange_name: str = EXCHANGE_NAME):
        self.url = url
        self.exchange_name = exchange_name
        self.enabled = bool(url)
        self._connection: aio_pika.abc.AbstractRobustConnection | None = None
        self._exchange: aio_pika.abc.AbstractExchange | None = None

    @property
    def connected(self) -> bool:
        return bool(self._connection and not self._connection.is_closed and self._exchange)

    async def connect(self):
        if not self.enabled or self.connected:
            return

        try:
            self._connection = await aio_pika.connect_robust(self.url)
            channel = await self._connection.channel()
            self._exchange = await channel.declare_exchange(
                self.exchange_name,
                aio_pika.ExchangeType.TOPIC,
                durable=True,
            )
        except Exception:
            self._connection = None
            self._exchange = None
            raise

        logger.info("connected to exchange %s", self.exchange_name)

    async def publish_event(self, event: dict):
        if not self.enabled:
            return

        event_type = event["event_type"]
        try:
            await self.connect()
            await self._exchange.publish(
                aio_pika.Message(
                    body=to_json(event).encode("utf-8"),
                    content_type="application/json",
                    message_id=event["event_id"],
                    type=event_type,
                    delivery_mode=aio_pika.DeliveryMode.PERSISTENT,
                ),
                routing_key=event_type,
            )
        except Exception as e:
            logger.warning("event %s (%s) not published: %s", event_type, event["event_id"], e)

    async def close(self):
        connection, self._connection, self._exchange = self._connection, None, None
        if connection and not connection.is_closed:
            await connection.close()


publisher = EventPublisher()


def get_publisher():
    return publisher
