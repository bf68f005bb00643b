import logging

from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base
from sqlalchemy.orm.exc import StaleDataError

from .config import DATABASE_URL
from .errors import Conflict, StoreUnavailable

logger = logging.getLogger(__name__)


def get_engine(database_url: str):
    return create_async_engine(database_url, echo=False, future=True)


def get_session(engine):
    return async_sessionmaker(
        bind=engine,
        expire_on_commit=False,
    )


engine = get_engine(DATABASE_URL)
SessionLocal = get_session(engine)

Base = declarative_base()


async def get_db():
    async with SessionLocal() as session:
        yield session


async def commit_or_raise(db):
    """
    Commit the unit of work. A lost optimistic-version race becomes Conflict,
    any other database failure StoreUnavailable; both leave nothing persisted.
    """
    try:
        await db.commit()
    except StaleDataError:
        await db.rollback()
        raise Conflict("Booking was modified concurrently, reload and retry")
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("store write failed: %s", e)
        raise StoreUnavailable("Booking store is unavailable")
