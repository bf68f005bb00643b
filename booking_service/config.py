import os

DATABASE_URL = os.getenv("BOOKING_DB")

if not DATABASE_URL:
    raise RuntimeError("BOOKING_DB environment variable is not set")

JWT_SECRET = os.getenv("JWT_SECRET")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM") or "HS256"

if not JWT_SECRET:
    raise RuntimeError("JWT_SECRET environment variable is not set")

RABBIT_URL = os.getenv("RABBIT_URL")  # optional in dev, required if you want events
EXCHANGE_NAME = "domain_events"

LABOR_SERVICE_URL = os.getenv("LABOR_SERVICE_URL") or "http://labor-service:8000"
CUSTOMER_SERVICE_URL = os.getenv("CUSTOMER_SERVICE_URL") or "http://customer-service:8000"
DIRECTORY_TIMEOUT = float(os.getenv("DIRECTORY_TIMEOUT") or "2.0")

LOG_LEVEL = (os.getenv("LOG_LEVEL") or "INFO").upper()

# Mock card processor approves only numbers ending with these digits
MOCK_CARD_APPROVED_LAST4 = os.getenv("MOCK_CARD_APPROVED_LAST4") or "4242"
CURRENCY_PREFIX = os.getenv("CURRENCY_PREFIX") or "Rs."

NOTIFICATION_FEED_LIMIT = int(os.getenv("NOTIFICATION_FEED_LIMIT") or "100")
