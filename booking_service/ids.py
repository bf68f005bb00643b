import uuid

from .errors import InvalidInput


def new_id() -> str:
    return str(uuid.uuid4())


def ensure_uuid(value: str, label: str = "id") -> str:
    try:
        return str(uuid.UUID(str(value)))
    except (ValueError, TypeError):
        raise InvalidInput(f"Invalid {label}")
