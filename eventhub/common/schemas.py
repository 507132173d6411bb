from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel


class Message(BaseModel):
    message: str


def as_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize incoming timestamps to naive UTC, the storage convention."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
