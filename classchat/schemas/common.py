"""
Types shared by the response schemas
"""
from datetime import datetime, timezone
from typing import Annotated

from pydantic import AfterValidator


def as_utc(value: datetime) -> datetime:
    """Timestamps are stored as naive UTC; give them an explicit offset"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# Serialized with a UTC designator so clients never read it as local time
UTCDateTime = Annotated[datetime, AfterValidator(as_utc)]
