"""
Declarative base and column defaults
"""
import uuid
from datetime import datetime, timezone

from sqlalchemy.orm import declarative_base

Base = declarative_base()

# Column sizes, shared with request validation
ID_LENGTH = 36
DISPLAY_NAME_LENGTH = 100
CLASSROOM_NAME_LENGTH = 200
FILE_NAME_LENGTH = 255
FILE_URL_LENGTH = 500


def generate_id() -> str:
    """Opaque identifier for classrooms and users"""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Naive UTC timestamp, the form stored in DateTime columns"""
    return datetime.now(timezone.utc).replace(tzinfo=None)
