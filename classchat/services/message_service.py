"""
Message service - append-only storage for classroom and global messages
"""
import logging
import threading
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from classchat.core.config import settings
from classchat.core.exceptions import NotFoundError, ValidationError
from classchat.models import Message
from classchat.models.base import DISPLAY_NAME_LENGTH, utcnow
from classchat.schemas.message import AttachmentDescriptor

logger = logging.getLogger(__name__)

FILE_ONLY_CONTENT = " "


class MonotonicClock:
    """Wall-clock timestamps that never go backwards within the process"""

    def __init__(self):
        self._lock = threading.Lock()
        self._last: Optional[datetime] = None

    def now(self) -> datetime:
        with self._lock:
            current = utcnow()
            if self._last is not None and current < self._last:
                current = self._last
            self._last = current
            return current


class MessageService:
    """Service for message operations"""

    clock = MonotonicClock()

    @staticmethod
    def _prepare_content(content: Optional[str], attachment: Optional[AttachmentDescriptor]) -> str:
        content = content or ""

        if not content.strip():
            if attachment is None:
                raise ValidationError("Message content is required")
            # File-only messages still carry non-empty content
            return FILE_ONLY_CONTENT

        if len(content) > settings.MAX_MESSAGE_LENGTH:
            raise ValidationError(f"Message exceeds {settings.MAX_MESSAGE_LENGTH} characters")

        return content

    @staticmethod
    def _append(
        db: Session,
        classroom_id: Optional[str],
        author: str,
        content: str,
        attachment: Optional[AttachmentDescriptor],
    ) -> Message:
        author = (author or "").strip()
        if not author:
            raise ValidationError("Message author is required")
        if len(author) > DISPLAY_NAME_LENGTH:
            raise ValidationError(f"Author name exceeds {DISPLAY_NAME_LENGTH} characters")

        message = Message(
            classroom_id=classroom_id,
            author=author,
            content=MessageService._prepare_content(content, attachment),
            file_url=attachment.url if attachment else None,
            file_name=attachment.original_name if attachment else None,
            timestamp=MessageService.clock.now(),
        )
        db.add(message)
        db.commit()
        db.refresh(message)

        logger.info(
            f"💬 Stored message from {author}",
            extra={'message_id': message.id, 'classroom_id': classroom_id},
        )
        return message

    @staticmethod
    def append_classroom_message(
        db: Session,
        classroom_id: str,
        author: str,
        content: str,
        attachment: Optional[AttachmentDescriptor] = None,
    ) -> Message:
        """
        Persist a message in a classroom

        Args:
            db: Database session
            classroom_id: Target classroom
            author: Display name at send time
            content: Message text (may be blank when a file is attached)
            attachment: Optional uploaded file descriptor

        Returns:
            Stored message with server-assigned id and timestamp

        Raises:
            ValidationError: Missing classroom, author, or content without attachment
        """
        classroom_id = (classroom_id or "").strip()
        if not classroom_id:
            raise ValidationError("Classroom ID is required")

        return MessageService._append(db, classroom_id, author, content, attachment)

    @staticmethod
    def append_global_message(
        db: Session,
        author: str,
        content: str,
        attachment: Optional[AttachmentDescriptor] = None,
    ) -> Message:
        """Persist a message in the global channel (same rules, no classroom)"""
        return MessageService._append(db, None, author, content, attachment)

    @staticmethod
    def list_classroom_messages(db: Session, classroom_id: str) -> List[Message]:
        """All messages of a classroom in insertion order"""
        return (
            db.query(Message)
            .filter(Message.classroom_id == classroom_id)
            .order_by(Message.id)
            .all()
        )

    @staticmethod
    def list_global_messages(db: Session) -> List[Message]:
        """All global-channel messages in insertion order"""
        return (
            db.query(Message)
            .filter(Message.classroom_id.is_(None))
            .order_by(Message.id)
            .all()
        )

    @staticmethod
    def get_message(db: Session, message_id: int) -> Message:
        """
        Get message by ID

        Raises:
            NotFoundError: Message doesn't exist
        """
        message = db.query(Message).filter(Message.id == message_id).first()
        if not message:
            raise NotFoundError(f"Message {message_id} not found")

        return message
