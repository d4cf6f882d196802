"""
Message Pydantic schemas
"""
from typing import List, Optional

from pydantic import BaseModel

from classchat.schemas.common import UTCDateTime


class AttachmentDescriptor(BaseModel):
    """Where an uploaded file lives and what it was called"""
    url: str
    original_name: str

    model_config = {"frozen": True}


class MessageResponse(BaseModel):
    """Schema for message response - the canonical stored record"""
    id: int
    classroom_id: Optional[str] = None
    author: str
    content: str
    attachment: Optional[AttachmentDescriptor] = None
    timestamp: UTCDateTime

    @classmethod
    def from_message(cls, message):
        """Convert Message ORM model to response"""
        attachment = None
        if message.file_url is not None:
            attachment = AttachmentDescriptor(
                url=message.file_url,
                original_name=message.file_name or "",
            )

        return cls(
            id=message.id,
            classroom_id=message.classroom_id,
            author=message.author,
            content=message.content,
            attachment=attachment,
            timestamp=message.timestamp,
        )


class MessageListResponse(BaseModel):
    messages: List[MessageResponse]
    count: int
