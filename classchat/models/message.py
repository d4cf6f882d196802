"""
Message model - classroom-scoped and global messages
"""
from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Text

from .base import DISPLAY_NAME_LENGTH, FILE_NAME_LENGTH, FILE_URL_LENGTH, ID_LENGTH, Base


class Message(Base):
    """Message model - append-only, classroom_id NULL means the global channel"""
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    classroom_id = Column(String(ID_LENGTH), ForeignKey("classrooms.id"), nullable=True, index=True)
    author = Column(String(DISPLAY_NAME_LENGTH), nullable=False)
    content = Column(Text, nullable=False)
    file_url = Column(String(FILE_URL_LENGTH), nullable=True)
    file_name = Column(String(FILE_NAME_LENGTH), nullable=True)
    timestamp = Column(DateTime, nullable=False, index=True)

    # Composite index for history queries
    __table_args__ = (
        Index('idx_classroom_id_order', 'classroom_id', 'id'),
    )

    def __repr__(self):
        return f"<Message(id={self.id}, classroom_id={self.classroom_id}, content='{self.content[:20]}...')>"
