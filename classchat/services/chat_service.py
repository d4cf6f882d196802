"""
Chat service - wires submissions to storage and room fan-out
"""
import logging
from collections import OrderedDict
from typing import Optional

from starlette.concurrency import run_in_threadpool

from classchat.core.config import settings
from classchat.core.database import SessionLocal
from classchat.core.exceptions import ValidationError
from classchat.schemas.message import AttachmentDescriptor, MessageResponse
from classchat.services.classroom_service import ClassroomService
from classchat.services.message_service import MessageService
from classchat.utils.room_broadcaster import RoomBroadcaster, room_broadcaster

logger = logging.getLogger(__name__)

GLOBAL_ROOM_ID = "global"
RECEIVE_MESSAGE = "receive_message"


def room_for(classroom_id: Optional[str]) -> str:
    """Broadcast room of a message scope"""
    return classroom_id or GLOBAL_ROOM_ID


class ChatService:
    """
    Composition root for messaging

    A submission is validated and persisted first; only the stored record is
    ever published, and only after the commit. Broadcasting runs in the
    background and is best-effort, so neither slow recipients nor failures
    reach the submitter.
    """

    def __init__(
        self,
        broadcaster: RoomBroadcaster,
        session_factory=SessionLocal,
        classrooms: Optional[ClassroomService] = None,
        messages=MessageService,
        announced_cache_size: Optional[int] = None,
    ):
        self.broadcaster = broadcaster
        self.session_factory = session_factory
        self.classrooms = classrooms or ClassroomService()
        self.messages = messages
        self.announced_cache_size = announced_cache_size or settings.ANNOUNCED_CACHE_SIZE
        self.announced_ttl = settings.ANNOUNCED_TTL_SECONDS
        # message ids already published by this process, oldest first
        self._announced: "OrderedDict[int, None]" = OrderedDict()

    def _persist(
        self,
        scope: str,
        author: str,
        content: str,
        attachment: Optional[AttachmentDescriptor],
    ) -> MessageResponse:
        with self.session_factory() as db:
            if scope == GLOBAL_ROOM_ID:
                message = self.messages.append_global_message(db, author, content, attachment)
            else:
                if not (scope or "").strip():
                    raise ValidationError("Classroom ID is required")
                self.classrooms.get_classroom(db, scope)
                message = self.messages.append_classroom_message(db, scope, author, content, attachment)

            return MessageResponse.from_message(message)

    def _load(self, message_id: int) -> MessageResponse:
        with self.session_factory() as db:
            return MessageResponse.from_message(self.messages.get_message(db, message_id))

    def _mark_announced_locally(self, message_id: int) -> bool:
        if message_id in self._announced:
            return False

        self._announced[message_id] = None
        while len(self._announced) > self.announced_cache_size:
            self._announced.popitem(last=False)
        return True

    async def _mark_announced(self, message_id: int) -> bool:
        """
        Record a publish; False if this message was already published

        With a relay attached the memo is shared through Redis so every
        process agrees; otherwise it lives in this process only.
        """
        relay = self.broadcaster.relay
        if relay is not None:
            try:
                return await relay.claim_announcement(message_id, self.announced_ttl)
            except Exception as e:
                logger.error(
                    f"❌ Shared publish memo unavailable, using local memo: {e}",
                    extra={'message_id': message_id},
                )

        return self._mark_announced_locally(message_id)

    def _broadcast(self, message: MessageResponse, origin: Optional[str]):
        """Hand the stored record to the broadcaster without waiting on recipients"""
        room_id = room_for(message.classroom_id)
        payload = {
            "type": RECEIVE_MESSAGE,
            "room_id": room_id,
            "message": message.model_dump(mode="json"),
        }

        try:
            self.broadcaster.publish_nowait(room_id, payload, exclude=origin)
        except Exception:
            logger.exception(
                "❌ Broadcast failed, message is stored",
                extra={'message_id': message.id, 'room_id': room_id},
            )

    async def submit_message(
        self,
        scope: str,
        author: str,
        content: str,
        attachment: Optional[AttachmentDescriptor] = None,
        origin: Optional[str] = None,
    ) -> MessageResponse:
        """
        Persist a message and fan it out to its room

        Args:
            scope: Classroom ID, or GLOBAL_ROOM_ID for the global channel
            author: Display name at send time
            content: Message text
            attachment: Optional uploaded file descriptor
            origin: Sender's connection ID, excluded from the fan-out

        Returns:
            The stored record, whatever happened to the broadcast

        Raises:
            ValidationError: Bad input
            NotFoundError: Classroom doesn't exist
        """
        # Runs to completion in a worker thread even if the caller goes away
        message = await run_in_threadpool(self._persist, scope, author, content, attachment)

        await self._mark_announced(message.id)
        self._broadcast(message, origin)

        return message

    async def announce_persisted(self, message_id: int, origin: Optional[str] = None) -> bool:
        """
        Publish an already stored message on a client's request

        The record is reloaded from storage rather than taken from the client.
        Returns False when the message had already been published.

        Raises:
            NotFoundError: Message doesn't exist
        """
        message = await run_in_threadpool(self._load, message_id)

        if not await self._mark_announced(message.id):
            logger.debug("Message already published, skipping", extra={'message_id': message.id})
            return False

        self._broadcast(message, origin)
        return True

    def join_room(self, connection_id: str, room_id: str) -> bool:
        return self.broadcaster.subscribe(connection_id, room_id)

    def leave_room(self, connection_id: str, room_id: str):
        self.broadcaster.unsubscribe(connection_id, room_id)


# Global instance
chat_service = ChatService(room_broadcaster)
