"""
Message endpoints - classroom and global forums
"""
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Header, UploadFile
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from classchat.core.database import get_db
from classchat.schemas.message import AttachmentDescriptor, MessageListResponse, MessageResponse
from classchat.services import GLOBAL_ROOM_ID, MessageService, blob_store, chat_service

router = APIRouter(prefix="/api/messages", tags=["messages"])


async def store_upload(file: Optional[UploadFile]) -> Optional[AttachmentDescriptor]:
    """Hand an uploaded file to the blob store; None when nothing was attached"""
    if file is None or not file.filename:
        return None

    # One byte past the limit is enough for the store to reject it
    data = await file.read(blob_store.max_bytes + 1)
    return await run_in_threadpool(blob_store.save, data, file.filename)


async def submit_with_upload(
    scope: str,
    author: str,
    content: str,
    file: Optional[UploadFile],
    origin: Optional[str],
) -> MessageResponse:
    """Store the upload, then the message; a rejected message leaves no file behind"""
    attachment = await store_upload(file)

    try:
        return await chat_service.submit_message(scope, author, content, attachment=attachment, origin=origin)
    except Exception:
        if attachment is not None:
            await run_in_threadpool(blob_store.delete, attachment)
        raise


def _message_list(messages) -> MessageListResponse:
    return MessageListResponse(
        messages=[MessageResponse.from_message(m) for m in messages],
        count=len(messages),
    )


@router.get("", response_model=MessageListResponse)
def get_global_messages(db: Session = Depends(get_db)):
    """Global forum history, oldest first"""
    return _message_list(MessageService.list_global_messages(db))


@router.get("/{classroom_id}", response_model=MessageListResponse)
def get_classroom_messages(classroom_id: str, db: Session = Depends(get_db)):
    """Classroom history, oldest first"""
    return _message_list(MessageService.list_classroom_messages(db, classroom_id))


@router.post("", response_model=MessageResponse, status_code=201)
async def post_classroom_message(
    classroom_id: str = Form(""),
    author: str = Form(""),
    content: str = Form(""),
    file: Optional[UploadFile] = File(None),
    connection_id: Optional[str] = Header(None, alias="X-Connection-ID"),
):
    """
    Post to a classroom forum (multipart form)

    Content may be left blank when a file is attached. The stored message is
    pushed to everyone in the classroom room except the sender's own
    connection, named by the optional X-Connection-ID header.
    """
    return await submit_with_upload(classroom_id, author, content, file, connection_id)


@router.post("/global", response_model=MessageResponse, status_code=201)
async def post_global_message(
    author: str = Form(""),
    content: str = Form(""),
    file: Optional[UploadFile] = File(None),
    connection_id: Optional[str] = Header(None, alias="X-Connection-ID"),
):
    """Post to the global forum (multipart form)"""
    return await submit_with_upload(GLOBAL_ROOM_ID, author, content, file, connection_id)
