"""
Blob store collaborator - keeps uploaded bytes, hands back a descriptor
"""
import logging
import os
import random
import time
from pathlib import Path
from typing import Optional

from classchat.core.config import settings
from classchat.core.exceptions import UpstreamError, ValidationError
from classchat.models.base import FILE_NAME_LENGTH
from classchat.schemas.message import AttachmentDescriptor

logger = logging.getLogger(__name__)


class BlobStore:
    """Interface for attachment storage backends"""

    max_bytes: int = settings.MAX_UPLOAD_BYTES

    def save(self, data: bytes, filename: str) -> AttachmentDescriptor:
        raise NotImplementedError

    def delete(self, attachment: AttachmentDescriptor):
        """Discard a stored upload that ended up attached to nothing"""
        raise NotImplementedError


class LocalBlobStore(BlobStore):
    """
    Stores uploads on local disk

    Files are renamed to ``<millis>-<random><ext>`` so that two uploads of
    ``notes.pdf`` never overwrite each other; the original name is kept in the
    returned descriptor for display.
    """

    def __init__(
        self,
        upload_dir: Optional[str] = None,
        url_prefix: Optional[str] = None,
        max_bytes: Optional[int] = None,
    ):
        self.upload_dir = Path(upload_dir or settings.UPLOAD_DIR)
        self.url_prefix = (url_prefix or settings.UPLOAD_URL_PREFIX).rstrip("/")
        self.max_bytes = max_bytes or settings.MAX_UPLOAD_BYTES

    def _stored_name(self, filename: str) -> str:
        extension = os.path.splitext(filename)[1]
        return f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}{extension}"

    def save(self, data: bytes, filename: str) -> AttachmentDescriptor:
        """
        Write bytes to the upload directory

        Raises:
            ValidationError: Empty or over-long filename, or file larger than the limit
            UpstreamError: The file could not be written
        """
        original_name = os.path.basename(filename or "")
        if not original_name:
            raise ValidationError("Uploaded file must have a filename")
        if len(original_name) > FILE_NAME_LENGTH:
            raise ValidationError(f"Filename exceeds {FILE_NAME_LENGTH} characters")

        if len(data) > self.max_bytes:
            raise ValidationError(f"File exceeds the {self.max_bytes} byte upload limit")

        stored_name = self._stored_name(original_name)

        try:
            self.upload_dir.mkdir(parents=True, exist_ok=True)
            (self.upload_dir / stored_name).write_bytes(data)
        except OSError as e:
            logger.error(f"❌ Failed to store upload {original_name}: {e}")
            raise UpstreamError("Could not store uploaded file") from e

        logger.info(f"📎 Stored upload {original_name} as {stored_name} ({len(data)} bytes)")

        return AttachmentDescriptor(
            url=f"{self.url_prefix}/{stored_name}",
            original_name=original_name,
        )

    def delete(self, attachment: AttachmentDescriptor):
        """Remove a file written by save; anything outside the upload dir is ignored"""
        stored_name = os.path.basename(attachment.url)
        if not attachment.url.startswith(f"{self.url_prefix}/") or not stored_name:
            return

        try:
            (self.upload_dir / stored_name).unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"⚠️ Could not remove orphaned upload {stored_name}: {e}")
            return

        logger.info(f"🗑️ Removed orphaned upload {stored_name}")


# Global instance
blob_store = LocalBlobStore()
