# admin_chat/services/file_upload_service.py
from typing import Callable, List, Optional, Sequence
from pathlib import Path
import asyncio
import io
import logging

import aiofiles
import httpx
from pydantic import BaseModel, Field

from admin_chat.config import settings
from admin_chat.core.exceptions import UploadError
from admin_chat.models.message import FileMeta, MessageType
from admin_chat.schemas.file import FileValidation, UploadProgress, UploadResponse
from admin_chat.utils.file_validator import FileValidator
from admin_chat.utils.formatters import format_file_size

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[UploadProgress], None]


class LocalFile(BaseModel):
    """A file picked for upload: name, raw bytes and MIME type."""
    name: str
    content: bytes = Field(b"", repr=False)
    mime_type: str = ""

    @property
    def size(self) -> int:
        return len(self.content)

    @classmethod
    async def from_path(cls, path, mime_type: Optional[str] = None) -> "LocalFile":
        path = Path(path)
        async with aiofiles.open(path, 'rb') as f:
            content = await f.read()
        if not mime_type:
            mime_type = FileValidator.guess_from_name(path.name) or FileValidator.sniff_mime_type(content)
        return cls(name=path.name, content=content, mime_type=mime_type)


class _ProgressReader(io.BytesIO):
    """BytesIO that reports how far the multipart encoder has read."""

    def __init__(self, content: bytes, on_read: Callable[[int, int], None]):
        super().__init__(content)
        self._total = len(content)
        self._on_read = on_read

    def read(self, size: int = -1) -> bytes:
        chunk = super().read(size)
        if chunk:
            self._on_read(self.tell(), self._total)
        return chunk


class FileUploadService:
    def __init__(
        self,
        http_client: Optional[httpx.AsyncClient] = None,
        upload_url: Optional[str] = None,
        access_token: Optional[str] = None,
    ):
        self.access_token = access_token or settings.CHAT_ACCESS_TOKEN
        self.upload_url = upload_url or f"{settings.DASHBOARD_URL}/api/media/upload"
        self._client = http_client or httpx.AsyncClient(timeout=settings.REQUEST_TIMEOUT)
        self._owns_client = http_client is None

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def validate_file(self, file: LocalFile, max_size_mb: int = 10) -> FileValidation:
        max_size_bytes = max_size_mb * 1024 * 1024
        if file.size > max_size_bytes:
            return FileValidation(valid=False, error=f"File size exceeds {max_size_mb}MB limit")

        if not FileValidator.is_allowed_mime_type(file.mime_type):
            return FileValidation(valid=False, error="File type not supported")

        return FileValidation(valid=True)

    def get_file_type(self, file: LocalFile) -> MessageType:
        return FileValidator.message_type_for(file.mime_type)

    def format_file_size(self, size: int) -> str:
        return format_file_size(size)

    async def upload_file(
        self,
        file: LocalFile,
        on_progress: Optional[ProgressCallback] = None,
        conversation_id: Optional[str] = None,
    ) -> UploadResponse:
        """Multipart upload through the dashboard media route, reporting progress as the body streams."""
        def report(loaded: int, total: int) -> None:
            if on_progress is not None:
                on_progress(UploadProgress(loaded=loaded, total=total))

        reader = _ProgressReader(file.content, report)
        files = {"file": (file.name, reader, file.mime_type or "application/octet-stream")}
        data = {"conversationId": conversation_id} if conversation_id else None
        headers = {"Authorization": f"Bearer {self.access_token}"} if self.access_token else None

        logger.info(f"Uploading {file.name} ({format_file_size(file.size)})")
        try:
            response = await self._client.post(self.upload_url, files=files, data=data, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"Upload of {file.name} failed: {e}")
            raise UploadError(file.name, "Network error occurred") from e

        if not response.is_success:
            message = f"Upload failed with status: {response.status_code}"
            try:
                payload = response.json()
            except ValueError:
                payload = None
            if isinstance(payload, dict):
                message = payload.get("error") or payload.get("message") or message
            raise UploadError(file.name, message)

        try:
            result = UploadResponse.model_validate(response.json())
        except ValueError as e:
            raise UploadError(file.name, "Invalid response from server") from e

        report(file.size, file.size)
        return result

    async def upload_multiple_files(
        self,
        files: Sequence[LocalFile],
        on_progress: Optional[Callable[[int, UploadProgress], None]] = None,
    ) -> List[UploadResponse]:
        """Concurrent uploads; progress callback receives the file index."""
        def progress_for(index: int) -> Optional[ProgressCallback]:
            if on_progress is None:
                return None
            return lambda progress: on_progress(index, progress)

        return await asyncio.gather(
            *(self.upload_file(f, progress_for(i)) for i, f in enumerate(files))
        )

    @staticmethod
    def to_file_meta(file: LocalFile, uploaded: UploadResponse) -> FileMeta:
        return FileMeta(
            url=uploaded.url,
            name=uploaded.file_name or file.name,
            size=uploaded.file_size or file.size,
            mime_type=uploaded.mime_type or file.mime_type,
        )
