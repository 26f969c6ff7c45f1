from typing import List, Optional
import enum
import logging

from pydantic import BaseModel, ValidationError

from admin_chat.config import settings
from admin_chat.core.exceptions import ChatClientError, FileValidationError
from admin_chat.models.message import Message, MessageType
from admin_chat.schemas.file import UploadProgress
from admin_chat.services.chat_session import ChatSession
from admin_chat.services.file_upload_service import FileUploadService, LocalFile
from admin_chat.services.notifier import Notifier

logger = logging.getLogger(__name__)


class UploadState(str, enum.Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    UPLOADING = "uploading"
    SENT = "sent"
    FAILED = "failed"


class PendingUpload(BaseModel):
    file: LocalFile
    state: UploadState = UploadState.IDLE
    progress: int = 0
    error: Optional[str] = None


class ComposeResult(BaseModel):
    sent: List[Message] = []
    failed: List[PendingUpload] = []
    text_failed: bool = False


class Composer:
    """Draft text plus a queue of attachments, sent text first then file by file.

    Files go through validate, upload and send one at a time, in the order
    they were attached. A failing file is dropped with a notification and the
    rest of the batch carries on; nothing is retried.
    """

    def __init__(
        self,
        session: ChatSession,
        upload_service: FileUploadService,
        notifier: Optional[Notifier] = None,
        max_size_mb: Optional[int] = None,
    ):
        self.session = session
        self.upload_service = upload_service
        self.notifier = notifier if notifier is not None else session.notifier
        self.max_size_mb = settings.MAX_FILE_SIZE_MB if max_size_mb is None else max_size_mb

        self.draft = ""
        self.reply_to_id: Optional[str] = None
        self.attachments: List[PendingUpload] = []
        self.is_sending = False

    def set_draft(self, text: str) -> None:
        self.draft = text

    def reply_to(self, message_id: Optional[str]) -> None:
        self.reply_to_id = message_id

    def attach(self, *files: LocalFile) -> List[PendingUpload]:
        added = [PendingUpload(file=f) for f in files]
        self.attachments.extend(added)
        return added

    def remove(self, index: int) -> PendingUpload:
        """Drop one queued file. Uploads already running are not interrupted."""
        return self.attachments.pop(index)

    @property
    def can_submit(self) -> bool:
        return not self.is_sending and (bool(self.draft.strip()) or bool(self.attachments))

    @property
    def progress(self) -> List[int]:
        return [p.progress for p in self.attachments]

    async def submit(self, conversation_id: str) -> ComposeResult:
        result = ComposeResult()
        if not self.can_submit:
            return result

        self.is_sending = True
        try:
            text = self.draft.strip()
            reply_to = self.reply_to_id
            if text:
                self.draft = ""
                self.reply_to_id = None
                try:
                    message = await self.session.send_message(conversation_id, text, MessageType.TEXT, reply_to=reply_to)
                except ChatClientError as e:
                    logger.error(f"Failed to send message to {conversation_id}: {e}")
                    self.draft = text
                    self.reply_to_id = reply_to
                    self.notifier.error("Failed to send message")
                    result.text_failed = True
                    return result
                result.sent.append(message)

            while self.attachments:
                pending = self.attachments[0]
                message = await self._send_file(conversation_id, pending)
                if self.attachments and self.attachments[0] is pending:
                    self.attachments.pop(0)
                if message is not None:
                    result.sent.append(message)
                else:
                    result.failed.append(pending)
            return result
        finally:
            self.is_sending = False

    async def _send_file(self, conversation_id: str, pending: PendingUpload) -> Optional[Message]:
        file = pending.file

        pending.state = UploadState.VALIDATING
        validation = self.upload_service.validate_file(file, self.max_size_mb)
        if not validation.valid:
            error = FileValidationError(file.name, validation.error or "invalid file")
            logger.warning(f"Rejected attachment {error}")
            pending.state = UploadState.FAILED
            pending.error = error.reason
            self.notifier.error(f"File validation failed: {error.reason}")
            return None

        def on_progress(progress: UploadProgress) -> None:
            pending.progress = progress.percentage

        pending.state = UploadState.UPLOADING
        pending.progress = 0
        try:
            uploaded = await self.upload_service.upload_file(file, on_progress, conversation_id)
            file_meta = self.upload_service.to_file_meta(file, uploaded)
            message = await self.session.send_message(
                conversation_id,
                file_meta.name,
                self.upload_service.get_file_type(file),
                file_meta,
            )
        except (ChatClientError, ValidationError) as e:
            logger.error(f"Failed to upload {file.name}: {e}")
            pending.state = UploadState.FAILED
            pending.error = str(e)
            self.notifier.error(f"Failed to upload {file.name}")
            return None

        pending.state = UploadState.SENT
        pending.progress = 100
        return message
