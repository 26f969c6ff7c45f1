from typing import Optional
from pathlib import Path
import magic

from ..models.message import MessageType


class FileValidator:
    """MIME/extension rules shared by the composer and the media upload route."""

    # MIME types accepted for chat attachments
    ALLOWED_MIME_TYPES = {
        'image/jpeg',
        'image/jpg',
        'image/png',
        'image/gif',
        'image/webp',
        'video/mp4',
        'video/webm',
        'audio/mpeg',
        'audio/wav',
        'application/pdf',
        'application/msword',
        'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
    }

    EXTENSION_TO_MIME = {
        '.jpg': 'image/jpeg',
        '.jpeg': 'image/jpeg',
        '.png': 'image/png',
        '.gif': 'image/gif',
        '.webp': 'image/webp',
        '.mp4': 'video/mp4',
        '.webm': 'video/webm',
        '.mp3': 'audio/mpeg',
        '.wav': 'audio/wav',
        '.pdf': 'application/pdf',
        '.doc': 'application/msword',
        '.docx': 'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
    }

    @classmethod
    def is_allowed_mime_type(cls, mime_type: str) -> bool:
        return (mime_type or "").lower() in cls.ALLOWED_MIME_TYPES

    @classmethod
    def message_type_for(cls, mime_type: str) -> MessageType:
        """Message kind for a MIME type: image/video/audio by prefix, file otherwise."""
        mime_type = (mime_type or "").lower()
        if mime_type.startswith('image/'):
            return MessageType.IMAGE
        if mime_type.startswith('video/'):
            return MessageType.VIDEO
        if mime_type.startswith('audio/'):
            return MessageType.AUDIO
        return MessageType.FILE

    @classmethod
    def guess_from_name(cls, filename: str) -> Optional[str]:
        return cls.EXTENSION_TO_MIME.get(Path(filename).suffix.lower())

    @classmethod
    def sniff_mime_type(cls, content: bytes) -> str:
        """Detect the MIME type from file content using python-magic."""
        return magic.from_buffer(content[:4096], mime=True)

    @classmethod
    def is_safe_filename(cls, filename: str) -> bool:
        """Check if filename is safe to prevent directory traversal attacks."""
        dangerous_chars = {'..', '/', '\\', ':', '*', '?', '"', '<', '>', '|'}
        return not any(char in filename for char in dangerous_chars) and \
               ".." not in Path(filename).parts
