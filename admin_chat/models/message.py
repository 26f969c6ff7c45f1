from datetime import datetime
from typing import List, Literal, Optional, Union
import enum

from pydantic import BaseModel, Field
from typing_extensions import Annotated


class MessageType(str, enum.Enum):
    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    FILE = "file"


class SenderType(str, enum.Enum):
    ADMIN = "admin"
    CUSTOMER = "customer"
    VENDOR = "vendor"
    STAFF = "staff"


class FileMeta(BaseModel):
    url: str = Field(..., min_length=1)
    name: str = ""
    size: int = Field(0, ge=0)
    mime_type: str = "application/octet-stream"


class TextBody(BaseModel):
    type: Literal["text"] = "text"


class ImageBody(BaseModel):
    type: Literal["image"] = "image"
    file: FileMeta


class VideoBody(BaseModel):
    type: Literal["video"] = "video"
    file: FileMeta


class AudioBody(BaseModel):
    type: Literal["audio"] = "audio"
    file: FileMeta


class FileBody(BaseModel):
    type: Literal["file"] = "file"
    file: FileMeta


MessageBody = Annotated[
    Union[TextBody, ImageBody, VideoBody, AudioBody, FileBody],
    Field(discriminator="type"),
]

_MEDIA_BODIES = {
    MessageType.IMAGE: ImageBody,
    MessageType.VIDEO: VideoBody,
    MessageType.AUDIO: AudioBody,
    MessageType.FILE: FileBody,
}


def make_body(message_type: MessageType, file: Optional[FileMeta] = None):
    """Build the body variant for a kind. Media kinds require file metadata."""
    message_type = MessageType(message_type)
    if message_type == MessageType.TEXT:
        return TextBody()
    if file is None:
        raise ValueError(f"{message_type.value} message requires file metadata")
    return _MEDIA_BODIES[message_type](file=file)


class Message(BaseModel):
    id: str
    conversation_id: str
    sender_id: str
    sender_name: str = ""
    sender_type: SenderType = SenderType.CUSTOMER
    content: str = ""
    timestamp: datetime
    body: MessageBody = Field(default_factory=TextBody)
    read_by: List[str] = []
    reply_to: Optional[str] = None
    is_edited: bool = False
    client_message_id: Optional[str] = None

    @property
    def type(self) -> MessageType:
        return MessageType(self.body.type)

    @property
    def file(self) -> Optional[FileMeta]:
        return getattr(self.body, "file", None)

    @property
    def is_read(self) -> bool:
        return len(self.read_by) > 0

    def mark_read_by(self, user_id: str) -> None:
        if user_id not in self.read_by:
            self.read_by.append(user_id)


class TypingIndicator(BaseModel):
    user_id: str
    user_name: str = ""
    conversation_id: str
    timestamp: datetime
