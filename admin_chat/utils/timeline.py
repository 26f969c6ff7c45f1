"""Derived views over a conversation's message list.

Nothing here is stored: date separators, read indicators and the per-kind
presentation of a message are recomputed from the messages each time.
"""
from datetime import date, datetime
from typing import List, Optional, Union
import enum

from pydantic import BaseModel

from ..models.message import Message, MessageType
from .formatters import format_file_size, format_full_date, format_time, to_local


class DateSeparator(BaseModel):
    day: date
    label: str


class MessageEntry(BaseModel):
    message: Message
    is_own: bool = False


TimelineItem = Union[DateSeparator, MessageEntry]


class ReadState(str, enum.Enum):
    SENT = "sent"        # single check
    READ = "read"        # double check


class ViewKind(str, enum.Enum):
    BUBBLE = "bubble"
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    FILE = "file"


class MessageView(BaseModel):
    kind: ViewKind
    text: str = ""
    url: Optional[str] = None
    file_name: Optional[str] = None
    size_label: Optional[str] = None
    previewable: bool = False
    playable: bool = False
    downloadable: bool = False
    time_label: str = ""
    read_state: Optional[ReadState] = None


def _local_date(timestamp: datetime) -> date:
    return to_local(timestamp).date()


def build_timeline(messages: List[Message], current_user_id: Optional[str] = None) -> List[TimelineItem]:
    """Interleave messages with a separator at every calendar-date change.

    Messages keep the order they were given in; a separator goes before a
    message whose date differs from the one before it.
    """
    items: List[TimelineItem] = []
    previous: Optional[date] = None
    for message in messages:
        current = _local_date(message.timestamp)
        if previous is not None and current != previous:
            items.append(DateSeparator(day=current, label=format_full_date(message.timestamp)))
        items.append(MessageEntry(message=message, is_own=message.sender_id == current_user_id))
        previous = current
    return items


def read_state(message: Message, current_user_id: str) -> Optional[ReadState]:
    """Read indicator, shown on the current user's own messages only."""
    if message.sender_id != current_user_id:
        return None
    return ReadState.READ if message.is_read else ReadState.SENT


def message_view(message: Message, current_user_id: str, now: Optional[datetime] = None) -> MessageView:
    view = MessageView(
        kind=ViewKind.BUBBLE,
        text=message.content,
        time_label=format_time(message.timestamp, now),
        read_state=read_state(message, current_user_id),
    )
    file = message.file
    if file is None:
        return view

    view.url = file.url
    view.file_name = file.name or None
    if message.type == MessageType.IMAGE:
        view.kind = ViewKind.IMAGE
        view.previewable = True
    elif message.type == MessageType.VIDEO:
        view.kind = ViewKind.VIDEO
        view.playable = True
    elif message.type == MessageType.AUDIO:
        view.kind = ViewKind.AUDIO
        view.playable = True
    else:
        view.kind = ViewKind.FILE
        view.file_name = file.name or "File"
        view.size_label = format_file_size(file.size) if file.size else None
        view.downloadable = True
    return view
