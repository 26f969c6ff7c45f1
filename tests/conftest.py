from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import time

import httpx
import pytest

from admin_chat.core.exceptions import ApiRequestError
from admin_chat.models.conversation import (
    Conversation, ConversationPriority, ConversationStatus, ConversationType, Participant, ParticipantType
)
from admin_chat.models.message import FileMeta, Message, MessageType, SenderType, make_body
from admin_chat.schemas.conversation import UserSearchResult
from admin_chat.schemas.message import PaginationPayload
from admin_chat.services.chat_session import ChatSession
from admin_chat.services.conversation_store import ConversationStore
from admin_chat.services.file_upload_service import FileUploadService
from admin_chat.services.notifier import Notifier
from admin_chat.services.socket_client import ChatSocketClient

ADMIN_ID = "admin-1"


def ts(day: int, hour: int = 10, minute: int = 0) -> datetime:
    return datetime(2024, 3, day, hour, minute, tzinfo=timezone.utc)


def make_message(
    id: str,
    conversation_id: str = "conv-1",
    sender_id: str = "cust-1",
    content: str = "hello",
    timestamp: Optional[datetime] = None,
    message_type: MessageType = MessageType.TEXT,
    file: Optional[FileMeta] = None,
    read_by: Optional[List[str]] = None,
) -> Message:
    if message_type != MessageType.TEXT and file is None:
        file = FileMeta(url=f"https://cdn.example.com/{id}", name=f"{id}.bin", size=2048, mime_type="application/pdf")
    return Message(
        id=id,
        conversation_id=conversation_id,
        sender_id=sender_id,
        sender_name="Sender",
        sender_type=SenderType.ADMIN if sender_id == ADMIN_ID else SenderType.CUSTOMER,
        content=content,
        timestamp=timestamp or ts(4),
        body=make_body(message_type, file),
        read_by=read_by or [],
    )


def make_conversation(
    id: str,
    name: str = "Jane Customer",
    email: str = "jane@example.com",
    last_content: Optional[str] = None,
    unread: int = 0,
    type: ConversationType = ConversationType.SUPPORT,
    status: ConversationStatus = ConversationStatus.ACTIVE,
    priority: ConversationPriority = ConversationPriority.MEDIUM,
    participant_type: ParticipantType = ParticipantType.CUSTOMER,
    assigned_to: Optional[str] = None,
    tags: Optional[set] = None,
) -> Conversation:
    other = Participant(id=f"user-{id}", name=name, email=email, type=participant_type)
    admin = Participant(id=ADMIN_ID, name="Admin", email="admin@example.com", type=ParticipantType.STAFF)
    last = make_message(f"last-{id}", conversation_id=id, sender_id=other.id, content=last_content) if last_content else None
    return Conversation(
        id=id,
        participant_ids={other.id, ADMIN_ID},
        participants=[other, admin],
        last_message=last,
        unread_count=unread,
        created_at=ts(1),
        updated_at=ts(2),
        type=type,
        status=status,
        priority=priority,
        assigned_to=assigned_to,
        tags=tags or set(),
    )


class FakeSio:
    """Stands in for socketio.AsyncClient: records emits, lets tests fire server events."""

    def __init__(self):
        self.handlers: Dict[str, Any] = {}
        self.emitted: List[tuple] = []
        self.connect_calls: List[tuple] = []
        self.connected = False
        self.fail_with: Optional[Exception] = None
        self.emit_error: Optional[Exception] = None
        self.on_emit = None

    def on(self, event, handler=None, namespace=None):
        self.handlers[event] = handler

    async def connect(self, url, **kwargs):
        self.connect_calls.append((url, kwargs))
        if self.fail_with is not None:
            raise self.fail_with
        self.connected = True
        await self.handlers["connect"]()

    async def disconnect(self):
        self.connected = False
        await self.handlers["disconnect"]("client disconnect")

    async def emit(self, event, data=None):
        if self.emit_error is not None:
            raise self.emit_error
        self.emitted.append((event, data))
        if self.on_emit is not None:
            await self.on_emit(event, data)

    async def trigger(self, event, data=None):
        await self.handlers[event](data)

    def emitted_events(self) -> List[str]:
        return [event for event, _ in self.emitted]


class FakeChatService:
    """Records REST calls made by the session; serves canned data."""

    def __init__(self, conversations=None, messages=None):
        self.conversations: List[Conversation] = list(conversations or [])
        self.messages: Dict[str, List[Message]] = dict(messages or {})
        self.sent_requests = []
        self.marked_read: List[str] = []
        self.message_requests: List[tuple] = []
        self.fail_send = False
        self.fail_load = False
        self.users: List[UserSearchResult] = []
        self.user_queries: List[tuple] = []
        self.created_requests = []
        self._counter = 0

    async def get_all_conversations(self, query=None):
        if self.fail_load:
            raise ApiRequestError("boom", status_code=500)
        return list(self.conversations), PaginationPayload(total=len(self.conversations))

    async def get_conversation_messages(self, conversation_id, page=1, limit=50):
        self.message_requests.append((conversation_id, page, limit))
        if self.fail_load:
            raise ApiRequestError("boom", status_code=500)
        items = list(self.messages.get(conversation_id, []))
        return items, PaginationPayload(total=len(items), page=page, limit=limit, total_pages=1)

    async def send_message(self, request):
        self.sent_requests.append(request)
        if self.fail_send:
            raise ApiRequestError("send failed", status_code=500)
        self._counter += 1
        file = None
        if request.file_url:
            file = FileMeta(url=request.file_url, name=request.file_name or "", size=request.file_size or 0,
                            mime_type=request.mime_type or "application/octet-stream")
        return Message(
            id=f"srv-{self._counter}",
            conversation_id=request.conversation_id,
            sender_id=ADMIN_ID,
            sender_type=SenderType.ADMIN,
            content=request.content,
            timestamp=datetime.now(timezone.utc),
            body=make_body(request.type, file),
            reply_to=request.reply_to,
        )

    async def mark_messages_as_read(self, conversation_id):
        self.marked_read.append(conversation_id)

    async def search_users(self, query, user_type=None):
        self.user_queries.append((query, user_type))
        if self.fail_load:
            raise ApiRequestError("boom", status_code=500)
        return [u for u in self.users if query.lower() in u.name.lower()]

    async def create_conversation(self, request):
        self.created_requests.append(request)
        if self.fail_send:
            raise ApiRequestError("create failed", status_code=500)
        other_id = request.participants[0]
        conversation = make_conversation(f"new-{other_id}", unread=0)
        return conversation.model_copy(update={"title": request.title})


@pytest.fixture
def sio():
    return FakeSio()


@pytest.fixture
def socket(sio):
    return ChatSocketClient(access_token="token-123", url="ws://chat.test", chat_optional=True, sio=sio)


@pytest.fixture
def chat_service():
    return FakeChatService()


@pytest.fixture
def notifier():
    return Notifier()


@pytest.fixture
def store():
    return ConversationStore()


@pytest.fixture
def session(chat_service, socket, store, notifier):
    return ChatSession(
        current_user_id=ADMIN_ID,
        chat_service=chat_service,
        socket=socket,
        store=store,
        notifier=notifier,
        page_size=50,
        typing_ttl=0.05,
    )


class UploadBackend:
    """MockTransport handler for the dashboard media route."""

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.fail_names = set()

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        body = request.content
        for name in self.fail_names:
            if f'filename="{name}"'.encode() in body:
                return httpx.Response(500, json={"error": "Upload failed", "details": "backend down"})
        name = body.split(b'filename="', 1)[1].split(b'"', 1)[0].decode()
        mime = body.split(b"Content-Type: ", 1)[1].split(b"\r\n", 1)[0].decode()
        return httpx.Response(200, json={
            "url": f"https://cdn.example.com/{name}",
            "fileName": name,
            "fileSize": 0,
            "mimeType": mime,
        })


@pytest.fixture
def upload_backend():
    return UploadBackend()


@pytest.fixture
def upload_service(upload_backend):
    client = httpx.AsyncClient(transport=httpx.MockTransport(upload_backend))
    return FileUploadService(http_client=client, upload_url="http://dashboard.test/api/media/upload", access_token="token-123")


@pytest.fixture
def local_timezone(monkeypatch):
    """Switch the process-local timezone for one test (POSIX TZ names)."""
    def switch(name: str) -> None:
        monkeypatch.setenv("TZ", name)
        time.tzset()

    yield switch
    monkeypatch.undo()
    time.tzset()
