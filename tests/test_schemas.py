from datetime import datetime, timezone

import pytest

from admin_chat.models.conversation import (
    ConversationPriority, ConversationStatus, ConversationType, ParticipantType
)
from admin_chat.models.message import FileMeta, Message, MessageType, make_body
from admin_chat.schemas.banner import BannerOrderUpdate
from admin_chat.schemas.conversation import ChatConversationPayload, ConversationQuery, ConversationsPage
from admin_chat.schemas.file import UploadProgress
from admin_chat.schemas.message import ChatMessagePayload, MessagesPage


def message_payload(**overrides):
    payload = {
        "id": "m1",
        "conversationId": "conv-1",
        "senderId": "u1",
        "senderName": "Jane",
        "senderType": "customer",
        "content": "hello",
        "sentAt": "2024-03-04T10:00:00Z",
    }
    payload.update(overrides)
    return payload


@pytest.mark.parametrize("raw_kind,has_url,expected", [
    ("text", False, MessageType.TEXT),
    ("image", True, MessageType.IMAGE),
    ("video", True, MessageType.VIDEO),
    ("audio", True, MessageType.AUDIO),
    ("files", True, MessageType.FILE),
    ("system", False, MessageType.TEXT),
    ("bargain_offer", False, MessageType.TEXT),
    ("image", False, MessageType.TEXT),
    ("sticker", True, MessageType.TEXT),
])
def test_message_kind_resolution(raw_kind, has_url, expected):
    extra = {"type": raw_kind}
    if has_url:
        extra.update(fileUrl="https://cdn/x", fileName="x", fileSize=5, mimeType="image/png")
    message = ChatMessagePayload.model_validate(message_payload(**extra)).to_domain()
    assert message.type == expected
    if expected != MessageType.TEXT:
        assert message.file.url == "https://cdn/x"
    else:
        assert message.file is None


def test_message_type_field_wins_over_type():
    payload = message_payload(type="text", messageType="image", fileUrl="https://cdn/p.png")
    assert ChatMessagePayload.model_validate(payload).to_domain().type == MessageType.IMAGE


def test_read_by_accepts_ids_and_receipts():
    payload = message_payload(readBy=["a", {"userId": "b", "readAt": "2024-03-04T11:00:00Z"}])
    message = ChatMessagePayload.model_validate(payload).to_domain()
    assert message.read_by == ["a", "b"]
    assert message.is_read is True

    assert ChatMessagePayload.model_validate(message_payload(readBy=None)).to_domain().read_by == []


def test_message_conversation_id_fallback():
    payload = message_payload()
    del payload["conversationId"]
    message = ChatMessagePayload.model_validate(payload).to_domain("conv-9")
    assert message.conversation_id == "conv-9"
    assert message.timestamp == datetime(2024, 3, 4, 10, 0, tzinfo=timezone.utc)


def test_media_body_requires_url():
    with pytest.raises(ValueError):
        make_body(MessageType.AUDIO)
    with pytest.raises(ValueError):
        FileMeta(url="")


def test_message_body_is_tagged_union():
    meta = FileMeta(url="https://cdn/x.pdf", name="x.pdf", size=3, mime_type="application/pdf")
    message = Message(
        id="m", conversation_id="c", sender_id="s",
        timestamp=datetime(2024, 3, 4, tzinfo=timezone.utc),
        body=make_body(MessageType.FILE, meta),
    )
    restored = Message.model_validate(message.model_dump())
    assert restored.type == MessageType.FILE
    assert restored.file == meta


def conversation_payload(**overrides):
    payload = {
        "id": "conv-1",
        "type": "customer_support",
        "participants": [
            {"userId": "u1", "userName": "Jane", "userType": "customer", "email": "jane@example.com"},
            {"userId": "a1", "user": {"id": "a1", "name": "Ops", "email": "ops@example.com", "userType": "admin"}},
        ],
        "lastMessage": message_payload(),
        "unreadCount": 2,
        "isActive": True,
        "createdAt": "2024-03-01T08:00:00Z",
        "updatedAt": "2024-03-04T10:00:00Z",
        "metadata": {"priority": "high", "tags": ["refund"], "assignedTo": "a1"},
    }
    payload.update(overrides)
    return payload


@pytest.mark.parametrize("raw_type,expected", [
    ("customer_support", ConversationType.SUPPORT),
    ("vendor_support", ConversationType.SUPPORT),
    ("dispute", ConversationType.SUPPORT),
    ("customer_vendor", ConversationType.DIRECT),
    ("bargaining", ConversationType.DIRECT),
    ("general", ConversationType.GROUP),
    ("group", ConversationType.GROUP),
])
def test_conversation_type_mapping(raw_type, expected):
    conversation = ChatConversationPayload.model_validate(conversation_payload(type=raw_type)).to_domain()
    assert conversation.type == expected


def test_conversation_translation():
    conversation = ChatConversationPayload.model_validate(conversation_payload()).to_domain()

    assert conversation.participant_ids == {"u1", "a1"}
    assert [p.type for p in conversation.participants] == [ParticipantType.CUSTOMER, ParticipantType.STAFF]
    assert conversation.participants[1].name == "Ops"
    assert conversation.priority == ConversationPriority.HIGH
    assert conversation.tags == {"refund"}
    assert conversation.assigned_to == "a1"
    assert conversation.status == ConversationStatus.ACTIVE
    assert conversation.last_message.conversation_id == "conv-1"
    assert conversation.unread_count == 2


def test_conversation_status_sources():
    archived = ChatConversationPayload.model_validate(conversation_payload(isActive=False)).to_domain()
    assert archived.status == ConversationStatus.ARCHIVED

    closed = ChatConversationPayload.model_validate(conversation_payload(status="closed")).to_domain()
    assert closed.status == ConversationStatus.CLOSED

    unknown = ChatConversationPayload.model_validate(conversation_payload(status="snoozed")).to_domain()
    assert unknown.status == ConversationStatus.ACTIVE


def test_priority_defaults_to_medium():
    payload = conversation_payload(metadata={"priority": "???"})
    assert ChatConversationPayload.model_validate(payload).to_domain().priority == ConversationPriority.MEDIUM


def test_pagination_shapes():
    flat = ConversationsPage.model_validate({"conversations": [], "total": 12, "page": 2, "totalPages": 3})
    assert flat.normalized_pagination(5).model_dump() == {"total": 12, "page": 2, "limit": 5, "total_pages": 3}

    nested = MessagesPage.model_validate({
        "messages": [message_payload()],
        "pagination": {"total": 1, "page": 1, "limit": 20, "totalPages": 1},
    })
    assert nested.normalized_pagination(1, 50).limit == 20


def test_conversation_query_params():
    assert ConversationQuery(page=1, limit=20, assigned_to="a1").to_params() == {"page": 1, "limit": 20, "assignedTo": "a1"}


def test_upload_progress_percentage():
    assert UploadProgress(loaded=50, total=200).percentage == 25
    assert UploadProgress(loaded=0, total=0).percentage == 100


def test_banner_order_needs_ids():
    assert BannerOrderUpdate(banner_ids=["a", "b"]).model_dump(by_alias=True) == {"bannerIds": ["a", "b"]}
    with pytest.raises(ValueError):
        BannerOrderUpdate(banner_ids=[])
