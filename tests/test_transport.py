import pytest
from pydantic import ValidationError
from socketio.exceptions import BadNamespaceError

from admin_chat.core.exceptions import ApiRequestError, TransportError
from admin_chat.models.message import FileMeta, MessageType
from admin_chat.schemas import websocket as events
from admin_chat.schemas.message import ChatMessagePayload
from admin_chat.services.transport import DeliveryPath, MessageTransport, TransportState


@pytest.fixture
def transport(socket, chat_service):
    return MessageTransport(socket, chat_service)


async def test_state_follows_socket(transport, socket):
    assert transport.state == TransportState.DISCONNECTED
    await socket.connect()
    assert transport.state == TransportState.CONNECTED
    await socket.disconnect()
    assert transport.state == TransportState.DISCONNECTED


async def test_disconnected_send_never_touches_socket(transport, sio, chat_service):
    result = await transport.send("conv-1", "hello")

    assert result.path == DeliveryPath.REST
    assert result.message.content == "hello"
    assert sio.emitted == []
    assert len(chat_service.sent_requests) == 1


async def test_connected_send_uses_socket_only(transport, socket, sio, chat_service):
    await socket.connect()
    result = await transport.send("conv-1", "hello", reply_to="m1")

    assert result.path == DeliveryPath.SOCKET
    assert result.message is None
    assert sio.emitted == [(events.SEND_MESSAGE, {
        "conversationId": "conv-1", "content": "hello", "type": "text", "replyTo": "m1",
    })]
    assert chat_service.sent_requests == []


async def test_rest_request_carries_file_metadata(transport, chat_service):
    meta = FileMeta(url="https://cdn.example.com/v.mp4", name="v.mp4", size=99, mime_type="video/mp4")
    result = await transport.send("conv-1", "v.mp4", MessageType.VIDEO, meta)

    request = chat_service.sent_requests[0]
    assert request.to_wire() == {
        "conversationId": "conv-1",
        "content": "v.mp4",
        "type": "video",
        "fileUrl": "https://cdn.example.com/v.mp4",
        "fileName": "v.mp4",
        "fileSize": 99,
        "mimeType": "video/mp4",
    }
    assert result.message.file.url == "https://cdn.example.com/v.mp4"


async def test_media_without_file_is_refused(transport, chat_service):
    with pytest.raises(ValueError):
        await transport.send("conv-1", "", MessageType.IMAGE)
    assert chat_service.sent_requests == []


async def test_rest_errors_propagate(transport, chat_service):
    chat_service.fail_send = True
    with pytest.raises(ApiRequestError):
        await transport.send("conv-1", "hello")


async def test_invalid_server_reply_becomes_transport_error(transport, chat_service):
    async def broken_send(request):
        return ChatMessagePayload.model_validate({}).to_domain()

    chat_service.send_message = broken_send
    with pytest.raises(TransportError) as exc_info:
        await transport.send("conv-1", "hello")
    assert isinstance(exc_info.value.__cause__, ValidationError)


async def test_socket_emit_failure_falls_back_to_rest(transport, socket, sio, chat_service):
    await socket.connect()
    sio.emit_error = BadNamespaceError("/ is not a connected namespace.")

    result = await transport.send("conv-1", "hello")

    assert result.path == DeliveryPath.REST
    assert result.message.content == "hello"
    assert [r.content for r in chat_service.sent_requests] == ["hello"]
