import pytest
from socketio.exceptions import BadNamespaceError

from admin_chat.models.message import MessageType
from admin_chat.schemas import websocket as events
from admin_chat.services.composer import Composer, UploadState
from admin_chat.services.file_upload_service import LocalFile

from .conftest import make_conversation

PNG = LocalFile(name="a.png", content=b"\x89PNG\r\n\x1a\n" + b"0" * 1024, mime_type="image/png")
PDF = LocalFile(name="b.pdf", content=b"%PDF-1.4" + b"0" * 2048, mime_type="application/pdf")


@pytest.fixture
def composer(session, store, upload_service):
    store.replace_all([make_conversation("conv-1")])
    return Composer(session, upload_service, max_size_mb=1)


async def test_text_only_submit_sends_one_text_message(composer, chat_service):
    composer.set_draft("hello")
    result = await composer.submit("conv-1")

    assert len(result.sent) == 1
    assert result.sent[0].content == "hello"
    assert result.sent[0].type == MessageType.TEXT
    assert [r.content for r in chat_service.sent_requests] == ["hello"]
    assert composer.draft == ""


async def test_files_send_in_attachment_order_with_mime_kind(composer, chat_service, upload_backend):
    composer.attach(PNG, PDF)
    result = await composer.submit("conv-1")

    assert [m.type for m in result.sent] == [MessageType.IMAGE, MessageType.FILE]
    assert [r.file_name for r in chat_service.sent_requests] == ["a.png", "b.pdf"]
    assert [r.type for r in chat_service.sent_requests] == [MessageType.IMAGE, MessageType.FILE]
    assert len(upload_backend.requests) == 2
    assert composer.attachments == []


async def test_text_goes_before_files(composer, chat_service):
    composer.set_draft("see attached")
    composer.attach(PDF)
    await composer.submit("conv-1")

    assert [r.type for r in chat_service.sent_requests] == [MessageType.TEXT, MessageType.FILE]


async def test_oversized_file_is_rejected_and_batch_continues(composer, chat_service, notifier, upload_backend):
    big = LocalFile(name="big.png", content=b"0" * (2 * 1024 * 1024), mime_type="image/png")
    pending = composer.attach(big, PDF)

    result = await composer.submit("conv-1")

    assert [m.file.name for m in result.sent] == ["b.pdf"]
    assert pending[0].state == UploadState.FAILED
    assert pending[0].error == "File size exceeds 1MB limit"
    assert notifier.messages() == ["File validation failed: File size exceeds 1MB limit"]
    # the rejected file never reached the upload route
    assert len(upload_backend.requests) == 1


async def test_unsupported_type_is_rejected(composer, notifier):
    composer.attach(LocalFile(name="run.exe", content=b"MZ", mime_type="application/x-msdownload"))
    result = await composer.submit("conv-1")

    assert result.sent == []
    assert notifier.messages() == ["File validation failed: File type not supported"]


async def test_upload_failure_drops_file_and_continues(composer, upload_backend, notifier, chat_service):
    upload_backend.fail_names.add("a.png")
    composer.attach(PNG, PDF)

    result = await composer.submit("conv-1")

    assert [m.file.name for m in result.sent] == ["b.pdf"]
    assert [p.file.name for p in result.failed] == ["a.png"]
    assert notifier.messages() == ["Failed to upload a.png"]
    assert composer.attachments == []


async def test_text_failure_restores_draft_and_keeps_attachments(composer, chat_service, notifier, upload_backend):
    chat_service.fail_send = True
    composer.set_draft("hello")
    composer.reply_to("m1")
    composer.attach(PNG)

    result = await composer.submit("conv-1")

    assert result.text_failed is True
    assert composer.draft == "hello"
    assert composer.reply_to_id == "m1"
    assert len(composer.attachments) == 1
    assert upload_backend.requests == []
    assert notifier.messages() == ["Failed to send message"]


async def test_progress_reaches_100(composer):
    pending = composer.attach(PDF)[0]
    seen = []
    original = composer.upload_service.upload_file

    async def tracking_upload(file, on_progress=None, conversation_id=None):
        def record(progress):
            seen.append(progress.percentage)
            on_progress(progress)
        return await original(file, record, conversation_id)

    composer.upload_service.upload_file = tracking_upload
    await composer.submit("conv-1")

    assert seen[-1] == 100
    assert seen == sorted(seen)
    assert pending.state == UploadState.SENT
    assert pending.progress == 100


async def test_remove_cancels_only_that_file(composer, chat_service):
    composer.attach(PNG, PDF)
    removed = composer.remove(0)

    await composer.submit("conv-1")

    assert removed.file.name == "a.png"
    assert [r.file_name for r in chat_service.sent_requests] == ["b.pdf"]


async def test_cannot_submit_empty(composer, chat_service):
    composer.set_draft("   ")
    assert composer.can_submit is False
    result = await composer.submit("conv-1")
    assert result.sent == []
    assert chat_service.sent_requests == []


async def test_connected_submit_goes_over_socket(composer, socket, sio, chat_service):
    await socket.connect()
    composer.set_draft("hi there")
    composer.attach(PNG)

    result = await composer.submit("conv-1")

    sent = [payload for event, payload in sio.emitted if event == events.SEND_MESSAGE]
    assert [p["type"] for p in sent] == ["text", "image"]
    assert sent[1]["fileUrl"] == "https://cdn.example.com/a.png"
    assert chat_service.sent_requests == []
    assert len(result.sent) == 2


async def test_submit_survives_socket_emit_failure(composer, socket, sio, chat_service):
    await socket.connect()
    sio.emit_error = BadNamespaceError("/ is not a connected namespace.")
    composer.set_draft("hello")

    result = await composer.submit("conv-1")

    assert result.text_failed is False
    assert [r.content for r in chat_service.sent_requests] == ["hello"]
