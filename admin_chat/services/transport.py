from typing import Optional
import enum
import logging

from pydantic import BaseModel, ValidationError

from admin_chat.core.exceptions import TransportError
from admin_chat.models.message import FileMeta, Message, MessageType
from admin_chat.schemas.message import SendMessageRequest
from admin_chat.services.chat_service import ChatService
from admin_chat.services.socket_client import ChatSocketClient

logger = logging.getLogger(__name__)


class TransportState(str, enum.Enum):
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


class DeliveryPath(str, enum.Enum):
    SOCKET = "socket"
    REST = "rest"


class SendResult(BaseModel):
    path: DeliveryPath
    conversation_id: str
    content: str
    type: MessageType
    file: Optional[FileMeta] = None
    reply_to: Optional[str] = None
    # server copy, only known on the REST path
    message: Optional[Message] = None


class MessageTransport:
    """Single send entry point: socket push when connected, REST mutation otherwise."""

    def __init__(self, socket: ChatSocketClient, chat_service: ChatService):
        self.socket = socket
        self.chat_service = chat_service

    @property
    def state(self) -> TransportState:
        return TransportState.CONNECTED if self.socket.is_connected else TransportState.DISCONNECTED

    async def send(
        self,
        conversation_id: str,
        content: str,
        message_type: MessageType = MessageType.TEXT,
        file_meta: Optional[FileMeta] = None,
        reply_to: Optional[str] = None,
    ) -> SendResult:
        message_type = MessageType(message_type)
        if message_type != MessageType.TEXT and file_meta is None:
            raise ValueError(f"{message_type.value} message requires file metadata")

        result = SendResult(
            path=DeliveryPath.SOCKET,
            conversation_id=conversation_id,
            content=content,
            type=message_type,
            file=file_meta,
            reply_to=reply_to,
        )

        if self.state == TransportState.CONNECTED:
            sent = await self.socket.send_message(conversation_id, content, message_type, file_meta, reply_to)
            if sent:
                return result
            # socket dropped between the state check and the emit
            logger.warning(f"Socket emit refused for conversation {conversation_id}, using REST")

        request = SendMessageRequest.build(conversation_id, content, message_type, file_meta, reply_to)
        try:
            message = await self.chat_service.send_message(request)
        except ValidationError as e:
            raise TransportError(f"Chat service returned an invalid message: {e}") from e
        result.path = DeliveryPath.REST
        result.message = message
        return result
