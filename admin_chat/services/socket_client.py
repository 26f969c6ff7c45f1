# admin_chat/services/socket_client.py
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Union
import asyncio
import inspect
import logging

import socketio
from socketio.exceptions import ConnectionError as SocketConnectionError, SocketIOError

from admin_chat.config import settings
from admin_chat.models.message import FileMeta, MessageType
from admin_chat.schemas import websocket as events
from admin_chat.schemas.websocket import OutgoingSocketMessage

logger = logging.getLogger(__name__)

EventHandler = Callable[[Any], Union[None, Awaitable[None]]]
ConnectionHandler = Callable[[bool], Union[None, Awaitable[None]]]

FORWARDED_EVENTS = [
    events.NEW_MESSAGE,
    events.MESSAGE_SENT,
    events.MESSAGE_ERROR,
    events.USER_TYPING,
    events.USER_STATUS_CHANGED,
    events.MESSAGES_READ,
    events.JOINED_CONVERSATION,
    events.LEFT_CONVERSATION,
    events.JOIN_ERROR,
    events.CONVERSATION_ASSIGNED,
    events.PRIORITY_CHANGED,
]


async def _call(handler: Callable, *args) -> None:
    result = handler(*args)
    if inspect.isawaitable(result):
        await result


class ChatSocketClient:
    """Socket.IO connection to the chat service, identified as an admin client."""

    def __init__(
        self,
        access_token: Optional[str] = None,
        url: Optional[str] = None,
        chat_optional: Optional[bool] = None,
        max_reconnect_attempts: Optional[int] = None,
        sio: Optional[socketio.AsyncClient] = None,
    ):
        self.access_token = access_token or settings.CHAT_ACCESS_TOKEN
        self.url = url or settings.CHAT_WS_URL
        self.chat_optional = settings.CHAT_OPTIONAL if chat_optional is None else chat_optional
        self.max_reconnect_attempts = (
            settings.WS_MAX_RECONNECT_ATTEMPTS if max_reconnect_attempts is None else max_reconnect_attempts
        )
        # reconnection is handled here, not by the library
        self.sio = sio or socketio.AsyncClient(reconnection=False)

        self.is_connected = False
        self.is_retrying = False
        self.connection_error: Optional[str] = None
        self.reconnect_attempts = 0
        self.online_users: Set[str] = set()
        self.current_conversation_id: Optional[str] = None

        self._listeners: Dict[str, List[EventHandler]] = {}
        self._connection_listeners: List[ConnectionHandler] = []
        self._retry_task: Optional[asyncio.Task] = None
        self._closing = False

        self.sio.on("connect", self._on_connect)
        self.sio.on("connect_error", self._on_connect_error)
        self.sio.on("disconnect", self._on_disconnect)
        for event in FORWARDED_EVENTS:
            self.sio.on(event, self._make_dispatcher(event))

    # --- subscriptions ---

    def on(self, event: str, handler: EventHandler) -> None:
        self._listeners.setdefault(event, []).append(handler)

    def on_connection_change(self, handler: ConnectionHandler) -> None:
        self._connection_listeners.append(handler)

    def _make_dispatcher(self, event: str):
        async def dispatcher(data=None):
            await self._dispatch(event, data)
        return dispatcher

    async def _dispatch(self, event: str, data: Any) -> None:
        logger.debug(f"Chat socket event {event}: {data}")
        if event == events.USER_STATUS_CHANGED and isinstance(data, dict):
            user_id = data.get("userId")
            if user_id:
                if data.get("isOnline"):
                    self.online_users.add(user_id)
                else:
                    self.online_users.discard(user_id)

        for handler in list(self._listeners.get(event, [])):
            try:
                await _call(handler, data)
            except Exception as e:
                logger.error(f"Handler for '{event}' failed: {e}", exc_info=True)

    async def _set_connected(self, connected: bool) -> None:
        if self.is_connected == connected:
            return
        self.is_connected = connected
        for handler in list(self._connection_listeners):
            try:
                await _call(handler, connected)
            except Exception as e:
                logger.error(f"Connection listener failed: {e}", exc_info=True)

    # --- lifecycle ---

    async def connect(self) -> bool:
        if not self.access_token:
            logger.info("No access token available for chat socket connection")
            self.connection_error = "Authentication required for chat service"
            return False

        self._closing = False
        logger.info(f"Admin attempting to connect to chat service: {self.url}")
        try:
            await self.sio.connect(
                self.url,
                auth={"token": self.access_token, "userType": "admin"},
                transports=["websocket", "polling"],
                wait_timeout=settings.WS_CONNECT_TIMEOUT,
            )
        except SocketConnectionError as e:
            await self._on_connect_error(str(e))
            return False
        return True

    async def disconnect(self) -> None:
        self._closing = True
        self.is_retrying = False
        if self._retry_task is not None:
            self._retry_task.cancel()
            self._retry_task = None
        if self.sio.connected:
            await self.sio.disconnect()
        await self._set_connected(False)

    async def _on_connect(self) -> None:
        logger.info("Admin successfully connected to chat socket")
        self.connection_error = None
        self.is_retrying = False
        self.reconnect_attempts = 0
        await self._set_connected(True)

    async def _on_connect_error(self, data: Any = None) -> None:
        message = data.get("message") if isinstance(data, dict) else str(data or "")
        logger.warning(f"Admin chat socket connection error: {message}")
        await self._set_connected(False)

        if self.chat_optional:
            # optional chat: stay quiet and do not retry
            logger.info("Chat service is optional and not available")
            self.connection_error = None
            self.is_retrying = False
            return

        lowered = message.lower()
        if "timeout" in lowered:
            self.connection_error = "Connection timeout - chat service may be unavailable"
        elif "econnrefused" in lowered or "refused" in lowered:
            self.connection_error = "Chat service is not running"
        elif "unauthorized" in lowered:
            self.connection_error = "Authentication failed"
        else:
            self.connection_error = f"Failed to connect to chat service: {message}"
        self.retry_connection()

    async def _on_disconnect(self, reason: Any = None) -> None:
        logger.info(f"Admin disconnected from chat socket: {reason}")
        await self._set_connected(False)
        if not self._closing and reason not in ("client disconnect", "server disconnect", "io client disconnect", "io server disconnect"):
            self.retry_connection()

    def next_retry_delay(self) -> float:
        return min(1.0 * (2 ** self.reconnect_attempts), settings.WS_MAX_BACKOFF)

    def retry_connection(self) -> Optional[float]:
        """Schedule a reconnect with exponential backoff; None once attempts are exhausted."""
        if self.reconnect_attempts >= self.max_reconnect_attempts:
            logger.info("Max reconnection attempts reached. Stopping retries.")
            self.connection_error = "Unable to connect to chat service. Please check your connection."
            self.is_retrying = False
            return None
        if self._retry_task is not None and not self._retry_task.done():
            return None

        delay = self.next_retry_delay()
        logger.info(
            f"Retrying chat socket connection in {delay:.0f}s "
            f"(attempt {self.reconnect_attempts + 1}/{self.max_reconnect_attempts})"
        )
        self.is_retrying = True
        self._retry_task = asyncio.get_running_loop().create_task(self._retry_after(delay))
        return delay

    async def _retry_after(self, delay: float) -> None:
        await asyncio.sleep(delay)
        self.reconnect_attempts += 1
        self._retry_task = None
        await self.connect()

    # --- emits ---

    async def _emit(self, event: str, payload: Dict[str, Any]) -> bool:
        if not self.is_connected:
            logger.warning(f"Socket not connected, cannot emit '{event}'")
            return False
        try:
            await self.sio.emit(event, payload)
        except SocketIOError as e:
            logger.warning(f"Emit of '{event}' failed: {e}")
            return False
        return True

    async def send_message(
        self,
        conversation_id: str,
        content: str,
        message_type: MessageType = MessageType.TEXT,
        file_meta: Optional[FileMeta] = None,
        reply_to: Optional[str] = None,
    ) -> bool:
        outgoing = OutgoingSocketMessage(
            conversation_id=conversation_id,
            content=content,
            type=MessageType(message_type).value,
            reply_to=reply_to,
        )
        if file_meta is not None:
            outgoing.file_url = file_meta.url
            outgoing.file_name = file_meta.name
            outgoing.file_size = file_meta.size
            outgoing.mime_type = file_meta.mime_type
        return await self._emit(events.SEND_MESSAGE, outgoing.to_wire())

    async def join_conversation(self, conversation_id: str) -> bool:
        sent = await self._emit(events.JOIN_CONVERSATION, {"conversationId": conversation_id})
        if sent:
            self.current_conversation_id = conversation_id
        return sent

    async def leave_conversation(self, conversation_id: str) -> bool:
        sent = await self._emit(events.LEAVE_CONVERSATION, {"conversationId": conversation_id})
        if sent and self.current_conversation_id == conversation_id:
            self.current_conversation_id = None
        return sent

    async def send_typing_indicator(self, conversation_id: str, is_typing: bool) -> bool:
        return await self._emit(events.TYPING_INDICATOR, {"conversationId": conversation_id, "isTyping": is_typing})

    async def mark_as_read(self, conversation_id: str, message_id: Optional[str] = None) -> bool:
        payload: Dict[str, Any] = {"conversationId": conversation_id}
        if message_id:
            payload["messageId"] = message_id
        return await self._emit(events.MARK_AS_READ, payload)
