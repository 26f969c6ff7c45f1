# admin_chat/services/chat_session.py
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple
import asyncio
import logging
import uuid

from pydantic import ValidationError

from admin_chat.config import settings
from admin_chat.core.exceptions import ChatClientError
from admin_chat.models.conversation import Conversation, ConversationPriority
from admin_chat.models.message import FileMeta, Message, MessageType, SenderType, TypingIndicator, make_body
from admin_chat.schemas import websocket as events
from admin_chat.schemas.conversation import ConversationQuery, CreateConversationRequest, UserSearchResult
from admin_chat.schemas.message import PaginationPayload
from admin_chat.schemas.websocket import (
    ConversationAssignedEvent, MessageErrorEvent, MessagesReadEvent, NewMessageEvent,
    PriorityChangedEvent, UserStatusEvent, UserTypingEvent
)
from admin_chat.services.chat_service import ChatService
from admin_chat.services.conversation_store import ConversationFilter, ConversationStore
from admin_chat.services.notifier import Notifier
from admin_chat.services.socket_client import ChatSocketClient
from admin_chat.services.transport import MessageTransport, TransportState
from admin_chat.utils.timeline import MessageView, ReadState, TimelineItem, build_timeline, message_view, read_state

logger = logging.getLogger(__name__)

RECONNECTING_BANNER = "Reconnecting…"
LOCAL_ID_PREFIX = "local-"


class ChatSession:
    """State of the admin chat widget: conversation list, active pane and live events.

    All mutation happens on the event loop that drives the socket, so no locking
    is needed. Fetch and mutation failures become notifications and leave the
    previously loaded state in place.
    """

    def __init__(
        self,
        current_user_id: str,
        chat_service: ChatService,
        socket: ChatSocketClient,
        store: Optional[ConversationStore] = None,
        notifier: Optional[Notifier] = None,
        page_size: Optional[int] = None,
        typing_ttl: Optional[float] = None,
        current_user_name: str = "Admin",
    ):
        self.current_user_id = current_user_id
        self.current_user_name = current_user_name
        self.chat_service = chat_service
        self.socket = socket
        self.store = store if store is not None else ConversationStore()
        self.notifier = notifier if notifier is not None else Notifier()
        self.transport = MessageTransport(socket, chat_service)
        self.page_size = settings.MESSAGES_PAGE_SIZE if page_size is None else page_size
        self.typing_ttl = settings.TYPING_INDICATOR_TTL if typing_ttl is None else typing_ttl

        self.search_term = ""
        self.filter = ConversationFilter()
        self.active_conversation_id: Optional[str] = None
        self.messages: List[Message] = []
        self.messages_pagination: Optional[PaginationPayload] = None
        self.is_loading_messages = False

        self._typing: Dict[str, Dict[str, TypingIndicator]] = {}
        self._typing_timers: Dict[Tuple[str, str], asyncio.TimerHandle] = {}

        self._register_handlers()

    def _register_handlers(self) -> None:
        self.socket.on(events.NEW_MESSAGE, self._on_new_message)
        self.socket.on(events.MESSAGE_ERROR, self._on_message_error)
        self.socket.on(events.MESSAGES_READ, self._on_messages_read)
        self.socket.on(events.USER_TYPING, self._on_user_typing)
        self.socket.on(events.USER_STATUS_CHANGED, self._on_user_status_changed)
        self.socket.on(events.CONVERSATION_ASSIGNED, self._on_conversation_assigned)
        self.socket.on(events.PRIORITY_CHANGED, self._on_priority_changed)
        self.socket.on_connection_change(self.on_connection_change)

    # --- conversation list ---

    async def load_conversations(self, query: Optional[ConversationQuery] = None) -> List[Conversation]:
        try:
            conversations, _ = await self.chat_service.get_all_conversations(query)
        except ChatClientError as e:
            logger.error(f"Failed to load conversations: {e}")
            self.notifier.error("Failed to load conversations")
            return list(self.store)
        self.store.replace_all(conversations)
        return conversations

    def filtered_conversations(self) -> List[Conversation]:
        return self.store.filter(self.search_term, self.filter, self.current_user_id)

    @property
    def active_conversation(self) -> Optional[Conversation]:
        if self.active_conversation_id is None:
            return None
        return self.store.get(self.active_conversation_id)

    async def select_conversation(self, conversation_id: str) -> None:
        previous = self.active_conversation_id
        if previous is not None and previous != conversation_id:
            await self.socket.leave_conversation(previous)

        conversation = self.store.get(conversation_id)
        unread = conversation.unread_count if conversation is not None else 0

        self.active_conversation_id = conversation_id
        self.messages = []
        self.messages_pagination = None
        self.store.reset_unread(conversation_id)

        await self.refresh_messages()
        await self._join_active(unread)

    async def search_users(self, query: str, user_type: Optional[str] = None) -> List[UserSearchResult]:
        query = query.strip()
        if not query:
            return []
        try:
            return await self.chat_service.search_users(query, user_type)
        except ChatClientError as e:
            logger.error(f"Failed to search users for '{query}': {e}")
            self.notifier.error("Failed to search users")
            return []

    async def start_conversation(self, user: UserSearchResult) -> Optional[Conversation]:
        """Open a support conversation with ``user``, add it to the list and select it."""
        try:
            conversation = await self.chat_service.create_conversation(CreateConversationRequest.support_with(user))
        except ChatClientError as e:
            logger.error(f"Failed to create conversation with {user.id}: {e}")
            self.notifier.error("Failed to create conversation")
            return None

        self.store.upsert(conversation)
        await self.select_conversation(conversation.id)
        self.notifier.success("New conversation created")
        return conversation

    async def _join_active(self, unread: int) -> None:
        conversation_id = self.active_conversation_id
        if conversation_id is None:
            return
        if self.transport.state == TransportState.CONNECTED:
            await self.socket.join_conversation(conversation_id)
        else:
            logger.info(f"Socket disconnected, room join for {conversation_id} deferred")

        if unread > 0:
            try:
                await self.chat_service.mark_messages_as_read(conversation_id)
            except ChatClientError as e:
                logger.error(f"Failed to mark conversation {conversation_id} as read: {e}")
                self.notifier.error("Failed to mark messages as read")
            await self.socket.mark_as_read(conversation_id)

    async def on_connection_change(self, connected: bool) -> None:
        if not connected or self.active_conversation_id is None:
            return
        active = self.active_conversation
        await self._join_active(active.unread_count if active is not None else 0)
        await self.refresh_messages()

    async def close(self) -> None:
        """Leave the active room. Uploads and sends already in flight are left to finish."""
        if self.active_conversation_id is not None:
            await self.socket.leave_conversation(self.active_conversation_id)
        self.active_conversation_id = None
        self.messages = []
        for handle in self._typing_timers.values():
            handle.cancel()
        self._typing_timers.clear()
        self._typing.clear()

    # --- message pane ---

    async def refresh_messages(self) -> List[Message]:
        """Reload the active conversation's history from the server."""
        conversation_id = self.active_conversation_id
        if conversation_id is None:
            return []
        self.is_loading_messages = True
        try:
            messages, pagination = await self.chat_service.get_conversation_messages(
                conversation_id, page=1, limit=self.page_size
            )
        except ChatClientError as e:
            logger.error(f"Failed to load messages for {conversation_id}: {e}")
            self.notifier.error("Failed to load messages")
            return self.messages
        finally:
            self.is_loading_messages = False

        if conversation_id != self.active_conversation_id:
            # selection moved on while loading
            return self.messages
        self.messages = messages
        self.messages_pagination = pagination
        return messages

    async def send_message(
        self,
        conversation_id: str,
        content: str,
        message_type: MessageType = MessageType.TEXT,
        file_meta: Optional[FileMeta] = None,
        reply_to: Optional[str] = None,
    ) -> Message:
        """Send through the transport, showing an optimistic copy in the pane while it is in flight.

        The local copy goes in before the send so an echo that arrives during
        the socket emit reconciles against it. On the REST path the server copy
        replaces it; if the send fails it is withdrawn and the error propagates.
        """
        local = Message(
            id=f"{LOCAL_ID_PREFIX}{uuid.uuid4().hex}",
            conversation_id=conversation_id,
            sender_id=self.current_user_id,
            sender_name=self.current_user_name,
            sender_type=SenderType.ADMIN,
            content=content,
            timestamp=datetime.now(timezone.utc),
            body=make_body(MessageType(message_type), file_meta),
            reply_to=reply_to,
        )
        in_pane = conversation_id == self.active_conversation_id
        if in_pane:
            # appended as-is; merging would fold it into an earlier unconfirmed copy
            self.messages.append(local)

        try:
            result = await self.transport.send(conversation_id, content, message_type, file_meta, reply_to)
        except Exception:
            self._withdraw(local.id)
            raise

        if result.message is not None:
            self._withdraw(local.id, replacement=result.message)
            self.store.record_message(result.message)
            return result.message

        if not in_pane or self.find_message(local.id) is not None:
            self.store.record_message(local)
        return local

    def _withdraw(self, local_id: str, replacement: Optional[Message] = None) -> None:
        for index, existing in enumerate(self.messages):
            if existing.id != local_id:
                continue
            if replacement is None or self.find_message(replacement.id) is not None:
                del self.messages[index]
            else:
                self.messages[index] = replacement
            return

    def _merge_message(self, message: Message) -> None:
        for index, existing in enumerate(self.messages):
            if existing.id == message.id:
                self.messages[index] = message
                return

        if message.sender_id == self.current_user_id:
            for index, existing in enumerate(self.messages):
                if (
                    existing.id.startswith(LOCAL_ID_PREFIX)
                    and existing.content == message.content
                    and existing.type == message.type
                ):
                    self.messages[index] = message
                    return

        # arrival order, no re-sort
        self.messages.append(message)

    def timeline(self) -> List[TimelineItem]:
        return build_timeline(self.messages, self.current_user_id)

    def read_state(self, message: Message) -> Optional[ReadState]:
        return read_state(message, self.current_user_id)

    def message_view(self, message: Message, now: Optional[datetime] = None) -> MessageView:
        return message_view(message, self.current_user_id, now)

    def find_message(self, message_id: str) -> Optional[Message]:
        for message in self.messages:
            if message.id == message_id:
                return message
        return None

    def typing_users(self, conversation_id: Optional[str] = None) -> List[TypingIndicator]:
        conversation_id = conversation_id or self.active_conversation_id
        if conversation_id is None:
            return []
        return list(self._typing.get(conversation_id, {}).values())

    @property
    def connection_banner(self) -> Optional[str]:
        if self.transport.state == TransportState.CONNECTED:
            return None
        return RECONNECTING_BANNER

    async def send_typing(self, is_typing: bool) -> None:
        if self.active_conversation_id is not None:
            await self.socket.send_typing_indicator(self.active_conversation_id, is_typing)

    # --- socket events ---

    @staticmethod
    def _parse(model, data: Any, event: str):
        try:
            return model.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Ignoring malformed '{event}' payload: {e}")
            return None

    async def _on_new_message(self, data: Any) -> None:
        event = self._parse(NewMessageEvent, data, events.NEW_MESSAGE)
        if event is None:
            return
        message = event.message.to_domain(event.conversation_id)
        is_active = event.conversation_id == self.active_conversation_id
        is_own = message.sender_id == self.current_user_id

        if is_active:
            self._merge_message(message)
        self.store.record_message(message, count_unread=not is_active and not is_own)

        if not is_own and not is_active:
            self.notifier.info(f"New message from {message.sender_name or 'Unknown'}: {message.content}")

    async def _on_message_error(self, data: Any) -> None:
        event = self._parse(MessageErrorEvent, data, events.MESSAGE_ERROR)
        if event is not None:
            self.notifier.error(event.error)

    async def _on_messages_read(self, data: Any) -> None:
        event = self._parse(MessagesReadEvent, data, events.MESSAGES_READ)
        if event is None:
            return
        if event.user_id == self.current_user_id:
            self.store.reset_unread(event.conversation_id)
        if event.conversation_id != self.active_conversation_id:
            return
        for message in self.messages:
            if message.sender_id == event.user_id:
                continue
            if event.message_id is None or message.id == event.message_id:
                message.mark_read_by(event.user_id)

    async def _on_user_typing(self, data: Any) -> None:
        event = self._parse(UserTypingEvent, data, events.USER_TYPING)
        if event is None or event.user_id == self.current_user_id:
            return
        key = (event.conversation_id, event.user_id)
        timer = self._typing_timers.pop(key, None)
        if timer is not None:
            timer.cancel()

        if not event.is_typing:
            self._clear_typing(*key)
            return

        self._typing.setdefault(event.conversation_id, {})[event.user_id] = TypingIndicator(
            user_id=event.user_id,
            user_name=event.user_name,
            conversation_id=event.conversation_id,
            timestamp=datetime.now(timezone.utc),
        )
        loop = asyncio.get_running_loop()
        self._typing_timers[key] = loop.call_later(self.typing_ttl, self._clear_typing, *key)

    def _clear_typing(self, conversation_id: str, user_id: str) -> None:
        self._typing_timers.pop((conversation_id, user_id), None)
        typists = self._typing.get(conversation_id)
        if typists is None:
            return
        typists.pop(user_id, None)
        if not typists:
            del self._typing[conversation_id]

    async def _on_user_status_changed(self, data: Any) -> None:
        event = self._parse(UserStatusEvent, data, events.USER_STATUS_CHANGED)
        if event is None:
            return
        for conversation in self.store:
            if event.user_id not in conversation.participant_ids:
                continue
            participants = [
                p.model_copy(update={"is_online": event.is_online, "last_seen": event.last_seen or p.last_seen})
                if p.id == event.user_id else p
                for p in conversation.participants
            ]
            self.store.update(conversation.id, participants=participants)

    async def _on_conversation_assigned(self, data: Any) -> None:
        event = self._parse(ConversationAssignedEvent, data, events.CONVERSATION_ASSIGNED)
        if event is not None:
            self.store.update(event.conversation_id, assigned_to=event.admin_id)

    async def _on_priority_changed(self, data: Any) -> None:
        event = self._parse(PriorityChangedEvent, data, events.PRIORITY_CHANGED)
        if event is None:
            return
        try:
            priority = ConversationPriority(event.priority)
        except ValueError:
            logger.warning(f"Unknown priority '{event.priority}' for {event.conversation_id}")
            return
        self.store.update(event.conversation_id, priority=priority)
