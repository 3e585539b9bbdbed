"""
Chat Session Store.

Keeps the conversation list fresh by polling while a user is logged in,
and applies sent messages optimistically from the send response.

Merge rules:
- A poll replaces conversation summaries but keeps each conversation's
  already-loaded message history (the list endpoint carries no messages).
- Messages are keyed by id, so a message appended after a send is never
  duplicated by a later load or refresh.
- Only the latest list fetch is applied, and conversations touched locally
  after it started survive a response that does not list them yet.
"""

import asyncio
from pathlib import Path

from structlog import get_logger

from vibing.api.chat import ChatApi
from vibing.api.client import ApiClient
from vibing.api.uploads import UploadsApi
from vibing.config import settings
from vibing.exceptions import (
    ApiError,
    AuthenticationRequiredError,
    InputValidationError,
    SessionExpiredError,
)
from vibing.models.api import (
    ChatMessage,
    Conversation,
    CreateConversationRequest,
    LastMessage,
    MessageType,
)
from vibing.observability.metrics import metrics
from vibing.services.auth_session import AuthSession
from vibing.services.store import Store

logger = get_logger(__name__)


class ChatSession(Store):
    """
    Conversation list, active conversation and message histories.

    When constructed with an AuthSession, polling follows the login state:
    it starts on login and stops (clearing all chat state) on logout or
    session expiry.
    """

    def __init__(
        self,
        client: ApiClient,
        auth: AuthSession | None = None,
        poll_interval: float | None = None,
        reconcile_delay: float | None = None,
    ) -> None:
        super().__init__()
        self.chat_api = ChatApi(client)
        self.uploads_api = UploadsApi(client)
        self.auth = auth
        self.poll_interval = poll_interval or settings.chat_poll_interval
        self.reconcile_delay = (
            settings.chat_reconcile_delay if reconcile_delay is None else reconcile_delay
        )

        self.conversations: list[Conversation] = []
        self.active_conversation_id: str | None = None
        self.loading = False
        self.error: str | None = None

        self._poll_task: asyncio.Task[None] | None = None
        self._background: set[asyncio.Task[None]] = set()
        self._list_generation = 0
        self._local_seq = 0
        self._touched: dict[str, int] = {}
        self._unsubscribe_auth = auth.subscribe(self._on_auth_change) if auth else None

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    @property
    def unread_count(self) -> int:
        return sum(conv.unread_count for conv in self.conversations)

    @property
    def is_polling(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    def get_conversation(self, conversation_id: str) -> Conversation | None:
        for conv in self.conversations:
            if conv.id == conversation_id:
                return conv
        return None

    def active_conversation(self) -> Conversation | None:
        if self.active_conversation_id is None:
            return None
        return self.get_conversation(self.active_conversation_id)

    # ------------------------------------------------------------------
    # Polling lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start polling the conversation list. No-op if already polling."""
        if self.is_polling:
            return
        self._poll_task = asyncio.create_task(self._poll_loop())
        logger.info("chat_polling_started", interval=self.poll_interval)

    async def stop(self) -> None:
        """Stop polling and any pending reconcile refresh."""
        tasks = self._cancel_tasks()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def close(self) -> None:
        if self._unsubscribe_auth is not None:
            self._unsubscribe_auth()
            self._unsubscribe_auth = None
        await self.stop()

    def _cancel_tasks(self) -> list[asyncio.Task[None]]:
        tasks = [t for t in [self._poll_task, *self._background] if t is not None]
        for task in tasks:
            if not task.done():
                task.cancel()
        if self._poll_task is not None:
            logger.info("chat_polling_stopped")
        self._poll_task = None
        self._background.clear()
        return tasks

    async def _poll_loop(self) -> None:
        while True:
            try:
                await self.refresh_conversations()
                metrics.record_chat_poll(True)
            except SessionExpiredError:
                metrics.record_chat_poll(False)
                logger.info("chat_polling_ended_session_expired")
                return
            except ApiError as exc:
                metrics.record_chat_poll(False)
                logger.warning("chat_poll_failed", error=exc.message, status=exc.status_code)
                self.error = exc.message
                self._notify()
            await asyncio.sleep(self.poll_interval)

    def _on_auth_change(self, store: Store) -> None:
        assert self.auth is not None
        if self.auth.loading:
            return
        if self.auth.is_authenticated:
            try:
                asyncio.get_running_loop()
            except RuntimeError:
                logger.warning("chat_polling_not_started_no_loop")
                return
            self.start()
        elif self.is_polling or self.conversations:
            self._cancel_tasks()
            self.conversations = []
            self._touched.clear()
            self._list_generation += 1
            self.active_conversation_id = None
            self._notify()

    # ------------------------------------------------------------------
    # Conversations
    # ------------------------------------------------------------------

    async def refresh_conversations(self) -> list[Conversation]:
        """
        Fetch the conversation list, keeping loaded message histories.

        List fetches are numbered and only the latest one is applied. A
        conversation created or sent to locally while the fetch was in flight
        is kept even when the response predates it.
        """
        self._list_generation += 1
        generation = self._list_generation
        started = self._local_seq

        try:
            response = await self.chat_api.conversations()
        except SessionExpiredError:
            raise
        except ApiError:
            if generation != self._list_generation:
                logger.debug("stale_conversation_list_error_ignored", generation=generation)
                return self.conversations
            raise

        if generation != self._list_generation:
            logger.debug("stale_conversation_list_discarded", generation=generation)
            return self.conversations

        known = {conv.id: conv for conv in self.conversations}
        merged: list[Conversation] = []
        for conv in response.conversations:
            previous = known.pop(conv.id, None)
            if previous is not None:
                conv.messages = previous.messages
                if self._touched.get(conv.id, 0) > started and previous.last_message:
                    conv.last_message = previous.last_message
            merged.append(conv)
        for conv in known.values():
            if self._touched.get(conv.id, 0) > started:
                merged.append(conv)

        self._touched = {cid: seq for cid, seq in self._touched.items() if seq > started}
        self.conversations = merged
        self.error = None
        self._notify()
        return merged

    async def start_conversation(
        self,
        seller_id: str,
        seller_name: str,
        product_id: str | None = None,
        product_name: str | None = None,
    ) -> str:
        """Open (or reuse) the conversation with a seller about a product."""
        if self.auth is not None and not self.auth.is_authenticated:
            raise AuthenticationRequiredError()

        for conv in self.conversations:
            if conv.other_user_id == seller_id and conv.product_id == product_id:
                self.active_conversation_id = conv.id
                self._notify()
                return conv.id

        created = await self.chat_api.create_conversation(
            CreateConversationRequest(
                seller_id=seller_id,
                seller_name=seller_name,
                product_id=product_id,
                product_name=product_name,
            )
        )
        if self.get_conversation(created.id) is None:
            self.conversations.append(
                Conversation(
                    id=created.id,
                    other_user_id=seller_id,
                    other_user_name=seller_name,
                    product_id=created.product_id or product_id,
                    product_name=created.product_name or product_name,
                )
            )
        self._touch(created.id)
        self.active_conversation_id = created.id
        logger.info("conversation_started", conversation_id=created.id, product_id=product_id)
        self._notify()
        return created.id

    async def select_conversation(self, conversation_id: str) -> None:
        self.active_conversation_id = conversation_id
        self._notify()
        await self.load_messages(conversation_id)
        await self.mark_as_read(conversation_id)

    async def load_messages(
        self, conversation_id: str, page: int = 1, limit: int = 50
    ) -> list[ChatMessage]:
        self.loading = True
        self._notify()
        try:
            response = await self.chat_api.messages(conversation_id, page, limit)
        finally:
            self.loading = False

        conv = self.get_conversation(conversation_id)
        if conv is None:
            self._notify()
            return response.messages

        server_ids = {m.id for m in response.messages}
        pending = [m for m in conv.messages if m.id not in server_ids]
        conv.messages = [*response.messages, *pending]
        self._notify()
        return conv.messages

    async def mark_as_read(self, conversation_id: str) -> None:
        conv = self.get_conversation(conversation_id)
        if conv is not None:
            conv.unread_count = 0
            self._notify()
        try:
            await self.chat_api.mark_as_read(conversation_id)
        except SessionExpiredError:
            raise
        except ApiError as exc:
            logger.warning(
                "mark_as_read_failed", conversation_id=conversation_id, error=exc.message
            )

    # ------------------------------------------------------------------
    # Sending
    # ------------------------------------------------------------------

    def _target(self, conversation_id: str | None) -> str:
        target = conversation_id or self.active_conversation_id
        if not target:
            raise InputValidationError("conversation_id", "No conversation selected")
        return target

    async def send_message(self, text: str, conversation_id: str | None = None) -> ChatMessage:
        if not text.strip():
            raise InputValidationError("text", "Message cannot be empty")
        target = self._target(conversation_id)

        message = await self.chat_api.send_message(target, text.strip())
        metrics.chat_messages_sent_total.labels(message_type=MessageType.TEXT.value).inc()
        self._append_message(target, message)
        self._schedule_reconcile()
        return message

    async def send_image(self, path: str | Path, conversation_id: str | None = None) -> ChatMessage:
        target = self._target(conversation_id)

        uploaded = await self.uploads_api.upload_chat_image(path)
        message = await self.chat_api.send_image(target, uploaded.image_url)
        metrics.chat_messages_sent_total.labels(message_type=MessageType.IMAGE.value).inc()
        self._append_message(target, message)
        self._schedule_reconcile()
        return message

    def _touch(self, conversation_id: str) -> None:
        self._local_seq += 1
        self._touched[conversation_id] = self._local_seq

    def _append_message(self, conversation_id: str, message: ChatMessage) -> None:
        conv = self.get_conversation(conversation_id)
        if conv is None:
            # Not listed yet; the next refresh fills in the summary.
            conv = Conversation(id=conversation_id)
            self.conversations.append(conv)
        self._touch(conversation_id)
        if all(existing.id != message.id for existing in conv.messages):
            conv.messages = [*conv.messages, message]
        conv.last_message = LastMessage(
            text=message.text or "[image]",
            timestamp=message.timestamp,
            sender_id=message.sender_id,
        )
        self._notify()

    def _schedule_reconcile(self) -> None:
        task = asyncio.create_task(self._reconcile())
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _reconcile(self) -> None:
        await asyncio.sleep(self.reconcile_delay)
        try:
            await self.refresh_conversations()
        except ApiError as exc:
            logger.warning("chat_reconcile_failed", error=exc.message)
