"""
Chat message storage consumed by the web layer.

The store sits behind a ``StoreHandle``: the connection is opened lazily on
the first ``acquire()`` and every later call returns the same store.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, List, Protocol

from csv_rag.errors import ChatAccessError, ChatNotFoundError

logger = logging.getLogger(__name__)

# Owner id used when a request runs in test mode; ownership checks are skipped.
TEST_USER_ID = "test-user-id"


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ChatMessage:
    message: str
    is_user: bool
    timestamp: datetime = field(default_factory=_now)


@dataclass
class Chat:
    id: str
    title: str
    user_id: str
    messages: List[ChatMessage] = field(default_factory=list)
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)


class ChatStore(Protocol):
    def connect(self) -> None: ...

    def insert(self, chat: Chat) -> None: ...

    def find(self, chat_id: str) -> Chat | None: ...

    def find_by_user(self, user_id: str) -> List[Chat]: ...

    def delete(self, chat_id: str) -> None: ...


class InMemoryChatStore:
    def __init__(self) -> None:
        self._chats: Dict[str, Chat] = {}
        self.connect_calls = 0

    def connect(self) -> None:
        self.connect_calls += 1

    def insert(self, chat: Chat) -> None:
        self._chats[chat.id] = chat

    def find(self, chat_id: str) -> Chat | None:
        return self._chats.get(chat_id)

    def find_by_user(self, user_id: str) -> List[Chat]:
        return [c for c in self._chats.values() if c.user_id == user_id]

    def delete(self, chat_id: str) -> None:
        self._chats.pop(chat_id, None)


class StoreHandle:
    """Lazily connects the store produced by ``factory``; ``acquire`` is idempotent."""

    def __init__(self, factory: Callable[[], ChatStore]) -> None:
        self._factory = factory
        self._store: ChatStore | None = None

    @property
    def connected(self) -> bool:
        return self._store is not None

    def acquire(self) -> ChatStore:
        if self._store is None:
            store = self._factory()
            store.connect()
            logger.info("Chat store connected")
            self._store = store
        return self._store


class ChatService:
    """Chat CRUD with ownership checks; ``test_mode`` bypasses them."""

    def __init__(self, handle: StoreHandle) -> None:
        self._handle = handle

    def create_chat(self, user_id: str, title: str) -> Chat:
        chat = Chat(id=uuid.uuid4().hex, title=title, user_id=user_id)
        self._handle.acquire().insert(chat)
        return chat

    def list_chats(self, user_id: str) -> List[Chat]:
        chats = self._handle.acquire().find_by_user(user_id)
        return sorted(chats, key=lambda c: c.updated_at, reverse=True)

    def get_chat(self, chat_id: str, user_id: str, test_mode: bool = False) -> Chat:
        chat = self._handle.acquire().find(chat_id)
        if chat is None:
            raise ChatNotFoundError(f"Chat not found: {chat_id}")
        if not test_mode and chat.user_id != user_id:
            raise ChatAccessError(f"User {user_id} does not own chat {chat_id}")
        return chat

    def replace_messages(
        self,
        chat_id: str,
        user_id: str,
        messages: List[ChatMessage],
        test_mode: bool = False,
    ) -> Chat:
        chat = self.get_chat(chat_id, user_id, test_mode=test_mode)
        chat.messages = list(messages)
        chat.updated_at = _now()
        return chat

    def delete_chat(self, chat_id: str, user_id: str, test_mode: bool = False) -> None:
        self.get_chat(chat_id, user_id, test_mode=test_mode)
        self._handle.acquire().delete(chat_id)
