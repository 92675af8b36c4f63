"""Per-conversation message history for the completion engine.

A conversation is keyed by ``(channel_id, user_id)``. Only the most recent
``history_length`` messages are retained; there are no expiry timers. Once
``max_conversations`` keys are held, the least recently used one is dropped.
"""

from __future__ import annotations

from collections import OrderedDict, deque
from typing import Deque, Dict, List, Tuple

from rulekeeper.util.logger import get_logger

logger = get_logger("conversation_history")

ConversationKey = Tuple[int, int]


class ConversationHistory:
    """Bounded chat history per channel and user."""

    def __init__(self, max_messages: int = 10, max_conversations: int = 1000) -> None:
        self.max_messages = max(1, int(max_messages))
        self.max_conversations = max(1, int(max_conversations))
        self._conversations: OrderedDict[ConversationKey, Deque[Dict[str, str]]] = OrderedDict()

    def is_new(self, key: ConversationKey) -> bool:
        return not self._conversations.get(key)

    def get(self, key: ConversationKey) -> List[Dict[str, str]]:
        """Return a copy of the stored messages, oldest first."""
        return list(self._conversations.get(key, ()))

    def append(self, key: ConversationKey, role: str, content: str) -> None:
        history = self._conversations.get(key)
        if history is None:
            history = self._conversations[key] = deque(maxlen=self.max_messages)
        else:
            self._conversations.move_to_end(key)
        history.append({"role": role, "content": content})

        while len(self._conversations) > self.max_conversations:
            evicted, _ = self._conversations.popitem(last=False)
            logger.debug("[CONVERSATION HISTORY] Evicted conversation %s", evicted)

    def record_exchange(self, key: ConversationKey, question: str, answer: str) -> None:
        self.append(key, "user", question)
        self.append(key, "assistant", answer)

    def clear(self, key: ConversationKey) -> None:
        if self._conversations.pop(key, None) is not None:
            logger.debug("[CONVERSATION HISTORY] Cleared conversation %s", key)

    def __len__(self) -> int:
        return len(self._conversations)
