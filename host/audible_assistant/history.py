# audible_assistant/history.py
"""
Conversation context sent with each reply request
"""

import logging
from typing import Any, Dict, List

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are a friendly voice assistant. Everything you write is read aloud.

Keep replies short and conversational, usually one to three sentences.
Speak in complete sentences suitable for text-to-speech.
Do not use markdown, bullet points, code blocks, emoji or URLs unless the user explicitly asks for them.
If you did not understand the request, say so briefly and ask the user to repeat it."""


class ChatHistory:
    """System prompt plus the most recent completed exchanges"""

    def __init__(self, max_messages: int = 20, system_prompt: str = SYSTEM_PROMPT):
        self.max_messages = max_messages
        self.system_prompt = system_prompt
        self.messages: List[Dict[str, Any]] = []
        self.reset()

    def reset(self):
        """Reset the conversation history"""
        self.messages = [{"role": "system", "content": self.system_prompt}]
        logger.info("Conversation history reset")

    def messages_for(self, prompt: str) -> List[Dict[str, Any]]:
        """Request messages for ``prompt``; history itself is left untouched"""
        return self.messages + [{"role": "user", "content": prompt}]

    def record(self, prompt: str, reply: str):
        """Add a completed exchange and trim"""
        self.messages.append({"role": "user", "content": prompt})
        self.messages.append({"role": "assistant", "content": reply})
        self.trim()

    def trim(self):
        """Keep the system prompt and at most ``max_messages`` recent messages, in whole exchanges"""
        original_length = len(self.messages)
        excess = original_length - 1 - self.max_messages
        if excess > 0:
            # Drop user/assistant pairs so the window always opens on a user message
            excess += excess % 2
            self.messages = [self.messages[0]] + self.messages[1 + excess:]
            logger.debug(f"Trimmed conversation: {original_length} → {len(self.messages)} messages")

    def __len__(self) -> int:
        return len(self.messages)
