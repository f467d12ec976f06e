# audible_assistant/model_providers/ollama_chat.py
"""
Ollama Chat provider for generating replies with a local model
"""

import asyncio
import logging
import time
from typing import Any, Dict, List
import requests

from ..errors import GenerationError
from .base import ChatCompletionProvider

logger = logging.getLogger(__name__)


class OllamaChatProvider(ChatCompletionProvider):
    """Ollama Chat completion provider"""

    def __init__(self, host: str = "http://localhost:11434", model: str = "llama3.1:8b-instruct-q4_0", timeout: float = 30.0, temperature: float = 0.7):
        self.host = host.rstrip('/')
        self.model = model
        self.timeout = timeout
        self.temperature = temperature
        self.session = requests.Session()

    async def complete(self, messages: List[Dict[str, Any]]) -> str:
        """Create a chat completion using Ollama"""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._complete, messages)

    def _complete(self, messages: List[Dict[str, Any]]) -> str:
        start_time = time.time()
        payload = {
            "model": self.model,
            "messages": [
                {"role": msg.get("role", "user"), "content": msg.get("content", "")}
                for msg in messages
            ],
            "stream": False,
            "options": {
                "temperature": self.temperature,
                "num_ctx": 4096,  # Context window
            }
        }

        try:
            response = self.session.post(
                f"{self.host}/api/chat",
                json=payload,
                timeout=(5, self.timeout),  # 5s connect
            )
        except requests.exceptions.Timeout as e:
            elapsed = time.time() - start_time
            logger.warning(f"Ollama request timed out after {elapsed:.1f}s")
            raise GenerationError("Ollama request timed out") from e
        except requests.exceptions.RequestException as e:
            logger.warning(f"Could not connect to Ollama server: {e}")
            raise GenerationError("Ollama connection failed") from e

        if response.status_code != 200:
            raise GenerationError(f"Ollama API error {response.status_code}: {response.text}")

        try:
            result = response.json()
        except ValueError as e:
            raise GenerationError("Ollama returned invalid JSON") from e

        content = (result.get("message") or {}).get("content", "").strip()
        if not content:
            raise GenerationError("Ollama returned empty response")

        elapsed = time.time() - start_time
        logger.debug(f"Ollama responded in {elapsed:.2f}s: {content[:100]}...")
        return content

    def test_connection(self) -> bool:
        """Test if Ollama server is accessible"""
        try:
            response = self.session.get(f"{self.host}/api/tags", timeout=5)
            return response.status_code == 200
        except requests.exceptions.RequestException:
            return False
