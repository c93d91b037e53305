import logging
from typing import Any, Dict, Optional

import httpx

from ..config import settings
from ..core.errors import ChatCompletionError
from ..rag.models import ChatRequest

logger = logging.getLogger("rag.chat")


class ChatClient:
    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key or settings.openai_api_key.get_secret_value()
        self.base_url = (base_url or settings.openai_base_url).rstrip("/")
        self.model = model or settings.chat_model
        self.timeout = timeout
        self._transport = transport

    async def chat(self, request: ChatRequest) -> Dict[str, Any]:
        """
        Returns the raw assistant message dict, e.g.:
        {
            "role": "assistant",
            "content": "..."
        }
        """
        payload: Dict[str, Any] = {
            "model": request.model or self.model,
            "messages": [m.model_dump() for m in request.messages],
            "temperature": (
                request.temperature if request.temperature is not None else settings.chat_temperature
            ),
        }
        if request.max_tokens is not None:
            payload["max_tokens"] = request.max_tokens

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(
                    f"{self.base_url}/chat/completions",
                    json=payload,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                )
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPError as exc:
            logger.error("Chat completion failed (%s): %s", type(exc).__name__, exc)
            raise ChatCompletionError(f"Chat completion failed: {type(exc).__name__}") from exc
        except ValueError as exc:
            raise ChatCompletionError("Chat completion response is not valid JSON.") from exc

        try:
            return data["choices"][0]["message"]
        except (KeyError, IndexError, TypeError) as exc:
            raise ChatCompletionError("Chat completion response has no message.") from exc
