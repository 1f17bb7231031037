"""Correlation oracle clients."""

from typing import Protocol

import httpx

from vibe_history.config import OracleConfig
from vibe_history.errors import OracleError
from vibe_history.logging import get_logger

logger = get_logger("oracle")

ANTHROPIC_VERSION = "2023-06-01"


class CorrelationOracle(Protocol):
    """Text-in, text-out model that proposes chat/commit links."""

    def complete(self, prompt: str) -> str: ...


class AnthropicOracle:
    """Oracle backed by the Anthropic Messages API.

    Every failure (transport, HTTP status, unexpected payload) is raised
    as OracleError. No retries are attempted.
    """

    def __init__(self, config: OracleConfig, transport: httpx.BaseTransport | None = None) -> None:
        self._config = config
        self._client = httpx.Client(
            base_url=config.api_url,
            headers={
                "x-api-key": config.api_key,
                "anthropic-version": ANTHROPIC_VERSION,
                "content-type": "application/json",
            },
            timeout=config.timeout_seconds,
            transport=transport,
        )

    def complete(self, prompt: str) -> str:
        if not self._config.api_key:
            raise OracleError("Oracle API key is not configured")
        payload = {
            "model": self._config.model,
            "max_tokens": self._config.max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        try:
            response = self._client.post("/v1/messages", json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise OracleError(f"Oracle returned HTTP {e.response.status_code}") from e
        except (httpx.HTTPError, ValueError) as e:
            raise OracleError(f"Oracle request failed: {type(e).__name__}") from e

        blocks = data.get("content") if isinstance(data, dict) else None
        text_parts = [
            block.get("text", "")
            for block in blocks or []
            if isinstance(block, dict) and block.get("type") == "text"
        ]
        if not text_parts:
            raise OracleError("Oracle response contained no text")

        usage = data.get("usage") or {}
        logger.debug(
            "Oracle completed: model=%s input_tokens=%s output_tokens=%s stop_reason=%s",
            data.get("model", self._config.model),
            usage.get("input_tokens"),
            usage.get("output_tokens"),
            data.get("stop_reason"),
        )
        return "".join(text_parts)

    def close(self) -> None:
        self._client.close()
