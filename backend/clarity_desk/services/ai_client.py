from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from ..models.settings import AIProvider, AISettings

logger = logging.getLogger(__name__)

# Transport faults worth another attempt; HTTP error statuses are not retried here.
_RETRYABLE_EXCEPTIONS = (
    httpx.RemoteProtocolError,
    httpx.ReadError,
    httpx.ConnectError,
    httpx.ConnectTimeout,
)

DEFAULT_SYSTEM_PROMPT = "You are the Clarity Desk vehicle intelligence assistant. Answer with JSON only."


class AIClient:
    _MAX_RETRIES = 2

    async def generate_text(
        self,
        prompt: str,
        ai_settings: AISettings,
        images_base64: list[str] | None = None,
        *,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
    ) -> str:
        last_exc: Exception | None = None
        attempts = 1 + self._MAX_RETRIES
        for attempt in range(attempts):
            try:
                if ai_settings.provider == AIProvider.openai_compatible:
                    return await self._generate_via_openai_compatible(
                        prompt, ai_settings, images_base64, system_prompt
                    )
                if ai_settings.provider == AIProvider.anthropic:
                    return await self._generate_via_anthropic(
                        prompt, ai_settings, images_base64, system_prompt
                    )
                raise RuntimeError(f"Unsupported provider: {ai_settings.provider.value}")
            except _RETRYABLE_EXCEPTIONS as exc:
                last_exc = exc
                if attempt < attempts - 1:
                    logger.warning(
                        "Generation request failed (attempt %d/%d): %s, retrying",
                        attempt + 1,
                        attempts,
                        exc,
                    )
        raise RuntimeError(f"Generation request failed after {attempts} attempts: {last_exc}")

    async def test_connection(self, ai_settings: AISettings) -> str:
        result = await self.generate_text("Reply with exactly: ok", ai_settings, system_prompt="")
        return result[:200]

    # -------- OpenAI-compatible --------

    def _resolve_openai_compatible_url(self, api_base: str) -> str:
        base = api_base.strip().rstrip("/")
        if base.endswith("/chat/completions"):
            return base
        if base.endswith("/v1"):
            return base + "/chat/completions"
        return base + "/v1/chat/completions"

    def _build_openai_messages(
        self, prompt: str, images_base64: list[str] | None, system_prompt: str
    ) -> list[dict[str, Any]]:
        messages: list[dict[str, Any]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        if not images_base64:
            messages.append({"role": "user", "content": prompt})
            return messages

        content: list[dict[str, Any]] = [{"type": "text", "text": prompt}]
        for b64 in images_base64:
            content.append({"type": "image_url", "image_url": {"url": f"data:image/jpeg;base64,{b64}"}})
        messages.append({"role": "user", "content": content})
        return messages

    async def _generate_via_openai_compatible(
        self,
        prompt: str,
        ai_settings: AISettings,
        images_base64: list[str] | None,
        system_prompt: str,
    ) -> str:
        if not ai_settings.api_base or not ai_settings.api_key:
            raise RuntimeError("AI api_base/api_key is not configured")

        url = self._resolve_openai_compatible_url(ai_settings.api_base)
        headers = {
            "Authorization": f"Bearer {ai_settings.api_key}",
            "Content-Type": "application/json",
        }
        payload = {
            "model": ai_settings.model,
            "messages": self._build_openai_messages(prompt, images_base64, system_prompt),
            "temperature": ai_settings.temperature,
            "stream": True,
        }

        async with httpx.AsyncClient(timeout=self._build_timeout(ai_settings.timeout_seconds)) as client:
            async with client.stream("POST", url, headers=headers, json=payload) as resp:
                await self._raise_for_status_with_body(resp, "openai-compatible")
                text_parts: list[str] = []
                async for _event_name, data in self._iter_sse_events(resp):
                    if self._consume_openai_sse_data(data, text_parts):
                        break

        content = "".join(text_parts).strip()
        if not content:
            raise RuntimeError("Empty content returned from model provider")
        return content

    # -------- Anthropic --------

    def _build_anthropic_messages(self, prompt: str, images_base64: list[str] | None) -> list[dict[str, Any]]:
        if not images_base64:
            return [{"role": "user", "content": prompt}]
        content: list[dict[str, Any]] = [{"type": "text", "text": prompt}]
        for b64 in images_base64:
            content.append(
                {
                    "type": "image",
                    "source": {"type": "base64", "media_type": "image/jpeg", "data": b64},
                }
            )
        return [{"role": "user", "content": content}]

    async def _generate_via_anthropic(
        self,
        prompt: str,
        ai_settings: AISettings,
        images_base64: list[str] | None,
        system_prompt: str,
    ) -> str:
        if not ai_settings.api_base or not ai_settings.api_key:
            raise RuntimeError("AI api_base/api_key is not configured")

        url = ai_settings.api_base.rstrip("/") + "/v1/messages"
        headers = {
            "x-api-key": ai_settings.api_key,
            "anthropic-version": "2023-06-01",
            "Content-Type": "application/json",
        }
        payload: dict[str, Any] = {
            "model": ai_settings.model,
            "max_tokens": 4096,
            "temperature": ai_settings.temperature,
            "messages": self._build_anthropic_messages(prompt, images_base64),
            "stream": True,
        }
        if system_prompt:
            payload["system"] = system_prompt

        async with httpx.AsyncClient(timeout=self._build_timeout(ai_settings.timeout_seconds)) as client:
            async with client.stream("POST", url, headers=headers, json=payload) as resp:
                await self._raise_for_status_with_body(resp, "anthropic")
                text_parts: list[str] = []
                async for event_name, data in self._iter_sse_events(resp):
                    if self._consume_anthropic_sse_data(event_name, data, text_parts):
                        break

        content = "".join(text_parts).strip()
        if not content:
            raise RuntimeError("Empty content returned from anthropic provider")
        return content

    # -------- shared plumbing --------

    def _build_timeout(self, timeout_seconds: int) -> httpx.Timeout:
        # For streams, read is the idle gap between chunks, not the total duration.
        base = float(max(1, timeout_seconds or 120))
        return httpx.Timeout(
            connect=min(30.0, max(5.0, base / 2.0)),
            read=base,
            write=min(60.0, max(10.0, base / 2.0)),
            pool=min(30.0, max(5.0, base / 3.0)),
        )

    async def _raise_for_status_with_body(self, resp: httpx.Response, provider_name: str) -> None:
        if resp.is_success:
            return
        body = (await resp.aread()).decode("utf-8", errors="replace").strip()
        detail = f" {body}" if body else ""
        # The status code stays in the message; the error classifier keys on it.
        raise RuntimeError(f"{provider_name} provider error [{resp.status_code}].{detail}")

    async def _iter_sse_events(self, resp: httpx.Response):
        event_name = ""
        data_lines: list[str] = []

        async for raw_line in resp.aiter_lines():
            line = raw_line.strip("\ufeff")
            if not line:
                if data_lines:
                    yield event_name, "\n".join(data_lines)
                event_name = ""
                data_lines = []
                continue
            if line.startswith(":"):
                continue
            if line.startswith("event:"):
                event_name = line[6:].strip()
                continue
            if line.startswith("data:"):
                data_lines.append(line[5:].lstrip())

        if data_lines:
            yield event_name, "\n".join(data_lines)

    def _consume_openai_sse_data(self, data: str, text_parts: list[str]) -> bool:
        payload = data.strip()
        if not payload:
            return False
        if payload == "[DONE]":
            return True

        obj = self._load_json_payload(payload)
        if not obj:
            return False

        error_obj = obj.get("error")
        if isinstance(error_obj, dict):
            msg = str(error_obj.get("message") or "unknown error")
            raise RuntimeError(f"openai-compatible stream error: {msg}")

        choices = obj.get("choices")
        if not isinstance(choices, list):
            return False

        for choice in choices:
            if not isinstance(choice, dict):
                continue
            delta = choice.get("delta")
            if not isinstance(delta, dict):
                continue
            content = delta.get("content")
            if isinstance(content, str):
                text_parts.append(content)
            elif isinstance(content, list):
                text_parts.extend(
                    part["text"]
                    for part in content
                    if isinstance(part, dict) and part.get("type") == "text" and isinstance(part.get("text"), str)
                )
        return False

    def _consume_anthropic_sse_data(self, event_name: str, data: str, text_parts: list[str]) -> bool:
        payload = data.strip()
        if not payload:
            return False
        if payload == "[DONE]":
            return True

        obj = self._load_json_payload(payload)
        if not obj:
            return False

        if isinstance(obj.get("error"), dict):
            msg = str(obj["error"].get("message") or "unknown error")
            raise RuntimeError(f"anthropic stream error: {msg}")

        resolved_event = event_name or str(obj.get("type") or "")
        if resolved_event == "message_stop":
            return True
        if resolved_event != "content_block_delta":
            return False

        delta = obj.get("delta")
        if isinstance(delta, dict) and delta.get("type") == "text_delta":
            text = delta.get("text")
            if isinstance(text, str):
                text_parts.append(text)
        return False

    def _load_json_payload(self, payload: str) -> dict[str, Any] | None:
        try:
            value = json.loads(payload)
        except json.JSONDecodeError:
            return None
        if isinstance(value, dict):
            return value
        return None
