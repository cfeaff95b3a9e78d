from __future__ import annotations

import asyncio
import sys
import unittest
from pathlib import Path

import httpx

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from clarity_desk.models.settings import AIProvider, AISettings
from clarity_desk.services.ai_client import AIClient


class AIClientStreamingTests(unittest.TestCase):
    def setUp(self) -> None:
        self.client = AIClient()

    def test_openai_stream_delta_content_string(self) -> None:
        text_parts: list[str] = []

        should_stop = self.client._consume_openai_sse_data(
            '{"choices":[{"delta":{"content":"{\\"bottomLine\\""}}]}', text_parts
        )

        self.assertFalse(should_stop)
        self.assertEqual("".join(text_parts), '{"bottomLine"')

    def test_openai_stream_done(self) -> None:
        text_parts: list[str] = []

        self.assertTrue(self.client._consume_openai_sse_data("[DONE]", text_parts))
        self.assertEqual(text_parts, [])

    def test_openai_stream_delta_content_parts(self) -> None:
        text_parts: list[str] = []

        self.client._consume_openai_sse_data(
            '{"choices":[{"delta":{"content":[{"type":"text","text":"Amber"},{"type":"image"}]}}]}',
            text_parts,
        )

        self.assertEqual(text_parts, ["Amber"])

    def test_openai_stream_error_object_raises(self) -> None:
        with self.assertRaises(RuntimeError) as ctx:
            self.client._consume_openai_sse_data('{"error":{"message":"context canceled"}}', [])

        self.assertIn("context canceled", str(ctx.exception))

    def test_anthropic_stream_text_delta(self) -> None:
        text_parts: list[str] = []

        should_stop = self.client._consume_anthropic_sse_data(
            "content_block_delta",
            '{"type":"content_block_delta","delta":{"type":"text_delta","text":"Red"}}',
            text_parts,
        )

        self.assertFalse(should_stop)
        self.assertEqual(text_parts, ["Red"])

    def test_anthropic_stream_message_stop_from_payload_type(self) -> None:
        self.assertTrue(self.client._consume_anthropic_sse_data("", '{"type":"message_stop"}', []))

    def test_anthropic_stream_error_raises(self) -> None:
        with self.assertRaises(RuntimeError) as ctx:
            self.client._consume_anthropic_sse_data("error", '{"error":{"message":"overloaded"}}', [])

        self.assertIn("overloaded", str(ctx.exception))

    def test_sse_events_are_split_on_blank_lines(self) -> None:
        body = (
            "\ufeffevent: content_block_delta\n"
            "data: {\"a\": 1}\n"
            "\n"
            ": keep-alive\n"
            "data: first\n"
            "data: second\n"
            "\n"
            "data: [DONE]"
        ).encode("utf-8")
        resp = httpx.Response(200, content=body)

        async def collect():
            return [event async for event in self.client._iter_sse_events(resp)]

        events = asyncio.run(collect())

        self.assertEqual(
            events,
            [("content_block_delta", '{"a": 1}'), ("", "first\nsecond"), ("", "[DONE]")],
        )

    def test_error_status_keeps_code_in_message(self) -> None:
        resp = httpx.Response(429, content=b"Quota exceeded for this key")

        with self.assertRaises(RuntimeError) as ctx:
            asyncio.run(self.client._raise_for_status_with_body(resp, "openai-compatible"))

        self.assertEqual(
            str(ctx.exception),
            "openai-compatible provider error [429]. Quota exceeded for this key",
        )

    def test_mock_provider_is_not_sent_over_the_wire(self) -> None:
        with self.assertRaises(RuntimeError) as ctx:
            asyncio.run(self.client.generate_text("hi", AISettings(provider=AIProvider.mock)))

        self.assertIn("Unsupported provider: mock", str(ctx.exception))

    def test_missing_credentials_raise(self) -> None:
        settings = AISettings(provider=AIProvider.anthropic, api_base="", api_key="")

        with self.assertRaises(RuntimeError) as ctx:
            asyncio.run(self.client.generate_text("hi", settings))

        self.assertIn("not configured", str(ctx.exception))

    def test_openai_url_resolution(self) -> None:
        resolve = self.client._resolve_openai_compatible_url
        self.assertEqual(resolve("https://api.example.com"), "https://api.example.com/v1/chat/completions")
        self.assertEqual(resolve("https://api.example.com/v1/"), "https://api.example.com/v1/chat/completions")
        self.assertEqual(
            resolve("https://proxy.example.com/chat/completions"),
            "https://proxy.example.com/chat/completions",
        )

    def test_images_become_content_parts(self) -> None:
        messages = self.client._build_openai_messages("describe", ["QUJD"], "system text")

        self.assertEqual(messages[0], {"role": "system", "content": "system text"})
        parts = messages[1]["content"]
        self.assertEqual(parts[0], {"type": "text", "text": "describe"})
        self.assertEqual(parts[1]["image_url"]["url"], "data:image/jpeg;base64,QUJD")

        anthropic = self.client._build_anthropic_messages("describe", ["QUJD"])
        self.assertEqual(anthropic[0]["content"][1]["source"]["data"], "QUJD")

    def test_build_timeout_uses_longer_read_window(self) -> None:
        timeout = self.client._build_timeout(AISettings(timeout_seconds=120).timeout_seconds)

        self.assertEqual(timeout.connect, 30.0)
        self.assertEqual(timeout.read, 120.0)
        self.assertEqual(timeout.write, 60.0)
        self.assertEqual(timeout.pool, 30.0)


if __name__ == "__main__":
    unittest.main()
