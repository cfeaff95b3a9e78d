from __future__ import annotations

import asyncio
import json
import sys
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from clarity_desk.models.intake import (
    ClarityInput,
    ClientInfo,
    DecisionType,
    IntakeImages,
    JudgmentInput,
    Occurrence,
    VehicleInfo,
)
from clarity_desk.models.record import RecordVariant
from clarity_desk.models.report import ClarityReport, JudgmentReport, RiskBand
from clarity_desk.models.settings import AIProvider, AISettings, PromptSettings, SettingsBundle
from clarity_desk.services.prompt_renderer import PromptTemplateError, render_template
from clarity_desk.services.report_gen import (
    ReportGenerator,
    build_clarity_prompt,
    build_judgment_prompt,
    extract_json_payload,
)


def _clarity_input(images: IntakeImages | None = None) -> ClarityInput:
    return ClarityInput(
        client=ClientInfo(name="Ada Mensah"),
        vehicle=VehicleInfo(make="Toyota", model="Prius", year=2015, odometer=182000),
        symptoms="Power drops on long hills",
        occurrence=Occurrence.hills,
        images=images,
    )


def _judgment_input() -> JudgmentInput:
    return JudgmentInput.model_validate(
        {
            "client": {"name": "Kofi Boateng"},
            "vehicle": {"make": "BYD", "model": "Atto 3", "year": "2023", "destinationCountry": "Ghana"},
            "decisionType": "Import Strategy",
            "subject": "Import 20 units",
        }
    )


_CLARITY_JSON = {
    "bottomLine": "Battery module imbalance is the most likely cause.",
    "riskProfile": {"band": "Red", "label": "Act soon"},
    "hypotheses": [{"title": "Cell imbalance", "confidence": "High"}],
    "overallConfidence": "Medium",
}


class _FakeAIClient:
    def __init__(self, response: str) -> None:
        self.response = response
        self.calls: list[tuple[str, AISettings, list[str] | None]] = []

    async def generate_text(self, prompt, ai_settings, images_base64=None, **_kwargs):
        self.calls.append((prompt, ai_settings, images_base64))
        return self.response


def _settings(provider: AIProvider = AIProvider.openai_compatible) -> SettingsBundle:
    return SettingsBundle(ai=AISettings(provider=provider, api_base="https://api.example.com", api_key="k"))


class ExtractJsonPayloadTests(unittest.TestCase):
    def test_plain_object(self) -> None:
        self.assertEqual(extract_json_payload('{"a": 1}'), {"a": 1})

    def test_fenced_object(self) -> None:
        text = "Here you go:\n```json\n{\"a\": {\"b\": 2}}\n```"

        self.assertEqual(extract_json_payload(text), {"a": {"b": 2}})

    def test_empty_and_non_object_responses_raise(self) -> None:
        for text in ("", "   ", "no braces here", "[1, 2]", "{broken"):
            with self.subTest(text=text), self.assertRaises(RuntimeError):
                extract_json_payload(text)


class PromptRenderingTests(unittest.TestCase):
    def test_unknown_placeholder_raises(self) -> None:
        with self.assertRaises(PromptTemplateError):
            render_template("Hello {{ who }} from {{where}}", {"who": "Ada"})

    def test_clarity_prompt_includes_intake_fields(self) -> None:
        prompt = build_clarity_prompt(_clarity_input(), PromptSettings().clarity_template)

        self.assertIn("Power drops on long hills", prompt)
        self.assertIn('"year": "2015"', prompt)
        self.assertIn("Occurs: hills", prompt)
        self.assertNotIn("{{", prompt)

    def test_judgment_prompt_includes_decision(self) -> None:
        prompt = build_judgment_prompt(_judgment_input(), PromptSettings().judgment_template)

        self.assertIn("Type: Import Strategy", prompt)
        self.assertIn("Context: not provided", prompt)
        self.assertIn('"destination_country": "Ghana"', prompt)


class ReportGeneratorTests(unittest.TestCase):
    def test_mock_provider_skips_the_network(self) -> None:
        ai = _FakeAIClient("unused")
        generator = ReportGenerator(ai, lambda: _settings(AIProvider.mock))

        report = asyncio.run(generator.generate(RecordVariant.strategic, _judgment_input()))

        self.assertIsInstance(report, JudgmentReport)
        self.assertTrue(report.title.startswith("[mock]"))
        self.assertTrue(report.id)
        self.assertTrue(report.timestamp.endswith("Z"))
        self.assertEqual(ai.calls, [])

    def test_provider_response_is_validated_into_report(self) -> None:
        ai = _FakeAIClient("```json\n" + json.dumps(_CLARITY_JSON) + "\n```")
        generator = ReportGenerator(ai, _settings)

        report = asyncio.run(generator.generate(RecordVariant.technical, _clarity_input()))

        self.assertIsInstance(report, ClarityReport)
        self.assertEqual(report.risk_profile.band, RiskBand.red)
        self.assertEqual(report.hypotheses[0].title, "Cell imbalance")
        self.assertEqual(len(report.id), 32)
        prompt, ai_settings, images = ai.calls[0]
        self.assertIn("Power drops on long hills", prompt)
        self.assertEqual(ai_settings.provider, AIProvider.openai_compatible)
        self.assertIsNone(images)

    def test_images_are_forwarded_without_data_url_prefix(self) -> None:
        ai = _FakeAIClient(json.dumps(_CLARITY_JSON))
        generator = ReportGenerator(ai, _settings)
        images = IntakeImages(exterior="data:image/jpeg;base64,QUJD", dashboard="REVG")

        asyncio.run(generator.generate(RecordVariant.technical, _clarity_input(images)))

        self.assertEqual(ai.calls[0][2], ["QUJD", "REVG"])

    def test_schema_mismatch_raises_runtime_error(self) -> None:
        ai = _FakeAIClient('{"bottomLine": "missing risk profile"}')
        generator = ReportGenerator(ai, _settings)

        with self.assertRaises(RuntimeError) as ctx:
            asyncio.run(generator.generate(RecordVariant.technical, _clarity_input()))

        self.assertIn("failed validation", str(ctx.exception))

    def test_invalid_json_raises_runtime_error(self) -> None:
        generator = ReportGenerator(_FakeAIClient("I cannot help with that."), _settings)

        with self.assertRaises(RuntimeError):
            asyncio.run(generator.generate(RecordVariant.technical, _clarity_input()))

    def test_wrong_payload_type_raises(self) -> None:
        generator = ReportGenerator(_FakeAIClient("{}"), _settings)

        with self.assertRaises(TypeError):
            asyncio.run(generator.generate(RecordVariant.strategic, _clarity_input()))


if __name__ == "__main__":
    unittest.main()
