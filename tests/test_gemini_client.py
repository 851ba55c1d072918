"""Tests for the Gemini vision client and model-output parsing."""

from __future__ import annotations

import base64
import io

import pytest

pytest.importorskip("google.generativeai")

from PIL import Image

import core.ml.gemini_client as gemini_client
from core.exceptions import ConfigurationError, VisionAPIError, VisionResponseParseError
from core.ml.gemini_client import GeminiVisionClient, decode_image, parse_model_output
from core.ml.prompts import ANALYSIS_PROMPT, DESCRIPTION_HEADER, build_analysis_prompt
from core.settings import VisionSettings


def _png_base64() -> str:
    buffer = io.BytesIO()
    Image.new("RGB", (4, 3), "white").save(buffer, format="PNG")
    return base64.b64encode(buffer.getvalue()).decode("ascii")


class TestParseModelOutput:
    """JSON extraction from raw model text."""

    def test_code_block(self):
        text = 'Wynik:\n```json\n[{"sku": "W980", "elements": []}]\n```\n'
        assert parse_model_output(text) == [{"sku": "W980", "elements": []}]

    def test_bare_array_with_prose(self):
        text = 'Oto lista: [{"sku": "W980", "elements": [{"name": "Bok"}]}] Koniec.'
        assert parse_model_output(text)[0]["elements"][0]["name"] == "Bok"

    def test_inline_math(self):
        text = '[{"sku": "W980", "elements": [{"name": "Wieniec", "width": 600-36, "height": "500 + 10"}]}]'
        element = parse_model_output(text)[0]["elements"][0]
        assert element["width"] == 564
        assert element["height"] == 510

    def test_single_object_wrapped(self):
        assert parse_model_output('{"sku": "W980", "elements": []}') == [{"sku": "W980", "elements": []}]

    def test_invalid_json(self):
        with pytest.raises(VisionResponseParseError):
            parse_model_output("Nie udało się przeanalizować rysunku.")

    def test_not_a_list(self):
        with pytest.raises(VisionResponseParseError):
            parse_model_output("42")


class TestDecodeImage:
    def test_plain_and_data_url(self):
        encoded = _png_base64()
        assert decode_image(encoded).size == (4, 3)
        assert decode_image(f"data:image/png;base64,{encoded}").size == (4, 3)

    def test_not_an_image(self):
        with pytest.raises(VisionAPIError):
            decode_image(base64.b64encode(b"not an image").decode("ascii"))


def test_prompt_with_description():
    prompt = build_analysis_prompt("  kuchnia narożna ")
    assert prompt.startswith(DESCRIPTION_HEADER)
    assert "kuchnia narożna" in prompt
    assert build_analysis_prompt("   ") == ANALYSIS_PROMPT


class _FakeResponse:
    def __init__(self, text):
        self.text = text


class _FakeModel:
    prompts = []

    def __init__(self, name, generation_config=None):
        self.name = name
        self.generation_config = generation_config

    def generate_content(self, contents):
        _FakeModel.prompts.append(contents[0])
        return _FakeResponse('```json\n[{"sku": "W980", "elements": [{"name": "Bok", "width": 510}]}]\n```')


class _FailingModel(_FakeModel):
    def generate_content(self, contents):
        raise RuntimeError("quota exceeded")


class TestGeminiVisionClient:
    """Client behaviour with the SDK replaced."""

    @pytest.fixture(autouse=True)
    def _no_configure(self, monkeypatch):
        monkeypatch.setattr(gemini_client.genai, "configure", lambda **kwargs: None)

    def test_missing_api_key(self, monkeypatch):
        monkeypatch.delenv("ESTIMATOR_TEST_KEY", raising=False)
        client = GeminiVisionClient(VisionSettings(api_key_env="ESTIMATOR_TEST_KEY"))
        with pytest.raises(ConfigurationError):
            client.analyze(_png_base64())

    def test_analyze(self, monkeypatch):
        monkeypatch.setattr(gemini_client.genai, "GenerativeModel", _FakeModel)
        _FakeModel.prompts.clear()
        client = GeminiVisionClient(VisionSettings(), api_key="test-key")

        groups = client.analyze(_png_base64(), "kuchnia")

        assert groups == [{"sku": "W980", "elements": [{"name": "Bok", "width": 510}]}]
        assert "kuchnia" in _FakeModel.prompts[0]

    def test_api_failure(self, monkeypatch):
        monkeypatch.setattr(gemini_client.genai, "GenerativeModel", _FailingModel)
        client = GeminiVisionClient(VisionSettings(), api_key="test-key")
        with pytest.raises(VisionAPIError, match="quota exceeded"):
            client.analyze(_png_base64())
