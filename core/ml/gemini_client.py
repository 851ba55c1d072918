from __future__ import annotations

import base64
import binascii
import io
import json
import re
from typing import Any, List, Optional

import google.generativeai as genai
from loguru import logger
from PIL import Image, UnidentifiedImageError

from core.exceptions import ConfigurationError, VisionAPIError, VisionResponseParseError
from core.ml.prompts import build_analysis_prompt
from core.settings import VisionSettings, get_settings

_DATA_URL_PREFIX = re.compile(r"^data:image/[\w.+-]+;base64,")
_CODE_BLOCK = re.compile(r"```(?:json)?\n?([\s\S]*?)\n?```")
_JSON_ARRAY = re.compile(r"\[[\s\S]*\]")
# "width": 500-36 or "width": "500 + 18"
_INLINE_MATH = re.compile(r":\s*\"?(\d+)\s*([-+])\s*(\d+)\"?")


def _evaluate_inline_math(match: re.Match[str]) -> str:
    left, op, right = int(match.group(1)), match.group(2), int(match.group(3))
    return f": {left - right if op == '-' else left + right}"


def parse_model_output(text: str) -> List[dict[str, Any]]:
    """Extract the JSON group list from raw model text.

    Takes a fenced code block if present, otherwise the first ``[...]`` span,
    then resolves inline arithmetic the model sometimes leaves in numbers.

    Raises:
        VisionResponseParseError: If no JSON list can be decoded.
    """
    raw = text or ""
    block = _CODE_BLOCK.search(raw)
    if block:
        candidate = block.group(1)
    else:
        array = _JSON_ARRAY.search(raw)
        candidate = array.group(0) if array else raw
    candidate = _INLINE_MATH.sub(_evaluate_inline_math, candidate).strip()

    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError as exc:
        raise VisionResponseParseError(
            "Model response is not valid JSON",
            {"error": str(exc), "excerpt": raw[:200]},
        ) from exc
    if isinstance(parsed, dict):
        parsed = [parsed]
    if not isinstance(parsed, list):
        raise VisionResponseParseError("Model response is not a JSON list", {"type": type(parsed).__name__})
    return parsed


def decode_image(image_base64: str) -> Image.Image:
    payload = _DATA_URL_PREFIX.sub("", (image_base64 or "").strip())
    try:
        data = base64.b64decode(payload, validate=False)
        image = Image.open(io.BytesIO(data))
        image.load()
    except (binascii.Error, UnidentifiedImageError, OSError) as exc:
        raise VisionAPIError("Drawing image could not be decoded", {"error": str(exc)}) from exc
    return image


class GeminiVisionClient:
    """Reads furniture groups from a drawing with a Gemini multimodal model.

    No retry or timeout handling here; the caller decides what to do on failure.
    """

    def __init__(self, settings: Optional[VisionSettings] = None, api_key: Optional[str] = None) -> None:
        self.settings = settings or get_settings().vision
        self._api_key = (api_key or self.settings.api_key).strip()

    def _model(self) -> "genai.GenerativeModel":
        if not self._api_key:
            raise ConfigurationError(
                f"{self.settings.api_key_env} is not set",
                {"setting": "vision.api_key_env"},
            )
        genai.configure(api_key=self._api_key)
        return genai.GenerativeModel(
            self.settings.model,
            generation_config={
                "temperature": self.settings.temperature,
                "max_output_tokens": self.settings.max_output_tokens,
            },
        )

    def analyze(self, image_base64: str, description: Optional[str] = None) -> List[dict[str, Any]]:
        """Run the analysis prompt on one drawing.

        Args:
            image_base64: Image bytes as base64, optionally a ``data:`` URL.
            description: Free-text project notes from the user.

        Returns:
            Raw group dicts (``{"sku", "elements": [...]}``), still untrusted.
        """
        model = self._model()
        image = decode_image(image_base64)
        prompt = build_analysis_prompt(description)
        logger.info("[vision] Sending drawing {}x{} to {}", image.width, image.height, self.settings.model)
        try:
            response = model.generate_content([prompt, image])
            text = response.text
        except Exception as exc:
            raise VisionAPIError(f"Gemini request failed: {exc}", {"model": self.settings.model}) from exc

        groups = parse_model_output(text)
        logger.info("[vision] Model returned {} groups", len(groups))
        return groups


__all__ = ["GeminiVisionClient", "parse_model_output", "decode_image"]
