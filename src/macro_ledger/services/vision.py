"""Meal photo analysis service using LLMs."""

import base64
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from pydantic import ValidationError

from macro_ledger.domain.errors import BadImageError, DecodeError, EmptyContentError
from macro_ledger.domain.meals import DetectedItem, MealRecord
from macro_ledger.domain.vision import MealAnalysis
from macro_ledger.services.rollover import local_now

SYSTEM_PROMPT = """\
You are a nutrition estimator. Return STRICT JSON ONLY:
{
  "title": string,
  "calories": int,
  "protein": int,
  "carbs": int,
  "fats": int,
  "items": [
    { "name": string, "grams": int, "calories": int, "protein": int, \
"carbs": int, "fats": int }
  ]
}
If uncertain, give best reasonable estimates. No extra text, no markdown."""

USER_PROMPT = "Estimate macros for this meal photo. Return ONLY the JSON object."


class VisionClient(Protocol):
    """Interface for LLM meal analysis.

    Implementations raise ``MissingCredentialError`` when unconfigured and
    ``HttpError`` for non-success responses.
    """

    async def complete(  # noqa: PLR0913
        self,
        *,
        model: str,
        temperature: float,
        max_tokens: int,
        system_prompt: str,
        user_prompt: str,
        image_data_url: str,
    ) -> str | None:
        """Return the raw text content of the model reply."""


@dataclass
class MealAnalysisService:
    """Service that prepares analysis prompts and validates results."""

    client: VisionClient
    model: str
    temperature: float = 0.2
    max_tokens: int = 600
    clock: Callable[[], datetime] = local_now

    async def analyze(self, image_bytes: bytes) -> MealRecord:
        """Estimate a meal from a photo and return it as an unconfirmed record."""
        if not image_bytes:
            raise BadImageError()
        content = await self.client.complete(
            model=self.model,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            system_prompt=SYSTEM_PROMPT,
            user_prompt=USER_PROMPT,
            image_data_url=_to_data_url(image_bytes),
        )
        if not content or not content.strip():
            raise EmptyContentError()
        analysis = parse_meal_analysis(content)
        return MealRecord(
            title=analysis.title,
            calories=analysis.calories,
            protein=analysis.protein,
            carbs=analysis.carbs,
            fats=analysis.fats,
            items=_detected_items(analysis),
            image_bytes=image_bytes,
            timestamp=self.clock(),
        )


def parse_meal_analysis(content: str) -> MealAnalysis:
    """Decode model output, tolerating markdown code fences."""
    json_text = content.replace("```json", "").replace("```", "").strip()
    if not json_text:
        raise DecodeError("Empty JSON buffer.")
    try:
        return MealAnalysis.model_validate_json(json_text)
    except ValidationError as exc:
        raise DecodeError(_first_error(exc)) from exc


def _detected_items(analysis: MealAnalysis) -> list[DetectedItem]:
    try:
        return [
            DetectedItem(
                name=item.name,
                grams=item.grams,
                calories=item.calories,
                protein=item.protein,
                carbs=item.carbs,
                fats=item.fats,
            )
            for item in analysis.items
        ]
    except ValidationError as exc:
        raise DecodeError(_first_error(exc)) from exc


def _first_error(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return str(exc)
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    message = first.get("msg", "invalid value")
    return f"{location}: {message}" if location else message


def _to_data_url(image_bytes: bytes) -> str:
    """Convert bytes to a base64 data URL for image input."""
    mime_type = _detect_mime_type(image_bytes)
    encoded = base64.b64encode(image_bytes).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"


def _detect_mime_type(image_bytes: bytes) -> str:
    """Infer a basic image MIME type from file signatures."""
    if image_bytes.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if image_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    if image_bytes[4:12] in {b"ftypheic", b"ftypheix", b"ftypmif1"}:
        return "image/heic"
    return "image/jpeg"
