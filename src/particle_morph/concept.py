"""Map a free-text concept to particle settings with a Gemini model."""

from __future__ import annotations

import json
import logging
from typing import Optional, Protocol

import google.generativeai as genai

from .config import GEMINI_MODEL, api_key_from_env
from .types import ConceptResult, ShapeType
from .utils import hex_to_rgb


logger = logging.getLogger(__name__)


SYSTEM_INSTRUCTION = """
You are a visual design assistant for a 3D particle system.
The user will provide a concept, word, or description.
Your job is to map this concept to the most appropriate visual settings for the particle engine.

Available Shapes: Sphere, Flower, Heart, Tree, Snowman, Galaxy.
- 'Heart' fits love, emotion, biology.
- 'Tree' fits nature, growth, christmas, forest.
- 'Snowman' fits winter, ice, fun.
- 'Galaxy' fits space, science, chaos, spiral.
- 'Flower' fits garden, nature, beauty, bloom, rose, tulip, daisy.
- 'Sphere' is the default for generic objects.

Return parameters:
- colorHex: A primary hex color string (e.g., "#FF0000").
- colorPalette: An array of exactly 5 hex color strings forming a vertical gradient (bottom to top).
   - For 'Tree', this might be brown (trunk) to green (leaves) to gold (star).
   - For 'Heart', dark red to bright pink.
   - For 'Galaxy', deep purple to bright blue/white.
   - For 'Flower', green (stem) to bright colors (petals) to yellow (center).
- speed: 0.1 (slow/calm) to 2.0 (fast/chaotic).
- noiseStrength: 0.1 (static) to 1.5 (turbulent).
- shapeMatch: One of the available enum values.
- reasoning: A very short sentence explaining the choice.
"""

RESPONSE_SCHEMA = {
    "type": "object",
    "properties": {
        "colorHex": {"type": "string"},
        "colorPalette": {"type": "array", "items": {"type": "string"}},
        "speed": {"type": "number"},
        "noiseStrength": {"type": "number"},
        "shapeMatch": {"type": "string", "enum": [s.value for s in ShapeType]},
        "reasoning": {"type": "string"},
    },
    "required": ["colorHex", "colorPalette", "speed", "noiseStrength", "shapeMatch", "reasoning"],
}

FALLBACK_REASONING = "AI service unavailable, reverting to default."
FALLBACK_RESULT = ConceptResult(
    color_hex="#ffffff",
    color_palette=("#ffffff", "#cccccc", "#999999", "#666666", "#333333"),
    speed=0.5,
    noise_strength=0.2,
    shape=ShapeType.SPHERE,
    reasoning=FALLBACK_REASONING,
)


class ConceptServiceError(Exception):
    """The concept service could not produce a usable answer."""


class ConceptMapper(Protocol):
    def map_concept(self, concept: str) -> ConceptResult: ...


def _number(data: dict, key: str) -> float:
    value = data[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        raise ConceptServiceError(f"{key} must be a non-negative number, got {value!r}")
    return float(value)


def parse_concept_response(text: str) -> ConceptResult:
    """Validate a JSON answer from the model and turn it into a `ConceptResult`."""
    try:
        data = json.loads(text)
    except (TypeError, ValueError) as e:
        raise ConceptServiceError(f"Response is not JSON: {text!r}") from e
    if not isinstance(data, dict):
        raise ConceptServiceError(f"Response is not a JSON object: {text!r}")

    try:
        palette = data["colorPalette"]
        if not isinstance(palette, list) or len(palette) != 5:
            raise ConceptServiceError(f"colorPalette must hold 5 colors, got {palette!r}")
        for color in [data["colorHex"], *palette]:
            hex_to_rgb(color)
        return ConceptResult(
            color_hex=data["colorHex"],
            color_palette=tuple(palette),
            speed=_number(data, "speed"),
            noise_strength=_number(data, "noiseStrength"),
            shape=ShapeType(data["shapeMatch"]),
            reasoning=str(data["reasoning"]),
        )
    except KeyError as e:
        raise ConceptServiceError(f"Response is missing {e}") from e
    except (AttributeError, ValueError) as e:
        raise ConceptServiceError(str(e)) from e


class GeminiConceptMapper:
    """
    Concept mapping backed by `google.generativeai`.

    The API key defaults to the `GEMINI_API_KEY` / `API_KEY` environment variables. A
    ready-made `model` (anything with `generate_content`) can be injected instead.
    """

    def __init__(self, api_key: Optional[str] = None, model_name: str = GEMINI_MODEL, model=None) -> None:
        self.api_key = api_key if api_key is not None else api_key_from_env()
        self.model_name = model_name
        self._model = model

    def _get_model(self):
        if self._model is None:
            if not self.api_key:
                raise ConceptServiceError("API key is missing")
            genai.configure(api_key=self.api_key)
            self._model = genai.GenerativeModel(
                self.model_name,
                system_instruction=SYSTEM_INSTRUCTION,
                generation_config=genai.GenerationConfig(
                    response_mime_type="application/json",
                    response_schema=RESPONSE_SCHEMA,
                ),
            )
        return self._model

    def map_concept(self, concept: str) -> ConceptResult:
        model = self._get_model()
        try:
            response = model.generate_content(f'User concept: "{concept}"')
            text = response.text
        except Exception as e:
            raise ConceptServiceError(f"Gemini request failed: {e}") from e
        if not text:
            raise ConceptServiceError("No response from AI")
        return parse_concept_response(text)


def analyze_concept(mapper: ConceptMapper, concept: str) -> Optional[ConceptResult]:
    """
    Ask `mapper` for settings, falling back to `FALLBACK_RESULT` on any failure.

    Blank concepts are ignored and return None.
    """
    if not concept.strip():
        return None
    try:
        return mapper.map_concept(concept)
    except Exception as e:
        logger.warning("Concept mapping failed, using fallback settings: %s", e)
        return FALLBACK_RESULT
