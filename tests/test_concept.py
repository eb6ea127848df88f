import json

import pytest

from particle_morph.concept import (
    FALLBACK_REASONING,
    FALLBACK_RESULT,
    ConceptServiceError,
    GeminiConceptMapper,
    analyze_concept,
    parse_concept_response,
)
from particle_morph.types import ShapeType


GOOD = {
    "colorHex": "#ff3366",
    "colorPalette": ["#330011", "#660022", "#990033", "#cc0044", "#ff3366"],
    "speed": 0.8,
    "noiseStrength": 0.4,
    "shapeMatch": "Heart",
    "reasoning": "Love is a heart.",
}


class _Response:
    def __init__(self, text):
        self.text = text


class _StubModel:
    def __init__(self, text=None, error=None):
        self.text = text
        self.error = error
        self.prompts = []

    def generate_content(self, prompt):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return _Response(self.text)


def _mapper(payload=None, error=None):
    text = payload if isinstance(payload, str) or payload is None else json.dumps(payload)
    return GeminiConceptMapper(api_key="test", model=_StubModel(text=text, error=error))


def test_parses_model_answer():
    mapper = _mapper(GOOD)
    result = analyze_concept(mapper, "love")
    assert result.shape is ShapeType.HEART
    assert list(result.color_palette) == GOOD["colorPalette"]
    assert (result.speed, result.noise_strength) == (0.8, 0.4)
    assert result.reasoning == "Love is a heart."
    assert mapper._model.prompts == ['User concept: "love"']


@pytest.mark.parametrize(
    "payload",
    [
        "not json",
        "[1, 2]",
        {k: v for k, v in GOOD.items() if k != "speed"},
        dict(GOOD, colorPalette=GOOD["colorPalette"][:4]),
        dict(GOOD, shapeMatch="Pyramid"),
        dict(GOOD, speed=-1),
        dict(GOOD, noiseStrength="loud"),
        dict(GOOD, colorHex="red"),
    ],
)
def test_malformed_answers_fall_back(payload):
    assert analyze_concept(_mapper(payload), "anything") is FALLBACK_RESULT


def test_transport_error_falls_back():
    result = analyze_concept(_mapper(error=ConnectionError("offline")), "ocean")
    assert result is FALLBACK_RESULT
    assert result.reasoning == FALLBACK_REASONING
    assert result.shape is ShapeType.SPHERE


def test_empty_answer_is_an_error():
    with pytest.raises(ConceptServiceError):
        _mapper("").map_concept("void")


def test_missing_api_key():
    mapper = GeminiConceptMapper(api_key="")
    with pytest.raises(ConceptServiceError):
        mapper.map_concept("stars")
    assert analyze_concept(mapper, "stars") is FALLBACK_RESULT


def test_blank_concept_is_ignored():
    assert analyze_concept(_mapper(GOOD), "   ") is None


def test_parse_rejects_non_object():
    with pytest.raises(ConceptServiceError):
        parse_concept_response("42")


def test_fallback_palette_has_five_steps():
    assert len(FALLBACK_RESULT.color_palette) == 5
