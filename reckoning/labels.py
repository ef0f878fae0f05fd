"""Relationship labels computed from numeric dimensions.

Each label has an independent scorer. A scorer returns 0.0 when the
relationship does not qualify, otherwise an intensity in (0, 1] that grows
with how far the dimensions clear the thresholds. Labels are ranked by
intensity; ties keep the candidate order of LABELS.

compute_labels() is pure: the same dimensions always give the same result,
and it accepts anything that exposes trust, respect, affection, fear,
resentment and debt as attributes.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Literal, Protocol

from pydantic import BaseModel, Field

RelationshipLabel = Literal[
    "devoted",
    "allied",
    "friendly",
    "trusted",
    "respected",
    "beloved",
    "hostile",
    "rival",
    "resented",
    "terrified",
    "feared",
    "wary",
    "indebted",
    "indifferent",
]

Valence = Literal["positive", "negative", "neutral"]

HIGH = 0.7
VERY_HIGH = 0.8
MODERATE = 0.5
LOW = 0.3
VERY_LOW = 0.2
NEUTRAL_TOLERANCE = 0.15


class HasDimensions(Protocol):
    trust: float
    respect: float
    affection: float
    fear: float
    resentment: float
    debt: float


class LabelScore(BaseModel):
    label: RelationshipLabel
    intensity: float = Field(ge=0.0, le=1.0)


class ComputedLabels(BaseModel):
    primary: RelationshipLabel
    labels: list[LabelScore]
    summary: str


# ---------------------------------------------------------------------------
# Scorers
# ---------------------------------------------------------------------------

def _scale(value: float, threshold: float) -> float:
    """Common single-dimension curve: 0.2 at the threshold, 1.0 at the top."""
    return (value - threshold) / (1 - threshold) * 0.8 + 0.2


def _devoted(r: HasDimensions) -> float:
    if r.affection < VERY_HIGH or r.trust < HIGH or r.respect < HIGH:
        return 0.0
    if r.fear > LOW or r.resentment > VERY_LOW:
        return 0.0
    affection_bonus = (r.affection - VERY_HIGH) / (1 - VERY_HIGH)
    trust_bonus = (r.trust - HIGH) / (1 - HIGH)
    return min(1.0, 0.8 + 0.2 * (affection_bonus + trust_bonus) / 2)


def _allied(r: HasDimensions) -> float:
    # Affection is not required.
    if r.trust < HIGH or r.respect < HIGH or r.resentment > LOW:
        return 0.0
    intensity = ((r.trust - HIGH) + (r.respect - HIGH)) / (2 * (1 - HIGH))
    return min(0.9, 0.6 + 0.3 * intensity)


def _friendly(r: HasDimensions) -> float:
    if r.trust < MODERATE + 0.1 or r.affection < MODERATE:
        return 0.0
    if r.fear > LOW or r.resentment > LOW:
        return 0.0
    intensity = ((r.trust - MODERATE) + (r.affection - MODERATE)) / 2
    return min(0.7, 0.4 + intensity)


def _trusted(r: HasDimensions) -> float:
    return _scale(r.trust, HIGH) if r.trust >= HIGH else 0.0


def _respected(r: HasDimensions) -> float:
    return _scale(r.respect, HIGH) if r.respect >= HIGH else 0.0


def _beloved(r: HasDimensions) -> float:
    return _scale(r.affection, VERY_HIGH) if r.affection >= VERY_HIGH else 0.0


def _hostile(r: HasDimensions) -> float:
    if r.resentment < MODERATE + 0.1 or r.trust > LOW:
        return 0.0
    # Enough fear turns hostility into wariness.
    if r.fear > MODERATE:
        return 0.0
    resentment_factor = (r.resentment - MODERATE) / (1 - MODERATE)
    distrust_factor = (LOW - r.trust) / LOW
    base = 0.7 + 0.3 * (resentment_factor + distrust_factor) / 2
    return min(1.0, base * (1 - r.fear))


def _rival(r: HasDimensions) -> float:
    if not (r.resentment > LOW or r.respect < LOW):
        return 0.0
    if r.trust < VERY_LOW or r.trust > HIGH or r.fear > MODERATE:
        return 0.0
    return max(r.resentment, 1 - r.respect) * 0.7


def _resented(r: HasDimensions) -> float:
    return _scale(r.resentment, MODERATE) if r.resentment >= MODERATE else 0.0


def _terrified(r: HasDimensions) -> float:
    return _scale(r.fear, HIGH) if r.fear >= HIGH else 0.0


def _feared(r: HasDimensions) -> float:
    # Upper bound is exclusive: at HIGH and above the label is "terrified".
    if r.fear < MODERATE or r.fear >= HIGH:
        return 0.0
    return (r.fear - MODERATE) / (HIGH - MODERATE) * 0.6 + 0.2


def _wary(r: HasDimensions) -> float:
    if r.fear < LOW or r.fear >= MODERATE or r.trust > MODERATE:
        return 0.0
    return r.fear * (1 - r.trust) * 0.6


def _indebted(r: HasDimensions) -> float:
    return _scale(r.debt, MODERATE) if r.debt >= MODERATE else 0.0


def _indifferent(r: HasDimensions) -> float:
    max_dev = max(
        abs(r.trust - 0.5),
        abs(r.respect - 0.5),
        abs(r.affection - 0.5),
        r.fear,
        r.resentment,
        r.debt,
    )
    if max_dev > NEUTRAL_TOLERANCE * 2:
        return 0.0
    return max(0.0, 1 - max_dev / NEUTRAL_TOLERANCE)


SCORERS: dict[RelationshipLabel, Callable[[HasDimensions], float]] = {
    "devoted": _devoted,
    "allied": _allied,
    "friendly": _friendly,
    "trusted": _trusted,
    "respected": _respected,
    "beloved": _beloved,
    "hostile": _hostile,
    "rival": _rival,
    "resented": _resented,
    "terrified": _terrified,
    "feared": _feared,
    "wary": _wary,
    "indebted": _indebted,
    "indifferent": _indifferent,
}

LABELS: tuple[RelationshipLabel, ...] = tuple(SCORERS)


# ---------------------------------------------------------------------------
# Summary text
# ---------------------------------------------------------------------------

_COMBINATIONS: list[tuple[RelationshipLabel, RelationshipLabel, str]] = [
    ("devoted", "trusted", "Deeply devoted and trusting"),
    ("hostile", "feared", "Hostile but wary"),
    ("allied", "respected", "A respected ally"),
    ("friendly", "trusted", "A trusted friend"),
    ("terrified", "resented", "Terrified but resentful"),
    ("rival", "respected", "A respected rival"),
    ("indebted", "trusted", "Owes a debt of gratitude"),
]

_PHRASES: dict[RelationshipLabel, str] = {
    "devoted": "Deeply devoted",
    "allied": "A trusted ally",
    "friendly": "On friendly terms",
    "trusted": "Highly trusted",
    "respected": "Greatly respected",
    "beloved": "Deeply beloved",
    "wary": "Cautious and wary",
    "feared": "Somewhat feared",
    "terrified": "Absolutely terrified",
    "resented": "Harbors resentment",
    "rival": "A competitive rival",
    "hostile": "Openly hostile",
    "indebted": "Feels indebted",
    "indifferent": "No strong feelings",
}

_VALENCE: dict[RelationshipLabel, Valence] = {
    "devoted": "positive",
    "allied": "positive",
    "friendly": "positive",
    "trusted": "positive",
    "respected": "positive",
    "beloved": "positive",
    "hostile": "negative",
    "rival": "negative",
    "resented": "negative",
    "terrified": "negative",
    "feared": "negative",
    "wary": "neutral",
    "indebted": "neutral",
    "indifferent": "neutral",
}


def _summary(primary: RelationshipLabel, labels: list[LabelScore]) -> str:
    if primary == "indifferent":
        return "No strong feelings either way"
    secondary = [s.label for s in labels[1:3]]
    for first, second, text in _COMBINATIONS:
        if primary == first and second in secondary:
            return text
    return _PHRASES[primary]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def compute_labels(relationship: HasDimensions) -> ComputedLabels:
    """Score every label, rank them and describe the strongest."""
    scores = [LabelScore(label=label, intensity=scorer(relationship)) for label, scorer in SCORERS.items()]
    # sorted() is stable, so equal intensities keep candidate order.
    ranked = [s for s in sorted(scores, key=lambda s: s.intensity, reverse=True) if s.intensity > 0]
    primary: RelationshipLabel = ranked[0].label if ranked else "indifferent"
    return ComputedLabels(primary=primary, labels=ranked, summary=_summary(primary, ranked))


def get_label_valence(label: RelationshipLabel) -> Valence:
    return _VALENCE[label]


def get_short_label(label: RelationshipLabel) -> str:
    """Capitalized form for compact display, e.g. "Devoted"."""
    return label[:1].upper() + label[1:]
