"""Load tagger output (JSON) into TaggedSegments."""

import json
import logging

from speech_mixer.constants import EMOTIONAL_TONES, SPEECH_RATES, VOLUMES
from speech_mixer.models import TaggedSegment

logger = logging.getLogger(__name__)

# Labels produced by the French-language tagger prompt
TONE_ALIASES = {
    "sensuel": "sensual",
    "excite": "excited",
    "excité": "excited",
    "jouissance": "climax",
    "murmure": "whisper",
    "doux": "soft",
}
RATE_ALIASES = {
    "très lent": "very-slow",
    "tres lent": "very-slow",
    "very slow": "very-slow",
    "lent": "slow",
    "modéré": "moderate",
    "modere": "moderate",
    "rapide": "fast",
}
VOLUME_ALIASES = {
    "faible": "soft",
    "moyen": "normal",
    "fort": "loud",
}


def _normalize_label(value, allowed: tuple[str, ...], aliases: dict, fallback: str, field: str) -> str:
    """Map a tagger label onto the allowed vocabulary, falling back with a warning."""
    label = str(value or "").strip().lower()
    label = aliases.get(label, label)
    if label in allowed:
        return label
    logger.warning("Unknown %s %r, using %r", field, value, fallback)
    return fallback


def _optional_float(entry: dict, *keys: str) -> float | None:
    for key in keys:
        if entry.get(key) is not None:
            return float(entry[key])
    return None


def parse_segment(entry: dict) -> TaggedSegment:
    """Build a TaggedSegment from one tagger record (camelCase or snake_case keys)."""
    if not isinstance(entry, dict):
        raise ValueError(f"Segment record must be an object: {entry!r}")
    text = entry.get("text", entry.get("segment"))
    if not isinstance(text, str):
        raise ValueError(f"Segment has no text: {entry!r}")

    return TaggedSegment(
        text=text,
        environment=str(entry.get("environment") or "default"),
        emotional_tone=_normalize_label(
            entry.get("emotionalTone", entry.get("emotional_tone")),
            EMOTIONAL_TONES, TONE_ALIASES, "sensual", "emotional tone",
        ),
        speech_rate=_normalize_label(
            entry.get("speechRate", entry.get("speech_rate")),
            SPEECH_RATES, RATE_ALIASES, "default", "speech rate",
        ),
        volume=_normalize_label(
            entry.get("volume"), VOLUMES, VOLUME_ALIASES, "normal", "volume",
        ),
        fade_in=_optional_float(entry, "fadeIn", "fade_in"),
        fade_out=_optional_float(entry, "fadeOut", "fade_out"),
    )


def parse_segments(data) -> list[TaggedSegment]:
    """Parse a list of tagger records, or a {"segments": [...]} object."""
    if isinstance(data, dict):
        data = data.get("segments", [])
    if not isinstance(data, list):
        raise ValueError("Tagger output must be a list of segments")
    return [parse_segment(entry) for entry in data if entry]


def load_segments(path: str) -> list[TaggedSegment]:
    """Load tagged segments from a JSON file."""
    with open(path) as f:
        return parse_segments(json.load(f))
