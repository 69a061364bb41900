"""Voice parameter mapping: synthesis settings, markup and emotion transitions."""

import logging
from dataclasses import dataclass, replace

from speech_mixer.analysis import analyze_text
from speech_mixer.constants import (
    VOICE_SETTINGS,
    STABILITY_INTENSITY_DAMPING,
    STABILITY_RANGE,
    EXPRESSIVENESS_PROGRESSION_BOOST,
    EXPRESSIVENESS_RANGE,
    EMOTION_TRANSITIONS_MS,
    DEFAULT_TRANSITION_MS,
    PROGRESSION_CONTEXT_BOOST,
)
from speech_mixer.markup import Markup, build_markup
from speech_mixer.models import TaggedSegment, TextAnalysis, VoiceSettings

logger = logging.getLogger(__name__)


@dataclass
class VoicePlan:
    segment: TaggedSegment
    analysis: TextAnalysis
    settings: VoiceSettings
    markup: Markup
    transition_ms: int | None = None   # transition into the next segment's tone


def _clamp(value: float, bounds: tuple[float, float]) -> float:
    low, high = bounds
    return max(low, min(high, value))


def voice_settings(emotion: str, analysis: TextAnalysis) -> VoiceSettings:
    """Base settings for the emotion, damped by intensity and boosted by progression.

    Unknown emotions use the "sensual" base pair.
    """
    base = VOICE_SETTINGS.get(emotion, VOICE_SETTINGS["sensual"])
    stability = base["stability"] * (1 - analysis.intensity * STABILITY_INTENSITY_DAMPING)
    expressiveness = (
        base["expressiveness"]
        + analysis.emotional_progression * EXPRESSIVENESS_PROGRESSION_BOOST
    )
    settings = VoiceSettings(
        stability=_clamp(stability, STABILITY_RANGE),
        expressiveness=_clamp(expressiveness, EXPRESSIVENESS_RANGE),
    )
    logger.debug("Voice settings for %s: %s", emotion, settings)
    return settings


def transition_duration(current: str, following: str) -> int:
    """Transition length in ms between two tones (DEFAULT_TRANSITION_MS if unlisted)."""
    return EMOTION_TRANSITIONS_MS.get(current, {}).get(following, DEFAULT_TRANSITION_MS)


def plan_voice(
    segment: TaggedSegment,
    previous: TaggedSegment | None = None,
    following: TaggedSegment | None = None,
) -> VoicePlan:
    """Build the voice plan for one segment given its neighbours."""
    analysis = analyze_text(segment.text)
    if previous is not None:
        analysis = replace(
            analysis,
            emotional_progression=min(1.0, analysis.emotional_progression * PROGRESSION_CONTEXT_BOOST),
        )

    transition_ms = None
    if following is not None:
        transition_ms = transition_duration(segment.emotional_tone, following.emotional_tone)

    return VoicePlan(
        segment=segment,
        analysis=analysis,
        settings=voice_settings(segment.emotional_tone, analysis),
        markup=build_markup(segment.text, analysis),
        transition_ms=transition_ms,
    )


def plan_voices(segments: list[TaggedSegment]) -> list[VoicePlan]:
    """Plan voices for an ordered segment list."""
    plans = []
    for i, seg in enumerate(segments):
        previous = segments[i - 1] if i > 0 else None
        following = segments[i + 1] if i < len(segments) - 1 else None
        plans.append(plan_voice(seg, previous, following))
    return plans
