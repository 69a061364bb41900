"""Timeline scheduling: start times, durations and fades for ordered segments."""

import re

from speech_mixer.constants import (
    CHARS_PER_SECOND,
    DEFAULT_FADE_IN,
    DEFAULT_FADE_OUT,
    DEFAULT_CROSSFADE,
    PAUSE_SECONDS,
    MIN_SEGMENT_DURATION,
)
from speech_mixer.models import TaggedSegment, ScheduledSegment

_PAUSE_MARK_RE = re.compile(r"[.!?…]")


def estimate_duration(
    segment: TaggedSegment,
    chars_per_second: dict[str, float] = CHARS_PER_SECOND,
    pause_seconds: float = PAUSE_SECONDS,
) -> float:
    """Estimate spoken duration from text length, speech rate and pause count."""
    cps = chars_per_second.get(segment.speech_rate, chars_per_second["default"])
    pause_count = len(_PAUSE_MARK_RE.findall(segment.text))
    duration = len(segment.text) / cps + pause_count * pause_seconds
    return max(MIN_SEGMENT_DURATION, duration)


def schedule(
    segments: list[TaggedSegment],
    default_fade_in: float = DEFAULT_FADE_IN,
    default_fade_out: float = DEFAULT_FADE_OUT,
    default_crossfade: float = DEFAULT_CROSSFADE,
    chars_per_second: dict[str, float] = CHARS_PER_SECOND,
    pause_seconds: float = PAUSE_SECONDS,
) -> list[ScheduledSegment]:
    """Place segments on the timeline in text order.

    Each segment starts `default_crossfade` seconds before the previous one
    ends, so consecutive segments overlap by the crossfade window. The cursor
    never moves backwards, even for segments shorter than the window.
    """
    current_time = 0.0
    scheduled = []

    for i, seg in enumerate(segments):
        duration = estimate_duration(seg, chars_per_second, pause_seconds)
        scheduled.append(ScheduledSegment(
            tagged=seg,
            start_time=current_time,
            duration=duration,
            fade_in=seg.fade_in if seg.fade_in is not None else default_fade_in,
            fade_out=seg.fade_out if seg.fade_out is not None else default_fade_out,
        ))
        if i < len(segments) - 1:
            current_time += max(0.0, duration - default_crossfade)

    return scheduled
