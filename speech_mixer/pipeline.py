"""End-to-end generation: plan voices, schedule, synthesize, mix."""

import logging

from speech_mixer.assembly import mix
from speech_mixer.errors import EmptyInputError
from speech_mixer.models import MixedAudioResult, TaggedSegment
from speech_mixer.timeline import schedule
from speech_mixer.tts import synthesize_segments
from speech_mixer.voices import plan_voices

logger = logging.getLogger(__name__)


def render(
    segments: list[TaggedSegment],
    client,
    schedule_options: dict | None = None,
    mix_options: dict | None = None,
) -> MixedAudioResult:
    """Turn tagged segments into one mixed track using the given synthesis client.

    Voice plans and the schedule both come from the same tagged list; any
    synthesis or decode failure aborts the whole render.
    """
    if not segments:
        raise EmptyInputError("No segments to render")

    plans = plan_voices(segments)
    timeline = schedule(segments, **(schedule_options or {}))
    logger.info("Scheduled %d segments, %.2fs estimated", len(timeline), max(s.end_time for s in timeline))

    with_audio = synthesize_segments(plans, timeline, client)
    return mix(with_audio, **(mix_options or {}))
