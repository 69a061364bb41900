"""Mix scheduled segments into one normalized stereo track."""

import logging
import math

import numpy as np

from speech_mixer.constants import (
    MIX_SAMPLE_RATE,
    MIX_CHANNELS,
    MIX_BLOCK_SIZE,
    MIX_DEFAULT_FADE_IN,
    MAX_CROSSFADE_OUT,
    CROSSFADE_OUT_RATIO,
    NORMALIZATION_TARGET,
)
from speech_mixer.decoding import decode_audio, sniff_format
from speech_mixer.errors import DecodeError, EmptyInputError
from speech_mixer.exporter import encode_wav
from speech_mixer.models import DecodedAudioBuffer, MixedAudioResult, ScheduledSegment

logger = logging.getLogger(__name__)


def iter_blocks(length: int, block_size: int = MIX_BLOCK_SIZE):
    """Yield (start, stop) index pairs covering range(length) in fixed-size blocks."""
    for start in range(0, length, block_size):
        yield start, min(start + block_size, length)


def fade_gains(
    indices: np.ndarray,
    length: int,
    volume: float,
    fade_in_samples: float,
    fade_out_samples: float,
) -> np.ndarray:
    """Per-sample gain for sample indices of a segment buffer of `length` samples.

    Linear fade-in while s < fade_in_samples: gain *= s / fade_in_samples.
    Linear fade-out while s > length - fade_out_samples:
    gain *= (length - s) / fade_out_samples.
    """
    gains = np.full(indices.shape, float(volume))
    fade_in = indices < fade_in_samples
    if fade_in.any():
        gains[fade_in] *= indices[fade_in] / fade_in_samples
    fade_out = indices > length - fade_out_samples
    if fade_out.any():
        gains[fade_out] *= (length - indices[fade_out]) / fade_out_samples
    return gains


def effective_fades(
    segment: ScheduledSegment,
    is_last: bool,
    default_fade_in: float = MIX_DEFAULT_FADE_IN,
    max_crossfade: float = MAX_CROSSFADE_OUT,
    crossfade_ratio: float = CROSSFADE_OUT_RATIO,
) -> tuple[float, float]:
    """Return (fade_in, fade_out) seconds for a segment.

    A segment's own values win. Otherwise non-last segments fade out over a
    computed crossfade of min(max_crossfade, duration * crossfade_ratio) and
    the last segment does not fade out.
    """
    fade_in = segment.fade_in if segment.fade_in is not None else default_fade_in
    if segment.fade_out is not None:
        fade_out = segment.fade_out
    elif is_last:
        fade_out = 0.0
    else:
        fade_out = min(max_crossfade, segment.duration * crossfade_ratio)
    return fade_in, fade_out


def normalize(buffer: np.ndarray, target: float = NORMALIZATION_TARGET) -> float:
    """Scale buffer in place so its peak is at most target. Returns the gain applied."""
    peak = float(np.max(np.abs(buffer))) if buffer.size else 0.0
    if peak <= target:
        logger.debug("No normalization needed, peak %.4f", peak)
        return 1.0
    gain = target / peak
    logger.debug("Normalizing with gain %.4f (peak %.4f)", gain, peak)
    buffer *= gain
    return gain


def _add_segment(
    mix_buffer: np.ndarray,
    source: DecodedAudioBuffer,
    start_sample: int,
    volume: float,
    fade_in: float,
    fade_out: float,
    sample_rate: int,
    block_size: int,
) -> None:
    """Accumulate one faded segment into the mix buffer, block by block."""
    total = mix_buffer.shape[1]
    length = source.frame_count
    fade_in_samples = fade_in * sample_rate
    fade_out_samples = fade_out * sample_rate

    for start, stop in iter_blocks(length, block_size):
        # Drop samples past the end of the mix (rounding overrun)
        stop = min(stop, total - start_sample)
        if stop <= start:
            break
        gains = fade_gains(np.arange(start, stop), length, volume, fade_in_samples, fade_out_samples)
        target = slice(start_sample + start, start_sample + stop)
        for channel in range(mix_buffer.shape[0]):
            src = source.samples[min(channel, source.channel_count - 1), start:stop]
            mix_buffer[channel, target] += src * gains


def mix(
    segments: list[ScheduledSegment],
    sample_rate: int = MIX_SAMPLE_RATE,
    normalization_target: float = NORMALIZATION_TARGET,
    max_crossfade: float = MAX_CROSSFADE_OUT,
    crossfade_ratio: float = CROSSFADE_OUT_RATIO,
    default_fade_in: float = MIX_DEFAULT_FADE_IN,
    block_size: int = MIX_BLOCK_SIZE,
) -> MixedAudioResult:
    """Mix scheduled segments (with attached audio bytes) into one WAV result.

    A single segment is returned verbatim. Otherwise every segment is decoded
    first, so a decode failure aborts before anything is mixed; segments are
    then added (never overwritten) into a stereo buffer at their start times,
    and the whole buffer gets one peak normalization pass.
    """
    if not segments:
        raise EmptyInputError("No audio segments to mix")

    logger.info("Mixing %d segments", len(segments))

    if len(segments) == 1:
        segment = segments[0]
        if not segment.audio:
            raise DecodeError("Segment has no audio attached")
        logger.info("Single segment, returning its audio unmixed")
        return MixedAudioResult(
            audio=segment.audio,
            duration=segment.duration,
            segments=[segment],
            format=sniff_format(segment.audio) or "mp3",
        )

    # sorted() is stable: equal start times keep their input order
    ordered = sorted(segments, key=lambda s: s.start_time)

    buffers = []
    for i, segment in enumerate(ordered):
        if not segment.audio:
            raise DecodeError(f"Segment {i} has no audio attached")
        buffers.append(decode_audio(segment.audio, sample_rate=sample_rate))

    total_duration = max(s.end_time for s in ordered)
    total_samples = math.ceil(total_duration * sample_rate)
    logger.info("Total duration %.3fs (%d samples)", total_duration, total_samples)
    mix_buffer = np.zeros((MIX_CHANNELS, total_samples), dtype=np.float64)

    for i, (segment, source) in enumerate(zip(ordered, buffers)):
        fade_in, fade_out = effective_fades(
            segment,
            is_last=i == len(ordered) - 1,
            default_fade_in=default_fade_in,
            max_crossfade=max_crossfade,
            crossfade_ratio=crossfade_ratio,
        )
        logger.debug(
            "Segment %d: start=%.3fs fade_in=%.3fs fade_out=%.3fs gain=%.2f",
            i, segment.start_time, fade_in, fade_out, segment.gain,
        )
        _add_segment(
            mix_buffer,
            source,
            start_sample=math.floor(segment.start_time * sample_rate),
            volume=segment.gain,
            fade_in=fade_in,
            fade_out=fade_out,
            sample_rate=sample_rate,
            block_size=block_size,
        )

    normalize(mix_buffer, normalization_target)

    return MixedAudioResult(
        audio=encode_wav(mix_buffer, sample_rate),
        duration=total_duration,
        segments=ordered,
        format="wav",
        sample_rate=sample_rate,
    )
