"""Decode synthesized audio bytes into float sample buffers."""

import io
import logging

import numpy as np
from pydub import AudioSegment
from pydub.exceptions import CouldntDecodeError

from speech_mixer.errors import DecodeError
from speech_mixer.models import DecodedAudioBuffer

logger = logging.getLogger(__name__)


def sniff_format(data: bytes) -> str | None:
    """Return "wav" for RIFF/WAVE bytes, "mp3" for ID3/MPEG frames, else None."""
    if data[:4] == b"RIFF" and data[8:12] == b"WAVE":
        return "wav"
    if data[:3] == b"ID3" or (len(data) > 1 and data[0] == 0xFF and data[1] & 0xE0 == 0xE0):
        return "mp3"
    return None


def load_segment(data: bytes) -> AudioSegment:
    """Load bytes into a pydub AudioSegment, raising DecodeError on failure.

    WAV is read natively; anything else goes through ffmpeg.
    """
    if not data:
        raise DecodeError("Audio data is empty")
    try:
        return AudioSegment.from_file(io.BytesIO(data), format=sniff_format(data))
    except (CouldntDecodeError, OSError, ValueError, EOFError, IndexError, KeyError) as e:
        raise DecodeError(f"Could not decode audio ({len(data)} bytes): {e}") from e


def to_buffer(audio: AudioSegment) -> DecodedAudioBuffer:
    """Convert a pydub AudioSegment to a (channels, frames) float buffer in [-1, 1]."""
    samples = np.array(audio.get_array_of_samples(), dtype=np.float64)
    samples = samples.reshape((-1, audio.channels)).T
    full_scale = float(1 << (8 * audio.sample_width - 1))
    return DecodedAudioBuffer(sample_rate=audio.frame_rate, samples=samples / full_scale)


def decode_audio(data: bytes, sample_rate: int | None = None) -> DecodedAudioBuffer:
    """Decode audio bytes, resampling to sample_rate when given."""
    audio = load_segment(data)
    if sample_rate is not None and audio.frame_rate != sample_rate:
        logger.debug("Resampling %d Hz → %d Hz", audio.frame_rate, sample_rate)
        audio = audio.set_frame_rate(sample_rate)
    return to_buffer(audio)
