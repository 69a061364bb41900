"""Shared fixtures for speech mixer tests."""

import io

import numpy as np
import pytest
from pydub import AudioSegment

from speech_mixer.models import TaggedSegment, ScheduledSegment


def make_wav(duration=0.5, amplitude=0.5, channels=1, sample_rate=44100, freq=None):
    """Build 16-bit WAV bytes: a constant level, or a sine when freq is given."""
    frames = int(round(duration * sample_rate))
    if freq:
        t = np.arange(frames) / sample_rate
        signal = amplitude * np.sin(2 * np.pi * freq * t)
    else:
        signal = np.full(frames, amplitude)
    samples = (np.repeat(signal[:, None], channels, axis=1) * 32767).astype(np.int16)
    audio = AudioSegment(
        data=samples.tobytes(),
        sample_width=2,
        frame_rate=sample_rate,
        channels=channels,
    )
    out = io.BytesIO()
    audio.export(out, format="wav")
    return out.getvalue()


def make_scheduled(start, duration, audio=None, fade_in=0.0, fade_out=0.0, volume="normal", text="test"):
    """ScheduledSegment with explicit fades (0 = no ramp) and attached audio."""
    return ScheduledSegment(
        tagged=TaggedSegment(text=text, volume=volume),
        start_time=start,
        duration=duration,
        fade_in=fade_in,
        fade_out=fade_out,
        audio=audio,
    )


@pytest.fixture
def wav_bytes():
    """Factory for in-memory WAV clips."""
    return make_wav


@pytest.fixture
def tagged_segments():
    """Pre-built tagged segments in text order."""
    return [
        TaggedSegment(text="The room was warm and quiet.", environment="bedroom",
                      emotional_tone="soft", speech_rate="slow", volume="soft"),
        TaggedSegment(text="Come closer, she whispered...", environment="bedroom",
                      emotional_tone="whisper", speech_rate="very-slow", volume="soft"),
        TaggedSegment(text="YES! Right there!", environment="bedroom",
                      emotional_tone="climax", speech_rate="fast", volume="loud"),
    ]
