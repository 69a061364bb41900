"""Data models for segment scheduling and mixing."""

from dataclasses import dataclass, field

import numpy as np

from speech_mixer.constants import EMOTIONAL_TONES, SPEECH_RATES, VOLUMES, VOLUME_GAINS


@dataclass(frozen=True)
class TaggedSegment:
    text: str
    environment: str = "default"
    emotional_tone: str = "sensual"   # one of EMOTIONAL_TONES
    speech_rate: str = "default"      # one of SPEECH_RATES
    volume: str = "normal"            # one of VOLUMES
    fade_in: float | None = None      # seconds, overrides the scheduler default
    fade_out: float | None = None     # seconds, overrides the scheduler default

    def __post_init__(self):
        if self.emotional_tone not in EMOTIONAL_TONES:
            raise ValueError(f"Unknown emotional tone: {self.emotional_tone!r}")
        if self.speech_rate not in SPEECH_RATES:
            raise ValueError(f"Unknown speech rate: {self.speech_rate!r}")
        if self.volume not in VOLUMES:
            raise ValueError(f"Unknown volume: {self.volume!r}")
        for name in ("fade_in", "fade_out"):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise ValueError(f"{name} must be >= 0, got {value}")


@dataclass
class ScheduledSegment:
    tagged: TaggedSegment
    start_time: float
    duration: float
    fade_in: float | None = None
    fade_out: float | None = None
    audio: bytes | None = None        # populated after synthesis

    @property
    def text(self) -> str:
        return self.tagged.text

    @property
    def end_time(self) -> float:
        return self.start_time + self.duration

    @property
    def gain(self) -> float:
        return VOLUME_GAINS.get(self.tagged.volume, 1.0)


@dataclass
class DecodedAudioBuffer:
    sample_rate: int
    samples: np.ndarray               # shape (channels, frames), floats in [-1, 1]

    @property
    def channel_count(self) -> int:
        return self.samples.shape[0]

    @property
    def frame_count(self) -> int:
        return self.samples.shape[1]


@dataclass(frozen=True)
class MixedAudioResult:
    audio: bytes
    duration: float
    segments: list[ScheduledSegment] = field(default_factory=list)
    format: str = "wav"
    sample_rate: int | None = None

    def save(self, path: str) -> str:
        """Write the audio bytes to path and return it."""
        with open(path, "wb") as f:
            f.write(self.audio)
        return path


@dataclass
class TextAnalysis:
    intensity: float = 0.0
    rhythm: float = 0.5
    emotional_progression: float = 0.0
    keyword_density: float = 0.0
    contextual_mood: str = "neutral"
    emphasis: list[tuple[int, int]] = field(default_factory=list)  # spans in cleaned text


@dataclass(frozen=True)
class VoiceSettings:
    stability: float
    expressiveness: float
