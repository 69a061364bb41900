"""Encode mixed audio as 16-bit PCM WAV and export it with a manifest."""

import json
import os
import struct
from datetime import datetime, timezone

import numpy as np

from speech_mixer.constants import PCM_BITS_PER_SAMPLE, PCM_SCALE, VERSION
from speech_mixer.models import MixedAudioResult

WAV_HEADER_SIZE = 44


def wav_header(data_length: int, channels: int, sample_rate: int) -> bytes:
    """Canonical 44-byte RIFF/WAVE header for 16-bit PCM."""
    bytes_per_sample = PCM_BITS_PER_SAMPLE // 8
    block_align = channels * bytes_per_sample
    return struct.pack(
        "<4sI4s4sIHHIIHH4sI",
        b"RIFF",
        36 + data_length,
        b"WAVE",
        b"fmt ",
        16,                         # fmt subchunk size
        1,                          # PCM
        channels,
        sample_rate,
        sample_rate * block_align,  # byte rate
        block_align,
        PCM_BITS_PER_SAMPLE,
        b"data",
        data_length,
    )


def encode_wav(samples: np.ndarray, sample_rate: int) -> bytes:
    """Encode a (channels, frames) float buffer, or a 1-D mono buffer, as WAV bytes.

    Samples are clamped to [-1, 1], scaled by 32767 and truncated toward zero,
    then interleaved little-endian.
    """
    samples = np.asarray(samples, dtype=np.float64)
    if samples.ndim == 1:
        samples = samples.reshape((1, -1))
    channels = samples.shape[0]

    pcm = (np.clip(samples, -1.0, 1.0) * PCM_SCALE).astype("<i2")
    data = np.ascontiguousarray(pcm.T).tobytes()
    return wav_header(len(data), channels, sample_rate) + data


def export(result: MixedAudioResult, output_dir: str, slug: str) -> str:
    """Write the mixed audio and an output.json manifest.

    Creates:
      - <output_dir>/<slug>.<format> (the track)
      - <output_dir>/output.json (timeline manifest)

    Returns path to the audio file.
    """
    os.makedirs(output_dir, exist_ok=True)
    output_path = os.path.join(output_dir, f"{slug}.{result.format}")
    result.save(output_path)

    manifest = {
        "project": slug,
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "mixer_version": VERSION,
        "format": result.format,
        "sample_rate": result.sample_rate,
        "duration_seconds": round(result.duration, 3),
        "segments": [
            {
                "text": s.text,
                "environment": s.tagged.environment,
                "emotional_tone": s.tagged.emotional_tone,
                "speech_rate": s.tagged.speech_rate,
                "volume": s.tagged.volume,
                "start_time": round(s.start_time, 3),
                "duration": round(s.duration, 3),
                "fade_in": s.fade_in,
                "fade_out": s.fade_out,
            }
            for s in result.segments
        ],
    }

    manifest_path = os.path.join(output_dir, "output.json")
    with open(manifest_path, "w") as f:
        json.dump(manifest, f, indent=2)

    return output_path
