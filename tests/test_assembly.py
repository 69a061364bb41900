"""Tests for the mixing engine."""

import io
import math
import wave

import numpy as np
import pytest

from speech_mixer.assembly import mix, fade_gains, effective_fades, iter_blocks, normalize
from speech_mixer.errors import DecodeError, EmptyInputError
from speech_mixer.exporter import WAV_HEADER_SIZE

from conftest import make_wav, make_scheduled

RATE = 44100


def _read_pcm(data):
    """Decode WAV bytes to a (frames, channels) float array via the stdlib reader."""
    with wave.open(io.BytesIO(data)) as w:
        channels = w.getnchannels()
        raw = w.readframes(w.getnframes())
    return np.frombuffer(raw, dtype="<i2").reshape((-1, channels)) / 32767.0


# --- Helpers ---

def test_iter_blocks_covers_range():
    assert list(iter_blocks(10, 4)) == [(0, 4), (4, 8), (8, 10)]
    assert list(iter_blocks(0, 4)) == []


def test_fade_in_boundaries():
    """fade_in=0.1s at 44100Hz: gain 0 at sample 0, ~1 at floor(0.1*44100)."""
    idx = np.array([0, math.floor(0.1 * RATE)])
    gains = fade_gains(idx, length=RATE, volume=1.0, fade_in_samples=0.1 * RATE, fade_out_samples=0.0)
    assert gains[0] == 0.0
    assert gains[1] == pytest.approx(1.0)


def test_fade_in_is_linear():
    idx = np.array([1000, 2205])
    gains = fade_gains(idx, length=RATE, volume=1.0, fade_in_samples=4410.0, fade_out_samples=0.0)
    assert gains[0] == pytest.approx(1000 / 4410)
    assert gains[1] == pytest.approx(0.5)


def test_fade_out_ramp():
    idx = np.array([900, 950, 999])
    gains = fade_gains(idx, length=1000, volume=1.0, fade_in_samples=0.0, fade_out_samples=100.0)
    assert gains[0] == pytest.approx(1.0)   # 900 is not > 1000 - 100
    assert gains[1] == pytest.approx(0.5)
    assert gains[2] == pytest.approx(0.01)


def test_fade_gains_scale_with_volume():
    gains = fade_gains(np.arange(5), length=100, volume=0.7, fade_in_samples=0.0, fade_out_samples=0.0)
    assert np.allclose(gains, 0.7)


def test_effective_fades_computed_crossfade():
    seg = make_scheduled(0.0, 1.0, fade_in=None, fade_out=None)
    assert effective_fades(seg, is_last=False) == (0.1, pytest.approx(0.2))


def test_effective_fades_crossfade_capped():
    seg = make_scheduled(0.0, 5.0, fade_in=None, fade_out=None)
    assert effective_fades(seg, is_last=False)[1] == 0.5


def test_effective_fades_specified_wins():
    seg = make_scheduled(0.0, 5.0, fade_in=0.3, fade_out=0.05)
    assert effective_fades(seg, is_last=False) == (0.3, 0.05)


def test_effective_fades_last_segment_no_fade_out():
    seg = make_scheduled(0.0, 5.0, fade_in=None, fade_out=None)
    assert effective_fades(seg, is_last=True)[1] == 0.0


def test_normalize_scales_down_to_target():
    buffer = np.array([[1.8, -0.9], [0.3, 0.0]])
    gain = normalize(buffer, 0.9)
    assert gain == pytest.approx(0.5)
    assert np.max(np.abs(buffer)) == pytest.approx(0.9)


def test_normalize_leaves_quiet_buffer():
    buffer = np.array([[0.5, -0.2]])
    assert normalize(buffer, 0.9) == 1.0
    assert buffer[0, 0] == 0.5


# --- mix() ---

def test_mix_empty_raises():
    with pytest.raises(EmptyInputError):
        mix([])


def test_single_segment_identity():
    """One segment → its bytes verbatim, no decode, its own duration."""
    source = b"ID3\x04\x00 not decoded here"
    seg = make_scheduled(0.0, 2.5, audio=source)
    result = mix([seg])
    assert result.audio is source
    assert result.duration == 2.5
    assert result.format == "mp3"
    assert result.segments == [seg]


def test_single_segment_wav_format():
    data = make_wav(0.2)
    result = mix([make_scheduled(0.0, 0.2, audio=data)])
    assert result.audio == data
    assert result.format == "wav"


def test_single_segment_without_audio():
    with pytest.raises(DecodeError):
        mix([make_scheduled(0.0, 1.0)])


def test_mix_length_from_schedule():
    a = make_scheduled(0.0, 1.0, audio=make_wav(1.0, 0.2))
    b = make_scheduled(0.7, 0.8, audio=make_wav(0.8, 0.2))
    result = mix([a, b])
    frames = math.ceil(1.5 * RATE)
    assert result.format == "wav"
    assert result.duration == pytest.approx(1.5)
    assert len(result.audio) == WAV_HEADER_SIZE + frames * 2 * 2


def test_mix_fade_in_boundaries_in_output():
    """Fade-in of 0.1s: output frame 0 is silent, frame floor(0.1*44100) is at full level."""
    a = make_scheduled(0.0, 0.5, audio=make_wav(0.5, 0.5), fade_in=0.1)
    b = make_scheduled(1.0, 0.5, audio=make_wav(0.5, 0.5))
    # Small blocks put the fade boundary inside a later block
    pcm = _read_pcm(mix([a, b], block_size=1000).audio)
    boundary = math.floor(0.1 * RATE)
    assert np.all(pcm[0] == 0.0)
    assert pcm[boundary] == pytest.approx([0.5, 0.5], abs=1e-3)
    assert pcm[boundary // 2] == pytest.approx([0.25, 0.25], abs=1e-3)
    assert pcm[boundary + 1000] == pytest.approx([0.5, 0.5], abs=1e-3)


def test_mix_ordering_independence():
    """[B@1.0, A@0.0] and [A@0.0, B@1.0] produce identical bytes."""
    a = make_scheduled(0.0, 1.2, audio=make_wav(1.2, 0.4, freq=220), fade_in=0.1, fade_out=0.2)
    b = make_scheduled(1.0, 1.0, audio=make_wav(1.0, 0.4, freq=330), fade_in=0.1, fade_out=0.2)
    forward = mix([a, b])
    backward_input = [b, a]
    backward = mix(backward_input)
    assert forward.audio == backward.audio
    assert [s.start_time for s in backward.segments] == [0.0, 1.0]
    assert backward_input == [b, a]  # caller's list untouched


def test_mix_is_additive_in_overlap():
    a = make_scheduled(0.0, 1.0, audio=make_wav(1.0, 0.25))
    b = make_scheduled(0.5, 1.0, audio=make_wav(1.0, 0.25))
    pcm = _read_pcm(mix([a, b]).audio)
    assert pcm[int(0.25 * RATE), 0] == pytest.approx(0.25, abs=1e-3)
    assert pcm[int(0.75 * RATE), 0] == pytest.approx(0.5, abs=1e-3)
    assert pcm[int(1.25 * RATE), 0] == pytest.approx(0.25, abs=1e-3)


def test_mix_mono_broadcast_to_stereo():
    a = make_scheduled(0.0, 0.5, audio=make_wav(0.5, 0.3, channels=1))
    b = make_scheduled(0.5, 0.5, audio=make_wav(0.5, 0.3, channels=1))
    pcm = _read_pcm(mix([a, b]).audio)
    assert pcm.shape[1] == 2
    assert np.array_equal(pcm[:, 0], pcm[:, 1])


def test_mix_no_overflow():
    """Heavy overlap of loud segments stays under the normalization target."""
    segments = [
        make_scheduled(0.0, 1.0, audio=make_wav(1.0, 0.9, freq=200), volume="loud"),
        make_scheduled(0.0, 1.0, audio=make_wav(1.0, 0.9, freq=200), volume="loud"),
        make_scheduled(0.2, 1.0, audio=make_wav(1.0, 0.9, freq=200, channels=2), volume="loud"),
    ]
    pcm = _read_pcm(mix(segments).audio)
    assert np.max(np.abs(pcm)) <= 0.9 + 1e-4


def test_mix_applies_volume_gain():
    a = make_scheduled(0.0, 0.5, audio=make_wav(0.5, 0.5), volume="soft")
    b = make_scheduled(0.5, 0.5, audio=make_wav(0.5, 0.5), volume="normal")
    pcm = _read_pcm(mix([a, b]).audio)
    assert pcm[int(0.25 * RATE), 0] == pytest.approx(0.35, abs=1e-3)
    assert pcm[int(0.75 * RATE), 0] == pytest.approx(0.5, abs=1e-3)


def test_mix_drops_overrun_samples():
    """Audio longer than its scheduled slot is cut at the end of the mix."""
    a = make_scheduled(0.0, 0.5, audio=make_wav(0.5, 0.2))
    b = make_scheduled(0.5, 0.5, audio=make_wav(2.0, 0.2))
    result = mix([a, b])
    assert len(result.audio) == WAV_HEADER_SIZE + math.ceil(1.0 * RATE) * 4


def test_mix_block_size_does_not_change_output():
    a = make_scheduled(0.0, 0.6, audio=make_wav(0.6, 0.5, freq=440), fade_in=0.1, fade_out=0.1)
    b = make_scheduled(0.4, 0.6, audio=make_wav(0.6, 0.5, freq=550), fade_in=0.1, fade_out=0.1)
    assert mix([a, b], block_size=7).audio == mix([a, b]).audio


def test_mix_resamples_to_engine_rate():
    a = make_scheduled(0.0, 0.5, audio=make_wav(0.5, 0.3, sample_rate=22050))
    b = make_scheduled(0.5, 0.5, audio=make_wav(0.5, 0.3))
    pcm = _read_pcm(mix([a, b]).audio)
    assert pcm.shape[0] == math.ceil(1.0 * RATE)
    assert pcm[int(0.25 * RATE), 0] == pytest.approx(0.3, abs=2e-3)


def test_mix_decode_failure_aborts():
    a = make_scheduled(0.0, 0.5, audio=make_wav(0.5, 0.3))
    b = make_scheduled(0.5, 0.5, audio=b"RIFF\x00\x00\x00\x00WAVEjunk")
    with pytest.raises(DecodeError):
        mix([a, b])


def test_mix_missing_audio_aborts():
    a = make_scheduled(0.0, 0.5, audio=make_wav(0.5, 0.3))
    b = make_scheduled(0.5, 0.5)
    with pytest.raises(DecodeError):
        mix([a, b])
