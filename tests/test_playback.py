"""Tests for the playback device resource."""

from unittest.mock import patch, MagicMock

import numpy as np
import pytest

import speech_mixer.playback as playback
from speech_mixer.errors import ResourceError
from speech_mixer.exporter import encode_wav
from speech_mixer.models import MixedAudioResult
from speech_mixer.playback import AudioDevice, playback_session


class _CallbackStop(Exception):
    pass


@pytest.fixture
def mock_sd():
    """Replace sounddevice with a mock; every OutputStream is a fresh MagicMock."""
    sd = MagicMock()
    sd.CallbackStop = _CallbackStop
    sd.OutputStream.side_effect = lambda **kwargs: MagicMock(kwargs=kwargs)
    with patch.object(playback, "sd", sd), patch.object(playback, "SOUNDDEVICE_AVAILABLE", True):
        yield sd


def _result(frames=6, level=0.5):
    samples = np.full((2, frames), level)
    return MixedAudioResult(audio=encode_wav(samples, 44100), duration=frames / 44100, sample_rate=44100)


def test_open_without_backend_raises():
    with patch.object(playback, "SOUNDDEVICE_AVAILABLE", False):
        with pytest.raises(ResourceError):
            AudioDevice().open()


def test_open_without_output_device_raises(mock_sd):
    mock_sd.query_devices.side_effect = ValueError("No output device matching")
    with pytest.raises(ResourceError):
        AudioDevice().open()


def test_lifecycle_states(mock_sd):
    device = AudioDevice()
    assert device.state == "closed"
    device.open()
    assert device.state == "running"
    device.suspend()
    assert device.state == "suspended"
    device.resume()
    assert device.state == "running"
    device.close()
    assert device.state == "closed"


def test_master_volume_clamped():
    device = AudioDevice(master_volume=1.5)
    assert device.master_volume == 1.0
    device.master_volume = -0.2
    assert device.master_volume == 0.0


def test_load_creates_stream(mock_sd):
    with AudioDevice() as device:
        source = device.load(_result())
        kwargs = mock_sd.OutputStream.call_args.kwargs
        assert kwargs["samplerate"] == 44100
        assert kwargs["channels"] == 2
        assert source.frames.shape == (6, 2)
        assert device.sources == [source]


def test_load_stops_previous_sources(mock_sd):
    with AudioDevice() as device:
        first = device.load(_result())
        second = device.load(_result())
        first.stream.stop.assert_called()
        first.stream.close.assert_called_once()
        assert device.sources == [second]


def test_play_suspend_resume_drive_streams(mock_sd):
    with AudioDevice() as device:
        device.play(_result())
        stream = device.sources[0].stream
        stream.start.assert_called_once()
        device.suspend()
        stream.stop.assert_called_once()
        device.resume()
        assert stream.start.call_count == 2


def test_callback_applies_master_volume_and_stops(mock_sd):
    with AudioDevice(master_volume=0.8) as device:
        source = device.load(_result(frames=6, level=0.5))
        out = np.zeros((4, 2), dtype=np.float32)
        source._callback(out, 4, None, None)
        assert np.allclose(out, 0.4, atol=1e-4)

        out = np.ones((4, 2), dtype=np.float32)
        with pytest.raises(_CallbackStop):
            source._callback(out, 4, None, None)
        assert np.allclose(out[:2], 0.4, atol=1e-4)
        assert np.all(out[2:] == 0)
        source._finished()
        assert source.done.is_set()
        assert source.finished


def test_wait_on_suspended_device_raises(mock_sd):
    with AudioDevice() as device:
        device.play(_result())
        device.suspend()
        with pytest.raises(ResourceError):
            device.wait()


def test_wait_returns_when_sources_done(mock_sd):
    with AudioDevice() as device:
        device.play(_result())
        device.sources[0].done.set()
        device.wait()


def test_use_after_close_raises(mock_sd):
    device = AudioDevice().open()
    device.close()
    with pytest.raises(ResourceError):
        device.load(_result())


def test_stop_all_releases_sources_even_on_error(mock_sd):
    with AudioDevice() as device:
        source = device.load(_result())
        source.stream.close.side_effect = RuntimeError("device gone")
        device.stop_all()
        assert device.sources == []


def test_playback_session_closes(mock_sd):
    with playback_session() as device:
        device.load(_result())
        assert device.state == "running"
    assert device.state == "closed"
    assert device.sources == []
