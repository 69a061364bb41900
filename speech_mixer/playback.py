"""Playback device: an explicit output resource with master gain and source lifecycle."""

import logging
import threading
from contextlib import contextmanager

import numpy as np

from speech_mixer.constants import DEFAULT_MASTER_VOLUME
from speech_mixer.decoding import decode_audio
from speech_mixer.errors import ResourceError
from speech_mixer.models import MixedAudioResult

logger = logging.getLogger(__name__)

# sounddevice needs the PortAudio library at import time
try:
    import sounddevice as sd
    SOUNDDEVICE_AVAILABLE = True
except (ImportError, OSError):
    sd = None
    SOUNDDEVICE_AVAILABLE = False


class PlaybackSource:
    """One loaded buffer bound to its own output stream."""

    def __init__(self, frames: np.ndarray, sample_rate: int, device: "AudioDevice"):
        self.frames = frames                  # (frames, channels) float32
        self.sample_rate = sample_rate
        self.position = 0
        self._device = device
        self._exhausted = False
        self._playing = False
        self.done = threading.Event()
        self.stream = sd.OutputStream(
            samplerate=sample_rate,
            channels=frames.shape[1],
            dtype="float32",
            callback=self._callback,
            finished_callback=self._finished,
        )

    def _callback(self, outdata, frames, time_info, status):
        if status:
            logger.warning("Playback status: %s", status)
        chunk = self.frames[self.position:self.position + frames]
        count = len(chunk)
        outdata[:count] = chunk * self._device.master_volume
        outdata[count:] = 0
        self.position += count
        if count < frames:
            self._exhausted = True
            raise sd.CallbackStop

    def _finished(self):
        if self._exhausted:
            self.done.set()

    @property
    def finished(self) -> bool:
        return self._exhausted

    def start(self):
        if not self._exhausted and not self._playing:
            self.stream.start()
            self._playing = True

    def pause(self):
        if self._playing:
            self.stream.stop()
            self._playing = False

    def stop(self):
        self.stream.stop()
        self.stream.close()
        self._exhausted = True
        self.done.set()


class AudioDevice:
    """Output device connection with a master gain stage.

    States: "closed" → open() → "running" ⇄ "suspended" → close() → "closed".
    Loading a result always stops every active source first.
    """

    def __init__(self, master_volume: float = DEFAULT_MASTER_VOLUME):
        self.state = "closed"
        self.sources: list[PlaybackSource] = []
        self._master_volume = 0.0
        self.master_volume = master_volume

    @property
    def master_volume(self) -> float:
        return self._master_volume

    @master_volume.setter
    def master_volume(self, volume: float):
        self._master_volume = max(0.0, min(1.0, volume))

    def open(self) -> "AudioDevice":
        if self.state != "closed":
            logger.info("Audio device already open")
            return self
        if not SOUNDDEVICE_AVAILABLE:
            raise ResourceError("sounddevice/PortAudio is not available")
        try:
            info = sd.query_devices(kind="output")
        except Exception as e:
            raise ResourceError(f"No usable audio output device: {e}") from e
        logger.info("Audio device opened: %s", info)
        self.state = "running"
        return self

    def _require_open(self):
        if self.state == "closed":
            raise ResourceError("Audio device is closed")

    def load(self, result: MixedAudioResult) -> PlaybackSource:
        """Release all active sources, then decode result into a new source."""
        self._require_open()
        self.stop_all()
        buffer = decode_audio(result.audio)
        frames = np.ascontiguousarray(buffer.samples.T, dtype=np.float32)
        source = PlaybackSource(frames, buffer.sample_rate, self)
        self.sources.append(source)
        return source

    def play(self, result: MixedAudioResult | None = None):
        self._require_open()
        if result is not None:
            self.load(result)
        self.state = "running"
        for source in self.sources:
            source.start()

    def resume(self):
        self._require_open()
        if self.state == "suspended":
            self.state = "running"
            for source in self.sources:
                source.start()

    def suspend(self):
        self._require_open()
        if self.state == "running":
            for source in self.sources:
                source.pause()
            self.state = "suspended"

    def wait(self):
        """Block until every loaded source has played to the end or been stopped.

        A suspended device never finishes on its own, so waiting on one raises.
        """
        self._require_open()
        if self.state == "suspended":
            raise ResourceError("Cannot wait on a suspended audio device")
        for source in list(self.sources):
            source.done.wait()

    def stop_all(self):
        for source in self.sources:
            try:
                source.stop()
            except Exception as e:
                logger.error("Error stopping playback source: %s", e)
        self.sources.clear()

    def close(self):
        if self.state == "closed":
            return
        self.stop_all()
        self.state = "closed"
        logger.info("Audio device closed")

    def __enter__(self) -> "AudioDevice":
        return self.open()

    def __exit__(self, exc_type, exc, tb):
        self.close()


@contextmanager
def playback_session(master_volume: float = DEFAULT_MASTER_VOLUME):
    """Open an AudioDevice for the duration of one playback session."""
    device = AudioDevice(master_volume=master_volume)
    device.open()
    try:
        yield device
    finally:
        device.close()
