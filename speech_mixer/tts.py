"""Speech synthesis clients (edge-tts, ElevenLabs) with retry logic."""

import asyncio
import logging
import re
import time
from dataclasses import replace

import edge_tts
import requests

from speech_mixer.constants import (
    TTS_RETRY_COUNT,
    TTS_RETRY_BASE_DELAY,
    TTS_VOICE,
    TTS_REFERENCE_PITCH_HZ,
    ELEVENLABS_URL,
    ELEVENLABS_MODEL,
    ELEVENLABS_TIMEOUT_SECONDS,
)
from speech_mixer.errors import SynthesisError
from speech_mixer.models import ScheduledSegment
from speech_mixer.voices import VoicePlan

logger = logging.getLogger(__name__)

_PERCENT_RE = re.compile(r"^([+-]?\d+(?:\.\d+)?)%$")


def _percent(value: str | None) -> float | None:
    if not value:
        return None
    match = _PERCENT_RE.match(value.strip())
    return float(match.group(1)) if match else None


def edge_rate(rate: str | None) -> str:
    """Absolute SSML rate ("55%" of normal) → edge-tts relative rate ("-45%")."""
    percent = _percent(rate)
    if percent is None:
        return "+0%"
    return f"{round(percent - 100):+d}%"


def edge_pitch(pitch: str | None) -> str:
    """Relative SSML pitch ("+5%") → edge-tts pitch in Hz against TTS_REFERENCE_PITCH_HZ."""
    percent = _percent(pitch)
    if percent is None:
        return "+0Hz"
    return f"{round(TTS_REFERENCE_PITCH_HZ * percent / 100):+d}Hz"


async def _collect_audio(communicate) -> bytes:
    chunks = []
    async for chunk in communicate.stream():
        if chunk["type"] == "audio":
            chunks.append(chunk["data"])
    return b"".join(chunks)


class EdgeTTSClient:
    """edge-tts backend. Sends plain text; prosody rate/pitch become call options.

    edge-tts has no stability/expressiveness controls, so voice settings are
    only logged.
    """

    def __init__(self, voice: str = TTS_VOICE):
        self.voice = voice

    def synthesize(self, plan: VoicePlan) -> bytes:
        prosody = plan.markup.prosody
        rate = edge_rate(prosody.get("rate"))
        pitch = edge_pitch(prosody.get("pitch"))
        logger.debug("edge-tts voice=%s rate=%s pitch=%s settings=%s", self.voice, rate, pitch, plan.settings)
        communicate = edge_tts.Communicate(plan.markup.plain_text(), self.voice, rate=rate, pitch=pitch)
        return asyncio.run(_collect_audio(communicate))


class ElevenLabsClient:
    """ElevenLabs text-to-speech backend. Sends SSML plus voice settings."""

    def __init__(
        self,
        api_key: str,
        voice_id: str,
        model_id: str = ELEVENLABS_MODEL,
        timeout: float = ELEVENLABS_TIMEOUT_SECONDS,
    ):
        if not api_key:
            raise SynthesisError("ElevenLabs API key is not configured")
        if not voice_id.strip():
            raise SynthesisError("ElevenLabs voice_id is required for synthesis")
        self.api_key = api_key
        self.voice_id = voice_id.strip()
        self.model_id = model_id
        self.timeout = timeout

    def synthesize(self, plan: VoicePlan) -> bytes:
        payload = {
            "text": plan.markup.to_ssml(),
            "model_id": self.model_id,
            "voice_settings": {
                "stability": plan.settings.stability,
                "similarity_boost": plan.settings.expressiveness,
            },
        }
        headers = {
            "xi-api-key": self.api_key,
            "Content-Type": "application/json",
            "Accept": "audio/mpeg",
        }
        response = requests.post(
            ELEVENLABS_URL.format(voice_id=self.voice_id),
            json=payload,
            headers=headers,
            timeout=self.timeout,
        )
        if response.status_code != 200:
            logger.warning(
                "ElevenLabs synthesis failed (status=%s): %s",
                response.status_code,
                response.text,
            )
            raise SynthesisError(f"ElevenLabs returned {response.status_code}")
        return response.content


def synthesize_single(
    client,
    plan: VoicePlan,
    retries: int = TTS_RETRY_COUNT,
    base_delay: float = TTS_RETRY_BASE_DELAY,
) -> bytes:
    """Synthesize one segment with retry logic.

    Retries on any client error or empty audio, with exponential backoff.
    Raises SynthesisError once all attempts are used.
    """
    last_error = None
    for attempt in range(retries):
        try:
            audio = client.synthesize(plan)
            if audio:
                return audio
            # Empty audio counts as a failure
            last_error = SynthesisError(f"Synthesis produced no audio for: {plan.markup.text[:50]}...")
        except Exception as e:
            last_error = e

        logger.warning("Synthesis attempt %d/%d failed: %s", attempt + 1, retries, last_error)
        if attempt < retries - 1:
            time.sleep(base_delay * (2 ** attempt))

    if isinstance(last_error, SynthesisError):
        raise last_error
    raise SynthesisError(str(last_error)) from last_error


def synthesize_segments(
    plans: list[VoicePlan],
    scheduled: list[ScheduledSegment],
    client,
    retries: int = TTS_RETRY_COUNT,
    base_delay: float = TTS_RETRY_BASE_DELAY,
) -> list[ScheduledSegment]:
    """Synthesize every segment in order and return copies with audio attached.

    Calls run one after another; placement still comes only from the schedule.
    """
    if len(plans) != len(scheduled):
        raise ValueError(f"Got {len(plans)} voice plans for {len(scheduled)} scheduled segments")

    total = len(plans)
    result = []
    for i, (plan, seg) in enumerate(zip(plans, scheduled)):
        logger.info("Synthesizing segment %d/%d (%s)", i + 1, total, seg.tagged.emotional_tone)
        audio = synthesize_single(client, plan, retries=retries, base_delay=base_delay)
        result.append(replace(seg, audio=audio))
    return result
