"""
Text-to-Speech Service

Turns assistant replies into spoken audio with the ElevenLabs API, and
adapts that into a speaker coroutine for the playback queue.

Usage:
    from services.voice.speech import SpeechService
    from services.voice.playback import SpeechPlaybackQueue

    service = SpeechService(api_key="...")
    queue = SpeechPlaybackQueue(service.as_speaker(send_audio))
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional

import requests

from config.settings import settings
from utils.exceptions import SpeechGenerationError
from utils.logging import get_logger, log_api_call

logger = get_logger(__name__)

AudioSink = Callable[[str, bytes], Any]


class SpeechService:
    """
    ElevenLabs Text-to-Speech service.

    Attributes:
        api_key: ElevenLabs API key
        default_voice_id: Voice to use
        model: TTS model
    """

    API_BASE = "https://api.elevenlabs.io/v1"
    TIMEOUT_SECONDS = 30

    def __init__(
        self,
        api_key: Optional[str] = None,
        voice_id: Optional[str] = None,
        model: Optional[str] = None
    ):
        self.api_key = api_key if api_key is not None else settings.ELEVENLABS_API_KEY
        self.default_voice_id = voice_id or settings.ELEVENLABS_VOICE_ID
        self.model = model or settings.ELEVENLABS_MODEL

        if not self.api_key:
            logger.warning("ElevenLabs API key not configured - TTS disabled")

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    def text_to_speech(self, text: str, voice_id: Optional[str] = None) -> Optional[bytes]:
        """
        Convert text to MP3 audio.

        Returns:
            bytes: Audio data, or None when disabled or on failure
        """
        if not self.api_key:
            logger.warning("Cannot generate speech - API key not configured")
            return None

        url = f"{self.API_BASE}/text-to-speech/{voice_id or self.default_voice_id}"
        headers = {
            "Accept": "audio/mpeg",
            "Content-Type": "application/json",
            "xi-api-key": self.api_key
        }
        payload = {
            "text": text,
            "model_id": self.model,
            "voice_settings": {"stability": 0.5, "similarity_boost": 0.75}
        }

        try:
            response = requests.post(url, json=payload, headers=headers, timeout=self.TIMEOUT_SECONDS)
        except requests.Timeout:
            log_api_call("ElevenLabs", "text-to-speech", success=False, error="timeout")
            return None
        except requests.RequestException as e:
            log_api_call("ElevenLabs", "text-to-speech", success=False, error=str(e))
            return None

        if response.status_code != 200:
            error_msg = f"Status {response.status_code}: {response.text[:200]}"
            log_api_call("ElevenLabs", "text-to-speech", success=False, error=error_msg)
            return None

        log_api_call("ElevenLabs", "text-to-speech", success=True)
        return response.content

    def as_speaker(self, audio_sink: AudioSink) -> Callable[[str], Awaitable[None]]:
        """
        Build a speaker for SpeechPlaybackQueue.

        Synthesis runs in a worker thread; the audio goes to
        ``audio_sink(text, audio)``, which may be sync or async.

        Raises (from the speaker):
            SpeechGenerationError: When no audio could be produced
        """
        async def speak(text: str) -> None:
            audio = await asyncio.to_thread(self.text_to_speech, text)
            if not audio:
                raise SpeechGenerationError(text=text)
            result = audio_sink(text, audio)
            if asyncio.iscoroutine(result):
                await result

        return speak
