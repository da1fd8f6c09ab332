"""
Speech Capture

Collects recognition results from a speech recognizer into an interim and
a final transcript. The recognizer itself (browser engine, Vosk, a cloud
API) is outside this module: it feeds results in through on_result() and
reports failures through on_error().

stop() finalizes whatever was heard at that instant; start() always begins
from empty buffers.

Usage:
    capture = SpeechCapture()
    capture.start("hi")                 # recognizes with hi-IN
    capture.on_result("namaste", is_final=True)
    text = await capture.wait_for_transcript()
"""

import asyncio
from typing import Optional

from config.constants import DEFAULT_LANGUAGE_TAG, LANGUAGE_TAGS
from utils.exceptions import SpeechCaptureUnsupportedError, SpeechRecognitionError
from utils.logging import get_logger

logger = get_logger(__name__)

# Errors after which listening simply continues
RECOVERABLE_ERRORS = {"no-speech"}


def resolve_language_tag(language: Optional[str]) -> str:
    """Map "en"/"hi"/"te" to a recognition tag; full tags pass through."""
    if not language:
        return DEFAULT_LANGUAGE_TAG
    if "-" in language:
        return language
    return LANGUAGE_TAGS.get(language.lower(), DEFAULT_LANGUAGE_TAG)


class SpeechCapture:
    """
    Transcript buffer for one listening session at a time.

    Args:
        supported: False when the environment has no recognizer at all;
            start() then raises SpeechCaptureUnsupportedError.
    """

    def __init__(self, supported: bool = True):
        self.supported = supported
        self.language_tag: Optional[str] = None
        self.interim_transcript = ""
        self.final_transcript = ""
        self.error: Optional[str] = None
        self._listening = False
        self._done: Optional[asyncio.Event] = None

    @property
    def is_listening(self) -> bool:
        return self._listening

    def start(self, language: Optional[str] = None) -> str:
        """
        Begin listening.

        Returns:
            The recognition language tag in use

        Raises:
            SpeechCaptureUnsupportedError: No recognizer in this environment
        """
        if not self.supported:
            raise SpeechCaptureUnsupportedError()

        self.language_tag = resolve_language_tag(language)
        self.interim_transcript = ""
        self.final_transcript = ""
        self.error = None
        self._done = asyncio.Event()
        self._listening = True
        logger.debug(f"Speech capture started ({self.language_tag})")
        return self.language_tag

    def on_result(self, text: str, is_final: bool) -> None:
        """Feed one recognizer result."""
        if not self._listening:
            return
        if is_final:
            self.final_transcript = f"{self.final_transcript} {text}".strip()
            self.interim_transcript = ""
            self._done.set()
        else:
            self.interim_transcript = text

    def on_error(self, code: str) -> None:
        """
        Feed a recognizer error. "no-speech" keeps listening; anything
        else stops capture and surfaces as SpeechRecognitionError.
        """
        if code in RECOVERABLE_ERRORS:
            logger.debug(f"Recoverable recognition error: {code}")
            return
        logger.warning(f"Speech recognition error: {code}")
        self.error = code
        self.stop()

    def stop(self) -> str:
        """Stop listening and return the finalized transcript."""
        if self._listening:
            if self.interim_transcript:
                self.final_transcript = f"{self.final_transcript} {self.interim_transcript}".strip()
                self.interim_transcript = ""
            self._listening = False
            if self._done is not None:
                self._done.set()
        return self.final_transcript

    async def wait_for_transcript(self, timeout: Optional[float] = None) -> str:
        """
        Wait for the first final transcript (or stop) and return it.

        Raises:
            SpeechRecognitionError: The recognizer failed
            asyncio.TimeoutError: Nothing final arrived in time
        """
        if self._done is None:
            raise SpeechRecognitionError("Capture was never started")

        await asyncio.wait_for(self._done.wait(), timeout=timeout)

        if self.error is not None:
            raise SpeechRecognitionError(details={"code": self.error})
        return self.final_transcript
