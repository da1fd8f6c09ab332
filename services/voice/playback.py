"""
Speech Playback Queue

Speaks assistant replies one at a time in the order they were produced.
Each item's completion (or failure) starts the next one; cancel_all()
stops the item being spoken and drops everything pending, e.g. when the
user starts talking again.

Usage:
    queue = SpeechPlaybackQueue(speaker)
    queue.enqueue("What is your email?")
    ...
    queue.cancel_all()
"""

import asyncio
from collections import deque
from typing import Awaitable, Callable, Deque, List, Optional, Tuple

from config.constants import AUDIO_OUTBOX_SIZE, PLAYBACK_HISTORY_SIZE
from utils.logging import get_logger

logger = get_logger(__name__)

Speaker = Callable[[str], Awaitable[None]]


class SpeechPlaybackQueue:
    """
    Single-consumer FIFO of utterances to vocalize.

    Args:
        speaker: Coroutine function that plays one utterance to the end
        on_complete: Called with the text after it finished playing
        on_error: Called with the text and exception when playback failed
    """

    def __init__(
        self,
        speaker: Speaker,
        on_complete: Optional[Callable[[str], None]] = None,
        on_error: Optional[Callable[[str, BaseException], None]] = None,
    ):
        self._speaker = speaker
        self._on_complete = on_complete
        self._on_error = on_error
        self._pending: Deque[str] = deque()
        self._worker: Optional[asyncio.Task] = None
        self.current: Optional[str] = None
        # Most recent only
        self.spoken: Deque[str] = deque(maxlen=PLAYBACK_HISTORY_SIZE)
        self.failed: Deque[str] = deque(maxlen=PLAYBACK_HISTORY_SIZE)

    @property
    def is_speaking(self) -> bool:
        return self._worker is not None and not self._worker.done()

    @property
    def pending(self) -> List[str]:
        return list(self._pending)

    def enqueue(self, text: str) -> None:
        """Add an utterance; playback starts immediately if idle."""
        if not text or not text.strip():
            return
        self._pending.append(text)
        if not self.is_speaking:
            self._worker = asyncio.get_running_loop().create_task(self._run())

    def cancel_all(self) -> int:
        """
        Stop the current utterance and drop pending ones.

        Returns:
            Number of utterances that will not be (fully) spoken
        """
        dropped = len(self._pending)
        self._pending.clear()
        if self.is_speaking:
            self._worker.cancel()
            dropped += 1 if self.current is not None else 0
        self._worker = None
        self.current = None
        if dropped:
            logger.debug(f"Playback cancelled, {dropped} utterance(s) dropped")
        return dropped

    async def wait_idle(self) -> None:
        """Wait until everything queued so far has played (or was cancelled)."""
        while self._worker is not None and not self._worker.done():
            await asyncio.wait({self._worker})

    async def _run(self) -> None:
        while self._pending:
            text = self._pending.popleft()
            self.current = text
            try:
                await self._speaker(text)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.warning(f"Playback failed for '{text[:40]}': {e}")
                self.failed.append(text)
                if self._on_error is not None:
                    self._on_error(text, e)
            else:
                self.spoken.append(text)
                if self._on_complete is not None:
                    self._on_complete(text)
            finally:
                self.current = None


class AudioOutbox:
    """
    Synthesized clips waiting for the client to fetch them, oldest first.

    Bounded: when the client stops polling, the oldest clips are dropped.
    Use ``put`` as the audio sink of SpeechService.as_speaker().
    """

    def __init__(self, maxlen: int = AUDIO_OUTBOX_SIZE):
        self._clips: Deque[Tuple[str, bytes]] = deque(maxlen=maxlen)

    def __len__(self) -> int:
        return len(self._clips)

    def put(self, text: str, audio: bytes) -> None:
        self._clips.append((text, audio))

    def pop(self) -> Optional[Tuple[str, bytes]]:
        return self._clips.popleft() if self._clips else None

    def clear(self) -> int:
        dropped = len(self._clips)
        self._clips.clear()
        return dropped
