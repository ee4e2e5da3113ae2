"""Maps session progress to haptic cues and speech."""

from __future__ import annotations

import logging
from typing import Optional

from errors import SPEECH_UNAVAILABLE
from interfaces import Haptics, Speaker
from localization import LocalizedStrings, lookup
from models import FeedbackEvent, HapticKind, SessionState

logger = logging.getLogger(__name__)


class FeedbackController:
    """Fire-and-forget output. Holds no session state beyond the bound language."""

    def __init__(
        self,
        speaker: Speaker,
        haptics: Haptics,
        strings: Optional[LocalizedStrings] = None,
    ) -> None:
        self._speaker = speaker
        self._haptics = haptics
        self._strings = strings or lookup(None)

    @property
    def strings(self) -> LocalizedStrings:
        return self._strings

    def bind(self, strings: LocalizedStrings, speech_rate: float = 1.0) -> None:
        self._strings = strings
        try:
            self._speaker.configure(strings.voice_id, speech_rate)
        except Exception as exc:
            logger.warning("Could not configure speech for %s: %s", strings.language_code, exc)

    def event_for(self, to_state: SessionState, text: str = "") -> Optional[FeedbackEvent]:
        if to_state == SessionState.AWAITING_PERMISSION:
            return FeedbackEvent(haptic=HapticKind.TICK)
        if to_state == SessionState.ANALYZING:
            return FeedbackEvent(speech=self._strings.processing_phrase, flush=True)
        if to_state == SessionState.SPEAKING:
            return FeedbackEvent(haptic=HapticKind.HEAVY, speech=text, flush=True)
        if to_state == SessionState.FAILED:
            return FeedbackEvent(speech=self._strings.error_phrase, flush=True)
        return None

    def on_enter_awaiting_permission(self) -> None:
        self._perform(self.event_for(SessionState.AWAITING_PERMISSION))

    def on_enter_analyzing(self) -> None:
        self._perform(self.event_for(SessionState.ANALYZING))

    def on_chunk(self) -> None:
        self._perform(FeedbackEvent(haptic=HapticKind.TICK))

    def on_complete(self, text: str) -> None:
        self._perform(self.event_for(SessionState.SPEAKING, text))

    def on_failed(self) -> None:
        self._perform(self.event_for(SessionState.FAILED))

    def stop_speaking(self) -> bool:
        """Interrupt speech if any is playing. Returns True when it was."""
        try:
            speaking = self._speaker.is_speaking
        except Exception:
            logger.exception("Speech state unavailable")
            return False
        if not speaking:
            return False
        try:
            self._speaker.stop()
        except Exception:
            logger.exception("Failed to stop speech")
        self._haptic(HapticKind.DOUBLE)
        return True

    def _perform(self, event: Optional[FeedbackEvent]) -> None:
        if event is None:
            return
        if event.haptic is not None:
            self._haptic(event.haptic)
        if event.speech:
            self._speak(event.speech, event.flush)

    def _haptic(self, kind: HapticKind) -> None:
        try:
            self._haptics.play(kind)
        except Exception as exc:
            logger.warning("Haptic %s failed: %s", kind.value, exc)

    def _speak(self, text: str, flush: bool) -> None:
        if not self._speaker.is_ready:
            logger.warning("%s: dropping utterance of %d chars", SPEECH_UNAVAILABLE, len(text))
            return
        try:
            self._speaker.speak(text, flush=flush)
        except Exception as exc:
            logger.warning("%s: %s", SPEECH_UNAVAILABLE, exc)
