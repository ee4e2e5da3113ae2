"""Text-to-speech output on a dedicated pyttsx3 thread."""

from __future__ import annotations

import logging
import threading
from queue import Empty, Queue
from typing import Any, Optional

try:
    import pyttsx3
except Exception:  # pragma: no cover
    pyttsx3 = None  # type: ignore

logger = logging.getLogger(__name__)

BASE_RATE_WPM = 200


class Pyttsx3Speaker:
    """pyttsx3 engines are bound to the thread that created them, so every
    engine call happens on the speech thread. Other threads only enqueue
    utterances or raise the interrupt flag."""

    def __init__(self, voice_id: str = "", rate_multiplier: float = 1.0) -> None:
        self._voice_id = voice_id
        self._rate_multiplier = rate_multiplier
        self._config_dirty = True
        self._queue: Queue[str | None] = Queue()
        self._lock = threading.Lock()
        self._ready = threading.Event()
        self._speaking = threading.Event()
        self._interrupt = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_ready(self) -> bool:
        return self._ready.is_set()

    @property
    def is_speaking(self) -> bool:
        return self._speaking.is_set()

    def start(self, timeout_s: float = 3.0) -> bool:
        if self._thread and self._thread.is_alive():
            return self.is_ready
        if pyttsx3 is None:
            raise RuntimeError("pyttsx3 is not installed")
        self._thread = threading.Thread(target=self._run, name="speech", daemon=True)
        self._thread.start()
        return self._ready.wait(timeout=timeout_s)

    def configure(self, voice_id: str, rate_multiplier: float) -> None:
        with self._lock:
            self._voice_id = voice_id
            self._rate_multiplier = rate_multiplier if rate_multiplier > 0 else 1.0
            self._config_dirty = True

    def speak(self, text: str, flush: bool = True) -> None:
        if not self.is_ready:
            raise RuntimeError("speech engine is not ready")
        if flush:
            self.stop()
        self._queue.put(text)

    def stop(self) -> None:
        self._drain()
        if self.is_speaking:
            self._interrupt.set()

    def shutdown(self) -> None:
        self._drain()
        self._interrupt.set()
        thread = self._thread
        if thread is None:
            return
        self._queue.put(None)
        if thread is not threading.current_thread():
            thread.join(timeout=2.0)
        self._thread = None

    def _drain(self) -> None:
        while True:
            try:
                item = self._queue.get_nowait()
            except Empty:
                return
            if item is None:
                # keep the shutdown sentinel
                self._queue.put(None)
                return

    def _run(self) -> None:
        try:
            engine = pyttsx3.init()
        except Exception:
            logger.exception("Speech engine failed to start")
            return
        engine.connect("started-word", lambda name, location, length: self._check_interrupt(engine))
        self._ready.set()
        logger.info("Speech engine ready")
        try:
            while True:
                text = self._queue.get()
                if text is None:
                    break
                self._apply_config(engine)
                self._interrupt.clear()
                self._speaking.set()
                try:
                    engine.say(text)
                    engine.runAndWait()
                except Exception:
                    logger.exception("Speech playback failed")
                finally:
                    self._speaking.clear()
        finally:
            self._ready.clear()
            try:
                engine.stop()
            except Exception:
                logger.debug("Engine stop on shutdown failed", exc_info=True)

    def _check_interrupt(self, engine: Any) -> None:
        if self._interrupt.is_set():
            engine.stop()

    def _apply_config(self, engine: Any) -> None:
        with self._lock:
            if not self._config_dirty:
                return
            voice_id, multiplier = self._voice_id, self._rate_multiplier
            self._config_dirty = False
        engine.setProperty("rate", int(BASE_RATE_WPM * multiplier))
        match = select_voice(engine.getProperty("voices") or [], voice_id)
        if match is not None:
            engine.setProperty("voice", match)
        logger.info("Speech configured: voice=%s rate=%.2f", match or "default", multiplier)


def select_voice(voices: list, voice_id: str) -> Optional[str]:
    """Pick the installed voice that best matches a tag like ``en-GB``.

    An exact locale match wins over a language-only match.
    """
    wanted = voice_id.strip().lower().replace("_", "-")
    if not wanted:
        return None
    language = wanted.split("-")[0]
    fallback: Optional[str] = None
    for voice in voices:
        tags = [_norm(tag) for tag in (getattr(voice, "languages", None) or [])]
        tags.append(_norm(getattr(voice, "id", "")))
        if any(tag == wanted or tag.endswith(wanted) for tag in tags):
            return voice.id
        if fallback is None and any(tag == language or tag.startswith(language + "-") for tag in tags):
            fallback = voice.id
    return fallback


def _norm(tag: object) -> str:
    if isinstance(tag, bytes):
        tag = tag.decode("utf-8", errors="ignore")
    return str(tag).strip("\x00\x01\x02\x03\x04\x05 ").lower().replace("_", "-")
