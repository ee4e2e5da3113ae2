"""Tests for Pyttsx3Speaker and voice selection."""

from __future__ import annotations

import threading
import time
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from speech import BASE_RATE_WPM, Pyttsx3Speaker, select_voice


VOICES = [
    SimpleNamespace(id="english-us", languages=[b"\x05en-us"]),
    SimpleNamespace(id="english", languages=[b"\x05en-gb"]),
    SimpleNamespace(id="polish", languages=["pl"]),
    SimpleNamespace(id="com.apple.voice.compact.es-MX.Paulina", languages=["es_MX"]),
]


class FakeEngine:
    def __init__(self) -> None:
        self.said: list[str] = []
        self.properties: dict[str, object] = {"voices": VOICES}
        self.callbacks: dict[str, object] = {}
        self.spoke = threading.Event()

    def connect(self, topic: str, cb) -> None:  # noqa: ANN001
        self.callbacks[topic] = cb

    def setProperty(self, name: str, value: object) -> None:  # noqa: N802
        self.properties[name] = value

    def getProperty(self, name: str) -> object:  # noqa: N802
        return self.properties.get(name)

    def say(self, text: str) -> None:
        self.said.append(text)

    def runAndWait(self) -> None:  # noqa: N802
        self.spoke.set()

    def stop(self) -> None:
        pass


def _wait(predicate, timeout: float = 2.0) -> bool:  # noqa: ANN001
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return False


# ---------------------------------------------------------------
# select_voice
# ---------------------------------------------------------------

@pytest.mark.parametrize(
    "wanted, expected",
    [
        ("en-GB", "english"),
        ("en_us", "english-us"),
        ("pl-PL", "polish"),
        ("es-MX", "com.apple.voice.compact.es-MX.Paulina"),
        ("sw-KE", None),
        ("", None),
    ],
)
def test_select_voice(wanted: str, expected) -> None:  # noqa: ANN001
    assert select_voice(VOICES, wanted) == expected


# ---------------------------------------------------------------
# Pyttsx3Speaker
# ---------------------------------------------------------------

def test_speak_before_start_raises() -> None:
    speaker = Pyttsx3Speaker()

    assert speaker.is_ready is False
    with pytest.raises(RuntimeError):
        speaker.speak("hello")


@patch("speech.pyttsx3", None)
def test_start_without_pyttsx3_raises() -> None:
    with pytest.raises(RuntimeError):
        Pyttsx3Speaker().start()


def test_speaks_with_configured_voice_and_rate() -> None:
    engine = FakeEngine()
    fake = MagicMock()
    fake.init.return_value = engine

    with patch("speech.pyttsx3", fake):
        speaker = Pyttsx3Speaker(voice_id="en-GB", rate_multiplier=1.5)
        assert speaker.start(timeout_s=2.0) is True
        speaker.speak("The screen shows a login form.")
        assert engine.spoke.wait(2.0)
        speaker.shutdown()

    assert engine.said == ["The screen shows a login form."]
    assert engine.properties["rate"] == int(BASE_RATE_WPM * 1.5)
    assert engine.properties["voice"] == "english"
    assert "started-word" in engine.callbacks
    assert speaker.is_ready is False


def test_reconfigure_applies_before_next_utterance() -> None:
    engine = FakeEngine()
    fake = MagicMock()
    fake.init.return_value = engine

    with patch("speech.pyttsx3", fake):
        speaker = Pyttsx3Speaker(voice_id="en-GB")
        speaker.start(timeout_s=2.0)
        speaker.speak("one")
        assert _wait(lambda: engine.said == ["one"])
        speaker.configure("pl-PL", 0.5)
        speaker.speak("dwa")
        assert _wait(lambda: engine.said == ["one", "dwa"])
        speaker.shutdown()

    assert engine.properties["voice"] == "polish"
    assert engine.properties["rate"] == int(BASE_RATE_WPM * 0.5)


def test_interrupt_stops_engine_on_next_word() -> None:
    speaker = Pyttsx3Speaker()
    engine = MagicMock()
    speaker._speaking.set()

    speaker._check_interrupt(engine)
    engine.stop.assert_not_called()

    speaker.stop()
    speaker._check_interrupt(engine)
    engine.stop.assert_called_once()
