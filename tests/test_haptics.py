from __future__ import annotations

from unittest.mock import MagicMock, patch

import numpy as np

from haptics import ToneHaptics
from models import HapticKind


def test_waveform_lengths() -> None:
    haptics = ToneHaptics(sample_rate=10000)

    tick = haptics.waveform(HapticKind.TICK)
    heavy = haptics.waveform(HapticKind.HEAVY)
    double = haptics.waveform(HapticKind.DOUBLE)

    assert len(tick) == 150
    assert len(heavy) == 700
    assert len(double) == 150 + 600 + 150
    assert double.dtype == np.float32


def test_waveform_respects_volume() -> None:
    haptics = ToneHaptics(volume=0.1)

    for kind in HapticKind:
        assert np.max(np.abs(haptics.waveform(kind))) <= 0.1 + 1e-6


def test_play_is_non_blocking() -> None:
    fake_sd = MagicMock()
    with patch("haptics.sd", fake_sd):
        ToneHaptics(sample_rate=8000).play(HapticKind.HEAVY)

    args, kwargs = fake_sd.play.call_args
    assert len(args[0]) == 560
    assert args[1] == 8000
    assert kwargs["blocking"] is False


def test_play_failure_is_logged_not_raised() -> None:
    fake_sd = MagicMock()
    fake_sd.play.side_effect = RuntimeError("PortAudio error")
    with patch("haptics.sd", fake_sd):
        ToneHaptics().play(HapticKind.TICK)


@patch("haptics.sd", None)
def test_play_without_audio_backend() -> None:
    ToneHaptics().play(HapticKind.DOUBLE)
