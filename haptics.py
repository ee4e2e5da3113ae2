"""Short audio cues standing in for haptic ticks on the desktop."""

from __future__ import annotations

import logging

from models import HapticKind

try:
    import numpy as np
except Exception:  # pragma: no cover
    np = None  # type: ignore

try:
    import sounddevice as sd
except Exception:  # pragma: no cover
    sd = None  # type: ignore

logger = logging.getLogger(__name__)


class ToneHaptics:
    def __init__(self, sample_rate: int = 44100, volume: float = 0.2) -> None:
        self.sample_rate = sample_rate
        self.volume = volume

    def play(self, kind: HapticKind) -> None:
        if sd is None or np is None:
            logger.debug("No audio output for %s cue", kind.value)
            return
        try:
            sd.play(self.waveform(kind), self.sample_rate, blocking=False)
        except Exception as exc:
            logger.warning("Haptic cue %s failed: %s", kind.value, exc)

    def waveform(self, kind: HapticKind):  # noqa: ANN201
        if kind == HapticKind.HEAVY:
            return self._tone(freq_hz=220.0, duration_ms=70)
        tick = self._tone(freq_hz=1800.0, duration_ms=15)
        if kind == HapticKind.DOUBLE:
            gap = np.zeros(int(self.sample_rate * 0.06), dtype=np.float32)
            return np.concatenate([tick, gap, tick])
        return tick

    def _tone(self, freq_hz: float, duration_ms: int):  # noqa: ANN202
        n = int(self.sample_rate * duration_ms / 1000)
        t = np.arange(n, dtype=np.float32) / self.sample_rate
        envelope = np.exp(-t * (4000.0 / duration_ms))
        return (self.volume * envelope * np.sin(2 * np.pi * freq_hz * t)).astype(np.float32)
