"""Automatic acceptance of the screen capture consent prompt."""

from __future__ import annotations

import logging
import time
from typing import Callable, Iterable, Optional

try:
    from pynput.mouse import Button, Controller
except Exception:  # pragma: no cover
    Button = None  # type: ignore
    Controller = None  # type: ignore

logger = logging.getLogger(__name__)

CONSENT_OWNER = "screen-narrator-consent"
CONSENT_MARKER = "ScreenNarrator?"
TAP_OFFSET_X = 200
TAP_OFFSET_Y = 120

ScreenSize = Callable[[], tuple[int, int]]
Tap = Callable[[int, int], None]


def pynput_tap(x: int, y: int, hold_s: float = 0.05) -> None:
    if Controller is None or Button is None:
        raise RuntimeError("pynput is not installed")
    mouse = Controller()
    mouse.position = (x, y)
    mouse.press(Button.left)
    time.sleep(hold_s)
    mouse.release(Button.left)


class ConsentAutoConfirmer:
    """Taps the accept button of the consent prompt when enabled.

    The prompt is recognised by its owner and the marker text; the tap lands
    at a fixed offset from the bottom-right corner of the screen.
    """

    def __init__(
        self,
        enabled: bool,
        screen_size: ScreenSize,
        tap: Optional[Tap] = None,
        owner: str = CONSENT_OWNER,
        marker: str = CONSENT_MARKER,
    ) -> None:
        self.enabled = enabled
        self._screen_size = screen_size
        self._tap = tap or pynput_tap
        self._owner = owner
        self._marker = marker

    def tap_point(self) -> tuple[int, int]:
        width, height = self._screen_size()
        return width - TAP_OFFSET_X, height - TAP_OFFSET_Y

    def on_window_state_changed(self, owner: str, texts: Iterable[str]) -> bool:
        """Returns True when a confirming tap was dispatched."""
        if not self.enabled or owner != self._owner:
            return False
        if not any(self._marker in text for text in texts):
            return False
        try:
            x, y = self.tap_point()
            logger.info("Auto-confirming capture consent at X:%d, Y:%d", x, y)
            self._tap(x, y)
        except Exception as exc:
            logger.warning("Auto-confirm tap failed: %s", exc)
            return False
        return True
