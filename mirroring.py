"""Screen mirroring backend built on mss.

The projection handle stands for the user's capture grant, the virtual
display for the mirrored monitor. Frames are grabbed on the display's own
reader thread because mss handles must stay on the thread that opened them.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Optional

from interfaces import ErrorListener, FrameListener
from models import RawFrame

try:
    import mss
except Exception:  # pragma: no cover
    mss = None  # type: ignore

logger = logging.getLogger(__name__)


class MssVirtualDisplay:
    def __init__(self, monitor_index: int = 1, poll_interval_s: float = 0.05) -> None:
        self._monitor_index = monitor_index
        self._poll_interval_s = poll_interval_s
        self._listener: Optional[FrameListener] = None
        self._on_error: Optional[ErrorListener] = None
        self._error: Optional[Exception] = None
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread = threading.Thread(target=self._reader, name="mirror-reader", daemon=True)
        self._thread.start()

    def set_listener(
        self, listener: Optional[FrameListener], on_error: Optional[ErrorListener] = None
    ) -> None:
        with self._lock:
            self._listener = listener
            self._on_error = on_error
            error = self._error
        # the surface may have died before anyone was listening
        if error is not None and listener is not None and on_error is not None:
            on_error(error)

    def release(self) -> None:
        self._stop_event.set()
        with self._lock:
            self._listener = None
            self._on_error = None
        if self._thread.is_alive() and self._thread is not threading.current_thread():
            self._thread.join(timeout=1.0)
        logger.debug("Virtual display released (monitor %d)", self._monitor_index)

    def _reader(self) -> None:
        try:
            self._read_frames()
        except Exception as exc:
            logger.exception("Mirroring surface failed on monitor %d", self._monitor_index)
            self._report_error(exc)

    def _read_frames(self) -> None:
        with mss.mss() as sct:
            monitors = sct.monitors
            if self._monitor_index >= len(monitors):
                raise RuntimeError(
                    f"monitor {self._monitor_index} not available ({len(monitors) - 1} found)"
                )
            monitor = monitors[self._monitor_index]
            while not self._stop_event.is_set():
                with self._lock:
                    listener = self._listener
                if listener is not None:
                    listener(_to_raw_frame(sct.grab(monitor)))
                self._stop_event.wait(timeout=self._poll_interval_s)

    def _report_error(self, exc: Exception) -> None:
        with self._lock:
            self._error = exc
            on_error = self._on_error if self._listener is not None else None
        if on_error is not None:
            on_error(exc)


class MssProjection:
    def __init__(self, monitor_index: int = 1, poll_interval_s: float = 0.05) -> None:
        self._monitor_index = monitor_index
        self._poll_interval_s = poll_interval_s
        self._stopped = False

    def create_display(self) -> MssVirtualDisplay:
        if self._stopped:
            raise RuntimeError("projection already stopped")
        return MssVirtualDisplay(self._monitor_index, self._poll_interval_s)

    def stop(self) -> None:
        self._stopped = True


class MssMirroringBackend:
    def __init__(self, monitor_index: int = 1, poll_interval_s: float = 0.05) -> None:
        self._monitor_index = monitor_index
        self._poll_interval_s = poll_interval_s

    def create_projection(self, grant_payload: object) -> MssProjection:
        if mss is None:
            raise RuntimeError("mss is not installed")
        if not grant_payload:
            raise ValueError("capture grant is missing")
        return MssProjection(self._monitor_index, self._poll_interval_s)


def _to_raw_frame(raw: Any) -> RawFrame:
    width, height = raw.size
    data = bytes(raw.bgra)
    return RawFrame(
        data=data,
        width=width,
        height=height,
        row_stride=len(data) // height if height else width * 4,
        pixel_stride=4,
        pixel_format="BGRA",
    )


def primary_screen_size(monitor_index: int = 1) -> tuple[int, int]:
    if mss is None:
        raise RuntimeError("mss is not installed")
    with mss.mss() as sct:
        monitor = sct.monitors[monitor_index]
        return int(monitor["width"]), int(monitor["height"])
