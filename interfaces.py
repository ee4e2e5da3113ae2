"""Protocol interfaces used by SessionCoordinator and ScreenCaptureWorker."""

from __future__ import annotations

from typing import Callable, Optional, Protocol

from localization import LocalizedStrings
from models import AcquireResult, AnalysisEvent, HapticKind, RawFrame, ResourceState

FrameListener = Callable[[RawFrame], None]
ErrorListener = Callable[[Exception], None]


class VirtualDisplayHandle(Protocol):
    def set_listener(
        self, listener: Optional[FrameListener], on_error: Optional[ErrorListener] = None
    ) -> None: ...

    def release(self) -> None: ...


class ProjectionHandle(Protocol):
    def create_display(self) -> VirtualDisplayHandle: ...

    def stop(self) -> None: ...


class MirroringBackend(Protocol):
    def create_projection(self, grant_payload: object) -> ProjectionHandle: ...


class CaptureWorker(Protocol):
    @property
    def resource_state(self) -> ResourceState: ...

    def acquire(self, session_id: str, grant_payload: object) -> AcquireResult: ...

    def capture_frame(self) -> None: ...

    def release(self) -> None: ...


class AnalysisClient(Protocol):
    def start(
        self,
        session_id: str,
        frame_path: str,
        instruction: str,
        on_event: Callable[[AnalysisEvent], None],
    ) -> None: ...

    def cancel(self) -> None: ...


class Speaker(Protocol):
    @property
    def is_ready(self) -> bool: ...

    @property
    def is_speaking(self) -> bool: ...

    def configure(self, voice_id: str, rate_multiplier: float) -> None: ...

    def speak(self, text: str, flush: bool = True) -> None: ...

    def stop(self) -> None: ...


class Haptics(Protocol):
    def play(self, kind: HapticKind) -> None: ...


class Feedback(Protocol):
    def bind(self, strings: LocalizedStrings, speech_rate: float = 1.0) -> None: ...

    def on_enter_awaiting_permission(self) -> None: ...

    def on_enter_analyzing(self) -> None: ...

    def on_chunk(self) -> None: ...

    def on_complete(self, text: str) -> None: ...

    def on_failed(self) -> None: ...
