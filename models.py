"""Core data models for the app."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class SessionState(str, Enum):
    IDLE = "IDLE"
    AWAITING_PERMISSION = "AWAITING_PERMISSION"
    CAPTURING = "CAPTURING"
    FRAME_READY = "FRAME_READY"
    ANALYZING = "ANALYZING"
    SPEAKING = "SPEAKING"
    FAILED = "FAILED"
    COMPLETE = "COMPLETE"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionState.FAILED, SessionState.COMPLETE)

    @property
    def is_active(self) -> bool:
        return self not in (SessionState.IDLE, SessionState.FAILED, SessionState.COMPLETE)


class ResourceState(str, Enum):
    UNACQUIRED = "UNACQUIRED"
    ACQUIRED = "ACQUIRED"
    RELEASED = "RELEASED"


class EventKind(str, Enum):
    PERMISSION_RESULT = "permission_result"
    FRAME_READY = "frame_ready"
    CAPTURE_FAILED = "capture_failed"
    ANALYSIS_CHUNK = "analysis_chunk"
    ANALYSIS_COMPLETE = "analysis_complete"
    ANALYSIS_ERROR = "analysis_error"
    DEADLINE_EXPIRED = "deadline_expired"


class AnalysisKind(str, Enum):
    CHUNK = "chunk"
    COMPLETE = "complete"
    ERROR = "error"


class HapticKind(str, Enum):
    TICK = "tick"
    HEAVY = "heavy"
    DOUBLE = "double"


@dataclass
class CaptureSession:
    session_id: str
    language_code: str
    state: SessionState = SessionState.IDLE
    frame_path: str = ""
    accumulated_text: str = ""
    chunk_count: int = 0
    error_code: str = ""
    created_ms: int = 0


@dataclass
class RawFrame:
    """One frame as it comes off the mirrored surface.

    ``row_stride`` may exceed ``width * pixel_stride`` when the buffer pads
    each row for alignment.
    """

    data: bytes
    width: int
    height: int
    row_stride: int
    pixel_stride: int = 4
    pixel_format: str = "BGRA"


@dataclass
class AcquireResult:
    success: bool
    reason: str = ""


@dataclass
class PipelineEvent:
    kind: EventKind
    session_id: str
    path: str = ""
    text: str = ""
    granted: bool = False
    grant_payload: Any = None
    code: str = ""
    message: str = ""
    phase: str = ""

    def validate(self) -> None:
        if not isinstance(self.kind, EventKind):
            raise ValueError(f"unknown event kind: {self.kind!r}")
        if not isinstance(self.session_id, str) or not self.session_id.strip():
            raise ValueError(f"{self.kind.value} event without session id")


@dataclass
class AnalysisEvent:
    kind: str
    text: str = ""
    code: str = ""
    message: str = ""
    retryable: bool = False


@dataclass
class FeedbackEvent:
    haptic: HapticKind | None = None
    speech: str = ""
    flush: bool = True
