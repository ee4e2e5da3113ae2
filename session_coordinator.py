"""State-machine based capture session orchestration.

IDLE -> AWAITING_PERMISSION -> CAPTURING -> FRAME_READY -> ANALYZING
     -> SPEAKING -> COMPLETE, with a direct edge to FAILED from every active
state. At most one session is active; a trigger while busy is rejected.

Worker and analysis results arrive as ``PipelineEvent``s on the event bus and
are applied on its dispatcher thread. Events whose session id or expected
state no longer match are discarded.
"""

from __future__ import annotations

import dataclasses
import logging
import threading
import time
import uuid
from typing import Callable, Optional

from config import AppConfig
from errors import (
    ANALYSIS_FAILED,
    CANCELLED,
    CAPTURE_FAILED,
    PERMISSION_DENIED,
    RESOURCE_ACQUISITION_FAILED,
    SESSION_FATAL,
    TIMEOUT,
)
from event_bus import EventBus
from frame_processing import remove_quietly
from interfaces import AnalysisClient, CaptureWorker, Feedback
from localization import lookup, normalize_language
from models import AnalysisEvent, AnalysisKind, CaptureSession, EventKind, PipelineEvent, SessionState

logger = logging.getLogger(__name__)

StateCallback = Callable[[SessionState, SessionState], None]
PartialCallback = Callable[[str], None]
ErrorCallback = Callable[[str, str], None]
PermissionRequester = Callable[[str], None]
ConfigProvider = Callable[[], AppConfig]

_PHASE_STATES = {
    "capture": SessionState.CAPTURING,
    "analysis": SessionState.ANALYZING,
}


class SessionCoordinator:
    def __init__(
        self,
        capture_worker: CaptureWorker,
        analysis_client: AnalysisClient,
        feedback: Feedback,
        bus: EventBus,
        request_permission: PermissionRequester,
        config_provider: Optional[ConfigProvider] = None,
        capture_timeout_s: float = 10.0,
        analysis_timeout_s: float = 60.0,
        on_state_change: Optional[StateCallback] = None,
        on_partial: Optional[PartialCallback] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> None:
        self._capture_worker = capture_worker
        self._analysis_client = analysis_client
        self._feedback = feedback
        self._bus = bus
        self._request_permission = request_permission
        self._config_provider = config_provider
        self._capture_timeout_s = capture_timeout_s
        self._analysis_timeout_s = analysis_timeout_s
        self._on_state_change = on_state_change
        self._on_partial = on_partial
        self._on_error = on_error

        self._lock = threading.RLock()
        self._session: Optional[CaptureSession] = None
        self._strings = lookup(None)
        self._deadline: Optional[threading.Timer] = None

        self._bus.subscribe(self.handle_event)

    @property
    def state(self) -> SessionState:
        session = self._session
        return session.state if session is not None else SessionState.IDLE

    @property
    def is_busy(self) -> bool:
        return self.state.is_active

    @property
    def active_session(self) -> Optional[CaptureSession]:
        with self._lock:
            if self._session is None:
                return None
            return dataclasses.replace(self._session)

    def replace_analysis_client(self, client: AnalysisClient) -> None:
        with self._lock:
            if self.is_busy:
                self._safe_cancel_analysis()
            self._analysis_client = client

    # ------------------------------------------------------------------
    # Trigger surface
    # ------------------------------------------------------------------

    def trigger(self, language_code: Optional[str] = None) -> Optional[str]:
        """Start a session. Returns its id, or None when one is already active."""
        with self._lock:
            current = self._session
            if current is not None and current.state.is_active:
                logger.info(
                    "Trigger rejected: session %s is %s",
                    current.session_id,
                    current.state.value,
                )
                return None

            config = self._load_config()
            code = normalize_language(language_code or (config.language if config else None))
            speech_rate = config.speech_rate if config else 1.0

            session = CaptureSession(
                session_id=uuid.uuid4().hex,
                language_code=code,
                created_ms=now_ms(),
            )
            self._session = session
            self._strings = lookup(code)
            self._feedback.bind(self._strings, speech_rate)
            logger.info("Session %s started (%s)", session.session_id, code)

            self._transition(SessionState.AWAITING_PERMISSION)
            self._feedback.on_enter_awaiting_permission()
            try:
                self._request_permission(session.session_id)
            except Exception as exc:
                logger.exception("Permission request failed")
                self._fail(PERMISSION_DENIED, f"permission request failed: {exc}")
            return session.session_id

    def cancel_session(self, reason: str) -> None:
        with self._lock:
            session = self._session
            if session is None or not session.state.is_active:
                return
            self._cancel_deadline()
            session.error_code = CANCELLED
            self._transition(SessionState.FAILED)
            self._cleanup(session)
            self._emit_error(CANCELLED, reason)

    def shutdown(self) -> None:
        self.cancel_session("shutdown")
        self._bus.unsubscribe(self.handle_event)

    # ------------------------------------------------------------------
    # Event handlers (bus dispatcher thread)
    # ------------------------------------------------------------------

    def handle_event(self, event: PipelineEvent) -> None:
        kind = event.kind
        sid = event.session_id
        if kind == EventKind.PERMISSION_RESULT:
            if event.granted:
                self.on_permission_granted(sid, event.grant_payload)
            else:
                self.on_permission_denied(sid)
        elif kind == EventKind.FRAME_READY:
            self.on_frame_ready(sid, event.path)
        elif kind == EventKind.CAPTURE_FAILED:
            self.on_capture_failed(sid, event.code, event.message)
        elif kind == EventKind.ANALYSIS_CHUNK:
            self.on_analysis_chunk(sid, event.text)
        elif kind == EventKind.ANALYSIS_COMPLETE:
            self.on_analysis_complete(sid)
        elif kind == EventKind.ANALYSIS_ERROR:
            self.on_analysis_error(sid, event.code, event.message)
        elif kind == EventKind.DEADLINE_EXPIRED:
            self._on_deadline(sid, event.phase)

    def on_permission_granted(self, session_id: str, grant_payload: object) -> None:
        with self._lock:
            if self._current(session_id, SessionState.AWAITING_PERMISSION, "permission") is None:
                return
            self._transition(SessionState.CAPTURING)
            result = self._capture_worker.acquire(session_id, grant_payload)
            if not result.success:
                code = result.reason if result.reason in SESSION_FATAL else RESOURCE_ACQUISITION_FAILED
                self._fail(code, result.reason or "mirroring acquisition failed")
                return
            self._arm_deadline(session_id, "capture", self._capture_timeout_s)
            try:
                self._capture_worker.capture_frame()
            except Exception as exc:
                logger.exception("capture_frame failed")
                self._fail(CAPTURE_FAILED, str(exc))

    def on_permission_denied(self, session_id: str) -> None:
        with self._lock:
            if self._current(session_id, SessionState.AWAITING_PERMISSION, "permission") is None:
                return
            self._fail(PERMISSION_DENIED, "screen capture permission was not granted")

    def on_frame_ready(self, session_id: str, frame_path: str) -> None:
        with self._lock:
            session = self._session
            if session is None or session.session_id != session_id or session.state != SessionState.CAPTURING:
                self._discard_stale_frame(session_id, frame_path)
                return
            if not frame_path:
                self._fail(CAPTURE_FAILED, "frame ready without a path")
                return

            self._cancel_deadline()
            session.frame_path = frame_path
            self._transition(SessionState.FRAME_READY)
            self._transition(SessionState.ANALYZING)
            self._feedback.on_enter_analyzing()
            self._arm_deadline(session_id, "analysis", self._analysis_timeout_s)
            try:
                self._analysis_client.start(
                    session_id,
                    frame_path,
                    self._strings.prompt_text,
                    lambda event: self._relay_analysis(session_id, event),
                )
            except Exception as exc:
                logger.exception("Analysis start failed")
                self._fail(ANALYSIS_FAILED, str(exc))

    def on_capture_failed(self, session_id: str, code: str, message: str) -> None:
        with self._lock:
            session = self._session
            if session is None or session.session_id != session_id or not session.state.is_active:
                logger.debug("Discarding stale capture failure for %s", session_id)
                return
            if session.state not in (SessionState.AWAITING_PERMISSION, SessionState.CAPTURING):
                logger.debug("Ignoring capture failure for %s in %s", session_id, session.state.value)
                return
            self._fail(code or CAPTURE_FAILED, message)

    def on_analysis_chunk(self, session_id: str, text_chunk: str) -> None:
        with self._lock:
            session = self._current(session_id, SessionState.ANALYZING, "chunk")
            if session is None:
                return
            session.accumulated_text += text_chunk
            session.chunk_count += 1
            self._feedback.on_chunk()
            if self._on_partial:
                self._on_partial(session.accumulated_text)

    def on_analysis_complete(self, session_id: str) -> None:
        with self._lock:
            session = self._current(session_id, SessionState.ANALYZING, "completion")
            if session is None:
                return
            text = session.accumulated_text.strip()
            if not text:
                self._fail(ANALYSIS_FAILED, "empty description")
                return
            self._cancel_deadline()
            self._transition(SessionState.SPEAKING)
            self._discard_frame(session)
            self._feedback.on_complete(text)
            self._transition(SessionState.COMPLETE)
            logger.info(
                "Session %s complete (%d chunks, %d chars)",
                session_id,
                session.chunk_count,
                len(text),
            )

    def on_analysis_error(self, session_id: str, code: str, message: str) -> None:
        with self._lock:
            if self._current(session_id, SessionState.ANALYZING, "analysis error") is None:
                return
            self._fail(code or ANALYSIS_FAILED, message)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _relay_analysis(self, session_id: str, event: AnalysisEvent) -> None:
        """Called on the analysis thread; hands the event to the bus."""
        if event.kind == AnalysisKind.CHUNK.value:
            out = PipelineEvent(kind=EventKind.ANALYSIS_CHUNK, session_id=session_id, text=event.text)
        elif event.kind == AnalysisKind.COMPLETE.value:
            out = PipelineEvent(kind=EventKind.ANALYSIS_COMPLETE, session_id=session_id)
        else:
            out = PipelineEvent(
                kind=EventKind.ANALYSIS_ERROR,
                session_id=session_id,
                code=event.code or ANALYSIS_FAILED,
                message=event.message,
            )
        self._bus.publish(out)

    def _on_deadline(self, session_id: str, phase: str) -> None:
        with self._lock:
            expected = _PHASE_STATES.get(phase)
            if expected is None or self._current(session_id, expected, f"{phase} deadline") is None:
                return
            logger.warning("Session %s: %s phase timed out", session_id, phase)
            self._fail(TIMEOUT, f"{phase} did not finish in time")

    def _current(self, session_id: str, expected: SessionState, what: str) -> Optional[CaptureSession]:
        session = self._session
        if session is None or session.session_id != session_id:
            logger.debug("Discarding stale %s for %s", what, session_id)
            return None
        if session.state != expected:
            logger.debug(
                "Discarding %s for %s in state %s", what, session_id, session.state.value
            )
            return None
        return session

    def _discard_stale_frame(self, session_id: str, frame_path: str) -> None:
        session = self._session
        if session is not None and frame_path and frame_path == session.frame_path:
            logger.debug("Duplicate frame event for %s", session_id)
            return
        logger.info("Discarding stale frame for %s", session_id)
        if frame_path:
            remove_quietly(frame_path)

    def _fail(self, code: str, message: str) -> None:
        session = self._session
        if session is None or session.state.is_terminal:
            return
        self._cancel_deadline()
        session.error_code = code
        logger.warning("Session %s failed (%s): %s", session.session_id, code, message)
        self._transition(SessionState.FAILED)
        self._cleanup(session)
        self._feedback.on_failed()
        self._emit_error(code, message)

    def _cleanup(self, session: CaptureSession) -> None:
        self._safe_cancel_analysis()
        self._safe_release_capture()
        self._discard_frame(session)

    def _discard_frame(self, session: CaptureSession) -> None:
        if not session.frame_path:
            return
        if remove_quietly(session.frame_path):
            logger.info("File removed: %s", session.frame_path)

    def _arm_deadline(self, session_id: str, phase: str, timeout_s: float) -> None:
        self._cancel_deadline()
        event = PipelineEvent(kind=EventKind.DEADLINE_EXPIRED, session_id=session_id, phase=phase)
        timer = threading.Timer(timeout_s, self._bus.publish, args=(event,))
        timer.daemon = True
        self._deadline = timer
        timer.start()

    def _cancel_deadline(self) -> None:
        if self._deadline is not None:
            self._deadline.cancel()
            self._deadline = None

    def _load_config(self) -> Optional[AppConfig]:
        if self._config_provider is None:
            return None
        try:
            return self._config_provider()
        except Exception:
            logger.exception("Could not load config, using defaults")
            return None

    def _emit_error(self, code: str, message: str) -> None:
        if self._on_error:
            self._on_error(code, message)

    def _safe_cancel_analysis(self) -> None:
        try:
            self._analysis_client.cancel()
        except Exception:
            logger.exception("Analysis cancel failed")

    def _safe_release_capture(self) -> None:
        try:
            self._capture_worker.release()
        except Exception:
            logger.exception("Capture release failed")

    def _transition(self, to_state: SessionState) -> None:
        session = self._session
        if session is None:
            return
        from_state = session.state
        if from_state == to_state:
            return
        session.state = to_state
        logger.debug("Session %s: %s -> %s", session.session_id, from_state.value, to_state.value)
        if self._on_state_change:
            self._on_state_change(from_state, to_state)


def now_ms() -> int:
    return int(time.time() * 1000)
