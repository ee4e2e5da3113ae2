"""Single-frame screen capture worker.

Owns the mirroring resource for one session: acquires it, keeps the first
frame that arrives, persists it as JPEG and reports back on the event bus.
Every exit path goes through ``release()``.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Optional

from errors import CAPTURE_FAILED, PERMISSION_DENIED, RESOURCE_ACQUISITION_FAILED
from event_bus import EventBus
from frame_processing import MAX_EDGE, downsample, frame_to_image, remove_quietly, write_frame
from interfaces import MirroringBackend, ProjectionHandle, VirtualDisplayHandle
from mirroring import MssMirroringBackend
from models import AcquireResult, EventKind, PipelineEvent, RawFrame, ResourceState

logger = logging.getLogger(__name__)

DEFAULT_FRAME_DIR = Path.home() / ".cache" / "screen_narrator" / "frames"


class ScreenCaptureWorker:
    def __init__(
        self,
        bus: EventBus,
        backend: Optional[MirroringBackend] = None,
        output_dir: Optional[Path] = None,
        max_edge: int = MAX_EDGE,
        jpeg_quality: int = 90,
    ) -> None:
        self._bus = bus
        self._backend = backend or MssMirroringBackend()
        self._output_dir = output_dir or DEFAULT_FRAME_DIR
        self._max_edge = max_edge
        self._jpeg_quality = jpeg_quality

        self._lock = threading.RLock()
        self._state = ResourceState.UNACQUIRED
        self._session_id = ""
        self._projection: Optional[ProjectionHandle] = None
        self._display: Optional[VirtualDisplayHandle] = None
        self._listening = False
        self._frame_taken = False

    @property
    def resource_state(self) -> ResourceState:
        return self._state

    def acquire(self, session_id: str, grant_payload: object) -> AcquireResult:
        with self._lock:
            if self._state == ResourceState.ACQUIRED:
                logger.warning(
                    "Refusing acquire for %s: resource held by %s", session_id, self._session_id
                )
                return AcquireResult(success=False, reason=RESOURCE_ACQUISITION_FAILED)
            self._session_id = session_id
            self._frame_taken = False
            if not grant_payload:
                return self._abort(PERMISSION_DENIED, "capture grant is missing or denied")
            try:
                self._projection = self._backend.create_projection(grant_payload)
                self._display = self._projection.create_display()
            except Exception as exc:
                logger.error("Mirroring setup failed for %s: %s", session_id, exc)
                return self._abort(RESOURCE_ACQUISITION_FAILED, str(exc))
            self._state = ResourceState.ACQUIRED
            logger.info("Mirroring resource acquired for %s", session_id)
            return AcquireResult(success=True)

    def capture_frame(self) -> None:
        with self._lock:
            display = self._display
            if self._state != ResourceState.ACQUIRED or display is None:
                logger.warning("capture_frame called without an acquired resource")
                return
            self._listening = True
        display.set_listener(self._on_frame, self._on_surface_error)

    def release(self) -> None:
        with self._lock:
            display, projection = self._display, self._projection
            if self._state != ResourceState.ACQUIRED and display is None and projection is None:
                return
            self._display = None
            self._projection = None
            self._listening = False
            self._state = ResourceState.RELEASED

        logger.info("Releasing mirroring resources for %s", self._session_id)
        if display is not None:
            try:
                display.set_listener(None)
            except Exception:
                logger.exception("Failed to detach frame listener")
            try:
                display.release()
            except Exception:
                logger.exception("Failed to release virtual display")
        if projection is not None:
            try:
                projection.stop()
            except Exception:
                logger.exception("Failed to stop projection")

    def _on_frame(self, frame: RawFrame) -> None:
        with self._lock:
            if not self._listening or self._frame_taken:
                return
            self._frame_taken = True
            self._listening = False
            session_id = self._session_id

        try:
            path = self._persist(frame)
        except Exception as exc:
            logger.exception("Could not persist frame for %s", session_id)
            if self._release_if_owner(session_id):
                self._publish_failure(session_id, CAPTURE_FAILED, str(exc))
            return

        if not self._release_if_owner(session_id):
            remove_quietly(path)
            return
        logger.info("Frame saved to %s", path)
        self._bus.publish(
            PipelineEvent(kind=EventKind.FRAME_READY, session_id=session_id, path=str(path))
        )

    def _on_surface_error(self, exc: Exception) -> None:
        with self._lock:
            if not self._listening or self._frame_taken:
                return
            self._frame_taken = True
            self._listening = False
            session_id = self._session_id
        logger.error("Mirroring surface failed for %s: %s", session_id, exc)
        if self._release_if_owner(session_id):
            self._publish_failure(session_id, CAPTURE_FAILED, f"mirroring surface failed: {exc}")

    def _release_if_owner(self, session_id: str) -> bool:
        """Release unless a newer session took the resource meanwhile."""
        with self._lock:
            if self._session_id != session_id:
                logger.info("Frame for %s arrived after %s acquired", session_id, self._session_id)
                return False
            self.release()
        return True

    def _persist(self, frame: RawFrame) -> Path:
        image = frame_to_image(frame)
        image = downsample(image, self._max_edge)
        return write_frame(image, self._output_dir, quality=self._jpeg_quality)

    def _abort(self, code: str, message: str) -> AcquireResult:
        session_id = self._session_id
        self.release()
        self._publish_failure(session_id, code, message)
        return AcquireResult(success=False, reason=code)

    def _publish_failure(self, session_id: str, code: str, message: str) -> None:
        self._bus.publish(
            PipelineEvent(
                kind=EventKind.CAPTURE_FAILED,
                session_id=session_id,
                code=code,
                message=message,
            )
        )
