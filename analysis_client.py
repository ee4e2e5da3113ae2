"""Screen description client using DashScope vision-language models.

One streaming ``MultiModalConversation`` call per session: the captured
frame plus a localized instruction go in, incremental text deltas come back.
Each delta is relayed through ``on_event`` as soon as it arrives; the stream
ends with exactly one ``complete`` or ``error`` event unless cancelled.
"""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import Callable, Optional

from PIL import Image

from errors import ANALYSIS_FAILED, AUTH_FAILED, NETWORK_ERROR
from models import AnalysisEvent, AnalysisKind

try:
    import dashscope
except Exception:  # pragma: no cover
    dashscope = None  # type: ignore

logger = logging.getLogger(__name__)


class DashscopeVisionClient:
    def __init__(
        self,
        api_key: str,
        model: str = "qwen-vl-max",
        temperature: float = 0.9,
        request_timeout_s: float = 30.0,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._temperature = temperature
        self._request_timeout_s = request_timeout_s
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

    def start(
        self,
        session_id: str,
        frame_path: str,
        instruction: str,
        on_event: Callable[[AnalysisEvent], None],
    ) -> None:
        if self._thread and self._thread.is_alive():
            logger.warning("Previous analysis still running, cancelling it")
            self.cancel()
        self._stop_event = threading.Event()
        self._thread = threading.Thread(
            target=self._worker,
            args=(session_id, frame_path, instruction, self._stop_event, on_event),
            name=f"analysis-{session_id[:8]}",
            daemon=True,
        )
        self._thread.start()

    def cancel(self) -> None:
        self._stop_event.set()
        if (
            self._thread
            and self._thread.is_alive()
            and self._thread is not threading.current_thread()
        ):
            self._thread.join(timeout=0.5)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _worker(
        self,
        session_id: str,
        frame_path: str,
        instruction: str,
        stop_event: threading.Event,
        on_event: Callable[[AnalysisEvent], None],
    ) -> None:
        def emit(event: AnalysisEvent) -> None:
            if not stop_event.is_set():
                on_event(event)

        if dashscope is None:
            emit(self._error(ANALYSIS_FAILED, "dashscope is not installed", retryable=False))
            return

        api_key = self._api_key or os.getenv("DASHSCOPE_API_KEY", "")
        if not api_key:
            emit(self._error(AUTH_FAILED, "No API key configured", retryable=False))
            return

        try:
            image_uri = self._load_image(frame_path)
        except Exception as exc:
            logger.error("Unreadable frame %s: %s", frame_path, exc)
            emit(self._error(ANALYSIS_FAILED, f"unreadable frame: {exc}", retryable=False))
            return

        logger.info("Requesting description for %s with %s", session_id, self._model)
        try:
            response = dashscope.MultiModalConversation.call(
                api_key=api_key,
                model=self._model,
                messages=[
                    {
                        "role": "user",
                        "content": [{"image": image_uri}, {"text": instruction}],
                    }
                ],
                stream=True,
                incremental_output=True,
                temperature=self._temperature,
                timeout=self._request_timeout_s,
            )
        except Exception as exc:
            emit(self._to_error_event(exc))
            return

        chunks = 0
        try:
            for chunk in response:
                if stop_event.is_set():
                    logger.info("Analysis for %s cancelled after %d chunks", session_id, chunks)
                    return
                self._check_status(chunk)
                text = self._extract_text(chunk)
                if text:
                    chunks += 1
                    emit(AnalysisEvent(kind=AnalysisKind.CHUNK.value, text=text))
        except Exception as exc:
            emit(self._to_error_event(exc))
            return

        logger.info("Analysis for %s finished with %d chunks", session_id, chunks)
        emit(AnalysisEvent(kind=AnalysisKind.COMPLETE.value))

    def _load_image(self, frame_path: str) -> str:
        """Verify the frame decodes as an image and return its file URI."""
        path = Path(frame_path)
        with Image.open(path) as img:
            img.verify()
        return f"file://{path.resolve()}"

    def _check_status(self, chunk: object) -> None:
        if not isinstance(chunk, dict):
            return
        status = chunk.get("status_code")
        if status is None or status == 200:
            return
        code = chunk.get("code", "")
        message = chunk.get("message", "")
        raise RuntimeError(f"{status} {code}: {message}")

    def _extract_text(self, chunk: object) -> str:
        """Pull the text delta from a dashscope streaming chunk dict."""
        if not isinstance(chunk, dict):
            return ""
        output = chunk.get("output") or {}
        choices = output.get("choices") or []
        if not choices:
            return ""
        message = choices[0].get("message") or {}
        content = message.get("content") or []
        if isinstance(content, str):
            return content
        parts = [str(item.get("text", "")) for item in content if isinstance(item, dict)]
        return "".join(parts)

    def _error(self, code: str, message: str, retryable: bool) -> AnalysisEvent:
        return AnalysisEvent(
            kind=AnalysisKind.ERROR.value,
            code=code,
            message=message,
            retryable=retryable,
        )

    def _to_error_event(self, exc: Exception) -> AnalysisEvent:
        """Map an SDK/network exception to a standard error event."""
        message = str(exc)
        low = message.lower()
        if "401" in low or "auth" in low or "api key" in low or "apikey" in low:
            code = AUTH_FAILED
            retryable = False
        elif "timeout" in low or "network" in low or "connection" in low:
            code = NETWORK_ERROR
            retryable = True
        else:
            code = ANALYSIS_FAILED
            retryable = True
        logger.error("Analysis failed (%s): %s", code, message)
        return self._error(code, message, retryable)
