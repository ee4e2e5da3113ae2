"""Tests for DashscopeVisionClient."""

from __future__ import annotations

import threading
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from PIL import Image

from analysis_client import DashscopeVisionClient
from errors import ANALYSIS_FAILED, AUTH_FAILED, NETWORK_ERROR
from models import AnalysisEvent, AnalysisKind


# ---------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------

class Collector:
    def __init__(self) -> None:
        self.events: list[AnalysisEvent] = []
        self.done = threading.Event()

    def __call__(self, event: AnalysisEvent) -> None:
        self.events.append(event)
        if event.kind in (AnalysisKind.COMPLETE.value, AnalysisKind.ERROR.value):
            self.done.set()

    def wait(self, timeout: float = 3.0) -> None:
        assert self.done.wait(timeout), "analysis never finished"

    @property
    def texts(self) -> list[str]:
        return [e.text for e in self.events if e.kind == AnalysisKind.CHUNK.value]


def _chunk(text: str, status: int = 200) -> dict:
    return {
        "status_code": status,
        "output": {"choices": [{"message": {"role": "assistant", "content": [{"text": text}]}}]},
    }


@pytest.fixture
def frame_path(tmp_path: Path) -> str:
    path = tmp_path / "frame_test.jpg"
    Image.new("RGB", (32, 24), (200, 100, 50)).save(path, format="JPEG")
    return str(path)


def _fake_dashscope(chunks) -> MagicMock:  # noqa: ANN001
    fake = MagicMock()
    fake.MultiModalConversation.call.return_value = iter(chunks)
    return fake


# ---------------------------------------------------------------
# Streaming
# ---------------------------------------------------------------

def test_chunks_are_relayed_in_order_then_complete(frame_path: str) -> None:
    fake = _fake_dashscope([_chunk("The screen "), _chunk(""), _chunk("shows a "), _chunk("login form.")])
    collector = Collector()

    with patch("analysis_client.dashscope", fake):
        client = DashscopeVisionClient(api_key="test-key", model="qwen-vl-plus")
        client.start("session-1", frame_path, "Describe the screen.", collector)
        collector.wait()

    assert collector.texts == ["The screen ", "shows a ", "login form."]
    assert collector.events[-1].kind == AnalysisKind.COMPLETE.value
    assert sum(e.kind == AnalysisKind.COMPLETE.value for e in collector.events) == 1


def test_request_shape(frame_path: str) -> None:
    fake = _fake_dashscope([_chunk("ok")])
    collector = Collector()

    with patch("analysis_client.dashscope", fake):
        client = DashscopeVisionClient(api_key="test-key", model="qwen-vl-plus", request_timeout_s=12.0)
        client.start("session-1", frame_path, "Opisz ekran.", collector)
        collector.wait()

    kwargs = fake.MultiModalConversation.call.call_args.kwargs
    assert kwargs["api_key"] == "test-key"
    assert kwargs["model"] == "qwen-vl-plus"
    assert kwargs["stream"] is True
    assert kwargs["incremental_output"] is True
    assert kwargs["temperature"] == pytest.approx(0.9)
    assert kwargs["timeout"] == 12.0
    content = kwargs["messages"][0]["content"]
    assert content[0]["image"] == f"file://{Path(frame_path).resolve()}"
    assert content[1] == {"text": "Opisz ekran."}


def test_plain_string_content_is_accepted(frame_path: str) -> None:
    chunk = {"status_code": 200, "output": {"choices": [{"message": {"content": "plain"}}]}}
    collector = Collector()

    with patch("analysis_client.dashscope", _fake_dashscope([chunk])):
        DashscopeVisionClient(api_key="k").start("s", frame_path, "x", collector)
        collector.wait()

    assert collector.texts == ["plain"]


# ---------------------------------------------------------------
# Errors
# ---------------------------------------------------------------

@patch.dict("os.environ", {"DASHSCOPE_API_KEY": ""}, clear=False)
def test_missing_api_key_emits_auth_error(frame_path: str) -> None:
    fake = _fake_dashscope([])
    collector = Collector()

    with patch("analysis_client.dashscope", fake):
        DashscopeVisionClient(api_key="").start("s", frame_path, "x", collector)
        collector.wait()

    assert [(e.kind, e.code) for e in collector.events] == [(AnalysisKind.ERROR.value, AUTH_FAILED)]
    fake.MultiModalConversation.call.assert_not_called()


@patch.dict("os.environ", {"DASHSCOPE_API_KEY": "env-key"}, clear=False)
def test_api_key_falls_back_to_environment(frame_path: str) -> None:
    fake = _fake_dashscope([_chunk("ok")])
    collector = Collector()

    with patch("analysis_client.dashscope", fake):
        DashscopeVisionClient(api_key="").start("s", frame_path, "x", collector)
        collector.wait()

    assert fake.MultiModalConversation.call.call_args.kwargs["api_key"] == "env-key"


@patch("analysis_client.dashscope", None)
def test_missing_sdk_emits_analysis_failed(frame_path: str) -> None:
    collector = Collector()

    DashscopeVisionClient(api_key="k").start("s", frame_path, "x", collector)
    collector.wait()

    assert collector.events[0].code == ANALYSIS_FAILED
    assert collector.events[0].retryable is False


def test_unreadable_frame_emits_analysis_failed(tmp_path: Path) -> None:
    bogus = tmp_path / "frame_bad.jpg"
    bogus.write_bytes(b"not an image")
    fake = _fake_dashscope([_chunk("never")])
    collector = Collector()

    with patch("analysis_client.dashscope", fake):
        DashscopeVisionClient(api_key="k").start("s", str(bogus), "x", collector)
        collector.wait()

    assert [(e.kind, e.code) for e in collector.events] == [(AnalysisKind.ERROR.value, ANALYSIS_FAILED)]
    fake.MultiModalConversation.call.assert_not_called()


def test_non_200_chunk_becomes_error_after_earlier_chunks(frame_path: str) -> None:
    bad = {"status_code": 500, "code": "InternalError", "message": "model overloaded"}
    collector = Collector()

    with patch("analysis_client.dashscope", _fake_dashscope([_chunk("The screen "), bad, _chunk("late")])):
        DashscopeVisionClient(api_key="k").start("s", frame_path, "x", collector)
        collector.wait()

    assert collector.texts == ["The screen "]
    last = collector.events[-1]
    assert last.kind == AnalysisKind.ERROR.value
    assert last.code == ANALYSIS_FAILED
    assert "model overloaded" in last.message


@pytest.mark.parametrize(
    "exc, code, retryable",
    [
        (RuntimeError("401 InvalidApiKey: Invalid API-key provided"), AUTH_FAILED, False),
        (ConnectionError("Connection reset by peer"), NETWORK_ERROR, True),
        (TimeoutError("Read timeout"), NETWORK_ERROR, True),
        (ValueError("something odd"), ANALYSIS_FAILED, True),
    ],
)
def test_call_failures_are_classified(frame_path: str, exc, code, retryable) -> None:  # noqa: ANN001
    fake = MagicMock()
    fake.MultiModalConversation.call.side_effect = exc
    collector = Collector()

    with patch("analysis_client.dashscope", fake):
        DashscopeVisionClient(api_key="k").start("s", frame_path, "x", collector)
        collector.wait()

    assert len(collector.events) == 1
    assert collector.events[0].code == code
    assert collector.events[0].retryable is retryable


# ---------------------------------------------------------------
# Cancellation
# ---------------------------------------------------------------

def test_cancel_stops_relaying(frame_path: str) -> None:
    client = DashscopeVisionClient(api_key="k")
    events: list[AnalysisEvent] = []
    finished = threading.Event()

    def stream():  # noqa: ANN202
        yield _chunk("first")
        yield _chunk("second")
        finished.set()
        yield _chunk("third")

    def on_event(event: AnalysisEvent) -> None:
        events.append(event)
        client.cancel()

    fake = MagicMock()
    fake.MultiModalConversation.call.return_value = stream()

    with patch("analysis_client.dashscope", fake):
        client.start("s", frame_path, "x", on_event)
        client._thread.join(timeout=3.0)

    assert [e.text for e in events] == ["first"]
    assert not finished.is_set()
