"""Shared error codes and log-facing messages."""

from __future__ import annotations

PERMISSION_DENIED = "PERMISSION_DENIED"
RESOURCE_ACQUISITION_FAILED = "RESOURCE_ACQUISITION_FAILED"
CAPTURE_FAILED = "CAPTURE_FAILED"
ANALYSIS_FAILED = "ANALYSIS_FAILED"
SPEECH_UNAVAILABLE = "SPEECH_UNAVAILABLE"
AUTH_FAILED = "AUTH_FAILED"
NETWORK_ERROR = "NETWORK_ERROR"
TIMEOUT = "TIMEOUT"
CANCELLED = "CANCELLED"

# Codes that end the capture session. SPEECH_UNAVAILABLE never does.
SESSION_FATAL = frozenset(
    {
        PERMISSION_DENIED,
        RESOURCE_ACQUISITION_FAILED,
        CAPTURE_FAILED,
        ANALYSIS_FAILED,
        AUTH_FAILED,
        NETWORK_ERROR,
        TIMEOUT,
    }
)

ERROR_MESSAGES = {
    PERMISSION_DENIED: "Screen capture permission was not granted.",
    RESOURCE_ACQUISITION_FAILED: "Screen mirroring could not be set up.",
    CAPTURE_FAILED: "No screen frame could be produced.",
    ANALYSIS_FAILED: "The description service failed or returned an invalid response.",
    SPEECH_UNAVAILABLE: "Speech output is not ready.",
    AUTH_FAILED: "API key is invalid.",
    NETWORK_ERROR: "Network failed, please retry.",
    TIMEOUT: "The operation did not finish in time.",
    CANCELLED: "The session was cancelled.",
}


def describe(code: str) -> str:
    return ERROR_MESSAGES.get(code, code)
