from __future__ import annotations

import pytest

from localization import DEFAULT_LANGUAGE, lookup, normalize_language, supported_languages


def test_table_covers_supported_languages() -> None:
    codes = supported_languages()

    assert len(codes) == 13
    assert codes[0] == DEFAULT_LANGUAGE
    for code in codes:
        strings = lookup(code)
        assert strings.language_code == code
        assert strings.prompt_text
        assert strings.processing_phrase
        assert strings.error_phrase
        assert "-" in strings.voice_id


@pytest.mark.parametrize("code, expected", [("pl", "PL"), (" Es ", "ES"), ("tl", "TL"), ("XX", "EN"), ("", "EN"), (None, "EN")])
def test_normalize_language(code, expected) -> None:  # noqa: ANN001
    assert normalize_language(code) == expected


def test_unknown_language_logs_warning(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level("WARNING", logger="localization"):
        strings = lookup("klingon")

    assert strings.language_code == "EN"
    assert "klingon" in caplog.text


def test_tagalog_uses_filipino_voice() -> None:
    assert lookup("TL").voice_id == "fil-PH"
