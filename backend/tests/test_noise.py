# ------------------------------------------------------------
# Module: tests/test_noise.py
# Purpose: Placeholder and typing-indicator filtering.
# ------------------------------------------------------------
from __future__ import annotations

import pytest

from webui_proxy.driver.noise import PLACEHOLDER_PHRASES, clean_text, is_placeholder


@pytest.mark.parametrize("phrase", PLACEHOLDER_PHRASES)
def test_status_phrases_are_placeholders(phrase):
    assert is_placeholder(phrase)
    assert is_placeholder(f"  {phrase}…  ")


def test_placeholder_match_ignores_case():
    assert clean_text("GEMINI IS TYPING") == ""


@pytest.mark.parametrize("raw", [None, "", "   ", "...", "…", ". . ."])
def test_empty_and_dot_only_text_is_noise(raw):
    assert clean_text(raw) == ""


def test_trailing_indicator_dots_are_dropped():
    """A trailing dot filters away, so "OK" then "OK." yields no second delta."""
    assert clean_text("OK") == "OK"
    assert clean_text("OK.") == "OK"
    assert clean_text("OK...") == "OK"
    assert clean_text("OK …") == "OK"


def test_phrase_removed_from_real_text():
    assert clean_text("Gemini replied Paris is the capital") == "Paris is the capital"


def test_inner_punctuation_kept():
    assert clean_text("1.5 meters. Then 2.") == "1.5 meters. Then 2"
