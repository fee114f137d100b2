"""Tests for line_filter.py."""

import pytest

from logtail_viewer.line_filter import LineFilter, parse_exclude_terms


class TestParseExcludeTerms:
    """Test exclude text parsing."""

    @pytest.mark.parametrize("text", [None, "", "   ", ";;", " ; ; "])
    def test_blank_inputs(self, text):
        assert parse_exclude_terms(text) == ()

    def test_terms_are_trimmed(self):
        assert parse_exclude_terms(" heartbeat ; debug;;tick ") == ("heartbeat", "debug", "tick")


class TestLineFilter:
    """Test include/exclude matching."""

    def test_empty_filter_shows_everything(self):
        f = LineFilter()

        assert not f.active
        assert f.matches("anything")
        assert f.matches("")

    def test_include_is_case_insensitive(self):
        f = LineFilter.from_text("error", None)

        assert f.active
        assert f.matches("[ERROR] disk full")
        assert not f.matches("[Info] all good")

    def test_exclude_checked_before_include(self):
        f = LineFilter.from_text("economy", "Spending")

        assert f.matches("[Economy] gold +5")
        assert not f.matches("[Economy][spending] gold -5")

    def test_any_exclude_term_hides_line(self):
        f = LineFilter.from_text("", "tick;heartbeat")

        assert not f.matches("Heartbeat ok")
        assert not f.matches("TICK 42")
        assert f.matches("player joined")
