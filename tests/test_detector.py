"""Tests for change detection."""

from __future__ import annotations

import pytest

from ddns_reconciler.detector import has_changed, normalize_ip


class TestNormalizeIP:
    """Tests for normalize_ip function."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("1.2.3.4", "1.2.3.4"),
            ("1.2.3.4\n", "1.2.3.4"),
            ("  1.2.3.4\r\n", "1.2.3.4"),
            ("", None),
            ("\n", None),
            (None, None),
        ],
    )
    def test_normalize(self, value, expected):
        assert normalize_ip(value) == expected


class TestHasChanged:
    """Tests for has_changed function."""

    def test_first_observation(self):
        assert has_changed(None, "1.2.3.4") is True

    def test_same_ip(self):
        assert has_changed("1.2.3.4", "1.2.3.4") is False

    def test_trailing_newline_is_not_a_change(self):
        assert has_changed("1.2.3.4", "1.2.3.4\n") is False
        assert has_changed("1.2.3.4\n", "1.2.3.4") is False

    def test_different_ip(self):
        assert has_changed("1.2.3.4", "1.2.3.5") is True
