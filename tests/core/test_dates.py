"""Tests for lenient date parsing and date ordering."""

from datetime import datetime

import pytest

from reportspine.core.dates import date_sort_key, parse_date


class TestParseDate:
    """parse_date accepts the formats hand-maintained sheets use."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("2025-08-01", datetime(2025, 8, 1)),
            ("8/1/2025", datetime(2025, 8, 1)),
            ("08/01/25", datetime(2025, 8, 1)),
            ("August 2025", datetime(2025, 8, 1)),
            ("Aug 2025", datetime(2025, 8, 1)),
            ("Aug 5, 2025", datetime(2025, 8, 5)),
            ("2025-08-01T10:30:00Z", datetime(2025, 8, 1, 10, 30)),
        ],
    )
    def test_known_formats(self, text, expected):
        assert parse_date(text) == expected

    @pytest.mark.parametrize("text", ["", "   ", "soon", None, "13/45/2025"])
    def test_unparsable_is_none(self, text):
        assert parse_date(text) is None

    def test_datetime_passthrough(self):
        value = datetime(2024, 1, 2)
        assert parse_date(value) is value


class TestDateSortKey:
    """Unparsable dates sort before every real date."""

    def test_ordering(self):
        values = ["2025-03-01", "junk", "January 2025", "2024-12-31"]
        assert sorted(values, key=date_sort_key) == ["junk", "2024-12-31", "January 2025", "2025-03-01"]
