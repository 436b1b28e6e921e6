"""
Tests for the source schemas with row-level behaviour.

Tests cover:
- Account directory (either client header, coercions)
- Items in feed (wide date columns -> timeline)
- Feed status (check date, feed pairs, Never sentinel)
- Percent approved / store status (rows with bad dates dropped)
- Users (email required)
- The registry of all fourteen schemas
"""

from datetime import datetime

import pytest

from reportspine.core.errors import ConfigError
from reportspine.schema.definitions import (
    ACCOUNT_DIRECTORY_SCHEMA,
    ALL_SCHEMAS,
    FEED_STATUS_SCHEMA,
    ITEMS_IN_FEED_SCHEMA,
    NEVER,
    PERCENT_APPROVED_SCHEMA,
    STORE_STATUS_SCHEMA,
    USERS_SCHEMA,
    build_registry,
    parse_feed_update,
    seed_feed_status,
)
from reportspine.schema.normalizer import normalize
from reportspine.sources.raw import RawTable


def _records(schema, headers, *rows):
    return normalize(schema, RawTable.from_rows(headers, rows)).unwrap()


class TestAccountDirectory:
    """Account directory records."""

    @pytest.mark.parametrize("client_header", ["Clients", "Client Name"])
    def test_either_client_header(self, client_header):
        result = _records(ACCOUNT_DIRECTORY_SCHEMA, [client_header, "Website"], ["Acme", "acme.test"])
        assert result.published() == [{"ClientName": "Acme", "Website": "acme.test"}]

    def test_missing_client_header(self):
        result = normalize(ACCOUNT_DIRECTORY_SCHEMA, RawTable.from_rows(["Website"], [["acme.test"]]))
        assert str(result.error) == "Missing required headers: Clients or Client Name."

    def test_surcharges_and_fees_coerced(self):
        headers = ["Clients", "SignatureSurcharge", "HazmatSurcharge", "HandlingFee", "Allow PO Box?", "MID"]
        record = _records(ACCOUNT_DIRECTORY_SCHEMA, headers, ["Acme", "$5.50", "", "2.5", "No", "123"]).records[0]

        assert record["SignatureSurcharge"] == 5.5
        assert record["HazmatSurcharge"] == 0
        assert record["HandlingFee"] == 2.5
        assert record["AllowPOBox"] == "No"
        assert record["GMC"] == "123"


class TestItemsInFeed:
    """Wide layout timelines."""

    def test_timeline_sorted_by_date(self):
        headers = ["Client Name", "MID", "2025-08-03", "2025-08-01", "not a date", "2025-08-02"]
        result = _records(ITEMS_IN_FEED_SCHEMA, headers, ["Acme", "555", "1,200", "1000", "7", ""])

        record = result.grouped["Acme"]
        assert record["merchant_id"] == "555"
        assert record["timeline"] == [
            {"date": datetime(2025, 8, 1), "count": 1000},
            {"date": datetime(2025, 8, 3), "count": 1200},
        ]

    def test_merchant_id_optional(self):
        result = _records(ITEMS_IN_FEED_SCHEMA, ["Clients", "Notes", "8/1/2025"], ["Acme", "x", "12"])
        record = result.grouped["Acme"]
        assert record["merchant_id"] is None
        assert record["timeline"] == [{"date": datetime(2025, 8, 1), "count": 12}]

    def test_non_numeric_counts_skipped(self):
        result = _records(ITEMS_IN_FEED_SCHEMA, ["Clients", "MID", "2025-08-01"], ["Acme", "1", "n/a"])
        assert result.grouped["Acme"]["timeline"] == []


class TestFeedStatus:
    """Feed status rows."""

    HEADERS = ["Clients", "Check Date", "Feed Name", "Last Update", "Feed Name", "Last Update"]

    def test_feeds_parsed(self):
        row = ["Acme", "2025-08-10", "Google", "2025-08-09", "Bing", "never"]
        record = _records(FEED_STATUS_SCHEMA, self.HEADERS, row).grouped["Acme"]

        assert record["last_checked"] == datetime(2025, 8, 10)
        assert record["never_checked"] is False
        assert record["feeds"] == [
            {"name": "Google", "last_update": datetime(2025, 8, 9)},
            {"name": "Bing", "last_update": NEVER},
        ]

    def test_placeholder_feed_names_skipped(self):
        row = ["Acme", "2025-08-10", "No feeds found", "", "", ""]
        assert _records(FEED_STATUS_SCHEMA, self.HEADERS, row).grouped["Acme"]["feeds"] == []

    def test_unparsable_check_date_drops_row(self):
        result = _records(FEED_STATUS_SCHEMA, self.HEADERS, ["Acme", "soon", "Google", "2025-08-09"])
        assert result.grouped == {}

    @pytest.mark.parametrize("value", [None, "", "  ", "Never", "garbage"])
    def test_parse_feed_update_never(self, value):
        assert parse_feed_update(value) == NEVER

    def test_seed_feed_status(self):
        now = datetime(2025, 8, 10, 12)
        seeded = seed_feed_status(["Acme", "", "Beta", "Acme"], now)

        assert list(seeded) == ["Acme", "Beta"]
        assert seeded["Beta"] == {"ClientName": "Beta", "last_checked": now, "feeds": [], "never_checked": True}


class TestPercentApproved:
    """Percent approved history."""

    def test_rows_sorted_and_filtered(self):
        headers = ["Client Name", "% Approved", "Date"]
        result = _records(
            PERCENT_APPROVED_SCHEMA,
            headers,
            ["Acme", "97.5", "2025-08-02"],
            ["Acme", "95", "2025-08-01"],
            ["Acme", "", "2025-08-03"],
            ["Acme", "90", "someday"],
        )
        assert result.grouped["Acme"] == [
            {"ClientName": "Acme", "percentApproved": 95.0, "date": datetime(2025, 8, 1)},
            {"ClientName": "Acme", "percentApproved": 97.5, "date": datetime(2025, 8, 2)},
        ]


class TestStoreStatus:
    """Store status keeps one row per client."""

    def test_last_row_wins_and_bad_dates_dropped(self):
        headers = ["Clients", "Status", "Banner", "Date"]
        result = _records(
            STORE_STATUS_SCHEMA,
            headers,
            ["Acme", "Open", "", "2025-08-01"],
            ["Acme", "Closed", "Maintenance", "2025-08-02"],
            ["Beta", "Open", "", "tbd"],
        )
        assert result.published() == {
            "Acme": {"ClientName": "Acme", "status": "Closed", "banner": "Maintenance", "date": datetime(2025, 8, 2)}
        }


class TestUsers:
    """Users list."""

    def test_rows_without_email_dropped(self):
        result = _records(USERS_SCHEMA, ["User", "Email"], ["Ann", "ann@example.com"], ["Bob", ""])
        assert result.published() == [{"name": "Ann", "email": "ann@example.com"}]

    def test_headers_must_match_exactly(self):
        result = _records(USERS_SCHEMA, ["User Name", "Email Address"], ["Ann", "ann@example.com"])
        assert result.published() == []


class TestRegistry:
    """build_registry()."""

    def test_all_fourteen_sources(self):
        registry = build_registry()
        assert len(registry) == 14
        assert registry.list_sources() == [schema.source_id for schema in ALL_SCHEMAS]
        assert "analytics" in registry

    def test_unknown_source(self):
        with pytest.raises(ConfigError, match="Unknown source: nope"):
            build_registry().get("nope")

    def test_duplicate_registration(self):
        registry = build_registry()
        with pytest.raises(ConfigError):
            registry.register(USERS_SCHEMA)
        assert registry.register(USERS_SCHEMA, replace=True) is USERS_SCHEMA
