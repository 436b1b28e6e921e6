"""
The fourteen source schemas.

Header texts are the literal column titles of the agency's sheets. Most
sources match them exactly (after trimming); items-in-feed, feed status,
percent approved, store status and users resolve their columns by
case-insensitive pattern because those sheets are maintained by
different people with different column titles.

``build_registry()`` returns a fresh :class:`SchemaRegistry` holding all of
them in refresh order.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Iterable

from reportspine.core.coercion import CoercionKind, to_float, to_string
from reportspine.core.dates import parse_date
from reportspine.schema.matching import ExactSet, HeaderPattern, PatternSet
from reportspine.schema.registry import (
    FieldSpec,
    OutputShape,
    RowView,
    SchemaRegistry,
    SourceSchema,
    TypedRecord,
)

ACCOUNT_DIRECTORY = "account_directory"
PERFORMANCE_METRICS = "performance_metrics"
KEY_CONTACTS = "key_contacts"
ITEMS_IN_FEED = "items_in_feed"
FEED_STATUS = "feed_status"
PERCENT_APPROVED = "percent_approved"
STORE_STATUS = "store_status"
STORE_CHANGES = "store_changes"
BUDGET_STATUS = "budget_status"
REVOLUTION_LINKS = "revolution_links"
SEARCH_CONSOLE = "search_console"
ANALYTICS = "analytics"
ADS = "ads"
USERS = "users"

# Feed last-update sentinel for blank, "never" or unparsable cells
NEVER = "Never"

INT = CoercionKind.INTEGER
CUR = CoercionKind.CURRENCY
PCT = CoercionKind.PERCENTAGE
FLT = CoercionKind.FLOAT


def _fields(mapping: dict[str, str], kinds: dict[str, CoercionKind] | None = None) -> tuple[FieldSpec, ...]:
    """Build field specs from ``header -> field``; ``kinds`` is keyed by field, default string."""
    kinds = kinds or {}
    return tuple(
        FieldSpec(header, target, kinds.get(target, CoercionKind.STRING))
        for header, target in mapping.items()
    )


def _with_kind(kind: CoercionKind, names: Iterable[str]) -> dict[str, CoercionKind]:
    return {name: kind for name in names}


# =============================================================================
# PERFORMANCE METRICS
# =============================================================================

PERFORMANCE_HEADERS = {
    "ClientName": "ClientName",
    "Dashboard": "Dashboard",
    "Month": "Month",
    "Start": "Start",
    "End": "End",
    "Orders": "Orders",
    "Revenue": "Revenue",
    "Canceled": "Canceled",
    "Avg Fulfillment": "Avg_Fulfillment",
    "Profit": "Profit",
    "Clean Fulfillment": "Clean_Fulfillment",
    "MonthNumber": "MonthNumber",
    "Quarter": "Quarter",
    "Year": "Year",
    "PPC Spend": "PPC_Spend",
    "Sessions": "Sessions",
    "Conv Rate": "Conv_Rate",
    "AOV": "AOV",
    "Pricing": "Pricing",
    "Shipping": "Shipping",
    "Orders Canceled": "Orders_Canceled",
    "RP Store Hash": "RP_Store_Hash",
    "Pricing Changes": "Pricing_Changes",
    "Shipping Changes": "Shipping_Changes",
    "Strategy Notes": "Strategy_Notes",
    "Other Notes": "Other_Notes",
    "Days of Data": "Days_of_Data",
    "Projected Revenue": "Projected_Revenue",
    "Projected Orders": "Projected_Orders",
}

REQUIRED_PERFORMANCE_HEADERS = ("ClientName", "Month", "Year", "Orders", "Revenue", "Profit", "Sessions")

PERFORMANCE_KINDS = {
    **_with_kind(INT, ["Orders", "Year", "Sessions", "MonthNumber", "Orders_Canceled", "Days_of_Data", "Projected_Orders"]),
    **_with_kind(CUR, ["Revenue", "Profit", "PPC_Spend", "AOV", "Avg_Fulfillment", "Projected_Revenue"]),
    **_with_kind(PCT, ["Conv_Rate", "Canceled"]),
}


def derive_performance_metrics(record: TypedRecord, row: RowView | None = None) -> TypedRecord:
    """Add ROAS, Profit_Margin (percent) and Profit_Per_Order; each is 0 when its divisor is not positive."""
    revenue = record.get("Revenue") or 0
    ppc_spend = record.get("PPC_Spend") or 0
    profit = record.get("Profit") or 0
    orders = record.get("Orders") or 0

    record["ROAS"] = revenue / ppc_spend if ppc_spend > 0 else 0
    record["Profit_Margin"] = (profit / revenue) * 100 if revenue > 0 else 0
    record["Profit_Per_Order"] = profit / orders if orders > 0 else 0
    return record


PERFORMANCE_SCHEMA = SourceSchema(
    source_id=PERFORMANCE_METRICS,
    matcher=ExactSet(required=REQUIRED_PERFORMANCE_HEADERS),
    fields=_fields(PERFORMANCE_HEADERS, PERFORMANCE_KINDS),
    multi_valued=True,
    output=OutputShape.LIST,
    finalize=derive_performance_metrics,
    require_data_rows=True,
    require_records=True,
    description="Monthly performance per client; the master client list",
)


# =============================================================================
# ACCOUNT DIRECTORY
# =============================================================================

ACCOUNT_DIRECTORY_HEADERS = {
    "Clients": "ClientName",
    "Client Name": "ClientName",
    "Website": "Website",
    "Google Ads": "Google Ads",
    "Google Ads ID": "Google Ads ID",
    "GMC": "GMC",
    "MID": "GMC",
    "Current SEO Package": "CurrentSEOPackage",
    "Auto Group": "AutoGroup",
    "Brands": "Brands",
    "Bing": "Bing",
    "State": "State",
    "ShippingMethods": "ShippingMethods",
    "SignatureSurcharge": "SignatureSurcharge",
    "HazmatSurcharge": "HazmatSurcharge",
    "Allow PO Box?": "AllowPOBox",
    "HandlingFee": "HandlingFee",
    "T&C": "TAndC",
    "Fitment Verification": "FitmentVerification",
    "Required Field": "RequiredField",
}

ACCOUNT_DIRECTORY_SCHEMA = SourceSchema(
    source_id=ACCOUNT_DIRECTORY,
    matcher=ExactSet(one_of=(("Clients", "Client Name"),)),
    fields=_fields(
        ACCOUNT_DIRECTORY_HEADERS,
        {"SignatureSurcharge": CUR, "HazmatSurcharge": CUR, "HandlingFee": FLT},
    ),
    output=OutputShape.LIST,
    require_data_rows=True,
    description="One settings record per client",
)


# =============================================================================
# KEY CONTACTS / REVOLUTION LINKS
# =============================================================================

KEY_CONTACTS_SCHEMA = SourceSchema(
    source_id=KEY_CONTACTS,
    matcher=ExactSet(required=("Clients",)),
    fields=_fields(
        {
            "Clients": "ClientName",
            "PPC": "PPC",
            "PDM": "PDM",
            "Deal": "Deal",
            "Hubspot Contact Name": "Hubspot Contact Name",
            "Hub Spot Contact ID": "Hub Spot Contact ID",
            "Hubspot Contact Phone": "Hubspot Contact Phone",
        }
    ),
    output=OutputShape.LIST,
)

REVOLUTION_LINKS_SCHEMA = SourceSchema(
    source_id=REVOLUTION_LINKS,
    matcher=ExactSet(required=("Clients",)),
    fields=_fields(
        {
            "Clients": "ClientName",
            "Dashboard": "Dashboard",
            "Pricing": "Pricing",
            "Shipping": "Shipping",
            "Orders": "Orders",
            "Products": "Products",
            "Pages": "Pages",
            "Layouts": "Layouts",
            "Feeds": "Feeds",
            "Imports": "Imports",
            "Checkout": "Checkout",
            "File Manager": "FileManager",
            "Promotions": "Promotions",
        }
    ),
)


# =============================================================================
# STORE CHANGES / BUDGET STATUS
# =============================================================================

STORE_CHANGES_SCHEMA = SourceSchema(
    source_id=STORE_CHANGES,
    matcher=ExactSet(required=("Clients",)),
    fields=_fields(
        {
            "Clients": "ClientName",
            "LastPriceChange": "LastPriceChange",
            "LastShippingChange": "LastShippingChange",
            "LastSettingsChange": "LastSettingsChange",
            "LastCheckoutChange": "LastCheckoutChange",
            "ShippingMethods": "ShippingMethods",
            "HandlingFee": "HandlingFee",
            "SignatureSurcharge": "SignatureSurcharge",
            "HazmatSurcharge": "HazmatSurcharge",
            "Allow PO Box?": "AllowPOBox",
            "T&C": "TAndC",
            "Fitment Verification": "FitmentVerification",
            "Required Field": "RequiredField",
            "Date": "Date",
        },
        {"HandlingFee": FLT, "SignatureSurcharge": CUR, "HazmatSurcharge": CUR},
    ),
    description="Latest store setting changes; patches the account directory",
)

BUDGET_STATUS_SCHEMA = SourceSchema(
    source_id=BUDGET_STATUS,
    matcher=ExactSet(
        required=(
            "Clients",
            "PPC",
            "Google",
            "Bing",
            "% Spent",
            "Target Spend",
            "Proj. Total Spend",
            "Yesterday",
            "Rec. Daily Budget",
        )
    ),
    fields=_fields(
        {
            "Clients": "ClientName",
            "PPC": "ppcBudget",
            "Google": "googleSpend",
            "Bing": "bingSpend",
            "% Spent": "percentSpent",
            "Target Spend": "targetSpend",
            "Proj. Total Spend": "projectedTotalSpend",
            "2 days ago": "spend2DaysAgo",
            "Yesterday": "yesterdaySpend",
            "Rec. Daily Budget": "recDailyBudget",
        },
        {
            **_with_kind(CUR, ["ppcBudget", "googleSpend", "bingSpend", "spend2DaysAgo", "yesterdaySpend", "recDailyBudget"]),
            **_with_kind(PCT, ["percentSpent", "targetSpend", "projectedTotalSpend"]),
        },
    ),
)


# =============================================================================
# TIME SERIES: SEARCH CONSOLE / ANALYTICS / ADS
# =============================================================================

SEARCH_CONSOLE_SCHEMA = SourceSchema(
    source_id=SEARCH_CONSOLE,
    matcher=ExactSet(required=("Clients", "Date", "Impressions", "Clicks")),
    fields=_fields(
        {
            "Clients": "ClientName",
            "Website": "Website",
            "Date": "Date",
            "Impressions": "Impressions",
            "Clicks": "Clicks",
            "Desktop": "Desktop",
            "Mobile": "Mobile",
            "Tablet": "Tablet",
            "Average CTR": "Average_CTR",
            "Average Position": "Average_Position",
            "Top 10 Clicks": "Top_10_Clicks",
            "Top 10 Queries": "Top_10_Queries",
        },
        {
            **_with_kind(INT, ["Impressions", "Clicks"]),
            **_with_kind(PCT, ["Desktop", "Mobile", "Tablet", "Average_CTR"]),
            "Average_Position": FLT,
        },
    ),
    multi_valued=True,
    date_field="Date",
)

_CHANNELS = ("Organic", "Direct", "PPC")

ANALYTICS_HEADERS = {
    "Clients": "ClientName",
    "Property ID": "PropertyID",
    "Date": "Date",
}
for _metric in ("Revenue", "Sessions", "Orders", "ConvRate"):
    ANALYTICS_HEADERS[_metric] = _metric
    for _channel in _CHANNELS:
        ANALYTICS_HEADERS[f"{_metric}%{_channel}"] = f"{_metric}Percent{_channel}"
    ANALYTICS_HEADERS[f"{_metric} %Referral"] = f"{_metric}PercentReferral"
ANALYTICS_HEADERS["Session Duration"] = "SessionDuration"
ANALYTICS_HEADERS["Bounce Rate"] = "BounceRate"
ANALYTICS_HEADERS["Date Ran:"] = "DateRan"

ANALYTICS_SCHEMA = SourceSchema(
    source_id=ANALYTICS,
    matcher=ExactSet(
        required=(
            "Clients",
            "Date",
            "Revenue",
            "Revenue%Organic",
            "Revenue%Direct",
            "Revenue%PPC",
            "Revenue %Referral",
            "Sessions",
        )
    ),
    fields=_fields(
        ANALYTICS_HEADERS,
        {
            "Revenue": CUR,
            **_with_kind(INT, ["Sessions", "Orders"]),
            **_with_kind(PCT, [f for f in ANALYTICS_HEADERS.values() if "Percent" in f]),
            **_with_kind(PCT, ["ConvRate", "BounceRate"]),
        },
    ),
    multi_valued=True,
    date_field="Date",
)

ADS_HEADERS = {"Clients": "ClientName", "ID": "ID", "Date": "Date"}
for _prefix in ("Parts", "Acc"):
    for _metric in ("Cost", "Impressions", "Clicks", "AvgCPC", "CTR", "ROAS", "Conversions", "ConvRate", "Budget"):
        ADS_HEADERS[f"{_prefix}{_metric}"] = f"{_prefix}{_metric}"
ADS_HEADERS["Date Ran:"] = "DateRan"

ADS_SCHEMA = SourceSchema(
    source_id=ADS,
    matcher=ExactSet(required=("Clients", "Date", "PartsCost", "AccCost")),
    fields=_fields(
        ADS_HEADERS,
        {
            **_with_kind(CUR, [f"{p}{m}" for p in ("Parts", "Acc") for m in ("Cost", "AvgCPC", "Budget")]),
            **_with_kind(INT, [f"{p}{m}" for p in ("Parts", "Acc") for m in ("Impressions", "Clicks", "Conversions")]),
            **_with_kind(FLT, [f"{p}{m}" for p in ("Parts", "Acc") for m in ("CTR", "ROAS", "ConvRate")]),
        },
    ),
    multi_valued=True,
    date_field="Date",
    description="Monthly ads metrics; Date is usually 'August 2025'",
)


# =============================================================================
# PATTERN-MATCHED SOURCES
# =============================================================================

_CLIENT_PATTERN = HeaderPattern("client", r"client(s| name)", "Clients or Client Name")
_LEADING_COUNT = re.compile(r"[+-]?\d+")


def _parse_count(text: str) -> int | None:
    match = _LEADING_COUNT.match(text.replace(",", "").strip())
    return int(match.group(0)) if match else None


def _items_in_feed_timeline(record: TypedRecord, row: RowView) -> TypedRecord:
    """Read the wide date columns (third column on) into a sorted timeline."""
    timeline: list[dict] = []
    for index in range(2, len(row.headers)):
        header = row.headers[index]
        cell = row.cell(index)
        if not header or not cell:
            continue
        date = parse_date(header)
        count = _parse_count(cell)
        if date is not None and count is not None:
            timeline.append({"date": date, "count": count})
    timeline.sort(key=lambda point: point["date"])

    record.setdefault("merchant_id", None)
    record["timeline"] = timeline
    return record


ITEMS_IN_FEED_SCHEMA = SourceSchema(
    source_id=ITEMS_IN_FEED,
    matcher=PatternSet(
        [
            HeaderPattern("client", r"client name|clients", "Client Name or Clients"),
            HeaderPattern("merchant_id", r"mid|gmc", "MID", required=False),
        ]
    ),
    fields=(FieldSpec("client", "ClientName"), FieldSpec("merchant_id", "merchant_id")),
    finalize=_items_in_feed_timeline,
    description="Wide layout: one column per date, item counts per client",
)


def _feed_status_row(record: TypedRecord, row: RowView) -> TypedRecord | None:
    """Parse the check date and the (feed name, last update) column pairs of one row."""
    last_checked = parse_date(record.get("last_checked"))
    if last_checked is None:
        return None

    feeds = []
    name_columns = row.matcher.find_all("feed_name", row.headers) if isinstance(row.matcher, PatternSet) else []
    for name_index in name_columns:
        update_index = name_index + 1
        if update_index >= len(row.headers) or update_index >= len(row.cells):
            continue
        name = (row.cell(name_index) or "").strip()
        if not name or name.lower() == "no feeds found":
            continue
        feeds.append({"name": name, "last_update": parse_feed_update(row.cell(update_index))})

    record["last_checked"] = last_checked
    record["feeds"] = feeds
    record["never_checked"] = False
    return record


def parse_feed_update(value: str | None) -> datetime | str:
    """A feed's last-update cell as a datetime, or NEVER."""
    text = (value or "").strip()
    if not text or text.lower() == "never":
        return NEVER
    parsed = parse_date(text)
    return parsed if parsed is not None else NEVER


def seed_feed_status(client_names: Iterable[str], now: datetime) -> dict[str, TypedRecord]:
    """Default never-checked entries, one per known client, in first-seen order."""
    return {
        name: {"ClientName": name, "last_checked": now, "feeds": [], "never_checked": True}
        for name in dict.fromkeys(client_names)
        if name
    }


FEED_STATUS_SCHEMA = SourceSchema(
    source_id=FEED_STATUS,
    matcher=PatternSet(
        [
            _CLIENT_PATTERN,
            HeaderPattern("check_date", r"check date|last checked", "Check Date or Last Checked"),
            HeaderPattern("feed_name", r"feed name", "Feed Name", required=False),
        ]
    ),
    fields=(FieldSpec("client", "ClientName"), FieldSpec("check_date", "last_checked")),
    finalize=_feed_status_row,
    description="Feed freshness per client; seeded from the account directory",
)


def _percent_approved_row(record: TypedRecord, row: RowView) -> TypedRecord | None:
    raw_percent = record.get("percentApproved")
    raw_date = record.get("date")
    if not raw_percent or not raw_date:
        return None
    date = parse_date(raw_date)
    if date is None:
        return None
    record["percentApproved"] = to_float(raw_percent)
    record["date"] = date
    return record


PERCENT_APPROVED_SCHEMA = SourceSchema(
    source_id=PERCENT_APPROVED,
    matcher=PatternSet(
        [
            _CLIENT_PATTERN,
            HeaderPattern("percent", r"% approved", "% Approved"),
            HeaderPattern("date", r"date", "Date"),
        ]
    ),
    fields=(
        FieldSpec("client", "ClientName"),
        FieldSpec("percent", "percentApproved"),
        FieldSpec("date", "date"),
    ),
    finalize=_percent_approved_row,
    multi_valued=True,
    date_field="date",
)


def _store_status_row(record: TypedRecord, row: RowView) -> TypedRecord | None:
    date = parse_date(record.get("date"))
    if date is None:
        return None
    record["date"] = date
    return record


STORE_STATUS_SCHEMA = SourceSchema(
    source_id=STORE_STATUS,
    matcher=PatternSet(
        [
            _CLIENT_PATTERN,
            HeaderPattern("status", r"status", "Status"),
            HeaderPattern("banner", r"banner", "Banner"),
            HeaderPattern("date", r"date", "Date"),
        ]
    ),
    fields=(
        FieldSpec("client", "ClientName"),
        FieldSpec("status", "status"),
        FieldSpec("banner", "banner"),
        FieldSpec("date", "date"),
    ),
    finalize=_store_status_row,
)


def _users_row(record: TypedRecord, row: RowView) -> TypedRecord | None:
    if not to_string(record.get("email")):
        return None
    return record


USERS_SCHEMA = SourceSchema(
    source_id=USERS,
    matcher=PatternSet(
        [
            HeaderPattern("user", r"^user$", "User"),
            HeaderPattern("email", r"^email$", "Email"),
        ]
    ),
    fields=(FieldSpec("user", "name"), FieldSpec("email", "email")),
    key_field="name",
    multi_valued=True,
    output=OutputShape.LIST,
    finalize=_users_row,
    lenient_headers=True,
    description="Dashboard users, read from the Users tab of the performance spreadsheet",
)


ALL_SCHEMAS: tuple[SourceSchema, ...] = (
    ACCOUNT_DIRECTORY_SCHEMA,
    PERFORMANCE_SCHEMA,
    KEY_CONTACTS_SCHEMA,
    ITEMS_IN_FEED_SCHEMA,
    FEED_STATUS_SCHEMA,
    PERCENT_APPROVED_SCHEMA,
    STORE_STATUS_SCHEMA,
    STORE_CHANGES_SCHEMA,
    BUDGET_STATUS_SCHEMA,
    REVOLUTION_LINKS_SCHEMA,
    SEARCH_CONSOLE_SCHEMA,
    ANALYTICS_SCHEMA,
    ADS_SCHEMA,
    USERS_SCHEMA,
)


def build_registry() -> SchemaRegistry:
    """A registry holding every source schema in refresh order."""
    registry = SchemaRegistry()
    registry.register_all(ALL_SCHEMAS)
    return registry
