"""
Source access: locators, raw tables, transport, retry, resilient fetch.

Everything that touches the remote API or a CSV blob lives here; nothing
in this package knows about headers, coercion or business fields.
"""

from reportspine.sources.locator import SourceLocator
from reportspine.sources.raw import RawTable, parse_csv_text
from reportspine.sources.retry import ExponentialBackoff, NoRetry, RetryContext, RetryStrategy
from reportspine.sources.transport import SheetsTransport, ValuesTransport
from reportspine.sources.fetcher import ResilientFetcher

__all__ = [
    "SourceLocator",
    "RawTable",
    "parse_csv_text",
    "ExponentialBackoff",
    "NoRetry",
    "RetryContext",
    "RetryStrategy",
    "SheetsTransport",
    "ValuesTransport",
    "ResilientFetcher",
]
