"""Source locators: which spreadsheet and which tab a source reads."""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import quote


@dataclass(frozen=True)
class SourceLocator:
    """Identifies one remote tabular source.

    Attributes:
        spreadsheet_id: Remote spreadsheet identifier.
        tab: Tab name or A1 range inside the spreadsheet.
    """

    spreadsheet_id: str
    tab: str

    @property
    def is_complete(self) -> bool:
        return bool(self.spreadsheet_id.strip()) and bool(self.tab.strip())

    def values_path(self) -> str:
        """Relative API path for the ``values`` endpoint of this tab."""
        return f"{quote(self.spreadsheet_id, safe='')}/values/{quote(self.tab, safe='')}"

    def with_tab(self, tab: str) -> SourceLocator:
        """Same spreadsheet, different tab."""
        return SourceLocator(spreadsheet_id=self.spreadsheet_id, tab=tab)

    def __str__(self) -> str:
        return f"{self.spreadsheet_id}!{self.tab}"
