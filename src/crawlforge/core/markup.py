"""Quick structural summary of a captured page."""

from __future__ import annotations

from dataclasses import dataclass

from bs4 import BeautifulSoup


@dataclass(frozen=True)
class MarkupSummary:
    tables: int = 0
    rows: int = 0
    data_id_elements: int = 0
    onclick_links: int = 0
    links: int = 0

    def as_lines(self) -> list[str]:
        return [
            f"tables: {self.tables}",
            f"table body rows: {self.rows}",
            f"elements with data-id: {self.data_id_elements}",
            f"anchors with onclick: {self.onclick_links}",
            f"anchors: {self.links}",
        ]


def describe_markup(html: str) -> MarkupSummary:
    """Count the markup features that tell the three board patterns apart."""
    if not html.strip():
        return MarkupSummary()

    soup = BeautifulSoup(html, "html.parser")
    return MarkupSummary(
        tables=len(soup.find_all("table")),
        rows=len(soup.select("tbody tr")),
        data_id_elements=len(soup.select("[data-id]")),
        onclick_links=len(soup.select("a[onclick]")),
        links=len(soup.find_all("a")),
    )
