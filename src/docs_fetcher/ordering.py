"""Stable section and page numbers for snapshot file names.

Numbers follow first-observation order, so a page keeps its number for the
whole run no matter how often it is asked about.
"""


class OrderAssigner:
    def __init__(self):
        self._sections: dict[str, int] = {}
        self._pages: dict[str, dict[str, int]] = {}

    def section_number(self, section: str) -> int:
        """Number of *section*, assigning ``max + 1`` (from 1) on first sight."""
        number = self._sections.get(section)
        if number is None:
            number = max(self._sections.values(), default=0) + 1
            self._sections[section] = number
        return number

    def page_number(self, section: str, url: str) -> int:
        """Number of *url* within *section*, counted per section from 1."""
        pages = self._pages.setdefault(section, {})
        number = pages.get(url)
        if number is None:
            number = len(pages) + 1
            pages[url] = number
        return number

    def sections(self) -> dict[str, int]:
        return dict(self._sections)

    def pages(self, section: str) -> dict[str, int]:
        return dict(self._pages.get(section, {}))
