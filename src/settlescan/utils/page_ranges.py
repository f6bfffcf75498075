import re


class PageRangeError(ValueError):
    """Raised when a page range expression cannot be parsed."""


# A single page ("5") or an inclusive range ("1-3")
PART_PATTERN = re.compile(r"^(\d+)(?:\s*-\s*(\d+))?$")


def parse_page_ranges(input_str: str) -> set[int]:
    """
    Parses a comma separated list of 1-based pages and ranges, e.g. "1-3,5".
    Returns the set of page numbers it covers.
    """
    if not input_str or not input_str.strip():
        raise PageRangeError("Page range cannot be empty or whitespace")

    pages: set[int] = set()
    for part in input_str.split(","):
        part = part.strip()
        match = PART_PATTERN.match(part)
        if not match:
            raise PageRangeError(f"Invalid page range: {part!r}")

        start = int(match.group(1))
        end = int(match.group(2)) if match.group(2) else start
        if start < 1:
            raise PageRangeError("Page numbers start at 1")
        if end < start:
            raise PageRangeError(f"Range end is before its start: {part!r}")
        pages.update(range(start, end + 1))

    return pages
