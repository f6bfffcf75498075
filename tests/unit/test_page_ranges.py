import pytest

from settlescan.utils.page_ranges import PageRangeError, parse_page_ranges

pytestmark = pytest.mark.unit


@pytest.mark.parametrize(
    ("input_str", "expected"),
    [
        ("5", {5}),
        ("1-3", {1, 2, 3}),
        ("1-3,5", {1, 2, 3, 5}),
        (" 2 - 4 , 4, 7 ", {2, 3, 4, 7}),
        ("3-3", {3}),
    ],
)
def test_parse_page_ranges(input_str, expected):
    assert parse_page_ranges(input_str) == expected


@pytest.mark.parametrize(
    ("input_str", "message"),
    [
        ("", "empty"),
        ("   ", "empty"),
        ("a", "Invalid page range"),
        ("1,,2", "Invalid page range"),
        ("-2", "Invalid page range"),
        ("0", "start at 1"),
        ("5-2", "before its start"),
    ],
)
def test_invalid_page_ranges(input_str, message):
    with pytest.raises(PageRangeError, match=message):
        parse_page_ranges(input_str)
