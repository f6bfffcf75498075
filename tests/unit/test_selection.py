"""Unit tests for the page selection store."""

import pytest

from settlescan.models import PageItem
from settlescan.selection import PageSelectionStore

pytestmark = pytest.mark.unit


def make_pages(name: str, count: int) -> list[PageItem]:
    return [
        PageItem(
            image_bytes=f"{name}-{index}",
            mime_type="image/png",
            source_file_name=name,
            page_index=index,
        )
        for index in range(1, count + 1)
    ]


@pytest.fixture
def store():
    return PageSelectionStore()


@pytest.fixture
def pdf_pages():
    return make_pages("statement.pdf", 3)


class TestAddFile:
    """Test cases for add_file."""

    def test_pages_start_unselected(self, store, pdf_pages):
        store.add_file("statement.pdf", pdf_pages)

        assert store.groups == {"statement.pdf": pdf_pages}
        assert store.selected_pages == []

    def test_select_on_add(self, store):
        image = PageItem(image_bytes="x", mime_type="image/jpeg", source_file_name="a.jpg")
        store.add_file("a.jpg", [image], select=True)

        assert store.selected_pages == [image]
        assert store.preview == image

    def test_replacing_a_file_deselects_its_old_pages(self, store, pdf_pages):
        other = make_pages("other.pdf", 1)
        store.add_file("statement.pdf", pdf_pages)
        store.add_file("other.pdf", other)
        store.toggle_select(pdf_pages[0])
        store.toggle_select(other[0])

        store.add_file("statement.pdf", make_pages("statement.pdf", 2))

        assert len(store.groups["statement.pdf"]) == 2
        assert store.selected_pages == [other[0]]
        assert store.selected_count("statement.pdf") == 0

    def test_remove_file(self, store, pdf_pages):
        store.add_file("statement.pdf", pdf_pages)
        store.toggle_select(pdf_pages[1])

        store.remove_file("statement.pdf")

        assert store.groups == {}
        assert store.selected_pages == []
        assert store.preview is None


class TestToggleSelect:
    """Test cases for toggle_select."""

    def test_toggle_on_and_off(self, store, pdf_pages):
        store.add_file("statement.pdf", pdf_pages)

        assert store.toggle_select(pdf_pages[2]) is True
        assert store.preview == pdf_pages[2]
        assert store.toggle_select(pdf_pages[2]) is False
        assert store.selected_pages == []
        assert store.preview is None

    def test_deselecting_preview_falls_back_to_last_selected(self, store, pdf_pages):
        store.add_file("statement.pdf", pdf_pages)
        store.toggle_select(pdf_pages[0])
        store.toggle_select(pdf_pages[1])

        store.toggle_select(pdf_pages[1])

        assert store.selected_pages == [pdf_pages[0]]
        assert store.preview == pdf_pages[0]

    def test_deselecting_other_page_keeps_preview(self, store, pdf_pages):
        store.add_file("statement.pdf", pdf_pages)
        store.toggle_select(pdf_pages[0])
        store.toggle_select(pdf_pages[1])

        store.toggle_select(pdf_pages[0])

        assert store.preview == pdf_pages[1]

    def test_selection_keeps_click_order(self, store, pdf_pages):
        store.add_file("statement.pdf", pdf_pages)
        store.toggle_select(pdf_pages[2])
        store.toggle_select(pdf_pages[0])

        assert store.selected_pages == [pdf_pages[2], pdf_pages[0]]
        assert store.selected_count("statement.pdf") == 2

    def test_unknown_page(self, store):
        stray = make_pages("stray.pdf", 1)[0]

        with pytest.raises(KeyError):
            store.toggle_select(stray)


class TestRemoveAndUndo:
    """Test cases for remove_page and undo_remove."""

    def test_remove_page_deselects_and_records_undo(self, store, pdf_pages):
        store.add_file("statement.pdf", pdf_pages)
        store.toggle_select(pdf_pages[1])

        store.remove_page(pdf_pages[1])

        assert store.groups["statement.pdf"] == [pdf_pages[0], pdf_pages[2]]
        assert store.selected_pages == []
        assert store.undo_depth == 1

    def test_undo_restores_in_page_order_without_selecting(self, store, pdf_pages):
        store.add_file("statement.pdf", pdf_pages)
        store.toggle_select(pdf_pages[0])
        store.remove_page(pdf_pages[0])

        restored = store.undo_remove()

        assert restored == pdf_pages[0]
        assert store.groups["statement.pdf"] == pdf_pages
        assert not store.is_selected(pdf_pages[0])

    def test_removing_last_page_drops_group_and_undo_recreates_it(self, store):
        pages = make_pages("single.pdf", 1)
        store.add_file("single.pdf", pages)

        store.remove_page(pages[0])
        assert "single.pdf" not in store.groups

        store.undo_remove()
        assert store.groups["single.pdf"] == pages

    def test_undo_on_empty_stack(self, store):
        assert store.undo_remove() is None

    def test_undo_stack_keeps_last_ten(self, store):
        pages = make_pages("big.pdf", 12)
        store.add_file("big.pdf", pages)

        for page in pages:
            store.remove_page(page)

        assert store.undo_depth == 10
        restored = [store.undo_remove() for _ in range(10)]
        assert restored == list(reversed(pages[2:]))
        assert store.undo_remove() is None
        assert pages[0] not in store.groups["big.pdf"]

    def test_reset(self, store, pdf_pages):
        store.add_file("statement.pdf", pdf_pages)
        store.toggle_select(pdf_pages[0])
        store.remove_page(pdf_pages[1])

        store.reset()

        assert store.groups == {}
        assert store.selected_pages == []
        assert store.undo_depth == 0
        assert store.preview is None
