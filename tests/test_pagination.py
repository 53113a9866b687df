import pytest

from utils.common.pagination import Page, total_pages, clamp_page, page_offset, page_bounds


def test_total_pages_is_at_least_one():
    assert total_pages(0, 25) == 1
    assert total_pages(25, 25) == 1
    assert total_pages(26, 25) == 2


def test_total_pages_rejects_non_positive_page_size():
    with pytest.raises(ValueError):
        total_pages(10, 0)


def test_clamp_page():
    assert clamp_page(0, 3) == 1
    assert clamp_page(5, 3) == 3
    assert clamp_page(None, 3) == 1
    assert clamp_page(2, 0) == 1


def test_page_offset():
    assert page_offset(1, 25) == 0
    assert page_offset(3, 25) == 50


def test_page_bounds():
    assert page_bounds(2, 25, 30) == (26, 30)
    assert page_bounds(1, 25, 0) == (0, 0)
    # out of range pages are clamped to the last page
    assert page_bounds(9, 25, 30) == (26, 30)


def test_page_navigation():
    first = Page(total=60, page=1, page_size=25)
    assert first.total_pages == 3
    assert not first.has_previous
    assert first.has_next
    assert first.next_page() == 2
    assert first.previous_page() == 1

    last = Page(total=60, page=3, page_size=25)
    assert not last.has_next
    assert last.next_page() == 3
    assert last.bounds == (51, 60)


def test_empty_page():
    page = Page()
    assert page.items.empty
    assert page.total_pages == 1
    assert page.bounds == (0, 0)
