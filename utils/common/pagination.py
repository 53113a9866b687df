"""
Pagination helpers for list views.

Page numbers are 1-based. Navigation is always clamped to [1, total_pages],
and an empty result still has one (empty) page.
"""

import math
from dataclasses import dataclass, field
from typing import Tuple

import pandas as pd


def total_pages(total: int, page_size: int) -> int:
    """ceil(total / page_size), at least 1"""
    if page_size <= 0:
        raise ValueError("page_size must be positive")
    return max(1, math.ceil(max(total, 0) / page_size))


def clamp_page(page: int, pages: int) -> int:
    """Keep page inside [1, pages]"""
    return min(max(int(page or 1), 1), max(pages, 1))


def page_offset(page: int, page_size: int) -> int:
    """Row offset for a 1-based page"""
    return (max(int(page or 1), 1) - 1) * page_size


def page_bounds(page: int, page_size: int, total: int) -> Tuple[int, int]:
    """1-based (start_item, end_item) for 'Showing x to y of z'; (0, 0) when empty"""
    if total <= 0:
        return 0, 0
    page = clamp_page(page, total_pages(total, page_size))
    start = page_offset(page, page_size) + 1
    end = min(page * page_size, total)
    return start, end


@dataclass
class Page:
    """One page of a list query"""
    items: pd.DataFrame = field(default_factory=pd.DataFrame)
    total: int = 0
    page: int = 1
    page_size: int = 25

    @property
    def total_pages(self) -> int:
        return total_pages(self.total, self.page_size)

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    def next_page(self) -> int:
        return clamp_page(self.page + 1, self.total_pages)

    def previous_page(self) -> int:
        return clamp_page(self.page - 1, self.total_pages)

    @property
    def bounds(self) -> Tuple[int, int]:
        return page_bounds(self.page, self.page_size, self.total)


def render_pagination(key: str, page: Page):
    """Previous / Next control; stores the requested page in session_state[key]"""
    import streamlit as st

    if page.total_pages <= 1:
        return

    start, end = page.bounds
    col_info, col_prev, col_label, col_next = st.columns([4, 1, 1, 1])
    with col_info:
        st.caption(f"Showing {start:,} to {end:,} of {page.total:,} items")
    with col_prev:
        if st.button("◀ Previous", key=f"{key}_prev", disabled=not page.has_previous,
                     use_container_width=True):
            st.session_state[key] = page.previous_page()
            st.rerun()
    with col_label:
        st.markdown(f"Page {page.page} of {page.total_pages}")
    with col_next:
        if st.button("Next ▶", key=f"{key}_next", disabled=not page.has_next,
                     use_container_width=True):
            st.session_state[key] = page.next_page()
            st.rerun()
