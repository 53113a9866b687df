"""
Shared helpers: result types, pagination, formatting, feedback.
"""

from .results import ValidationResult, OperationResult
from .pagination import Page, total_pages, clamp_page, page_offset, page_bounds, render_pagination
from .feedback import show_result

__all__ = [
    'ValidationResult',
    'OperationResult',
    'Page',
    'total_pages',
    'clamp_page',
    'page_offset',
    'page_bounds',
    'render_pagination',
    'show_result',
]
