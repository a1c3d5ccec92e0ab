"""
Gallery view model.

Pure functions that turn the full image list into the page a client shows:
the slice for the current page, the page size for a viewport width and the
sequence of page-number controls. Nothing here reads the environment; the
viewport width is passed in by whoever renders the page.
"""

from collections.abc import Sequence
from dataclasses import dataclass, replace
from typing import Generic, TypeVar

T = TypeVar("T")

DEFAULT_PAGE_SIZE = 9
# (minimum viewport width, images per page), widest first
PAGE_SIZE_BREAKPOINTS: tuple[tuple[int, int], ...] = ((1536, 12), (1280, 9), (768, 6))
SMALL_SCREEN_PAGE_SIZE = 4

# Up to this many pages every page number is shown
MAX_INLINE_PAGES = 7
ELLIPSIS = "..."


def _check_page_size(page_size: int) -> None:
    if page_size < 1:
        raise ValueError(f"page_size must be at least 1, got {page_size}")


def page_size_for_width(width: int | None) -> int:
    """Images per page for a viewport `width` in CSS pixels."""
    if width is None:
        return DEFAULT_PAGE_SIZE
    for min_width, size in PAGE_SIZE_BREAKPOINTS:
        if width >= min_width:
            return size
    return SMALL_SCREEN_PAGE_SIZE


def total_pages(count: int, page_size: int) -> int:
    _check_page_size(page_size)
    return -(-count // page_size)


def paginate(items: Sequence[T], page_size: int, current_page: int) -> list[T]:
    """Items on `current_page` (1-based).

    A page outside the list gives an empty list rather than an error.
    """
    _check_page_size(page_size)
    if current_page < 1:
        return []
    start = (current_page - 1) * page_size
    return list(items[start : start + page_size])


def page_controls(current_page: int, pages: int) -> list[int | str]:
    """Page numbers to render, with ELLIPSIS where a run of pages is skipped.

    Example:
        page_controls(5, 10) -> [1, "...", 3, 4, 5, 6, 7, "...", 10]
    """
    if pages <= MAX_INLINE_PAGES:
        return list(range(1, pages + 1))

    controls: list[int | str] = [1]
    if current_page > 3:
        controls.append(ELLIPSIS)
    controls.extend(page for page in range(current_page - 2, current_page + 3) if 1 < page < pages)
    if current_page < pages - 2:
        controls.append(ELLIPSIS)
    controls.append(pages)
    return controls


@dataclass(frozen=True)
class GalleryViewState(Generic[T]):
    """Snapshot of what the gallery shows. Transitions return a new state."""

    images: Sequence[T]
    page_size: int = DEFAULT_PAGE_SIZE
    current_page: int = 1

    def __post_init__(self) -> None:
        _check_page_size(self.page_size)
        if self.current_page < 1:
            raise ValueError(f"current_page must be at least 1, got {self.current_page}")

    @classmethod
    def for_viewport(cls, images: Sequence[T], width: int | None, current_page: int = 1) -> "GalleryViewState[T]":
        return cls(images=images, page_size=page_size_for_width(width), current_page=current_page)

    @property
    def total_pages(self) -> int:
        return total_pages(len(self.images), self.page_size)

    @property
    def visible(self) -> list[T]:
        return paginate(self.images, self.page_size, self.current_page)

    @property
    def controls(self) -> list[int | str]:
        return page_controls(self.current_page, self.total_pages)

    @property
    def has_previous(self) -> bool:
        return self.current_page > 1

    @property
    def has_next(self) -> bool:
        return self.current_page < self.total_pages

    def go_to(self, page: int) -> "GalleryViewState[T]":
        """Navigate to `page`; navigation never leaves [1, total_pages]."""
        page = min(max(page, 1), max(self.total_pages, 1))
        return replace(self, current_page=page)

    def next_page(self) -> "GalleryViewState[T]":
        return self.go_to(self.current_page + 1) if self.has_next else self

    def previous_page(self) -> "GalleryViewState[T]":
        return self.go_to(self.current_page - 1) if self.has_previous else self

    def resized(self, width: int | None) -> "GalleryViewState[T]":
        # current_page is kept as is, even past the new last page
        return replace(self, page_size=page_size_for_width(width))

    def with_images(self, images: Sequence[T]) -> "GalleryViewState[T]":
        """State after a re-fetch; the page is kept like on resize."""
        return replace(self, images=images)
