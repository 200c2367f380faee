from __future__ import annotations

from typing import Optional

from chesstutor.book.opening_book import OpeningBook


def open_book(path: Optional[str]) -> OpeningBook:
    """Load the book at ``path``, or the built-in lines when no path is given."""
    if not path:
        return OpeningBook.default()
    return OpeningBook.from_json(path)
