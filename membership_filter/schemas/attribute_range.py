"""
Attribute ranges.

A range is written as 1-based, comma-separated, inclusive pieces, where
``first`` and ``last`` name the ends, e.g. ``first-3,5,9-last``. Indices past
the upper bound are clamped to it.
"""

import re
from typing import List, Optional

from membership_filter.utils.error_handling import InvalidStateError, RangeError

_SINGLE = re.compile(r"^(first|last|[1-9][0-9]*)$")


class AttributeRange:
    """Set of attribute indices described by range text."""

    def __init__(self, ranges: str = "", invert: bool = False):
        self._pieces: List[str] = []
        self._upper: Optional[int] = None
        self._flags: List[bool] = []
        self.invert = invert
        self.set_ranges(ranges)

    def __repr__(self) -> str:
        return f"AttributeRange({self.get_ranges()!r}, invert={self.invert})"

    def set_ranges(self, ranges: str) -> None:
        """
        Parse range text.

        Raises:
            RangeError: If a piece is not a valid single index or a-b span
        """
        pieces = []
        for piece in (ranges or "").split(","):
            piece = piece.strip()
            if not piece:
                continue
            if not self._is_valid_piece(piece):
                raise RangeError(
                    f"Invalid range list at {piece}",
                    details={"ranges": ranges},
                )
            pieces.append(piece)
        self._pieces = pieces
        if self._upper is not None:
            self._set_flags()

    def get_ranges(self) -> str:
        return ",".join(self._pieces)

    @property
    def is_empty(self) -> bool:
        return not self._pieces

    def set_upper(self, upper: int) -> None:
        """Set the largest valid 0-based index and resolve the pieces."""
        if upper < 0:
            raise RangeError(f"Upper limit must be >= 0, got {upper}")
        self._upper = upper
        self._set_flags()

    def is_in_range(self, index: int) -> bool:
        if self._upper is None:
            raise InvalidStateError("No upper limit has been specified for range")
        selected = self._flags[index] if 0 <= index <= self._upper else False
        return selected != self.invert

    def selection(self) -> List[int]:
        """0-based indices in the range, in ascending order."""
        if self._upper is None:
            raise InvalidStateError("No upper limit has been specified for range")
        return [i for i in range(self._upper + 1) if self.is_in_range(i)]

    @staticmethod
    def indices_to_ranges(indices: List[int]) -> str:
        """Render 0-based indices as 1-based range text."""
        return ",".join(str(index + 1) for index in indices)

    def _is_valid_piece(self, piece: str) -> bool:
        if _SINGLE.match(piece):
            return True
        if "-" in piece:
            start, _, end = piece.partition("-")
            return bool(_SINGLE.match(start) and _SINGLE.match(end))
        return False

    def _single(self, text: str) -> int:
        if text == "first":
            return 0
        if text == "last":
            return self._upper
        return min(int(text) - 1, self._upper)

    def _set_flags(self) -> None:
        self._flags = [False] * (self._upper + 1)
        for piece in self._pieces:
            if _SINGLE.match(piece):
                self._flags[self._single(piece)] = True
                continue
            start_text, _, end_text = piece.partition("-")
            start = self._single(start_text)
            end = self._single(end_text)
            for i in range(start, end + 1):
                self._flags[i] = True
