"""
Per-row filter selection for the encoder.

Every row is filtered with all five kinds against the previous original
row, and the candidate with the lowest "minimum sum of absolute
differences" score wins. Bytes are read as signed 8-bit values for
scoring, so 0xFF costs 1, not 255.

Candidates are tried in the order None, Sub, Up, Average, Paeth and a
later kind only replaces the current best when its score is strictly
lower, so ties go to the earlier kind.

Since every reference comes from the original rows, rows can be filtered
independently; the output is always reassembled in row order.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Tuple

from pngcore.filters import apply_filter
from pngcore.types import FilterKind

# Cost of each byte value read as two's-complement
_SIGNED_COST = tuple(v if v < 128 else 256 - v for v in range(256))


def score_filtered(filtered: bytes) -> int:
    """Sum of |signed byte| over the filtered row."""
    cost = _SIGNED_COST
    return sum(cost[b] for b in filtered)


class FilterSelector:
    """
    Chooses a filter per scanline by trying all five.

    Attributes:
        bpp: Bytes per pixel of the serialized rows (3 or 4)
        workers: Threads used by filter_scanlines (1 = run inline)
    """

    def __init__(self, bpp: int, workers: int = 1):
        if bpp not in (3, 4):
            raise ValueError(f"Bytes per pixel must be 3 or 4, got {bpp}")
        if workers < 1:
            raise ValueError(f"Worker count must be >= 1, got {workers}")
        self.bpp = bpp
        self.workers = workers

    def select_row(self, row: bytes, prev: Optional[bytes]) -> Tuple[FilterKind, bytearray]:
        """
        Pick the best filter for one row.

        Args:
            row: Original row bytes
            prev: Previous original row, or None for the first row

        Returns:
            (winning filter kind, its filtered bytes)
        """
        best_kind = FilterKind.NONE
        best = apply_filter(FilterKind.NONE, self.bpp, row, prev)
        best_score = score_filtered(best)

        for kind in (FilterKind.SUB, FilterKind.UP, FilterKind.AVERAGE, FilterKind.PAETH):
            candidate = apply_filter(kind, self.bpp, row, prev)
            score = score_filtered(candidate)
            if score < best_score:
                best_kind, best, best_score = kind, candidate, score

        return best_kind, best

    def filter_scanlines(self, image_data: bytes, row_bytes: int, height: int) -> Tuple[bytes, List[FilterKind]]:
        """
        Filter every row of a serialized image.

        Args:
            image_data: height * row_bytes unfiltered bytes
            row_bytes: Bytes per row
            height: Number of rows

        Returns:
            (filter-byte-prefixed scanlines, chosen kind per row)
        """
        if len(image_data) != row_bytes * height:
            raise ValueError(
                f"Image data is {len(image_data)} bytes, expected {row_bytes * height}"
            )

        rows = [image_data[y * row_bytes:(y + 1) * row_bytes] for y in range(height)]

        def select(y: int) -> Tuple[FilterKind, bytearray]:
            return self.select_row(rows[y], rows[y - 1] if y > 0 else None)

        if self.workers > 1 and height > 1:
            with ThreadPoolExecutor(max_workers=self.workers) as executor:
                results = list(executor.map(select, range(height)))
        else:
            results = [select(y) for y in range(height)]

        out = bytearray()
        kinds = []
        for kind, filtered in results:
            out.append(kind)
            out += filtered
            kinds.append(kind)
        return bytes(out), kinds
