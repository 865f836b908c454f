"""
Search Range Module

Half-open search windows over a reference sequence. Range bounds are floats
so that a missing bound can be NaN ("unspecified") and a negative bound can
count back from the end of the sequence; `resolve_range` turns such a
request into concrete coordinates for one sequence length.

Usage:
    from detection.ranges import Range, parse_ranges, resolve_range

    ranges = parse_ranges(":100,-100:")     # both read ends
    window = resolve_range(ranges[1], 2500)  # Range(start=2400.0, end=2500.0)
"""

import math
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Iterable, List

NAN = float('nan')


@dataclass(frozen=True)
class Range:
    """Half-open interval [start, end); bounds may be NaN or negative."""
    start: float = NAN
    end: float = NAN

    @property
    def length(self) -> float:
        return self.end - self.start

    @property
    def is_empty(self) -> bool:
        # NaN bounds compare unequal, so an unresolved range is never empty
        return self.start == self.end

    def __str__(self) -> str:
        return f"{_format_bound(self.start)}:{_format_bound(self.end)}"


def _format_bound(value: float) -> str:
    if math.isnan(value):
        return ''
    return str(int(value))


def resolve_range(rng: Range, seq_len: int) -> Range:
    """
    Apply a range request to a sequence of a given length.

    - start == end is returned unchanged (explicit empty window)
    - NaN start -> 0, negative start -> seq_len + start, clamped to >= 0
    - NaN end -> seq_len, negative end -> seq_len + end, clamped to <= seq_len
    - an inverted result falls back to the whole sequence

    Never raises; the input range is not modified.

    Parameters:
        rng: Requested range
        seq_len: Length of the sequence the range applies to

    Returns:
        Range with 0 <= start <= end <= seq_len (or the unchanged empty input)
    """
    start, end = rng.start, rng.end
    if start == end:
        return rng

    if math.isnan(start):
        start = 0.0
    elif start < 0:
        start = seq_len + start
    if start < 0:
        start = 0.0

    if math.isnan(end):
        end = float(seq_len)
    elif end < 0:
        end = seq_len + end
    if end > seq_len:
        end = float(seq_len)

    if start > end:
        start, end = 0.0, float(seq_len)

    return Range(float(start), float(end))


def parse_ranges(text: str) -> List[Range]:
    """
    Parse a comma-separated list of "start:end" range requests.

    Either side may be empty (unspecified) and negative values count from
    the end of the sequence. An empty string means the whole sequence.

    Example:
        >>> parse_ranges(":100,-100:")
        [Range(start=nan, end=100.0), Range(start=-100.0, end=nan)]

    Raises:
        ValueError: If an item is not of the form start:end with integer bounds
    """
    text = (text or '').strip()
    if not text:
        return [Range()]

    ranges = []
    for item in text.split(','):
        item = item.strip()
        if item.count(':') != 1:
            raise ValueError(f"invalid range '{item}': expected start:end")
        start_text, end_text = item.split(':')
        ranges.append(Range(_parse_bound(start_text, item), _parse_bound(end_text, item)))
    return ranges


def _parse_bound(text: str, item: str) -> float:
    text = text.strip()
    if not text:
        return NAN
    try:
        return float(int(text))
    except ValueError:
        raise ValueError(f"invalid range '{item}': bound '{text}' is not an integer")


def ranges_from_bed(records: Iterable) -> Dict[str, List[Range]]:
    """
    Group BED records into per-sequence range lists.

    Parameters:
        records: BedRecord-like objects with chrom, start and end

    Returns:
        Dict mapping sequence name -> ranges in file order
    """
    grouped: Dict[str, List[Range]] = defaultdict(list)
    for record in records:
        grouped[record.chrom].append(Range(float(record.start), float(record.end)))
    return dict(grouped)
