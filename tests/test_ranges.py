"""
Unit tests for the search range module.

Tests cover:
- Resolution of unspecified, negative and inverted ranges
- Range list parsing
- Grouping BED records into per-read ranges

Run with: python -m pytest tests/test_ranges.py -v
"""

import math
import os
import sys

import pytest

# Add parent directory to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from detection.ranges import Range, parse_ranges, ranges_from_bed, resolve_range
from sequtils.parsers import BedRecord

NAN = float('nan')


class TestResolveRange:
    """Test resolving range requests against a sequence length."""

    @pytest.mark.parametrize("seq_len", [1, 10, 2500])
    def test_unspecified_is_whole_sequence(self, seq_len):
        assert resolve_range(Range(NAN, NAN), seq_len) == Range(0, seq_len)

    def test_negative_start_counts_from_end(self):
        assert resolve_range(Range(-5, NAN), 10) == Range(5, 10)

    def test_negative_end_counts_from_end(self):
        assert resolve_range(Range(NAN, -3), 10) == Range(0, 7)

    def test_equal_bounds_returned_unchanged(self):
        rng = Range(3, 3)
        resolved = resolve_range(rng, 10)
        assert resolved is rng
        assert resolved.length == 0

    def test_inverted_falls_back_to_whole_sequence(self):
        assert resolve_range(Range(8, 2), 10) == Range(0, 10)

    def test_clamped_to_sequence(self):
        assert resolve_range(Range(-50, 500), 10) == Range(0, 10)

    def test_end_beyond_sequence_clamped(self):
        assert resolve_range(Range(4, 100), 10) == Range(4, 10)

    def test_start_beyond_sequence_recovers(self):
        # start 20 > clamped end 10
        assert resolve_range(Range(20, NAN), 10) == Range(0, 10)

    def test_original_not_modified(self):
        rng = Range(-5, NAN)
        resolve_range(rng, 10)
        assert rng.start == -5
        assert math.isnan(rng.end)

    def test_resolved_bounds_within_sequence(self):
        for start in (NAN, -20, -5, 0, 3, 15):
            for end in (NAN, -20, -5, 0, 3, 15):
                resolved = resolve_range(Range(start, end), 10)
                if resolved.is_empty:
                    continue
                assert 0 <= resolved.start <= resolved.end <= 10


class TestRangeProperties:
    """Test Range helpers."""

    def test_length(self):
        assert Range(2, 9).length == 7

    def test_unresolved_is_not_empty(self):
        assert not Range().is_empty

    def test_str(self):
        assert str(Range(NAN, 100)) == ":100"
        assert str(Range(-100, NAN)) == "-100:"
        assert str(Range(3, 7)) == "3:7"


class TestParseRanges:
    """Test parsing of start:end range lists."""

    def test_empty_string_is_whole_sequence(self):
        ranges = parse_ranges("")
        assert len(ranges) == 1
        assert math.isnan(ranges[0].start)
        assert math.isnan(ranges[0].end)

    def test_both_read_ends(self):
        first, last = parse_ranges(":100,-100:")
        assert math.isnan(first.start) and first.end == 100
        assert last.start == -100 and math.isnan(last.end)

    def test_explicit_bounds(self):
        assert parse_ranges("10:20, 30:40") == [Range(10, 20), Range(30, 40)]

    @pytest.mark.parametrize("text", ["10", "1:2:3", "a:5", "5:b", "1.5:3"])
    def test_invalid_item(self, text):
        with pytest.raises(ValueError):
            parse_ranges(text)


class TestRangesFromBed:
    """Test grouping BED records by sequence name."""

    def test_grouping_keeps_file_order(self):
        records = [
            BedRecord("read1", 0, 100),
            BedRecord("read2", 5, 50),
            BedRecord("read1", 900, 1000),
        ]
        grouped = ranges_from_bed(records)
        assert grouped == {
            "read1": [Range(0, 100), Range(900, 1000)],
            "read2": [Range(5, 50)],
        }

    def test_empty(self):
        assert ranges_from_bed([]) == {}
