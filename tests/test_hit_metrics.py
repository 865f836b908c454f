"""
Unit tests for hit metrics and report rendering.

Run with: python -m pytest tests/test_hit_metrics.py -v
"""

import math
import os
import sys

import pytest

# Add parent directory to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from detection.hit_metrics import (
    HIT_FIELDS,
    clipped_accuracy,
    count_differences,
    format_alignment,
    format_hit,
    hit_values,
    mapping_quality,
    query_coverage,
    raw_accuracy,
)
from detection.records import AlignedSeq, DetectionContext, Query, Reference


def make_hit(ref_aligned="ACGTACGTAC", query_aligned="ACGAACGTTC",
             score=30.0, null_score=40.0, query_seq="GACGTACGTACG",
             query_start=1, query_end=11, ref_start=5, ref_end=15):
    return AlignedSeq(
        reference=Reference("read1", "N" * 20),
        query=Query("q0", query_seq, "+", null_score),
        ref_aligned=ref_aligned,
        query_aligned=query_aligned,
        ref_start=ref_start,
        ref_end=ref_end,
        query_start=query_start,
        query_end=query_end,
        score=score,
        context=DetectionContext(cutoff=0.5),
    )


class TestMappingQuality:
    """Test Phred-scaled mapping quality"""

    def test_phred_scale(self):
        hit = make_hit(score=30.0, null_score=40.0)
        assert mapping_quality(hit) == pytest.approx(-10 * math.log10(0.25))

    def test_perfect_hit_capped(self):
        assert mapping_quality(make_hit(score=40.0, null_score=40.0)) == 60

    def test_nan_null_score(self):
        assert math.isnan(mapping_quality(make_hit(null_score=float("nan"))))

    def test_zero_null_score(self):
        assert math.isnan(mapping_quality(make_hit(null_score=0.0)))

    def test_ratio_above_one(self):
        assert math.isnan(mapping_quality(make_hit(score=50.0, null_score=40.0)))


class TestAccuracy:
    """Test raw and clipped accuracy"""

    def test_two_mismatches_in_ten(self):
        hit = make_hit()
        assert count_differences(hit) == 2
        assert raw_accuracy(hit) == 80.0

    def test_gaps_count_as_differences(self):
        hit = make_hit(ref_aligned="AAAAATCCCCC", query_aligned="AAAAA-CCCCC")
        assert count_differences(hit) == 1
        assert raw_accuracy(hit) == pytest.approx(1000 / 11)

    def test_clipped_accuracy_penalizes_unaligned_query(self):
        # 12 bp query, 10 bp aligned: 2 unaligned flank bases
        hit = make_hit()
        assert clipped_accuracy(hit) == pytest.approx(800 / 12)

    def test_clipped_equals_raw_when_fully_aligned(self):
        hit = make_hit(query_seq="ACGAACGTTC", query_start=0, query_end=10)
        assert clipped_accuracy(hit) == raw_accuracy(hit)

    def test_empty_alignment(self):
        hit = make_hit(ref_aligned="", query_aligned="", query_start=0, query_end=0)
        assert math.isnan(raw_accuracy(hit))
        assert clipped_accuracy(hit) == 0.0


class TestQueryCoverage:
    """Test query coverage"""

    def test_partial(self):
        assert query_coverage(make_hit()) == pytest.approx(1000 / 12)

    def test_full(self):
        hit = make_hit(query_seq="ACGAACGTTC", query_start=0, query_end=10)
        assert query_coverage(hit) == 100.0


class TestRendering:
    """Test tabular rows and alignment dumps"""

    def test_fields(self):
        assert HIT_FIELDS == [
            "Ref", "RefStart", "RefEnd", "Query", "QueryStart", "QueryEnd",
            "Strand", "MapQual", "RawScore", "Acc", "ClipAcc", "QueryCov",
        ]

    def test_format_hit(self):
        assert format_hit(make_hit()) == "read1\t5\t15\tq0\t1\t11\t+\t6.02\t30\t80.00\t66.67\t83.33"

    def test_str_is_row(self):
        hit = make_hit()
        assert str(hit) == format_hit(hit)

    def test_format_alignment(self):
        assert format_alignment(make_hit()) == (
            "@\tACGTACGTAC\t+\t5\t15\tread1\n"
            "@\tACGAACGTTC\t+\t1\t11\tq0"
        )

    def test_hit_values_keys(self):
        values = hit_values(make_hit())
        assert list(values) == HIT_FIELDS
        assert values["RawScore"] == 30.0

    def test_metrics_do_not_modify_hit(self):
        hit = make_hit()
        before = (hit.ref_start, hit.ref_end, hit.score, hit.is_best, hit.ref_aligned)
        format_hit(hit)
        format_alignment(hit)
        assert (hit.ref_start, hit.ref_end, hit.score, hit.is_best, hit.ref_aligned) == before
