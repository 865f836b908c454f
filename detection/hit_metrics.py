"""
Hit Metrics Module

Read-only statistics derived from a finished hit (mapping quality, raw and
clipped accuracy, query coverage) and the two text renderings used in
reports: one tab-separated row per hit and a two-line alignment dump.

None of these functions modify the hit.
"""

import math
from typing import Dict, List

# Column order of the tabular report
HIT_FIELDS: List[str] = [
    "Ref", "RefStart", "RefEnd", "Query", "QueryStart", "QueryEnd",
    "Strand", "MapQual", "RawScore", "Acc", "ClipAcc", "QueryCov",
]

MAX_MAPPING_QUALITY = 60.0


def mapping_quality(hit) -> float:
    """
    Phred-scaled confidence from the normalized score:
    -10 * log10(1 - score / null_score).

    A perfect hit (ratio of exactly 1) is reported as 60. Undefined
    ratios (NaN null score, ratio above 1) give NaN.
    """
    ratio = hit.normalized_score
    if math.isnan(ratio) or ratio > 1:
        return float('nan')
    if ratio == 1:
        return MAX_MAPPING_QUALITY
    return -10 * math.log10(1 - ratio)


def count_differences(hit) -> int:
    """Columns where the gap-padded aligned strings differ (gaps count)."""
    return sum(1 for r, q in zip(hit.ref_aligned, hit.query_aligned) if r != q)


def raw_accuracy(hit) -> float:
    """Percent identity over the full gap-padded alignment length."""
    length = len(hit.ref_aligned)
    if length == 0:
        return float('nan')
    return (length - count_differences(hit)) * 100 / length


def clipped_accuracy(hit) -> float:
    """
    Percent identity with unaligned query flanks counted as errors:
    the denominator also includes the query bases outside
    [query_start, query_end).
    """
    length = len(hit.ref_aligned)
    unaligned = len(hit.query.sequence) - hit.query_end + hit.query_start
    total = length + unaligned
    if total == 0:
        return float('nan')
    return (length - count_differences(hit)) * 100 / total


def query_coverage(hit) -> float:
    """Percent of the query covered by the alignment."""
    query_len = len(hit.query.sequence)
    if query_len == 0:
        return float('nan')
    return (hit.query_end - hit.query_start) * 100 / query_len


def hit_values(hit) -> Dict[str, object]:
    """Report columns for one hit as typed values, keyed by HIT_FIELDS."""
    return {
        "Ref": hit.reference.name,
        "RefStart": hit.ref_start,
        "RefEnd": hit.ref_end,
        "Query": hit.query.name,
        "QueryStart": hit.query_start,
        "QueryEnd": hit.query_end,
        "Strand": hit.query.strand,
        "MapQual": mapping_quality(hit),
        "RawScore": hit.score,
        "Acc": raw_accuracy(hit),
        "ClipAcc": clipped_accuracy(hit),
        "QueryCov": query_coverage(hit),
    }


def format_hit(hit) -> str:
    """Tab-separated report row in HIT_FIELDS order."""
    values = hit_values(hit)
    cells = []
    for name in HIT_FIELDS:
        value = values[name]
        if name == "RawScore":
            cells.append(f"{value:.0f}")
        elif isinstance(value, float):
            cells.append(f"{value:.2f}")
        else:
            cells.append(str(value))
    return "\t".join(cells)


def format_alignment(hit) -> str:
    """
    Two-line alignment dump, reference first:

        @<TAB>ref_aligned<TAB>+<TAB>ref_start<TAB>ref_end<TAB>ref_name
        @<TAB>query_aligned<TAB>strand<TAB>query_start<TAB>query_end<TAB>query_name
    """
    return (
        f"@\t{hit.ref_aligned}\t+\t{hit.ref_start}\t{hit.ref_end}\t{hit.reference.name}\n"
        f"@\t{hit.query_aligned}\t{hit.query.strand}\t{hit.query_start}\t{hit.query_end}\t{hit.query.name}"
    )
