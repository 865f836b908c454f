"""
Demo script for the Sequence Detector module.

This script shows how to use SeqDetector to locate adapters and barcodes
near the ends of nanopore-like reads.

Use cases:
- Finding sequencing adapters before trimming
- Classifying reads by barcode
- Checking read orientation from the strand of the hit
"""

import sys
import os
import json

# Add parent directory to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from detection import (
    AlnParams,
    Reference,
    SeqDetector,
    format_alignment,
    format_hit,
    hits_to_dataframe,
    parse_ranges,
)
from detection.hit_metrics import HIT_FIELDS, hit_values
from sequtils.parsers import reverse_complement

ADAPTER = "AATGTACTTCGTTCAGTTACGTATTGC"
BARCODE = "CACAAAGACACCGACAACTTTCTT"


def make_read():
    """Adapter + barcode at the start, reverse-complemented adapter at the end."""
    insert = "GATTACA" * 30
    return (
        "TTGT"                          # 4bp leader
        + ADAPTER                       # pos 4-31
        + "GC"
        + BARCODE                       # pos 33-57
        + insert
        + reverse_complement(ADAPTER)   # last 27bp before the tail
        + "AC"
    )


def example_1_single_pass():
    """Example 1: One pass over the whole read."""
    print("=" * 80)
    print("Example 1: Single-pass detection")
    print("=" * 80)

    detector = SeqDetector(cutoff=0.7)
    detector.add_query("adapter", ADAPTER)
    detector.add_query("barcode01", BARCODE)

    read = Reference("read1", make_read())
    hits = detector.detect(read)

    print(f"\nRead length: {len(read.sequence)}bp")
    print(f"Found {len(hits)} hit(s):\n")
    print("\t".join(HIT_FIELDS))
    for hit in hits:
        print(format_hit(hit))
    print()


def example_2_all_hits_in_read_ends():
    """Example 2: Recursive search restricted to both read ends."""
    print("=" * 80)
    print("Example 2: All non-overlapping hits in the first and last 80bp")
    print("=" * 80)

    detector = SeqDetector(search_all=True, cutoff=0.7)
    detector.add_query("adapter", ADAPTER)
    detector.add_query("barcode01", BARCODE)

    read = Reference("read1", make_read(), parse_ranges(":80,-80:"))
    hits = detector.detect(read, recursive=True)

    for hit in hits:
        best = " (best)" if hit.is_best else ""
        print(f"\n{hit.query.name} on strand {hit.strand}{best}:")
        print(format_alignment(hit))
    print()


def example_3_scoring_and_export():
    """Example 3: Custom scoring scheme and JSON/DataFrame export."""
    print("=" * 80)
    print("Example 3: Custom scoring and export")
    print("=" * 80)

    detector = SeqDetector(
        search_all=True,
        stranded=True,
        cutoff=0.5,
        aln_params=AlnParams.from_string("2,-3,-5,-2"),
    )
    detector.add_anon_queries([BARCODE])

    mutated = BARCODE[:10] + "G" + BARCODE[11:]
    read = Reference("read2", "ACGT" * 5 + mutated + "TGCA" * 5)
    hits = detector.detect(read, recursive=True)

    print("\nJSON output:")
    print(json.dumps([hit_values(hit) for hit in hits], indent=2))

    print("\nDataFrame:")
    print(hits_to_dataframe(hits)[["Ref", "RefStart", "RefEnd", "Query", "MapQual", "Acc"]])
    print()


def main():
    """Run all examples."""
    print("\n")
    print("*" * 80)
    print("SEQUENCE DETECTOR - DEMONSTRATION")
    print("*" * 80)
    print()

    example_1_single_pass()
    example_2_all_hits_in_read_ends()
    example_3_scoring_and_export()

    print("*" * 80)
    print("All examples completed!")
    print("*" * 80)
    print()


if __name__ == '__main__':
    main()
