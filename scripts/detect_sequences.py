#!/usr/bin/env python3
"""
Detect short sequences (adapters, barcodes, motifs) in reads.

Every query is locally aligned against the search ranges of each read in
the input FASTA/FASTQ files; one tab-separated line is printed per hit
whose mapping quality passes --min-qual.

Usage:
    python scripts/detect_sequences.py reads.fastq \
        --query-fastx adapters.fasta \
        --ranges ":200,-200:" \
        --all --print-aln \
        --out-file hits.tsv
"""

import argparse
import logging
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from detection.pairwise_aligner import AlignmentError, AlnParams
from detection.ranges import parse_ranges, ranges_from_bed
from detection.read_processor import ReadProcessor, save_hits_to_csv, write_hits
from detection.seq_detector import SeqDetector
from sequtils.parsers import parse_bed

logger = logging.getLogger(__name__)

EXIT_FATAL = 1
EXIT_USAGE = 2


def min_qual_to_cutoff(min_qual: float) -> float:
    """Normalized score cutoff matching a minimum mapping quality."""
    return 1 - 10 ** (-min_qual / 10)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Locate query sequences in reads by local alignment."
    )
    parser.add_argument("inputs", nargs="+", help="FASTA/FASTQ files to search (optionally gzipped)")
    parser.add_argument("-F", "--query-fastx", help="FASTA/FASTQ file of query sequences")
    parser.add_argument("-f", "--query-sequences", default="",
                        help="comma-separated query sequences, named q0, q1, ...")
    parser.add_argument("-r", "--ranges", default="",
                        help="search ranges, e.g. ':100,-100:' (default: whole read)")
    parser.add_argument("--bed", help="BED file of per-read search ranges (overrides --ranges)")
    parser.add_argument("-a", "--all", action="store_true",
                        help="search for all non-overlapping hits, not only one pass")
    parser.add_argument("-s", "--stranded", action="store_true",
                        help="search the forward strand of the queries only")
    parser.add_argument("-p", "--aln-params", default=str(AlnParams()),
                        help="alignment parameters '<match>,<mismatch>,<gap_open>,<gap_extend>' "
                             "(default: %(default)s)")
    parser.add_argument("-q", "--min-qual", type=float, default=5.0,
                        help="minimum mapping quality (default: %(default)s)")
    parser.add_argument("-g", "--print-aln", action="store_true",
                        help="print the alignment of each hit")
    parser.add_argument("-j", "--threads", type=int, default=1,
                        help="number of worker processes (default: %(default)s)")
    parser.add_argument("-o", "--out-file", default="-", help="output file (default: stdout)")
    parser.add_argument("--csv", help="also save hits to this CSV file")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    parser.add_argument("--quiet", action="store_true", help="only log warnings and errors")
    return parser


def configure_logging(verbose: bool, quiet: bool) -> None:
    level = logging.INFO
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(message)s",
    )


def build_detector(args) -> SeqDetector:
    """Create the detector and register the queries from the command line."""
    detector = SeqDetector(
        search_all=args.all,
        stranded=args.stranded,
        null_mode="self",
        cutoff=min_qual_to_cutoff(args.min_qual),
        aln_params=AlnParams.from_string(args.aln_params),
    )
    if args.query_fastx:
        if not os.path.exists(args.query_fastx):
            raise FileNotFoundError(f"Query file not found: {args.query_fastx}")
        detector.load_queries(args.query_fastx)
    literal = [q.strip() for q in args.query_sequences.split(",") if q.strip()]
    if literal:
        detector.add_anon_queries(literal)
    if not detector.queries:
        raise ValueError("no queries given: use --query-fastx and/or --query-sequences")
    return detector


def run(args) -> int:
    detector = build_detector(args)

    bed_ranges = None
    if args.bed:
        bed_ranges = ranges_from_bed(parse_bed(args.bed))
        logger.info("Loaded ranges for %d reads from %s", len(bed_ranges), args.bed)

    processor = ReadProcessor(
        detector,
        ranges=parse_ranges(args.ranges),
        bed_ranges=bed_ranges,
        threads=args.threads,
    )

    for path in args.inputs:
        if not os.path.exists(path):
            raise FileNotFoundError(f"Input file not found: {path}")

    collected = []

    def results():
        for reference, hits in processor.process_batch(args.inputs):
            if args.csv:
                collected.extend(hits)
            yield reference, hits

    if args.out_file == "-":
        written = write_hits(sys.stdout, results(), print_aln=args.print_aln)
    else:
        with open(args.out_file, "w") as out:
            written = write_hits(out, results(), print_aln=args.print_aln)

    if args.csv:
        save_hits_to_csv(collected, args.csv)

    logger.info("Reported %d hits", written)
    return 0


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose, args.quiet)

    try:
        return run(args)
    except AlignmentError as exc:
        logger.critical("%s", exc)
        return EXIT_FATAL
    except (ValueError, FileNotFoundError) as exc:
        logger.error("%s", exc)
        return EXIT_USAGE


if __name__ == "__main__":
    sys.exit(main())
