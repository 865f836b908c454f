"""
Read Processor Module

Runs a SeqDetector over every read of FASTA/FASTQ files. Reads get their
search ranges either from one global range list or per read from a BED
file; reads are processed independently, optionally in a process pool, and
results come back in input order. Also writes the tabular report and
converts hits to a pandas DataFrame.
"""

import logging
from collections import deque
from concurrent.futures import ProcessPoolExecutor
from itertools import islice
from typing import Dict, Iterable, Iterator, List, Optional, TextIO, Tuple

import pandas as pd

from sequtils.parsers import iter_fastx

from .hit_metrics import HIT_FIELDS, format_alignment, format_hit, hit_values
from .ranges import Range
from .records import AlignedSeq, Reference
from .seq_detector import SeqDetector

logger = logging.getLogger(__name__)

DetectionResult = Tuple[Reference, List[AlignedSeq]]

# Detector of the current worker process, set by _init_worker
_worker_detector: Optional[SeqDetector] = None


def _init_worker(detector: SeqDetector) -> None:
    global _worker_detector
    _worker_detector = detector


def _detect_in_worker(reference: Reference) -> DetectionResult:
    return reference, _worker_detector.detect(reference, recursive=_worker_detector.search_all)


def _detect_chunk_in_worker(chunk: List[Reference]) -> List[DetectionResult]:
    return [_detect_in_worker(reference) for reference in chunk]


class ReadProcessor:
    """Apply a SeqDetector to every read of one or more sequence files.

    Each read is searched in the configured ranges; no state is shared
    between reads, so reads may be processed in parallel worker processes.
    """

    def __init__(self,
                 detector: SeqDetector,
                 ranges: Optional[List[Range]] = None,
                 bed_ranges: Optional[Dict[str, List[Range]]] = None,
                 threads: int = 1,
                 chunk_size: int = 16):
        """
        Parameters:
            detector: Detector with its queries registered.
            ranges: Search ranges applied to every read (default: whole read).
            bed_ranges: Per-read ranges keyed by read name; reads missing
                from it are skipped. Takes precedence over ranges.
            threads: Number of worker processes (1 = run in this process).
            chunk_size: Reads sent to a worker at a time.
        """
        if threads < 1:
            raise ValueError("threads must be at least 1")
        if chunk_size < 1:
            raise ValueError("chunk_size must be at least 1")
        if not detector.queries:
            logger.warning("Detector has no queries; no hits will be reported")

        self.detector = detector
        self.ranges = list(ranges) if ranges else [Range()]
        self.bed_ranges = bed_ranges
        self.threads = threads
        self.chunk_size = chunk_size

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def iter_references(self, path: str) -> Iterator[Reference]:
        """Yield the reads of a FASTA/FASTQ file with their search ranges."""
        skipped = 0
        for record in iter_fastx(path):
            name = record.id
            if self.bed_ranges is not None:
                ranges = self.bed_ranges.get(name)
                if not ranges:
                    logger.debug("%s: no BED ranges, skipping", name)
                    skipped += 1
                    continue
            else:
                ranges = self.ranges
            yield Reference(name, record.sequence, ranges)
        if skipped:
            logger.info("%s: skipped %d reads without BED ranges", path, skipped)

    def process_reference(self, reference: Reference) -> List[AlignedSeq]:
        """Detect hits in one read (recursively if the detector searches all)."""
        return self.detector.detect(reference, recursive=self.detector.search_all)

    def process_references(self, references: Iterable[Reference]) -> Iterator[DetectionResult]:
        """
        Detect hits in each reference; results keep the input order.

        With several threads, references are sent to the workers in chunks
        of chunk_size, and at most two chunks per worker are pending at a
        time, so the input is read only as fast as results are consumed.
        """
        if self.threads == 1:
            for reference in references:
                yield reference, self.process_reference(reference)
            return

        references = iter(references)
        max_pending = self.threads * 2
        with ProcessPoolExecutor(max_workers=self.threads,
                                 initializer=_init_worker,
                                 initargs=(self.detector,)) as executor:
            pending = deque()
            while True:
                while len(pending) < max_pending:
                    chunk = list(islice(references, self.chunk_size))
                    if not chunk:
                        break
                    pending.append(executor.submit(_detect_chunk_in_worker, chunk))
                if not pending:
                    break
                yield from pending.popleft().result()

    def process_file(self, path: str) -> Iterator[DetectionResult]:
        """Detect hits in every read of one FASTA/FASTQ file."""
        logger.info("Processing %s", path)
        processed = 0
        total_hits = 0
        for reference, hits in self.process_references(self.iter_references(path)):
            processed += 1
            total_hits += len(hits)
            if processed % 10000 == 0:
                logger.info("Progress: %d reads processed", processed)
            yield reference, hits
        logger.info("Done %s: %d reads, %d hits", path, processed, total_hits)

    def process_batch(self, paths: List[str]) -> Iterator[DetectionResult]:
        """Process multiple sequence files in order."""
        for path in paths:
            yield from self.process_file(path)


# ============================================
# Output
# ============================================

def write_hits(handle: TextIO,
               results: Iterable[DetectionResult],
               print_aln: bool = False,
               header: bool = True) -> int:
    """
    Write the tab-separated hit report.

    Parameters:
        handle: Writable text handle
        results: (reference, hits) pairs
        print_aln: Follow each row with its two-line alignment dump
        header: Write the column header first

    Returns:
        Number of hits written
    """
    if header:
        handle.write("\t".join(HIT_FIELDS) + "\n")
    written = 0
    for _, hits in results:
        for hit in hits:
            handle.write(format_hit(hit) + "\n")
            if print_aln:
                handle.write(format_alignment(hit) + "\n")
            written += 1
    return written


def hits_to_dataframe(hits: List[AlignedSeq]) -> pd.DataFrame:
    """
    Convert hits to a pandas DataFrame with the report columns plus the
    IsBest flag and the aligned strings.

    Returns:
        DataFrame, empty but with the expected columns when there are no hits
    """
    columns = HIT_FIELDS + ["IsBest", "RefAln", "QueryAln"]
    if not hits:
        return pd.DataFrame(columns=columns)

    data = []
    for hit in hits:
        row = hit_values(hit)
        row["IsBest"] = hit.is_best
        row["RefAln"] = hit.ref_aligned
        row["QueryAln"] = hit.query_aligned
        data.append(row)

    df = pd.DataFrame(data, columns=columns)
    for column in ("RefStart", "RefEnd", "QueryStart", "QueryEnd"):
        df[column] = df[column].astype('int64')
    for column in ("MapQual", "RawScore", "Acc", "ClipAcc", "QueryCov"):
        df[column] = df[column].astype('float64')
    return df


def save_hits_to_csv(hits: List[AlignedSeq], output_file: str) -> None:
    """Save hits to a CSV file via pandas."""
    if not hits:
        logger.warning("No hits to save")
    df = hits_to_dataframe(hits)
    df.to_csv(output_file, index=False)
    logger.info("Saved %d hits to %s", len(df), output_file)
