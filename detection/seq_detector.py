"""
Sequence Detector Module

Finds occurrences of short query sequences (adapters, barcodes, motifs)
inside longer reference sequences such as nanopore reads. Every query is
locally aligned against each search window of a reference; hits whose
score, normalized by the query's self-alignment score, exceeds a cutoff are
reported. In recursive mode the window is split around the best hit and
both sides are searched again, so that all non-overlapping hits are found.

Typical usage:
    detector = SeqDetector(cutoff=0.7)
    detector.add_anon_queries(["ACGTTGCAAGGT"])
    hits = detector.detect(Reference("read1", read_seq), recursive=True)
"""

import logging
import math
from typing import Iterable, List, Optional

from sequtils.parsers import iter_fastx, reverse_complement

from .pairwise_aligner import AlnParams, PairwiseAligner
from .records import AlignedSeq, DetectionContext, Query, Reference
from .ranges import Range, resolve_range

logger = logging.getLogger(__name__)

NULL_MODES = ('self',)


def compute_null_score(sequence: str, aligner: PairwiseAligner, mode: str = 'self') -> float:
    """
    Normalization baseline for a query.

    Mode 'self' is the score of the query aligned against itself. Any
    other mode is unsupported and yields NaN, which no cutoff comparison
    accepts.

    Raises:
        AlignmentError: If the query is empty (mode 'self')
    """
    if mode == 'self':
        return float(aligner.align(sequence, sequence).score)
    return float('nan')


def best_hits(hits: List[AlignedSeq], n: int = -1) -> List[AlignedSeq]:
    """
    Rank hits by score and flag the top one as best.

    The sort is stable, so hits with equal scores keep their input order.

    Parameters:
        hits: Hits to rank (the list itself is not reordered)
        n: Number of hits to return; negative means all

    Returns:
        Up to n hits, highest score first; the first has is_best set
    """
    if not hits:
        return []
    ranked = sorted(hits, key=lambda h: h.score, reverse=True)
    ranked[0].is_best = True
    if n < 0:
        return ranked
    return ranked[:n]


class SeqDetector:
    """
    Detect query sequences in reference sequences by local alignment.

    Attributes:
        queries (List[Query]): Registered queries (both strands unless stranded)
        search_all (bool): Whether callers should run the recursive search
        stranded (bool): Only register forward-strand queries
        null_mode (str): Null score mode ('self' is the only supported one)
        cutoff (float): Minimum normalized score (exclusive) of a reported hit
        aln_params (AlnParams): Alignment scoring scheme
    """

    def __init__(self,
                 search_all: bool = False,
                 stranded: bool = False,
                 null_mode: str = 'self',
                 cutoff: float = 0.0,
                 aln_params: Optional[AlnParams] = None):
        """
        Parameters:
            search_all: Find all non-overlapping hits instead of one pass (default: False)
            stranded: Skip reverse-complement queries (default: False)
            null_mode: Null score mode (default: 'self')
            cutoff: Normalized score threshold (default: 0.0)
            aln_params: Scoring scheme (default: AlnParams())

        Raises:
            ValueError: If parameters are invalid
        """
        if not isinstance(null_mode, str):
            raise ValueError("null_mode must be a string")
        if cutoff is None or math.isnan(cutoff):
            raise ValueError("cutoff must be a number")
        if null_mode not in NULL_MODES:
            logger.warning("Unsupported null score mode '%s': no hits will be reported", null_mode)

        self.queries: List[Query] = []
        self.search_all = search_all
        self.stranded = stranded
        self.null_mode = null_mode
        self.cutoff = float(cutoff)
        self.aln_params = aln_params if aln_params is not None else AlnParams()
        self.aligner = PairwiseAligner(self.aln_params)
        self.context = DetectionContext(
            cutoff=self.cutoff,
            null_mode=self.null_mode,
            aln_params=self.aln_params,
        )

    # ------------------------------------------------------------------
    # Query registry
    # ------------------------------------------------------------------

    def null_score(self, sequence: str) -> float:
        return compute_null_score(sequence, self.aligner, self.null_mode)

    def add_query(self, name: str, sequence: str) -> List[Query]:
        """
        Register a query: forward strand, plus its reverse complement
        unless the detector is stranded. Both share one null score.

        Returns:
            The Query objects added
        """
        sequence = sequence.upper()
        null_score = self.null_score(sequence)
        if math.isnan(null_score) or null_score == 0:
            logger.warning("Query %s has null score %s and cannot produce hits", name, null_score)

        added = [Query(name, sequence, '+', null_score)]
        if not self.stranded:
            added.append(Query(name, reverse_complement(sequence), '-', null_score))
        self.queries.extend(added)
        logger.debug("Registered query %s (%d bp, null score %s)", name, len(sequence), null_score)
        return added

    def add_anon_queries(self, sequences: Iterable[str]) -> None:
        """Register literal sequences as queries named q0, q1, ..."""
        for i, sequence in enumerate(sequences):
            self.add_query(f"q{i}", sequence)

    def load_queries(self, fastx_path: str) -> None:
        """Register every record of a FASTA/FASTQ file, named by its first header word."""
        count = 0
        for record in iter_fastx(fastx_path):
            self.add_query(record.id, record.sequence)
            count += 1
        logger.info("Loaded %d queries from %s", count, fastx_path)

    # ------------------------------------------------------------------
    # Detection
    # ------------------------------------------------------------------

    def detect(self, reference: Reference, recursive: bool = False) -> List[AlignedSeq]:
        """
        Search every range of a reference, in range order.

        Parameters:
            reference: Reference with its search ranges
            recursive: Find all non-overlapping hits per range

        Returns:
            Hits of all ranges concatenated
        """
        hits: List[AlignedSeq] = []
        for rng in reference.ranges:
            if recursive:
                hits.extend(self.detect_rec(reference, rng))
            else:
                hits.extend(self.detect_once(reference, rng))
        return hits

    def detect_once(self, reference: Reference, rng: Range) -> List[AlignedSeq]:
        """
        Align every query against one range and keep hits above the cutoff.

        Returns:
            All kept hits, highest score first, the top one flagged best;
            empty for an empty range
        """
        window = resolve_range(rng, len(reference.sequence))
        return best_hits(self._align_window(reference, window), -1)

    def detect_rec(self, reference: Reference, rng: Range) -> List[AlignedSeq]:
        """
        Find all non-overlapping hits in a range.

        The best hit of the range is kept and the parts of the range left
        and right of it are searched the same way, until no window holds a
        hit. Pending windows are kept on a stack, left side first, so any
        number of hits can be found. The merged hits are re-ranked so that
        exactly one of them is flagged best.
        """
        seq_len = len(reference.sequence)
        found: List[AlignedSeq] = []
        pending = [rng]
        while pending:
            window = resolve_range(pending.pop(), seq_len)
            hits = self._align_window(reference, window)
            if not hits:
                continue

            best = best_hits(hits, 1)[0]
            found.append(best)
            if best.ref_end > best.ref_start:
                pending.append(Range(float(best.ref_end), window.end))
                pending.append(Range(window.start, float(best.ref_start)))
            else:
                logger.debug("%s: zero-length best hit at %d, not splitting", reference.name, best.ref_start)

        # flags from the per-window searches are superseded by the merged ranking
        for hit in found:
            hit.is_best = False
        return best_hits(found, -1)

    def _align_window(self, reference: Reference, window: Range) -> List[AlignedSeq]:
        """Align all queries to a resolved window; keep those above the cutoff."""
        if window.length <= 0:
            return []

        start = int(window.start)
        end = int(window.end)
        ref_slice = reference.sequence[start:end]

        hits = []
        for query in self.queries:
            hit = self.align_query(reference, query, ref_slice, start)
            if hit.normalized_score > self.cutoff:
                hits.append(hit)
        logger.debug("%s [%d, %d): %d/%d queries above cutoff",
                     reference.name, start, end, len(hits), len(self.queries))
        return hits

    def align_query(self, reference: Reference, query: Query,
                    ref_slice: str, offset: int) -> AlignedSeq:
        """
        Align one query to a slice of the reference starting at offset.

        Raises:
            AlignmentError: If the slice or query is empty
        """
        result = self.aligner.align(ref_slice, query.sequence)
        return AlignedSeq(
            reference=reference,
            query=query,
            ref_aligned=result.ref_aligned,
            query_aligned=result.query_aligned,
            ref_start=result.ref_start + offset,
            ref_end=result.ref_end + offset,
            query_start=result.query_start,
            query_end=result.query_end,
            score=float(result.score),
            context=self.context,
        )


def detect_sequences(reference: Reference,
                     queries: List[str],
                     cutoff: float = 0.0,
                     recursive: bool = False,
                     stranded: bool = False,
                     aln_params: Optional[AlnParams] = None) -> List[AlignedSeq]:
    """
    Convenience function to search one reference for literal query sequences.

    Parameters:
        reference: Reference with its search ranges
        queries: Query sequences, registered as q0, q1, ...
        cutoff: Normalized score threshold (default: 0.0)
        recursive: Find all non-overlapping hits (default: False)
        stranded: Forward strand only (default: False)
        aln_params: Scoring scheme (default: AlnParams())

    Returns:
        List of AlignedSeq hits

    Example:
        >>> ref = Reference("read1", "TTTTTACGTTGCAAGGTTTTT")
        >>> hits = detect_sequences(ref, ["ACGTTGCAAGG"], cutoff=0.9)
        >>> hits[0].ref_start, hits[0].ref_end
        (5, 16)
    """
    detector = SeqDetector(
        search_all=recursive,
        stranded=stranded,
        cutoff=cutoff,
        aln_params=aln_params,
    )
    detector.add_anon_queries(queries)
    return detector.detect(reference, recursive=recursive)
