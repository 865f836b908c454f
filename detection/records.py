"""
Detection Records

Value types shared by the detector, the metrics and the read processor:
queries, references with their search ranges, the detection context a hit
was produced under, and the hits themselves.
"""

import math
from dataclasses import dataclass, field
from typing import Tuple

from .hit_metrics import format_hit
from .pairwise_aligner import AlnParams
from .ranges import Range


@dataclass(frozen=True)
class Query:
    """A query sequence on one strand, with its normalization baseline."""
    name: str
    sequence: str
    strand: str = '+'
    null_score: float = float('nan')


@dataclass(frozen=True)
class Reference:
    """A reference sequence (e.g. a read) and the windows to search in it."""
    name: str
    sequence: str
    ranges: Tuple[Range, ...] = (Range(),)

    def __post_init__(self):
        # accept any iterable of ranges but store an immutable tuple
        object.__setattr__(self, 'ranges', tuple(self.ranges))


@dataclass(frozen=True)
class DetectionContext:
    """Read-only parameters a hit was detected under."""
    cutoff: float
    null_mode: str = 'self'
    aln_params: AlnParams = field(default_factory=AlnParams)


@dataclass
class AlignedSeq:
    """
    A query hit on a reference.

    Reference coordinates are absolute (0-based, half-open) in the full,
    untrimmed reference sequence; query coordinates are relative to the
    query sequence. Only is_best is changed after construction, by
    best-hit selection.
    """
    reference: Reference
    query: Query
    ref_aligned: str
    query_aligned: str
    ref_start: int
    ref_end: int
    query_start: int
    query_end: int
    score: float
    context: DetectionContext
    is_best: bool = False

    @property
    def strand(self) -> str:
        return self.query.strand

    @property
    def normalized_score(self) -> float:
        """Raw score divided by the query's null score (NaN if undefined)."""
        null_score = self.query.null_score
        if not null_score or math.isnan(null_score):
            return float('nan')
        return self.score / null_score

    def __str__(self) -> str:
        return format_hit(self)
