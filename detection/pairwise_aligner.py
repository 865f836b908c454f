"""
Pairwise Aligner Module

Local alignment of a reference slice against a short query with affine gap
penalties (Gotoh's variant of Smith-Waterman). Used to place adapters,
barcodes and motifs inside long reads and to calibrate per-query null
scores by self-alignment.

Typical usage:
    aligner = PairwiseAligner(AlnParams.from_string("4,-4,-2,-1"))
    result = aligner.align("TTTTACGTACGTTTTT", "ACGTACGT")
    result.ref_start, result.ref_end, result.score   # (4, 12, 32)
"""

from dataclasses import dataclass
from typing import List, Tuple

GAP = '-'
NUCLEOTIDES = frozenset('ACGT')

NEG_INF = float('-inf')

# Traceback states
_STATE_H = 0
_STATE_E = 1  # gap in the reference (query base consumed)
_STATE_F = 2  # gap in the query (reference base consumed)


class AlignmentError(RuntimeError):
    """Raised when an alignment cannot be computed for the given input."""


@dataclass(frozen=True)
class AlnParams:
    """Scoring scheme: diagonal match/mismatch scores and affine gap costs."""
    match: int = 4
    mismatch: int = -4
    gap_open: int = -2
    gap_extend: int = -1

    @classmethod
    def from_string(cls, text: str) -> 'AlnParams':
        """
        Parse "<match>,<mismatch>,<gap_open>,<gap_extend>".

        Raises:
            ValueError: If the string does not hold four integers
        """
        fields = [f.strip() for f in text.split(',')]
        if len(fields) != 4:
            raise ValueError(
                f"alignment parameters must be '<match>,<mismatch>,<gap_open>,<gap_extend>', got '{text}'"
            )
        try:
            values = [int(f) for f in fields]
        except ValueError:
            raise ValueError(f"alignment parameters must be integers, got '{text}'")
        return cls(*values)

    def __str__(self) -> str:
        return f"{self.match},{self.mismatch},{self.gap_open},{self.gap_extend}"


@dataclass(frozen=True)
class AlignmentResult:
    """
    Optimal local alignment between a reference slice and a query.

    Coordinates are 0-based, half-open and relative to the sequences passed
    to the aligner; ref_aligned and query_aligned are gap-padded to the same
    length.
    """
    ref_start: int
    ref_end: int
    query_start: int
    query_end: int
    score: int
    ref_aligned: str
    query_aligned: str


class PairwiseAligner:
    """
    Affine-gap local aligner over the {gap, A, C, G, T} alphabet.

    A gap of length L costs gap_open + (L - 1) * gap_extend. Bases are
    compared case-insensitively; symbols outside ACGT never match, not even
    themselves.

    Attributes:
        params (AlnParams): Scoring scheme
    """

    def __init__(self, params: AlnParams = None):
        self.params = params if params is not None else AlnParams()

    def score_pair(self, a: str, b: str) -> int:
        if a == b and a in NUCLEOTIDES:
            return self.params.match
        return self.params.mismatch

    def align(self, reference: str, query: str) -> AlignmentResult:
        """
        Locally align query against reference.

        Fills the H (best local score), E (ending in a reference gap) and
        F (ending in a query gap) matrices, then traces back from the
        highest H cell (earliest row, then earliest column, on ties) until
        a zero cell is reached.

        Parameters:
            reference: Reference slice to search
            query: Query sequence

        Returns:
            AlignmentResult

        Raises:
            AlignmentError: If either sequence is empty
        """
        if not reference:
            raise AlignmentError("Could not align sequences: reference is empty")
        if not query:
            raise AlignmentError("Could not align sequences: query is empty")

        ref = reference.upper()
        qry = query.upper()
        H, E, F, best = self._fill(ref, qry)
        best_score, best_i, best_j = best

        if best_score == 0:
            # Nothing aligns; report an empty alignment at the origin
            return AlignmentResult(0, 0, 0, 0, 0, '', '')

        ref_aln, query_aln, start_i, start_j = self._traceback(ref, qry, H, E, F, best_i, best_j)

        return AlignmentResult(
            ref_start=start_i,
            ref_end=best_i,
            query_start=start_j,
            query_end=best_j,
            score=int(best_score),
            ref_aligned=ref_aln,
            query_aligned=query_aln,
        )

    def _fill(self, ref: str, qry: str):
        """Fill the three DP matrices; returns them with (score, row, col) of the best cell."""
        n = len(ref)
        m = len(qry)
        gap_open = self.params.gap_open
        gap_extend = self.params.gap_extend

        H = [[0] * (m + 1) for _ in range(n + 1)]
        E = [[NEG_INF] * (m + 1) for _ in range(n + 1)]
        F = [[NEG_INF] * (m + 1) for _ in range(n + 1)]

        best_score, best_i, best_j = 0, 0, 0

        for i in range(1, n + 1):
            ref_base = ref[i - 1]
            H_prev = H[i - 1]
            H_row = H[i]
            E_row = E[i]
            F_prev = F[i - 1]
            F_row = F[i]
            for j in range(1, m + 1):
                e = max(H_row[j - 1] + gap_open, E_row[j - 1] + gap_extend)
                f = max(H_prev[j] + gap_open, F_prev[j] + gap_extend)
                diag = H_prev[j - 1] + self.score_pair(ref_base, qry[j - 1])
                h = max(0, diag, e, f)

                E_row[j] = e
                F_row[j] = f
                H_row[j] = h

                # strict comparison keeps the earliest row, then column
                if h > best_score:
                    best_score, best_i, best_j = h, i, j

        return H, E, F, (best_score, best_i, best_j)

    def _traceback(self, ref: str, qry: str,
                   H: List[List[int]], E: List[List[float]], F: List[List[float]],
                   i: int, j: int) -> Tuple[str, str, int, int]:
        """
        Walk back from cell (i, j) to the start of the local alignment.

        Returns:
            (ref_aligned, query_aligned, start_row, start_col)
        """
        gap_open = self.params.gap_open
        aligned_ref = []
        aligned_query = []
        state = _STATE_H

        while i > 0 and j > 0:
            if state == _STATE_H:
                h = H[i][j]
                if h == 0:
                    break
                if h == H[i - 1][j - 1] + self.score_pair(ref[i - 1], qry[j - 1]):
                    aligned_ref.append(ref[i - 1])
                    aligned_query.append(qry[j - 1])
                    i -= 1
                    j -= 1
                elif h == F[i][j]:
                    state = _STATE_F
                elif h == E[i][j]:
                    state = _STATE_E
                else:
                    raise AlignmentError(f"Could not align sequences: broken traceback at ({i}, {j})")

            elif state == _STATE_F:
                aligned_ref.append(ref[i - 1])
                aligned_query.append(GAP)
                if F[i][j] == H[i - 1][j] + gap_open:
                    state = _STATE_H
                i -= 1

            else:
                aligned_ref.append(GAP)
                aligned_query.append(qry[j - 1])
                if E[i][j] == H[i][j - 1] + gap_open:
                    state = _STATE_H
                j -= 1

        return ''.join(reversed(aligned_ref)), ''.join(reversed(aligned_query)), i, j


def align_local(reference: str, query: str, params: AlnParams = None) -> AlignmentResult:
    """
    Convenience function to align two sequences without creating an aligner.

    Example:
        >>> result = align_local("GGGGACGTACGTGGGG", "ACGTACGT")
        >>> result.ref_start, result.ref_end
        (4, 12)
    """
    return PairwiseAligner(params).align(reference, query)
