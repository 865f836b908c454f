"""
Parsers Module for seqdetect

Readers for the file formats the detector consumes:
- FASTA/FASTQ files (queries and reads, optionally gzipped)
- BED files (per-read search ranges)

plus the reverse complement used to build opposite-strand queries.

Usage:
    from sequtils.parsers import iter_fastx, parse_bed, reverse_complement
"""

import gzip
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Optional

from Bio import SeqIO

logger = logging.getLogger(__name__)


# ============================================
# Data Classes
# ============================================

@dataclass
class FastaRecord:
    """Represents a FASTA/FASTQ sequence record"""
    header: str
    sequence: str

    @property
    def id(self) -> str:
        """Extract ID (first word) from header"""
        return self.header.split()[0] if self.header else ""

    @property
    def description(self) -> str:
        """Extract description (everything after ID) from header"""
        parts = self.header.split(maxsplit=1)
        return parts[1] if len(parts) > 1 else ""

    @property
    def length(self) -> int:
        return len(self.sequence)


@dataclass
class BedRecord:
    """Represents a BED format record"""
    chrom: str
    start: int  # 0-based
    end: int    # exclusive
    name: Optional[str] = None
    score: Optional[int] = None
    strand: Optional[str] = None

    @property
    def length(self) -> int:
        return self.end - self.start


# ============================================
# FASTA/FASTQ Parsers
# ============================================

_FASTQ_SUFFIXES = ('.fastq', '.fq')
_FASTA_SUFFIXES = ('.fasta', '.fa', '.fna', '.ffn', '.faa', '.frn')


def _open_text(path: str):
    if str(path).endswith('.gz'):
        return gzip.open(path, 'rt')
    return open(path, 'r')


def detect_file_format(file_path: str) -> str:
    """
    Detect sequence file format based on extension and content.

    Args:
        file_path: Path to file (a trailing .gz is ignored)

    Returns:
        'fasta' or 'fastq'

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the format cannot be determined
    """
    if not Path(file_path).exists():
        raise FileNotFoundError(f"Sequence file not found: {file_path}")

    name = str(file_path).lower()
    if name.endswith('.gz'):
        name = name[:-3]
    if name.endswith(_FASTQ_SUFFIXES):
        return 'fastq'
    if name.endswith(_FASTA_SUFFIXES):
        return 'fasta'

    # Fall back to the first non-blank character
    with _open_text(file_path) as f:
        for line in f:
            if not line.strip():
                continue
            if line.startswith('>'):
                return 'fasta'
            if line.startswith('@'):
                return 'fastq'
            break

    raise ValueError(f"Could not determine sequence format of {file_path}")


def iter_fastx(file_path: str, file_format: Optional[str] = None) -> Iterator[FastaRecord]:
    """
    Iterate over FASTA or FASTQ records without loading the file into memory.

    Sequences are upper-cased; headers keep their description.

    Args:
        file_path: Path to FASTA/FASTQ file (plain or gzipped)
        file_format: 'fasta' or 'fastq'; detected when omitted

    Yields:
        FastaRecord objects
    """
    if file_format is None:
        file_format = detect_file_format(file_path)

    with _open_text(file_path) as handle:
        for record in SeqIO.parse(handle, file_format):
            yield FastaRecord(
                header=record.description,
                sequence=str(record.seq).upper()
            )


def parse_fasta(fasta_path: str) -> Dict[str, str]:
    """
    Parse a FASTA/FASTQ file into a dictionary.

    Args:
        fasta_path: Path to FASTA file

    Returns:
        Dict mapping sequence_id -> sequence
    """
    return {record.id: record.sequence for record in iter_fastx(fasta_path)}


def parse_fasta_records(fasta_path: str) -> List[FastaRecord]:
    """Parse a FASTA/FASTQ file into a list of FastaRecord objects."""
    return list(iter_fastx(fasta_path))


# ============================================
# BED Parsers
# ============================================

def parse_bed_line(line: str) -> Optional[BedRecord]:
    """
    Parse a single BED line.

    Header, comment and blank lines, and lines with fewer than three
    columns, yield None.

    Raises:
        ValueError: If coordinates or strand are malformed
    """
    line = line.rstrip('\r\n')
    if not line or line.startswith(('#', 'track', 'browser')):
        return None

    fields = line.split('\t')
    if len(fields) < 3:
        return None

    try:
        start = int(fields[1])
    except ValueError:
        raise ValueError(f"{fields[0]}: bad start: {fields[1]}")
    try:
        end = int(fields[2])
    except ValueError:
        raise ValueError(f"{fields[0]}: bad end: {fields[2]}")
    if start > end:
        raise ValueError(f"{fields[0]}: start ({start}) must be <= end ({end})")

    strand = None
    if len(fields) > 5:
        strand = fields[5]
        if strand not in ('+', '-', '.'):
            raise ValueError(f"bad strand: {strand}")

    score = None
    if len(fields) > 4 and fields[4] != '.':
        score = int(fields[4])

    return BedRecord(
        chrom=fields[0],
        start=start,
        end=end,
        name=fields[3] if len(fields) > 3 else None,
        score=score,
        strand=strand
    )


def iter_bed(bed_path: str, chroms: Optional[List[str]] = None,
             strict: bool = False) -> Iterator[BedRecord]:
    """
    Iterate over BED records without loading entire file into memory.

    Args:
        bed_path: Path to BED file
        chroms: Only yield records on these sequences (default: all)
        strict: Raise on malformed lines instead of skipping them

    Yields:
        BedRecord objects
    """
    if not Path(bed_path).exists():
        raise FileNotFoundError(f"BED file not found: {bed_path}")

    wanted = set(chroms) if chroms else None

    with _open_text(bed_path) as f:
        for line_number, line in enumerate(f, start=1):
            try:
                record = parse_bed_line(line)
            except ValueError as exc:
                if strict:
                    raise
                logger.warning("%s:%d: could not parse BED line (%s)", bed_path, line_number, exc)
                continue
            if record is None:
                continue
            if wanted is not None and record.chrom not in wanted:
                continue
            yield record


def parse_bed(bed_path: str, chroms: Optional[List[str]] = None,
              strict: bool = False) -> List[BedRecord]:
    """
    Parse a BED file.

    Args:
        bed_path: Path to BED file
        chroms: Only keep records on these sequences (default: all)
        strict: Raise on malformed lines instead of skipping them

    Returns:
        List of BedRecord objects
    """
    return list(iter_bed(bed_path, chroms=chroms, strict=strict))


# ============================================
# Sequence Utilities
# ============================================

_COMPLEMENT = str.maketrans(
    'ACGTURYSWKMBDHVNacgturyswkmbdhvn-',
    'TGCAAYRSWMKVHDBNtgcaayrswmkvhdbn-'
)


def reverse_complement(sequence: str) -> str:
    """
    Return the reverse complement of a DNA sequence.

    IUPAC ambiguity codes are complemented; unknown characters are kept.

    Args:
        sequence: DNA sequence string

    Returns:
        Reverse complement sequence
    """
    return sequence.translate(_COMPLEMENT)[::-1]
