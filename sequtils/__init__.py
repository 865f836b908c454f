# Sequence utilities for seqdetect

from .parsers import (
    # Data classes
    FastaRecord,
    BedRecord,
    # FASTA/FASTQ parsers
    iter_fastx,
    parse_fasta,
    parse_fasta_records,
    # BED parsers
    parse_bed,
    parse_bed_line,
    iter_bed,
    # Utilities
    reverse_complement,
    detect_file_format,
)
