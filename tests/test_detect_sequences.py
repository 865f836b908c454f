"""
Tests for the detect_sequences command-line script.

Run with: python -m pytest tests/test_detect_sequences.py -v
"""

import os
import sys

import pandas as pd
import pytest

# Add project root and scripts directory to path
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
sys.path.insert(0, ROOT)
sys.path.insert(0, os.path.join(ROOT, 'scripts'))

import detect_sequences
from detection.hit_metrics import HIT_FIELDS

ADAPTER = "ACGTTGCAAGGCTTAG"
BARCODE = "TGACTCGGATTACAGT"
FILLER = "C" * 20
READ = FILLER + ADAPTER + FILLER + BARCODE + FILLER


@pytest.fixture
def reads_fastq(tmp_path):
    path = tmp_path / "reads.fastq"
    path.write_text(f"@read1\n{READ}\n+\n{'I' * len(READ)}\n")
    return str(path)


@pytest.fixture
def queries_fasta(tmp_path):
    path = tmp_path / "queries.fasta"
    path.write_text(f">adapter\n{ADAPTER}\n>barcode\n{BARCODE}\n")
    return str(path)


def read_rows(path):
    with open(path) as f:
        return [line.rstrip("\n").split("\t") for line in f]


class TestCutoff:
    """Test conversion of mapping quality to a score cutoff."""

    def test_zero_quality(self):
        assert detect_sequences.min_qual_to_cutoff(0) == 0

    def test_inverse_of_mapping_quality(self):
        assert detect_sequences.min_qual_to_cutoff(10) == pytest.approx(0.9)


class TestMain:
    """Test running the script end to end."""

    def test_query_fastx(self, reads_fastq, queries_fasta, tmp_path):
        out = tmp_path / "hits.tsv"
        status = detect_sequences.main([reads_fastq, "-F", queries_fasta, "-a", "-o", str(out)])
        assert status == 0
        rows = read_rows(out)
        assert rows[0] == HIT_FIELDS
        assert [(r[0], r[1], r[2], r[3], r[6]) for r in rows[1:]] == [
            ("read1", "20", "36", "adapter", "+"),
            ("read1", "56", "72", "barcode", "+"),
        ]

    def test_anonymous_queries_and_ranges(self, reads_fastq, tmp_path):
        out = tmp_path / "hits.tsv"
        status = detect_sequences.main([
            reads_fastq, "-f", f"{ADAPTER},{BARCODE}", "--ranges=-40:", "-o", str(out),
        ])
        assert status == 0
        rows = read_rows(out)
        assert [(r[3], r[1]) for r in rows[1:]] == [("q1", "56")]

    def test_bed_ranges(self, reads_fastq, tmp_path):
        bed = tmp_path / "ranges.bed"
        bed.write_text("read1\t0\t40\n")
        out = tmp_path / "hits.tsv"
        status = detect_sequences.main([
            reads_fastq, "-f", f"{ADAPTER},{BARCODE}", "--bed", str(bed), "-a", "-o", str(out),
        ])
        assert status == 0
        assert [(r[3], r[1]) for r in read_rows(out)[1:]] == [("q0", "20")]

    def test_zero_length_bed_interval(self, reads_fastq, tmp_path, caplog):
        bed = tmp_path / "ranges.bed"
        bed.write_text("read1\t20\t20\nread1\t0\t40\n")
        out = tmp_path / "hits.tsv"
        status = detect_sequences.main([
            reads_fastq, "-f", ADAPTER, "--bed", str(bed), "-o", str(out),
        ])
        assert status == 0
        assert [(r[3], r[1], r[2]) for r in read_rows(out)[1:]] == [("q0", "20", "36")]
        # the empty interval is kept, not skipped as malformed
        assert not [r for r in caplog.records if r.name == "sequtils.parsers"]

    def test_print_aln_and_csv(self, reads_fastq, queries_fasta, tmp_path):
        out = tmp_path / "hits.tsv"
        csv = tmp_path / "hits.csv"
        status = detect_sequences.main([
            reads_fastq, "-F", queries_fasta, "-a", "-g", "-o", str(out), "--csv", str(csv),
        ])
        assert status == 0
        rows = read_rows(out)
        assert len(rows) == 1 + 2 * 3
        assert rows[2][0] == "@"
        assert pd.read_csv(csv)["Query"].tolist() == ["adapter", "barcode"]

    def test_stdout(self, reads_fastq, capsys):
        status = detect_sequences.main([reads_fastq, "-f", ADAPTER, "-s", "--quiet"])
        assert status == 0
        lines = capsys.readouterr().out.splitlines()
        assert lines[0].split("\t") == HIT_FIELDS
        assert lines[1].startswith("read1\t20\t36\tq0")


class TestErrors:
    """Test exit statuses for bad input."""

    def test_no_queries(self, reads_fastq):
        assert detect_sequences.main([reads_fastq]) == detect_sequences.EXIT_USAGE

    def test_missing_input(self, tmp_path):
        missing = str(tmp_path / "missing.fastq")
        assert detect_sequences.main([missing, "-f", ADAPTER]) == detect_sequences.EXIT_USAGE

    def test_bad_aln_params(self, reads_fastq):
        status = detect_sequences.main([reads_fastq, "-f", ADAPTER, "-p", "4,-4"])
        assert status == detect_sequences.EXIT_USAGE

    def test_bad_ranges(self, reads_fastq):
        status = detect_sequences.main([reads_fastq, "-f", ADAPTER, "-r", "abc"])
        assert status == detect_sequences.EXIT_USAGE

    def test_empty_query_is_fatal(self, reads_fastq, tmp_path):
        queries = tmp_path / "queries.fasta"
        queries.write_text(f">adapter\n{ADAPTER}\n>empty\n")
        out = tmp_path / "hits.tsv"
        status = detect_sequences.main([reads_fastq, "-F", str(queries), "-o", str(out)])
        assert status == detect_sequences.EXIT_FATAL
