"""Shared test fixtures."""

from pathlib import Path

import pytest

from contigalias.entities import AssemblyEntity, ChromosomeEntity, ContigType
from contigalias.transfer import ENABrowser

FIXTURES_DIR = Path(__file__).parent / "fixtures"

ACCESSION = "GCA_000001405.28"


def load_fixture_bytes(name: str) -> bytes:
    """Load a fixture file as raw bytes."""
    return (FIXTURES_DIR / name).read_bytes()


class FakeBrowser(ENABrowser):
    """
    In-memory archive session.

    ``outcomes`` lists what each download attempt does: "ok" writes the full
    report, "short" writes a truncated copy, an exception instance is raised.
    Once the list runs out every further attempt succeeds.
    """

    def __init__(self, report: bytes | None = b"", outcomes=None, disconnect_error=None):
        self.report = report
        self.outcomes = list(outcomes or [])
        self.disconnect_error = disconnect_error
        self.connected = False
        self.connects = 0
        self.disconnects = 0
        self.downloads = 0
        self.calls = []

    def connect(self):
        self.connects += 1
        self.connected = True
        self.calls.append("connect")

    def disconnect(self):
        self.disconnects += 1
        self.connected = False
        self.calls.append("disconnect")
        if self.disconnect_error is not None:
            raise self.disconnect_error

    def list_directory(self, dir_path):
        self.calls.append(("list", dir_path))
        if self.report is None:
            return []
        return [f"{ACCESSION}_sequence_report.txt", "README.txt"]

    def get_file_size(self, file_path):
        return len(self.report)

    def download_file(self, remote_path, local_path, expected_size, cancel=None):
        self.downloads += 1
        self.calls.append(("download", remote_path, Path(local_path).name))
        outcome = self.outcomes.pop(0) if self.outcomes else "ok"
        if isinstance(outcome, BaseException):
            Path(local_path).write_bytes(self.report[:10])
            raise outcome
        if outcome == "short":
            Path(local_path).write_bytes(self.report[: len(self.report) // 2])
            return False
        Path(local_path).write_bytes(self.report)
        return True


@pytest.fixture
def report_bytes():
    """ENA sequence report for GRCh38 (3 chromosomes, 2 scaffolds)."""
    return load_fixture_bytes(f"{ACCESSION}_sequence_report.txt")


@pytest.fixture
def index_html():
    """Apache directory listing of an ENA assembly directory."""
    return (FIXTURES_DIR / "ena_assembly_index.html").read_text()


@pytest.fixture
def sleeps():
    """Records backoff waits instead of sleeping."""
    return []


@pytest.fixture
def download_dir(tmp_path):
    path = tmp_path / "downloads"
    path.mkdir()
    return path


@pytest.fixture
def target_assembly():
    """Assembly as stored locally, before ENA names are added."""
    return AssemblyEntity(
        insdc_accession=ACCESSION,
        name="GRCh38.p13",
        chromosomes=[
            ChromosomeEntity("CM000663.2", genbank_sequence_name="1",
                             contig_type=ContigType.CHROMOSOME),
            ChromosomeEntity("CM000664.2", genbank_sequence_name="2",
                             contig_type=ContigType.CHROMOSOME),
            ChromosomeEntity("KI270706.1", ena_sequence_name="old-name"),
        ],
    )

