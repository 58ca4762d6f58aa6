"""Read ENA sequence reports into assembly entities."""

import csv
import io
import logging
from typing import BinaryIO, Optional, TextIO, Union

from .entities import AssemblyEntity, ChromosomeEntity, ContigType
from .errors import ReportParseError

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("accession", "sequence-name")

CHROMOSOME_ROLE = "assembled-molecule"


class ENAAssemblyReportReader:
    """
    Parse an ENA ``*_sequence_report.txt`` file.

    The report is tab-separated with a header row, e.g.::

        accession    sequence-name    sequence-length    sequence-role    replicon-name    ...
        CM000663.2    1    248956422    assembled-molecule    1    ...

    Rows with role ``assembled-molecule`` become chromosomes, everything
    else becomes a scaffold.
    """

    def __init__(self, stream: Union[BinaryIO, TextIO], accession: Optional[str] = None):
        self.stream = stream
        self.accession = accession
        self._assembly: Optional[AssemblyEntity] = None

    def extract_assembly(self) -> AssemblyEntity:
        """Parse the stream once and return the assembly."""
        if self._assembly is None:
            self._assembly = self._parse()
        return self._assembly

    def _text_lines(self):
        stream = self.stream
        if isinstance(stream, io.TextIOBase):
            text = stream
        else:
            text = io.TextIOWrapper(stream, encoding="utf-8", newline="")
        for line in text:
            if line.strip():
                yield line

    def _parse(self) -> AssemblyEntity:
        try:
            lines = self._text_lines()
            header_line = next(lines, None)
            if header_line is None:
                raise ReportParseError("Empty sequence report")
            header = [col.strip() for col in header_line.lstrip("#").rstrip("\r\n").split("\t")]
            missing = [col for col in REQUIRED_COLUMNS if col not in header]
            if missing:
                raise ReportParseError(f"Sequence report is missing columns: {', '.join(missing)}")

            assembly = AssemblyEntity(insdc_accession=self.accession or "")
            reader = csv.DictReader(lines, fieldnames=header, delimiter="\t")
            for line_no, row in enumerate(reader, start=2):
                assembly.add_sequence(_row_to_sequence(row, line_no))
        except UnicodeDecodeError as e:
            raise ReportParseError(f"Sequence report is not UTF-8: {e}") from e

        logger.debug(
            "Parsed %d sequences for %s", len(assembly.chromosomes), self.accession,
        )
        return assembly


def _row_to_sequence(row: dict, line_no: int) -> ChromosomeEntity:
    accession = (row.get("accession") or "").strip()
    if not accession:
        raise ReportParseError(f"Line {line_no}: missing accession")

    length_text = (row.get("sequence-length") or "").strip()
    try:
        length = int(length_text) if length_text else None
    except ValueError:
        raise ReportParseError(
            f"Line {line_no}: sequence-length {length_text!r} is not an integer"
        ) from None

    role = (row.get("sequence-role") or "").strip()
    return ChromosomeEntity(
        insdc_accession=accession,
        ena_sequence_name=(row.get("sequence-name") or "").strip() or None,
        genbank_sequence_name=(row.get("replicon-name") or "").strip() or None,
        sequence_length=length,
        contig_type=ContigType.CHROMOSOME if role == CHROMOSOME_ROLE else ContigType.SCAFFOLD,
    )
