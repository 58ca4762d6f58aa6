"""Assembly and sequence entities shared by the report reader and the merger."""

import weakref
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class ContigType(str, Enum):
    """Kind of sequence inside an assembly."""

    CHROMOSOME = "chromosome"
    SCAFFOLD = "scaffold"


@dataclass
class SequenceEntity:
    """One sequence within an assembly, keyed by its INSDC accession."""

    insdc_accession: str
    ena_sequence_name: Optional[str] = None
    genbank_sequence_name: Optional[str] = None
    sequence_length: Optional[int] = None
    _assembly_ref: Optional[weakref.ref] = field(
        default=None, init=False, repr=False, compare=False
    )

    @property
    def assembly(self) -> Optional["AssemblyEntity"]:
        """Owning assembly, or None if unset or already garbage collected."""
        if self._assembly_ref is None:
            return None
        return self._assembly_ref()

    @assembly.setter
    def assembly(self, value: Optional["AssemblyEntity"]) -> None:
        self._assembly_ref = weakref.ref(value) if value is not None else None

    def to_dict(self) -> dict:
        return {
            "insdcAccession": self.insdc_accession,
            "enaSequenceName": self.ena_sequence_name,
            "genbankSequenceName": self.genbank_sequence_name,
            "seqLength": self.sequence_length,
        }


@dataclass
class ChromosomeEntity(SequenceEntity):
    """A chromosome or scaffold row from an assembly."""

    contig_type: ContigType = ContigType.SCAFFOLD

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["contigType"] = self.contig_type.value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "ChromosomeEntity":
        return cls(
            insdc_accession=data["insdcAccession"],
            ena_sequence_name=data.get("enaSequenceName"),
            genbank_sequence_name=data.get("genbankSequenceName"),
            sequence_length=data.get("seqLength"),
            contig_type=ContigType(data.get("contigType", ContigType.SCAFFOLD.value)),
        )


@dataclass
class AssemblyEntity:
    """
    A genome assembly and its ordered sequences.

    ``chromosomes`` may be None for records that were loaded without their
    sequences; callers treat that the same as an empty list.
    """

    insdc_accession: str
    name: Optional[str] = None
    chromosomes: Optional[list[ChromosomeEntity]] = field(default_factory=list)

    def __post_init__(self):
        for sequence in self.chromosomes or []:
            sequence.assembly = self

    def add_sequence(self, sequence: ChromosomeEntity) -> None:
        if self.chromosomes is None:
            self.chromosomes = []
        sequence.assembly = self
        self.chromosomes.append(sequence)

    def get_sequence(self, insdc_accession: str) -> Optional[ChromosomeEntity]:
        """Look up a sequence by INSDC accession."""
        for sequence in self.chromosomes or []:
            if sequence.insdc_accession == insdc_accession:
                return sequence
        return None

    def to_dict(self) -> dict:
        data = {
            "insdcAccession": self.insdc_accession,
            "name": self.name,
        }
        if self.chromosomes is not None:
            data["chromosomes"] = [c.to_dict() for c in self.chromosomes]
        else:
            data["chromosomes"] = None
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "AssemblyEntity":
        raw = data.get("chromosomes")
        chromosomes = None
        if raw is not None:
            chromosomes = [ChromosomeEntity.from_dict(c) for c in raw]
        return cls(
            insdc_accession=data["insdcAccession"],
            name=data.get("name"),
            chromosomes=chromosomes,
        )
