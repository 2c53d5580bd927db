# magdb/models/record.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Union

__all__ = [
    "Record",
    "Chunk",
    "EmittedUnit",
    "ID_SEPARATOR",
    "PART_SUFFIX",
]

ID_SEPARATOR = "|"
PART_SUFFIX = "_part"


class EmittedUnit(Protocol):
    @property
    def output_id(self) -> str: ...
    @property
    def residues(self) -> str: ...


@dataclass(frozen=True)
class Record:
    """
    One FASTA record read from `source_file`.

    original_id : header text after '>' (line terminator removed, nothing else)
    sequence    : concatenated sequence lines, carriage returns removed
    source_file : provenance label embedded in every output identifier
    """
    original_id: str
    sequence: str
    source_file: str

    def __len__(self) -> int:
        return len(self.sequence)

    @property
    def output_id(self) -> str:
        return f"{self.source_file}{ID_SEPARATOR}{self.original_id}"

    @property
    def residues(self) -> str:
        return self.sequence


@dataclass(frozen=True)
class Chunk:
    """Contiguous slice of an oversized record; part_index is 1-based."""
    record: Record
    part_index: int
    residues: str

    def __len__(self) -> int:
        return len(self.residues)

    @property
    def output_id(self) -> str:
        return f"{self.record.output_id}{PART_SUFFIX}{self.part_index}"


Unit = Union[Record, Chunk]
