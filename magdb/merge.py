# magdb/merge.py
"""
Provenance tagging and length-bounded splitting of FASTA files into one
merged reference.

Every record of every input is renamed to `<label>|<id>`; records longer than
`maxlen` are tiled into `<label>|<id>_part<N>` chunks; sequence lines are
wrapped at `line_width`; everything is appended, in caller order, to a single
output. One merger writes one output. Build different outputs with different
mergers.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Iterable, Iterator, Optional, Set, TextIO, Union

from .errors import ConfigurationError, DuplicateIdentifierError
from .formats.fasta import DEFAULT_LINE_WIDTH, open_append, write_unit
from .models.record import Chunk, Record, Unit
from .sequences.fasta import ORPHAN_POLICIES, iter_records, open_fasta
from .sequences.split import check_positive, split_record

__all__ = [
    "DEFAULT_MAXLEN",
    "LABEL_MODES",
    "ReheaderOptions",
    "MergeStats",
    "FastaMerger",
    "label_for",
    "reheader_and_append",
]

logger = logging.getLogger(__name__)

# GEM rejects single sequences above ~32 Mb
DEFAULT_MAXLEN = 30_000_000

LABEL_MODES = ("stem", "name")

PathLike = Union[str, "os.PathLike[str]"]


@dataclass
class ReheaderOptions:
    maxlen: int = DEFAULT_MAXLEN
    line_width: int = DEFAULT_LINE_WIDTH
    orphan_policy: str = "error"      # 'error' | 'warn'
    check_unique: bool = False
    label_mode: str = "stem"          # 'stem' (g1.fa -> g1) | 'name' (g1.fa)

    def __post_init__(self):
        check_positive("maxlen", self.maxlen)
        check_positive("line_width", self.line_width)
        if self.orphan_policy not in ORPHAN_POLICIES:
            raise ConfigurationError(
                f"orphan_policy must be one of {ORPHAN_POLICIES}, got {self.orphan_policy!r}"
            )
        if self.label_mode not in LABEL_MODES:
            raise ConfigurationError(
                f"label_mode must be one of {LABEL_MODES}, got {self.label_mode!r}"
            )


def label_for(path: PathLike, mode: str = "stem") -> str:
    """Provenance prefix for `path`: its base name, minus the final extension for 'stem'."""
    name = os.path.basename(os.fspath(path))
    if mode == "name":
        return name
    if mode == "stem":
        stem, _ = os.path.splitext(name)
        return stem or name
    raise ConfigurationError(f"label_mode must be one of {LABEL_MODES}, got {mode!r}")


@dataclass
class MergeStats:
    files: int = 0
    records: int = 0
    units: int = 0
    split_records: int = 0
    residues: int = 0

    def __add__(self, other: "MergeStats") -> "MergeStats":
        return MergeStats(
            files=self.files + other.files,
            records=self.records + other.records,
            units=self.units + other.units,
            split_records=self.split_records + other.split_records,
            residues=self.residues + other.residues,
        )


@dataclass
class FastaMerger:
    options: ReheaderOptions = field(default_factory=ReheaderOptions)

    def __post_init__(self):
        self._seen: Optional[Set[str]] = set() if self.options.check_unique else None

    def units(self, in_fa: Union[PathLike, TextIO], label: Optional[str] = None) -> Iterator[Unit]:
        """Reader -> Splitter for one input, in emission order."""
        label = self._resolve_label(in_fa, label)
        for rec in iter_records(in_fa, label, orphan_policy=self.options.orphan_policy):
            yield from self._split(rec)

    def append(
        self,
        in_fa: Union[PathLike, TextIO],
        sink: Union[PathLike, TextIO],
        label: Optional[str] = None,
    ) -> MergeStats:
        """
        Append every unit of `in_fa` to `sink`. A path sink is opened in append
        mode; it is never truncated here.
        """
        label = self._resolve_label(in_fa, label)
        if isinstance(sink, (str, os.PathLike)):
            if not hasattr(in_fa, "read"):
                # fail on an unreadable input before touching the output
                open_fasta(in_fa).close()  # type: ignore[arg-type]
            with _open_sink(sink) as fp:
                return self._append(in_fa, fp, label)
        if not hasattr(sink, "write"):
            raise TypeError("sink must be a path or a file-like with .write")
        return self._append(in_fa, sink, label)

    def merge(
        self,
        inputs: Iterable[PathLike],
        out_fa: PathLike,
        *,
        truncate: bool = True,
    ) -> MergeStats:
        """
        Write all `inputs`, in the order given, into `out_fa` through a single
        handle. With truncate=True the output is emptied first.
        """
        inputs = list(inputs)
        for p in inputs:
            open_fasta(p).close()

        out = os.fspath(out_fa)
        parent = os.path.dirname(os.path.abspath(out))
        try:
            os.makedirs(parent, exist_ok=True)
            if truncate:
                open(out, "w").close()
        except OSError as e:
            raise ConfigurationError(f"cannot write merged output {out!r}: {e}") from e
        if truncate and self._seen is not None:
            # a fresh output starts a fresh identifier set
            self._seen.clear()

        total = MergeStats()
        with _open_sink(out) as fp:
            for p in inputs:
                total += self._append(p, fp, self._resolve_label(p, None))
        logger.info(
            "Merged %d file(s) into %s: %d record(s), %d unit(s), %d split record(s)",
            total.files, out, total.records, total.units, total.split_records,
        )
        return total

    # ---------------------------
    # internals
    # ---------------------------

    def _resolve_label(self, in_fa, label: Optional[str]) -> str:
        if label is not None:
            return label
        if hasattr(in_fa, "read"):
            raise ConfigurationError("label is required when reading from a stream")
        return label_for(in_fa, self.options.label_mode)

    def _split(self, rec: Record) -> Iterator[Unit]:
        for unit in split_record(rec, self.options.maxlen):
            if self._seen is not None:
                oid = unit.output_id
                if oid in self._seen:
                    raise DuplicateIdentifierError(oid)
                self._seen.add(oid)
            yield unit

    def _append(self, in_fa, fp: TextIO, label: str) -> MergeStats:
        stats = MergeStats(files=1)
        width = self.options.line_width
        for rec in iter_records(in_fa, label, orphan_policy=self.options.orphan_policy):
            stats.records += 1
            stats.residues += len(rec)
            for unit in self._split(rec):
                write_unit(unit, fp, width)
                stats.units += 1
                if isinstance(unit, Chunk) and unit.part_index == 1:
                    stats.split_records += 1
        logger.info(
            "Appended %s as %r: %d record(s) -> %d unit(s)",
            getattr(in_fa, "name", in_fa), label, stats.records, stats.units,
        )
        return stats


def _open_sink(path: PathLike) -> TextIO:
    try:
        return open_append(path)
    except OSError as e:
        raise ConfigurationError(f"cannot append to {os.fspath(path)!r}: {e}") from e


def reheader_and_append(
    in_fa: PathLike,
    out_fa: PathLike,
    *,
    label: Optional[str] = None,
    **options,
) -> MergeStats:
    """One-shot: rename, split and append `in_fa` to `out_fa`."""
    return FastaMerger(ReheaderOptions(**options)).append(in_fa, out_fa, label=label)
