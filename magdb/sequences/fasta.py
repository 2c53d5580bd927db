# magdb/sequences/fasta.py
from __future__ import annotations

import io
import logging
import os
from typing import Iterator, List, Optional, TextIO, Union

from ..errors import ConfigurationError, MalformedFastaError
from ..models.record import Record

__all__ = ["iter_records", "open_fasta", "ORPHAN_POLICIES"]

logger = logging.getLogger(__name__)

ORPHAN_POLICIES = ("error", "warn")

Source = Union[str, "os.PathLike[str]", TextIO]

# Input and output share this codec so undecodable bytes pass through unchanged.
ENCODING = "utf-8"
ERRORS = "surrogateescape"


def open_fasta(path: Union[str, "os.PathLike[str]"]) -> TextIO:
    """
    Open a FASTA file for reading. Lines are split on LF only, so a stray CR
    stays inside its line and is removed by the reader instead of starting a
    new one.
    """
    p = os.fspath(path)
    if not os.path.isfile(p):
        raise FileNotFoundError(f"FASTA input not found: {p!r}")
    if not os.access(p, os.R_OK):
        raise ConfigurationError(f"FASTA input not readable: {p!r}")
    return open(p, "rt", encoding=ENCODING, errors=ERRORS, newline="\n")


def _strip_terminator(line: str) -> str:
    return line.rstrip("\n").rstrip("\r")


def iter_records(
    source: Source,
    source_file: str,
    *,
    orphan_policy: str = "error",
) -> Iterator[Record]:
    """
    Lazily yield Records from a FASTA path or open text handle.

    A '>' line starts a new record and flushes the previous one. A header with
    no sequence lines yields a Record with an empty sequence. Sequence lines
    before the first header are handled by `orphan_policy`:
      'error' : raise MalformedFastaError at the first such line
      'warn'  : drop them and log one warning with the count
    """
    if orphan_policy not in ORPHAN_POLICIES:
        raise ConfigurationError(
            f"orphan_policy must be one of {ORPHAN_POLICIES}, got {orphan_policy!r}"
        )

    if isinstance(source, io.IOBase) or hasattr(source, "read"):
        name = getattr(source, "name", "<stream>")
        return _parse(source, source_file, str(name), orphan_policy)  # type: ignore[arg-type]
    return _parse_path(source, source_file, orphan_policy)


def _parse_path(path, source_file: str, orphan_policy: str) -> Iterator[Record]:
    with open_fasta(path) as fh:
        yield from _parse(fh, source_file, os.fspath(path), orphan_policy)


def _parse(fh: TextIO, source_file: str, name: str, orphan_policy: str) -> Iterator[Record]:
    header: Optional[str] = None
    chunks: List[str] = []
    orphans = 0

    for line_no, raw in enumerate(fh, start=1):
        line = _strip_terminator(raw)
        if line.startswith(">"):
            if header is not None:
                yield Record(header, "".join(chunks), source_file)
            header = line[1:]
            chunks = []
            continue

        line = line.replace("\r", "")
        if not line.strip():
            continue
        if header is None:
            if orphan_policy == "error":
                raise MalformedFastaError(name, line_no, "sequence data before first header")
            orphans += 1
            continue
        chunks.append(line)

    if header is not None:
        yield Record(header, "".join(chunks), source_file)

    if orphans:
        logger.warning("%s: skipped %d sequence line(s) before first header", name, orphans)
