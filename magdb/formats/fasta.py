# magdb/formats/fasta.py
from __future__ import annotations

import os
from typing import Iterable, Iterator, Optional, TextIO, Union

from ..models.record import EmittedUnit
from ..sequences.fasta import ENCODING, ERRORS
from ..sequences.split import check_positive

__all__ = ["DEFAULT_LINE_WIDTH", "iter_lines", "write_unit", "encode", "open_append"]

DEFAULT_LINE_WIDTH = 60

Sink = Optional[Union[str, "os.PathLike[str]", TextIO]]   # path (appended) | file-like | None (return string)


def open_append(path: Union[str, "os.PathLike[str]"]) -> TextIO:
    """Open `path` for appending with LF terminators regardless of platform."""
    return open(os.fspath(path), "a", encoding=ENCODING, errors=ERRORS, newline="\n")


def iter_lines(unit: EmittedUnit, line_width: int = DEFAULT_LINE_WIDTH) -> Iterator[str]:
    """
    Yield the text lines (with terminators) for one unit: the header, then the
    residues wrapped at `line_width`. Empty residues produce the header only.
    """
    yield f">{unit.output_id}\n"
    res = unit.residues
    for i in range(0, len(res), line_width):
        yield res[i:i + line_width] + "\n"


def write_unit(unit: EmittedUnit, sink: TextIO, line_width: int = DEFAULT_LINE_WIDTH) -> None:
    sink.writelines(iter_lines(unit, line_width))


def encode(
    units: Iterable[EmittedUnit],
    *,
    sink: Sink = None,
    line_width: int = DEFAULT_LINE_WIDTH,
) -> Optional[str]:
    """
    Write units as FASTA.

    sink=None returns the text. A path is opened in append mode and never
    truncated. A file-like is written to unit by unit, nothing is buffered
    beyond the current unit.
    """
    check_positive("line_width", line_width)

    if sink is None:
        return "".join(line for u in units for line in iter_lines(u, line_width))
    if isinstance(sink, (str, os.PathLike)):
        with open_append(sink) as fp:
            for u in units:
                write_unit(u, fp, line_width)
        return None
    if not hasattr(sink, "write"):
        raise TypeError("sink must be a path, a file-like with .write, or None")
    for u in units:
        write_unit(u, sink, line_width)
    return None
