# magdb/formats/quality_report.py
from __future__ import annotations

import io
import os
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, TextIO, Union

from ..errors import MalformedReportError

__all__ = [
    "QualityRecord",
    "decode",
    "select_high_quality",
    "write_name_list",
    "MIN_COMPLETENESS",
    "MAX_CONTAMINATION",
]

# Defaults for a "high quality" MAG
MIN_COMPLETENESS = 80.0
MAX_CONTAMINATION = 10.0

NAME_COL = "Name"
COMPLETENESS_COL = "Completeness"
CONTAMINATION_COL = "Contamination"


@dataclass
class QualityRecord:
    name: str
    completeness: float
    contamination: float
    extra: Dict[str, str] = field(default_factory=dict)


Source = Union[str, "os.PathLike[str]", TextIO, Sequence[str]]   # path | text blob | file-like | lines
Sink   = Union[str, "os.PathLike[str]", TextIO]


def _lines(source: Source) -> Iterator[str]:
    """
    Yield lines from:
      - path (existing file),
      - text blob (str that is not a path),
      - file-like,
      - sequence[str]
    """
    if isinstance(source, os.PathLike) or (isinstance(source, str) and os.path.isfile(source)):
        with open(os.fspath(source), "r", encoding="utf-8", errors="replace") as f:
            yield from f
    elif isinstance(source, str):
        yield from io.StringIO(source)
    else:
        yield from source


def _float(value: str, col: str, line_no: int) -> float:
    try:
        return float(value)
    except ValueError:
        raise MalformedReportError(f"line {line_no}: {col} is not a number: {value!r}") from None


def decode(source: Source) -> Iterator[QualityRecord]:
    """
    Decode a CheckM2 quality_report.tsv. Columns are located by header name so
    extra or reordered columns are tolerated; the remaining ones land in
    `extra`.
    """
    header: Optional[List[str]] = None
    for line_no, ln in enumerate(_lines(source), start=1):
        s = ln.rstrip("\r\n")
        if not s.strip():
            continue
        parts = s.split("\t")
        if header is None:
            header = parts
            missing = [c for c in (NAME_COL, COMPLETENESS_COL, CONTAMINATION_COL) if c not in header]
            if missing:
                raise MalformedReportError(f"quality report lacks column(s): {', '.join(missing)}")
            i_name = header.index(NAME_COL)
            i_comp = header.index(COMPLETENESS_COL)
            i_cont = header.index(CONTAMINATION_COL)
            continue
        if len(parts) < len(header):
            parts += [""] * (len(header) - len(parts))
        yield QualityRecord(
            name=parts[i_name],
            completeness=_float(parts[i_comp], COMPLETENESS_COL, line_no),
            contamination=_float(parts[i_cont], CONTAMINATION_COL, line_no),
            extra={
                k: v for i, (k, v) in enumerate(zip(header, parts))
                if i not in (i_name, i_comp, i_cont)
            },
        )


def select_high_quality(
    records: Iterable[QualityRecord],
    min_completeness: float = MIN_COMPLETENESS,
    max_contamination: float = MAX_CONTAMINATION,
) -> Iterator[str]:
    for r in records:
        if r.completeness >= min_completeness and r.contamination <= max_contamination:
            yield r.name


def write_name_list(names: Iterable[str], sink: Sink) -> int:
    n = 0
    if isinstance(sink, (str, os.PathLike)):
        with open(os.fspath(sink), "w", encoding="utf-8") as fp:
            return write_name_list(names, fp)
    for name in names:
        sink.write(name + "\n")
        n += 1
    return n
