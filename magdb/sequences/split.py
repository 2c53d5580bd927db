# magdb/sequences/split.py
from __future__ import annotations

from typing import Iterator, Union

from ..errors import ConfigurationError
from ..models.record import Chunk, Record

__all__ = ["split_record", "check_positive"]


def check_positive(name: str, value: object) -> int:
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ConfigurationError(f"{name} must be a positive integer, got {value!r}")
    return value


def split_record(record: Record, maxlen: int) -> Iterator[Union[Record, Chunk]]:
    """
    Yield `record` unchanged when it fits in `maxlen` residues (empty records
    included), otherwise tile it into Chunks of exactly `maxlen` residues with
    the remainder in the last one. No overlap, no padding.
    """
    check_positive("maxlen", maxlen)
    seq = record.sequence
    L = len(seq)
    if L <= maxlen:
        yield record
        return

    part = 1
    for start in range(0, L, maxlen):
        yield Chunk(record, part, seq[start:start + maxlen])
        part += 1
