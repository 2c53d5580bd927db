#!/usr/bin/env python3
"""
Merge FASTA files into one reference, tagging every record with its source
file and splitting records longer than --maxlen.

Example:
  ./reheader_fasta.py \
      --output ref95/ref95.nr.fa \
      --maxlen 30000000 \
      drep95/dereplicated_genomes/*.fa Eukaryote/*.fa

Headers become '>g1|ctg1' (or '>g1|ctg1_part1', '_part2', ... when split).
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import List, Optional

from magdb.errors import MagdbError
from magdb.log import configure_logging
from magdb.merge import DEFAULT_MAXLEN, LABEL_MODES, FastaMerger, ReheaderOptions
from magdb.sequences.fasta import ORPHAN_POLICIES

logger = logging.getLogger("reheader_fasta")


def parse_args(argv: List[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        description="Rename FASTA records to <file>|<id>, split oversized records, append to one merged FASTA.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    p.add_argument("inputs", nargs="+", help="Input FASTA files, merged in the order given.")
    p.add_argument("--output", required=True, help="Merged FASTA to write.")
    p.add_argument("--append", action="store_true", help="Append to --output instead of truncating it first.")
    p.add_argument("--maxlen", type=int, default=DEFAULT_MAXLEN, help="Maximum residues per output record.")
    p.add_argument("--line-width", type=int, default=60, help="Sequence line width.")
    p.add_argument("--label-mode", choices=LABEL_MODES, default="stem",
                   help="Provenance prefix: file name without extension (stem) or full file name (name).")
    p.add_argument("--orphan-lines", choices=ORPHAN_POLICIES, default="error",
                   help="Sequence lines before the first header: fail, or skip with a warning.")
    p.add_argument("--check-unique", action="store_true", help="Fail on a repeated output identifier.")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
    return p.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    configure_logging(verbose=args.verbose)

    for path in args.inputs:
        if not os.path.isfile(path):
            print(f"error: file not found: {path}", file=sys.stderr)
            return 2

    try:
        opts = ReheaderOptions(
            maxlen=args.maxlen,
            line_width=args.line_width,
            orphan_policy=args.orphan_lines,
            check_unique=args.check_unique,
            label_mode=args.label_mode,
        )
        stats = FastaMerger(opts).merge(args.inputs, args.output, truncate=not args.append)
    except MagdbError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    logger.info("Wrote %d record(s) (%d residues) to %s", stats.units, stats.residues, args.output)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
