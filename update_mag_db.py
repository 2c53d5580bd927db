#!/usr/bin/env python3
"""
update_mag_db.py

Workflow:
  1) Archive <base_dir>/new_MAGs/*.fa into all_MAGs/ with a date suffix.
  2) CheckM2 over all_MAGs/; keep MAGs with completeness >= 80 and contamination <= 10.
  3) dRep at each ANI level (default 99 and 95); GTDB-Tk on each dereplicated set.
  4) Archive new eukaryotic MAGs.
  5) Merge dereplicated + eukaryotic genomes into ref<ANI>/ref<ANI>.nr.fa
     (records renamed <file>|<id>, split above --maxlen) and build GEM indexes
     under <db_dir>/refmag.

Exit codes: 0 ok, 1 external tool failure or malformed input, 2 configuration error.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from magdb.errors import ConfigurationError, MagdbError
from magdb.log import configure_logging
from magdb.merge import DEFAULT_MAXLEN, LABEL_MODES
from magdb.pipeline import STEPS, PipelineConfig, run_pipeline

logger = logging.getLogger("update_mag_db")


def parse_args(argv: List[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        description="Update the MAG database: QC, dereplicate, classify, rebuild merged references and GEM indexes.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    p.add_argument("--base-dir", required=True, type=Path, help="Pipeline working directory (all_MAGs, checkm, drep*, ref*).")
    p.add_argument("--db-dir", required=True, type=Path, help="Database directory (CheckM2_database, gtdb/, refmag/).")
    p.add_argument("--threads", type=int, default=192, help="Threads for every external tool.")
    p.add_argument("--date-suffix", default=None, help="Suffix for archived MAG names (default: today, YYYYMMDD).")
    p.add_argument("--ani", type=int, action="append", default=None,
                   help="ANI level in percent (repeatable; default: 99 and 95).")
    p.add_argument("--min-completeness", type=float, default=80.0, help="CheckM2 completeness lower bound.")
    p.add_argument("--max-contamination", type=float, default=10.0, help="CheckM2 contamination upper bound.")
    p.add_argument("--maxlen", type=int, default=DEFAULT_MAXLEN, help="Maximum residues per merged reference record.")
    p.add_argument("--line-width", type=int, default=60, help="Merged reference line width.")
    p.add_argument("--label-mode", choices=LABEL_MODES, default="stem", help="Provenance prefix form.")
    p.add_argument("--check-unique", action="store_true", help="Fail on a repeated reference identifier.")
    p.add_argument("--checkm2-env", default="checkm2", help="Conda env for CheckM2 ('' to run checkm2 from PATH).")
    p.add_argument("--gtdb-release", default="release220", help="GTDB-Tk data release under <db_dir>/gtdb.")
    p.add_argument("--steps", nargs="+", choices=STEPS, default=None, help="Run only these steps.")
    p.add_argument("--no-index", action="store_true", help="Merge references but skip gem-indexer.")
    p.add_argument("--log-file", default=None, help="Also write the log here.")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging (includes tool stdout).")
    return p.parse_args(argv)


def build_config(args: argparse.Namespace) -> PipelineConfig:
    kwargs = dict(
        base_dir=args.base_dir,
        db_dir=args.db_dir,
        threads=args.threads,
        min_completeness=args.min_completeness,
        max_contamination=args.max_contamination,
        maxlen=args.maxlen,
        line_width=args.line_width,
        label_mode=args.label_mode,
        check_unique=args.check_unique,
        checkm2_env=args.checkm2_env or None,
        gtdb_release=args.gtdb_release,
    )
    if args.date_suffix:
        kwargs["date_suffix"] = args.date_suffix
    if args.ani:
        kwargs["ani_levels"] = tuple(args.ani)
    return PipelineConfig(**kwargs)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    configure_logging(verbose=args.verbose, log_file=args.log_file)

    try:
        cfg = build_config(args)
        run_pipeline(cfg, steps=args.steps, index=not args.no_index)
    except (ConfigurationError, FileNotFoundError) as e:
        logger.error("%s", e)
        return 2
    except MagdbError as e:
        # ToolError, malformed FASTA or report
        logger.error("%s", e)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
