# magdb/runners/drep.py
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List, Sequence

from .base import ToolResult, require_file, run_tool

__all__ = ["DRepOptions", "run_drep", "ani_fraction"]


def ani_fraction(ani: int) -> str:
    """99 -> '0.99' (dRep -sa takes a fraction)."""
    if not 0 < ani <= 100:
        raise ValueError(f"ANI must be in (0, 100], got {ani!r}")
    return f"{ani / 100:g}"


@dataclass
class DRepOptions:
    # Required
    output_dir: str
    genome_list: str            # text file, one genome path per line
    ani: int                    # secondary-cluster ANI in percent

    threads: int = 1
    ignore_genome_quality: bool = True

    # dRep's plotting step fails on some inputs after dereplication is written
    tolerate_failure: bool = True

    extra_args: Sequence[str] = field(default_factory=tuple)
    exe: str = "dRep"

    @property
    def dereplicated_dir(self) -> str:
        return os.path.join(self.output_dir, "dereplicated_genomes")

    def build_cmd(self) -> List[str]:
        cmd: List[str] = [
            self.exe, "dereplicate", self.output_dir,
            "--genomes", self.genome_list,
            "-p", str(self.threads),
        ]
        if self.ignore_genome_quality:
            cmd.append("--ignoreGenomeQuality")
        cmd.extend(["-sa", ani_fraction(self.ani)])
        cmd.extend(self.extra_args)
        return cmd


def run_drep(opts: DRepOptions) -> ToolResult:
    require_file(opts.genome_list, "dRep genome list")
    os.makedirs(opts.output_dir, exist_ok=True)
    return run_tool(opts.build_cmd(), tolerate_failure=opts.tolerate_failure)
