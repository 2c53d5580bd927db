# magdb/runners/gtdbtk.py
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from .base import ToolResult, require_dir, run_tool

__all__ = ["GtdbtkOptions", "run_gtdbtk"]


@dataclass
class GtdbtkOptions:
    # Required
    genome_dir: str
    output_dir: str

    cpus: int = 1
    extension: str = "fa"
    skip_ani_screen: bool = True

    # exported as GTDBTK_DATA_PATH
    data_path: Optional[str] = None

    extra_args: Sequence[str] = field(default_factory=tuple)
    exe: str = "gtdbtk"

    def build_cmd(self) -> List[str]:
        cmd: List[str] = [self.exe, "classify_wf"]
        if self.skip_ani_screen:
            cmd.append("--skip_ani_screen")
        cmd.extend([
            "--genome_dir", self.genome_dir,
            "--out_dir", self.output_dir,
            "-x", self.extension,
            "--cpus", str(self.cpus),
        ])
        cmd.extend(self.extra_args)
        return cmd

    def build_env(self) -> dict:
        env = os.environ.copy()
        if self.data_path:
            env["GTDBTK_DATA_PATH"] = self.data_path
        return env


def run_gtdbtk(opts: GtdbtkOptions) -> ToolResult:
    require_dir(opts.genome_dir, "GTDB-Tk genome")
    return run_tool(opts.build_cmd(), env=opts.build_env())
