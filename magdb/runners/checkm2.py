# magdb/runners/checkm2.py
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from .base import ToolResult, require_dir, run_tool

__all__ = ["CheckM2Options", "run_checkm2", "QUALITY_REPORT"]

QUALITY_REPORT = "quality_report.tsv"


@dataclass
class CheckM2Options:
    # Required
    input_dir: str
    output_dir: str

    threads: int = 1
    extension: str = "fa"
    force: bool = True

    # CHECKM2DB must point at the database directory, not the .dmnd file
    database_dir: Optional[str] = None

    # Run inside a conda environment via `conda run -n <env>` when set
    conda_env: Optional[str] = None

    extra_args: Sequence[str] = field(default_factory=tuple)
    exe: str = "checkm2"

    validate_inputs: bool = True

    @property
    def report_path(self) -> str:
        return os.path.join(self.output_dir, QUALITY_REPORT)

    def build_cmd(self) -> List[str]:
        cmd: List[str] = []
        if self.conda_env:
            cmd.extend(["conda", "run", "-n", self.conda_env])
        cmd.extend([
            self.exe, "predict",
            "--threads", str(self.threads),
            "--input", self.input_dir,
            "--output-directory", self.output_dir,
            "-x", self.extension,
        ])
        if self.force:
            cmd.append("--force")
        cmd.extend(self.extra_args)
        return cmd

    def build_env(self) -> dict:
        env = os.environ.copy()
        if self.database_dir:
            env["CHECKM2DB"] = self.database_dir
        return env


def run_checkm2(opts: CheckM2Options) -> ToolResult:
    if opts.validate_inputs:
        require_dir(opts.input_dir, "CheckM2 input")
        if opts.database_dir:
            require_dir(opts.database_dir, "CHECKM2DB")
    os.makedirs(opts.output_dir, exist_ok=True)
    return run_tool(opts.build_cmd(), env=opts.build_env())
