# magdb/runners/gem.py
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List, Sequence

from .base import ToolResult, require_file, run_tool

__all__ = ["GemIndexerOptions", "run_gem_indexer"]


@dataclass
class GemIndexerOptions:
    # Required
    input_fasta: str
    output_prefix: str          # gem-indexer writes <prefix>.gem

    threads: int = 1

    extra_args: Sequence[str] = field(default_factory=tuple)
    exe: str = "gem-indexer"

    @property
    def index_path(self) -> str:
        return self.output_prefix + ".gem"

    def build_cmd(self) -> List[str]:
        cmd: List[str] = [
            self.exe,
            "-i", self.input_fasta,
            "-o", self.output_prefix,
            "-t", str(self.threads),
        ]
        cmd.extend(self.extra_args)
        return cmd


def run_gem_indexer(opts: GemIndexerOptions) -> ToolResult:
    require_file(opts.input_fasta, "Merged reference FASTA")
    out_dir = os.path.dirname(os.path.abspath(opts.output_prefix))
    os.makedirs(out_dir, exist_ok=True)
    return run_tool(opts.build_cmd())
