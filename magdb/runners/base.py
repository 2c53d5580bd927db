# magdb/runners/base.py
from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
import threading
from collections import deque
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from ..errors import ToolError

__all__ = ["ToolResult", "run_tool", "require_file", "require_dir", "STDERR_TAIL_LINES"]

logger = logging.getLogger(__name__)

STDERR_TAIL_LINES = 200


@dataclass
class ToolResult:
    cmd: List[str]
    returncode: int
    stderr_tail: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


# ---------------------------
# Pre-flight validation
# ---------------------------

def require_file(path: Optional[str], what: str) -> None:
    if not (path and os.path.isfile(path)):
        raise FileNotFoundError(f"{what} not found: {path!r}")


def require_dir(path: Optional[str], what: str) -> None:
    if not (path and os.path.isdir(path)):
        raise FileNotFoundError(f"{what} directory not found: {path!r}")


def _require_exe(exe: str) -> None:
    if not shutil.which(exe):
        raise FileNotFoundError(f"Executable {exe!r} not found on PATH.")


# ---------------------------
# Runner
# ---------------------------

def run_tool(
    cmd: Sequence[str],
    *,
    env: Optional[Dict[str, str]] = None,
    cwd: Optional[str] = None,
    tolerate_failure: bool = False,
) -> ToolResult:
    """
    Run an external tool to completion.

    stdout is relayed to the log at DEBUG; the last STDERR_TAIL_LINES lines of
    stderr are kept for the error message. A non-zero exit raises ToolError
    unless `tolerate_failure` is set, in which case the failed ToolResult is
    returned and a warning logged.
    """
    cmd = [str(c) for c in cmd]
    _require_exe(cmd[0])
    logger.info("Running: %s", shlex.join(cmd))

    stderr_tail: deque[str] = deque(maxlen=STDERR_TAIL_LINES)

    proc = subprocess.Popen(
        cmd,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        env=env,
        cwd=cwd,
        bufsize=1,   # line-buffered
    )

    assert proc.stdout is not None
    assert proc.stderr is not None

    def _stderr_worker(stream, tail: deque[str]):
        with stream:
            for line in stream:
                tail.append(line.rstrip("\n"))

    t_err = threading.Thread(target=_stderr_worker, args=(proc.stderr, stderr_tail), daemon=True)
    t_err.start()

    try:
        with proc.stdout:
            for line in proc.stdout:
                logger.debug("[%s] %s", os.path.basename(cmd[0]), line.rstrip("\n"))
    except BaseException:
        proc.kill()
        proc.wait()
        raise

    rc = proc.wait()
    t_err.join(timeout=2.0)

    result = ToolResult(cmd=cmd, returncode=rc, stderr_tail="\n".join(stderr_tail))
    if rc != 0:
        if not tolerate_failure:
            raise ToolError(cmd, rc, result.stderr_tail)
        logger.warning(
            "%s exited with code %d; continuing (failure tolerated)",
            os.path.basename(cmd[0]), rc,
        )
    return result
