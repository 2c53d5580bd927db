# magdb/errors.py
from __future__ import annotations

import shlex

__all__ = [
    "MagdbError",
    "ConfigurationError",
    "MalformedFastaError",
    "MalformedReportError",
    "DuplicateIdentifierError",
    "ToolError",
]


class MagdbError(Exception):
    """Base class for errors raised by magdb."""


class ConfigurationError(MagdbError, ValueError):
    """Invalid option value or unusable path. Fatal; never retried."""


class MalformedFastaError(MagdbError, ValueError):
    def __init__(self, path: str, line_no: int, message: str):
        self.path = path
        self.line_no = line_no
        super().__init__(f"{path}:{line_no}: {message}")


class MalformedReportError(MagdbError, ValueError):
    """Quality report is missing required columns or holds non-numeric values."""


class DuplicateIdentifierError(MagdbError, ValueError):
    def __init__(self, output_id: str):
        self.output_id = output_id
        super().__init__(f"duplicate output identifier: {output_id!r}")


class ToolError(MagdbError, RuntimeError):
    """An external tool exited with a non-zero status."""

    def __init__(self, cmd, returncode: int, stderr_tail: str = ""):
        self.cmd = list(cmd)
        self.returncode = returncode
        self.stderr_tail = stderr_tail
        super().__init__(
            f"{self.cmd[0]} exited with code {returncode}.\n"
            f"Command: {shlex.join(self.cmd)}\n"
            f"stderr:\n{stderr_tail or '<empty>'}"
        )
