"""Collected messages of a node-local run and where they are written."""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class LogCollection:
    """Informational, warning and error messages gathered during a run."""

    info: list[str] = field(default_factory=list)
    warn: list[str] = field(default_factory=list)
    error: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, list[str]]:
        """Return the non-empty message lists keyed by level."""
        levels = {"info": self.info, "warn": self.warn, "error": self.error}
        return {level: list(messages) for level, messages in levels.items() if messages}


def write_result(data: str | bytes, output_file_path: str = "") -> None:
    """Write data to output_file_path, or to standard output when it is empty."""
    if isinstance(data, bytes):
        text = data.decode("utf-8")
    else:
        text = data

    if not output_file_path:
        sys.stdout.write(text)
        if not text.endswith("\n"):
            sys.stdout.write("\n")
        sys.stdout.flush()
        return

    path = Path(output_file_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")