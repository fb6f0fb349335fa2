"""Abstract report writer interface.

A writer turns one assembled report into the text of one output file. The
CLI depends on BaseWriter, not on a concrete format, so a report is always
written as a set of sibling files, one per registered writer.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from relscope_core.models import Report


class BaseWriter(ABC):
    """Renders a report to a single text format."""

    suffix: str = ""

    @abstractmethod
    def render(self, report: Report) -> str:
        """Return the full file contents for the report."""

    def write(self, report: Report, path: Path) -> Path:
        """Render the report and write it to ``path`` as UTF-8."""
        path = Path(path)
        path.write_text(self.render(report), encoding="utf-8")
        return path
