"""Report file naming, writing and cleanup."""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

from relscope_report.base import BaseWriter
from relscope_report.json_writer import JsonWriter
from relscope_report.markdown import MarkdownWriter

if TYPE_CHECKING:
    from relscope_core.models import Report

logger = logging.getLogger(__name__)

_UNSAFE_FILENAME_RE = re.compile(r"[^A-Za-z0-9._-]+")
_GENERATED_NAME_RE = re.compile(r"^[a-z-]+-report-.+\.(json|md)$")


def report_basename(kind: str, identifier: str, now: datetime | None = None) -> str:
    """``build-report-20250101.1-2025-01-02T10-30-00``; timestamp in UTC."""
    stamp = (now or datetime.now(timezone.utc)).strftime("%Y-%m-%dT%H-%M-%S")
    safe_identifier = _UNSAFE_FILENAME_RE.sub("_", identifier.strip()) or "report"
    return f"{kind}-report-{safe_identifier}-{stamp}"


def write_report_files(
    report: Report,
    output_dir: str | Path,
    identifier: str,
    writers: tuple[BaseWriter, ...] | None = None,
    now: datetime | None = None,
) -> tuple[Path, ...]:
    """Write one sibling file per writer; defaults to ``(json_path, md_path)``."""
    directory = Path(output_dir)
    directory.mkdir(parents=True, exist_ok=True)
    basename = report_basename(report.kind, identifier, now)

    paths = []
    for writer in writers or (JsonWriter(), MarkdownWriter()):
        path = writer.write(report, directory / f"{basename}{writer.suffix}")
        logger.info("Wrote %s", path)
        paths.append(path)
    return tuple(paths)


def list_reports(output_dir: str | Path) -> list[Path]:
    directory = Path(output_dir)
    if not directory.is_dir():
        return []
    return sorted(p for p in directory.iterdir() if p.is_file() and _GENERATED_NAME_RE.match(p.name))


def cleanup_reports(output_dir: str | Path) -> list[Path]:
    """Delete generated report files; anything else in the directory is left alone."""
    removed = []
    for path in list_reports(output_dir):
        path.unlink()
        logger.debug("Removed %s", path)
        removed.append(path)
    return removed
