"""Structured JSON rendering of a report."""

from __future__ import annotations

import dataclasses
import json
from typing import TYPE_CHECKING

from relscope_report.base import BaseWriter

if TYPE_CHECKING:
    from relscope_core.models import Report


class JsonWriter(BaseWriter):
    suffix = ".json"

    def to_dict(self, report: Report) -> dict:
        # asdict() skips the ClassVar ``kind``, so it is added explicitly.
        return {"kind": report.kind, **dataclasses.asdict(report)}

    def render(self, report: Report) -> str:
        return json.dumps(self.to_dict(report), indent=2, ensure_ascii=False)
