"""JSON export of a run report.

Why JSON:
- Lets CI jobs or monitoring scripts consume the outcome of a run without
  scraping console output.
"""

from __future__ import annotations

import json
from pathlib import Path

from core.domain.models import DiagnosticReport


def export_report_json(*, report: DiagnosticReport, output_path: Path) -> Path:
    """Write `DiagnosticReport` as UTF-8 JSON with a stable layout."""

    output_path.parent.mkdir(parents=True, exist_ok=True)
    payload = report.model_dump(mode="json")
    output_path.write_text(
        json.dumps(payload, ensure_ascii=False, indent=2, sort_keys=True) + "\n",
        encoding="utf-8",
    )
    return output_path
