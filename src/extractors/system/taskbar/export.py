"""Flat export of collected taskbar usage records (JSON / CSV)."""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Any, Dict, List, Mapping, TextIO

from core.logging import get_logger

from .models import ApplicationIdentifier, ApplicationUsageRecord

LOGGER = get_logger("extractors.system.taskbar.export")

CSV_COLUMNS = [
    "identifier_type",
    "identifier",
    "badge_update_count",
    "launch_count",
    "switch_count",
    "jump_view_click_count",
]


def records_to_rows(
    records: Mapping[ApplicationIdentifier, ApplicationUsageRecord],
) -> List[Dict[str, Any]]:
    """Flatten records into dicts, sorted by identifier type then identifier."""
    rows = [record.to_dict() for record in records.values()]
    rows.sort(key=lambda row: (row["identifier_type"], row["identifier"]))
    return rows


def dump_json(records: Mapping[ApplicationIdentifier, ApplicationUsageRecord], handle: TextIO) -> None:
    json.dump(records_to_rows(records), handle, indent=2, ensure_ascii=False)
    handle.write("\n")


def dump_csv(records: Mapping[ApplicationIdentifier, ApplicationUsageRecord], handle: TextIO) -> None:
    writer = csv.DictWriter(handle, fieldnames=CSV_COLUMNS, lineterminator="\n")
    writer.writeheader()
    writer.writerows(records_to_rows(records))


def write_json(records: Mapping[ApplicationIdentifier, ApplicationUsageRecord], path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as handle:
        dump_json(records, handle)
    LOGGER.info("Wrote %d record(s) to %s", len(records), path)
    return path


def write_csv(records: Mapping[ApplicationIdentifier, ApplicationUsageRecord], path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8", newline="") as handle:
        dump_csv(records, handle)
    LOGGER.info("Wrote %d record(s) to %s", len(records), path)
    return path
