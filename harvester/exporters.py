"""
Record Exporters
JSON, JSON Lines and CSV writers for harvested records.
"""

import csv
import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List

from .utils import flatten_record

logger = logging.getLogger(__name__)

FORMATS = ('json', 'jsonl', 'csv')


def export_json(records: Iterable[Dict[str, Any]], filepath: str) -> str:
    """Export records as one JSON array."""
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)
    data = list(records)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
    logger.info(f"[EXPORT] {len(data)} records → {path}")
    return str(path.absolute())


def export_jsonl(records: Iterable[Dict[str, Any]], filepath: str) -> str:
    """Export records as JSONL (one record per line)."""
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)
    count = 0
    with open(path, 'w', encoding='utf-8') as f:
        for record in records:
            f.write(json.dumps(record, ensure_ascii=False) + '\n')
            count += 1
    logger.info(f"[EXPORT] {count} records → {path}")
    return str(path.absolute())


def export_csv(records: Iterable[Dict[str, Any]], filepath: str) -> str:
    """
    Export records to CSV.

    Nested objects are flattened to dotted column names; the header is the
    union of every record's columns in first-seen order.
    """
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)

    rows = [flatten_record(r) for r in records]
    fieldnames: List[str] = []
    seen = set()
    for row in rows:
        for key in row:
            if key not in seen:
                seen.add(key)
                fieldnames.append(key)

    with open(path, 'w', newline='', encoding='utf-8') as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()
        writer.writerows(rows)
    logger.info(f"[EXPORT] {len(rows)} records → {path}")
    return str(path.absolute())


def export(records: Iterable[Dict[str, Any]], filepath: str, fmt: str) -> str:
    """Dispatch on format name."""
    writers = {
        'json': export_json,
        'jsonl': export_jsonl,
        'csv': export_csv,
    }
    if fmt not in writers:
        raise ValueError(f"Unknown export format {fmt!r}, expected one of {FORMATS}")
    return writers[fmt](records, filepath)
