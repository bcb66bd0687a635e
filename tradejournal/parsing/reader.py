from __future__ import annotations

import csv
import io
from dataclasses import dataclass, field
from typing import Dict, List


@dataclass
class ValidationReport:
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


@dataclass
class TokenizedStatement:
    fields: List[str]
    rows: List[Dict[str, str]]
    report: ValidationReport


def _is_blank(record: List[str]) -> bool:
    return not any(cell.strip() for cell in record)


def _dedupe(headers: List[str], report: ValidationReport) -> List[str]:
    # "Price", "Price" -> "Price", "Price.1"
    seen: Dict[str, int] = {}
    out: List[str] = []
    for h in headers:
        if h in seen:
            seen[h] += 1
            out.append(f"{h}.{seen[h]}")
            report.warnings.append(f"Duplicate column {h!r} renamed to {out[-1]!r}")
        else:
            seen[h] = 0
            out.append(h)
    return out


def read_statement(text: str) -> TokenizedStatement:
    """Tokenize CSV text into rows keyed by trimmed header name.

    The first non-blank line is the header. Every cell stays a trimmed
    string and blank rows are skipped. Ragged rows are kept and reported:
    extra cells are dropped, missing cells become empty strings. Malformed
    quoting stops tokenization; rows read before it are kept.
    """
    report = ValidationReport()
    text = (text or "").lstrip("\ufeff")

    reader = csv.reader(io.StringIO(text, newline=""), strict=True)
    records: List[List[str]] = []
    try:
        for record in reader:
            if not _is_blank(record):
                records.append(record)
    except csv.Error as e:
        report.errors.append(f"Line {reader.line_num}: {e}")

    if not records:
        return TokenizedStatement(fields=[], rows=[], report=report)

    fields = _dedupe([h.strip() for h in records[0]], report)
    width = len(fields)
    rows: List[Dict[str, str]] = []
    for pos, record in enumerate(records[1:], start=1):
        if len(record) > width:
            report.errors.append(f"Row {pos}: Too many fields")
            record = record[:width]
        elif len(record) < width:
            report.errors.append(f"Row {pos}: Too few fields")
            record = record + [""] * (width - len(record))
        rows.append({name: cell.strip() for name, cell in zip(fields, record)})

    return TokenizedStatement(fields=fields, rows=rows, report=report)
