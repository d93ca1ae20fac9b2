"""
Category feed reader.

The catalog is maintained by the business side as spreadsheet exports
(CSV). Exports carry a UTF-8 BOM and, for numeric-looking codes, the
``="0101"`` wrapper spreadsheets use to keep leading zeros. Columns are
matched by header name, never by position.
"""

import csv
from pathlib import Path
from typing import Iterable, Optional

import structlog
from pydantic import ValidationError as PydanticValidationError

from objection_analyzer.models.catalog_models import FeedRow

logger = structlog.get_logger(__name__)

BOM = "\ufeff"

HEADER_ALIASES: dict[str, tuple[str, ...]] = {
    "code": ("code", "编号"),
    "big_code": ("big_code", "bigcode", "大类编号"),
    "big_name": ("big_name", "bigname", "大类"),
    "small_code": ("small_code", "smallcode", "小类编号"),
    "small_title": ("small_title", "smalltitle", "小类标题"),
}

_ALIAS_TO_FIELD = {alias: field for field, aliases in HEADER_ALIASES.items() for alias in aliases}


def normalize_header(name: str) -> str:
    """Strip BOM, quotes, '=' and whitespace; lowercase ASCII letters."""
    return name.replace(BOM, "").replace('"', "").replace("=", "").strip().lower()


def clean_cell(value: Optional[str]) -> str:
    """
    Clean one cell value.

    Removes the BOM, surrounding whitespace, one pair of surrounding
    quotes and the spreadsheet ``="..."`` text wrapper.

    Examples:
        >>> clean_cell('="0101"')
        '0101'
        >>> clean_cell(' "Billing" ')
        'Billing'
    """
    if value is None:
        return ""
    text = value.replace(BOM, "").strip()
    if len(text) >= 2 and text.startswith('"') and text.endswith('"'):
        text = text[1:-1].strip()
    if text.startswith('="'):
        text = text[2:]
        if text.endswith('"'):
            text = text[:-1]
        text = text.strip()
    return text


def discover_feed_files(directory: str | Path, pattern: str = "*.csv") -> list[Path]:
    """Feed files in a directory, sorted by name. Missing directory yields []."""
    root = Path(directory)
    if not root.is_dir():
        logger.warning("Catalog feed directory not found", directory=str(root))
        return []
    files = sorted(p for p in root.glob(pattern) if p.is_file())
    logger.info("Discovered catalog feed files", directory=str(root), count=len(files))
    return files


def _map_header(header: list[str]) -> dict[str, int]:
    columns: dict[str, int] = {}
    for index, name in enumerate(header):
        field = _ALIAS_TO_FIELD.get(normalize_header(name))
        if field and field not in columns:
            columns[field] = index
    return columns


def read_feed_file(path: str | Path, into: dict[str, FeedRow]) -> int:
    """
    Parse one feed file into ``into`` (code -> row, last occurrence wins).

    Unreadable files and files missing a required column are logged and
    skipped; bad rows are logged and skipped.

    Returns:
        Number of rows accepted from this file
    """
    path = Path(path)
    accepted = 0
    try:
        with open(path, "r", encoding="utf-8-sig", newline="") as f:
            reader = csv.reader(f)
            header = next(reader, None)
            if not header:
                logger.error("Catalog feed file is empty", file=str(path))
                return 0

            columns = _map_header(header)
            missing = [field for field in HEADER_ALIASES if field not in columns]
            if missing:
                logger.error(
                    "Catalog feed file is missing required columns",
                    file=str(path),
                    missing=missing,
                    header=[normalize_header(h) for h in header],
                )
                return 0

            for row_index, cells in enumerate(reader, start=1):
                if not any(cell.strip() for cell in cells):
                    continue
                if len(cells) < len(header):
                    logger.warning(
                        "Skipping short feed row",
                        file=path.name,
                        row=row_index,
                        cells=len(cells),
                        expected=len(header),
                    )
                    continue

                values = {field: clean_cell(cells[idx]) for field, idx in columns.items()}
                if not values["code"] or not values["small_title"]:
                    logger.warning(
                        "Skipping feed row without code or small title",
                        file=path.name,
                        row=row_index,
                        code=values["code"],
                    )
                    continue

                try:
                    row = FeedRow(**values, source_file=path.name, row_index=row_index)
                except PydanticValidationError as e:
                    logger.warning("Skipping invalid feed row", file=path.name, row=row_index, error=str(e))
                    continue

                if row.code in into:
                    logger.debug("Duplicate catalog code, last occurrence wins", code=row.code, file=path.name, row=row_index)
                into[row.code] = row
                accepted += 1

    except (OSError, UnicodeDecodeError, csv.Error) as e:
        logger.error("Failed to read catalog feed file", file=str(path), error=str(e), exc_info=True)
        return accepted

    logger.info("Read catalog feed file", file=path.name, rows=accepted)
    return accepted


def load_feed(paths: Iterable[str | Path]) -> dict[str, FeedRow]:
    """
    Merge feed files in order into one code -> row mapping.

    Duplicate codes resolve to the last occurrence (file order, then row order).
    """
    feed: dict[str, FeedRow] = {}
    for path in paths:
        read_feed_file(path, feed)
    logger.info("Loaded catalog feed", codes=len(feed))
    return feed
