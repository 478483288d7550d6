import csv
import io
from typing import Dict, List, Optional
from zipfile import BadZipFile

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

NAME_ALIASES = ["name", "full name", "learner name", "student name", "user"]
EMAIL_ALIASES = ["email", "email address", "mail", "e-mail"]
PHONE_ALIASES = ["phone", "phone number", "mobile", "contact", "whatsapp", "cell"]

FIELD_ALIASES = {
    "name": NAME_ALIASES,
    "email": EMAIL_ALIASES,
    "phone": PHONE_ALIASES,
}

BATCH_SIZE = 10


class ImportFileError(ValueError):
    pass


def _cell_text(value) -> str:
    if value is None:
        return ""
    # spreadsheets store phone numbers as floats
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def matches_alias(column: str, aliases: List[str], threshold: float = 0.8) -> bool:
    """Loose header match: exact, close containment, or a shared word."""
    s1 = column.strip().lower()
    if not s1:
        return False
    for alias in aliases:
        s2 = alias.lower()
        if s1 == s2:
            return True
        if s1 in s2 or s2 in s1:
            shorter, longer = sorted((s1, s2), key=len)
            if len(shorter) / len(longer) >= threshold:
                return True
        if s1 in s2 or any(word in s2 for word in s1.split()):
            return True
    return False


def guess_columns(columns: List[str]) -> Dict[str, Optional[str]]:
    return {
        field: next((c for c in columns if matches_alias(c, aliases)), None)
        for field, aliases in FIELD_ALIASES.items()
    }


def read_rows(filename: str, content: bytes) -> List[Dict[str, str]]:
    """Parse an uploaded CSV or XLSX file into header-keyed rows."""
    if (filename or "").lower().endswith((".xlsx", ".xlsm")):
        try:
            workbook = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
        except (InvalidFileException, BadZipFile, KeyError) as e:
            raise ImportFileError(f"Could not read spreadsheet: {e}") from e
        rows = workbook.worksheets[0].iter_rows(values_only=True)
        header = [_cell_text(c) for c in next(rows, [])]
        parsed = []
        for values in rows:
            row = {h: _cell_text(v) for h, v in zip(header, values) if h}
            if any(row.values()):
                parsed.append(row)
        workbook.close()
        return parsed

    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise ImportFileError("File is neither UTF-8 CSV nor XLSX") from e
    reader = csv.DictReader(io.StringIO(text))
    return [
        {(k or "").strip(): _cell_text(v) for k, v in row.items() if k}
        for row in reader
        if any((v or "").strip() for v in row.values() if isinstance(v, str))
    ]


def chunks(items: list, size: int = BATCH_SIZE):
    for i in range(0, len(items), size):
        yield items[i:i + size]
