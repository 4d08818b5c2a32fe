"""Bulk question import from CSV or an .xlsx workbook.

Row shape: Question, Opt1, Opt2, Opt3, Correct, where Correct is 1-based
(1-3) in the sheet and stored 0-based. Workbooks are read from their first
worksheet.
"""

import csv
import logging
from zipfile import BadZipFile
from typing import IO, Any, Dict, Iterable, List, Sequence

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from trivia.errors import ValidationError

log = logging.getLogger(__name__)

HEADER_LABELS = {'question', 'pregunta'}
IMPORT_OPTIONS = 3
XLSX_EXTENSIONS = ('.xlsx', '.xlsm')


def _cell_text(value) -> str:
    if value is None:
        return ''
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def parse_row(row: Sequence[Any]):
    """Returns a question dict, or None for rows that should be skipped."""
    if len(row) < IMPORT_OPTIONS + 2:
        return None
    text = _cell_text(row[0])
    if text.lower() in HEADER_LABELS:
        return None
    options = [_cell_text(row[i]) for i in range(1, IMPORT_OPTIONS + 1)]
    try:
        correct = int(_cell_text(row[IMPORT_OPTIONS + 1])) - 1
    except ValueError:
        correct = 0
    correct = max(0, min(IMPORT_OPTIONS - 1, correct))
    if not text or not all(options):
        return None
    return {'question_text': text, 'options': options, 'correct_option': correct}


def parse_rows(rows: Iterable[Sequence[Any]]) -> List[Dict[str, Any]]:
    parsed = []
    for row in rows:
        question = parse_row(row)
        if question is not None:
            parsed.append(question)
    return parsed


def read_workbook_rows(fp: IO[bytes]) -> List[Sequence[Any]]:
    try:
        workbook = load_workbook(fp, read_only=True, data_only=True)
    except (BadZipFile, InvalidFileException, KeyError, OSError, ValueError) as exc:
        raise ValidationError(f'Could not read the spreadsheet: {exc}')
    try:
        sheet = workbook.worksheets[0]
        return [tuple(row) for row in sheet.iter_rows(values_only=True)]
    finally:
        workbook.close()


def is_workbook(filename: str) -> bool:
    return (filename or '').lower().endswith(XLSX_EXTENSIONS)


def _create(store, questions: List[Dict[str, Any]], source: str) -> List[Dict[str, Any]]:
    if not questions:
        raise ValidationError('No valid questions found. Ensure 5 columns: Question, Opt1, Opt2, Opt3, Correct(1-3)')
    created = [store.insert('questions', q) for q in questions]
    log.info(f"[import] source={source} created={len(created)}")
    return created


def import_questions(store, fp: IO[str]) -> List[Dict[str, Any]]:
    return _create(store, parse_rows(csv.reader(fp)), 'csv')


def import_workbook(store, fp: IO[bytes]) -> List[Dict[str, Any]]:
    return _create(store, parse_rows(read_workbook_rows(fp)), 'xlsx')
