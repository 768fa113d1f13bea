"""
PDF Utilities Module
PDF text extraction using pdfplumber and loose-table sums over page text.
"""

import io
import re
import logging
from typing import List, Optional, Union
import pdfplumber

logger = logging.getLogger(__name__)

PAGE_BREAK = '\f'
CELL_SPLIT_PATTERN = re.compile(r'\s{2,}|\t|,')
CONTROL_CHARS_PATTERN = re.compile(r'[\x00-\x1f\x7f]')
NUMERIC_CELL_PATTERN = re.compile(r'^-?\d+(?:\.\d+)?$')
NUMBER_PATTERN = re.compile(r'-?\d+(?:\.\d+)?')


class PDFProcessor:
    """Extracts text from in-memory PDF documents."""

    def __init__(self, content: bytes):
        self.content = content

    def extract_text(self) -> str:
        """Extract text from every page, pages separated by form feeds."""
        with pdfplumber.open(io.BytesIO(self.content)) as pdf:
            texts = [page.extract_text() or '' for page in pdf.pages]
        logger.info(f"Extracted text from {len(texts)} PDF pages")
        return PAGE_BREAK.join(texts)


def split_pages(text: str) -> List[str]:
    return (text or '').split(PAGE_BREAK)


def select_page(pages: List[str], page_number: int) -> str:
    """1-based page lookup; an out-of-range page falls back to the first page."""
    if 1 <= page_number <= len(pages):
        return pages[page_number - 1].strip()
    return pages[0].strip() if pages else ''


def _first_numeric_cell(line: str) -> Optional[float]:
    for cell in CELL_SPLIT_PATTERN.split(line):
        cell = CONTROL_CHARS_PATTERN.sub('', cell).strip()
        if NUMERIC_CELL_PATTERN.match(cell):
            return float(cell)
    return None


def sum_loose_table(page_text: str) -> Union[int, float]:
    """
    Sum one number per table row.

    Each line containing a digit is split on runs of 2+ spaces, tabs or commas
    and its first numeric cell is added. When no line yields a number, every
    numeric substring on the page is summed instead.
    """
    total = 0.0
    found = False
    for line in page_text.split('\n'):
        line = line.strip()
        if not line or not re.search(r'\d', line):
            continue
        value = _first_numeric_cell(line)
        if value is not None:
            total += value
            found = True

    if not found:
        total = sum(float(n) for n in NUMBER_PATTERN.findall(page_text))
    return normalize_number(total)


def sum_page_column(text: str, page_number: int = 2) -> Union[int, float]:
    """Sum the loose table on one page of extracted PDF text."""
    return sum_loose_table(select_page(split_pages(text), page_number))


def normalize_number(value: float) -> Union[int, float]:
    """Integral floats become ints so answers serialize as 10, not 10.0."""
    if float(value).is_integer():
        return int(value)
    return value
