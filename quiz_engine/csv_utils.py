"""
CSV Utilities Module
Header-delimited record parsing and column sums using pandas.
"""

import io
import logging
from typing import Dict, List, Mapping, Sequence, Union
import pandas as pd

from .pdf_utils import normalize_number

logger = logging.getLogger(__name__)


class CSVProcessor:
    """Parses tabular bytes into records and aggregates numeric columns."""

    def parse_records(self, content: bytes) -> List[Dict[str, str]]:
        """Parse CSV bytes into a list of {header: value} records, values kept as strings."""
        text = content.decode('utf-8', errors='replace')
        if not text.strip():
            return []
        df = pd.read_csv(io.StringIO(text), dtype=str, keep_default_na=False, skip_blank_lines=True)
        df.columns = [str(c).strip() for c in df.columns]
        logger.info(f"Parsed CSV: {df.shape[0]} rows, {df.shape[1]} cols")
        return df.to_dict(orient='records')

    def sum_column(self, records: Sequence[Mapping[str, str]], column: str) -> Union[int, float]:
        """Sum a column; missing or non-numeric values count as zero."""
        if not records:
            return 0
        df = pd.DataFrame(list(records))
        if column not in df.columns:
            logger.warning(f"Column {column!r} not found in {list(df.columns)}")
            return 0
        values = df[column].map(lambda v: v.strip() if isinstance(v, str) else v)
        values = values.replace('', '0')
        total = pd.to_numeric(values, errors='coerce').fillna(0).sum()
        return normalize_number(float(total))
