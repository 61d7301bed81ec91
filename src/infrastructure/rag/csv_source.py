"""
infrastructure.rag.csv_source - Flat recipe CSV → untagged Documents.

Each row becomes one Document whose content is one "<column>: <value>"
line per column, in column order. Empty cells render as empty strings.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Union

import pandas as pd

from domain.models import Document

logger = logging.getLogger(__name__)


def row_to_document(row: pd.Series, source: str, row_number: int) -> Document:
    lines = [f"{str(col).strip()}: {str(value).strip()}" for col, value in row.items()]
    return Document(content="\n".join(lines), metadata={"source": source, "row": row_number})


class CsvCorpusSource:
    """Implements CorpusSourcePort over a CSV file or an in-memory DataFrame."""

    def __init__(self, csv_path_or_df: Union[str, Path, pd.DataFrame], source_name: str = ""):
        self._data = csv_path_or_df
        if isinstance(csv_path_or_df, pd.DataFrame):
            self._source = source_name or "dataframe"
        else:
            self._source = source_name or str(csv_path_or_df)

    def load(self) -> list[Document]:
        if isinstance(self._data, pd.DataFrame):
            df = self._data.fillna("").astype(str)
        else:
            df = pd.read_csv(self._data, dtype=str, keep_default_na=False)

        documents = [
            row_to_document(row, self._source, row_number)
            for row_number, (_, row) in enumerate(df.iterrows())
        ]
        logger.debug("Loaded %d documents from %s", len(documents), self._source)
        return documents
