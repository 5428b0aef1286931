"""
Data ingestion for tabular inventory exports.
Maps arbitrary column names onto record fields and yields record mappings.
"""
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import pandas as pd

logger = logging.getLogger(__name__)

# Column-name hints per record field, most specific first
COLUMN_HINTS: Dict[str, List[str]] = {
    'id': ['id', 'item_id', 'product_id', 'sku', 'item_number', 'رقم'],
    'name': ['name', 'item_name', 'product_name', 'title', 'item', 'product', 'اسم', 'الاسم'],
    'description': ['description', 'desc', 'details', 'long_description', 'الوصف'],
    'brand': ['brand', 'manufacturer', 'maker', 'vendor', 'الماركة', 'الشركة'],
    'model': ['model', 'model_number', 'الموديل'],
    'category': ['category', 'group', 'class', 'الفئة'],
    'code': ['code', 'nupco_code', 'catalog_code', 'item_code', 'الكود'],
    'tags': ['tags', 'keywords'],
    'region': ['region', 'country', 'origin'],
    'type': ['type', 'item_type'],
}


class RecordIngester:
    """
    Handles file ingestion and column detection for inventory exports.
    """

    def __init__(self):
        self.data = None
        self.columns: Dict[str, str] = {}

    def load_file(self, file_path: Union[str, Path], **kwargs) -> pd.DataFrame:
        """
        Load a CSV, parquet or feather file.

        Args:
            file_path: Path to the file
            **kwargs: Additional pandas reader arguments

        Returns:
            DataFrame with loaded data
        """
        path = Path(file_path)
        readers = {'.csv': pd.read_csv, '.parquet': pd.read_parquet, '.feather': pd.read_feather}
        reader = readers.get(path.suffix.lower())
        if reader is None:
            raise ValueError(f"Unsupported input format: {path.suffix}")
        try:
            if reader is pd.read_csv:
                kwargs.setdefault('dtype', str)
            self.data = reader(path, **kwargs)
        except Exception as e:
            logger.error(f"Failed to load {path}: {e}")
            raise
        logger.info(f"📂 Loaded {len(self.data):,} rows and {len(self.data.columns)} columns from {path}")
        return self.data

    def load_dataframe(self, df: pd.DataFrame) -> pd.DataFrame:
        self.data = df
        return self.data

    def detect_columns(self, hints: Optional[Dict[str, List[str]]] = None) -> Dict[str, str]:
        """
        Auto-detect which column holds each record field.

        Exact (case-insensitive) column-name matches are resolved first, then
        substring matches; a column is never assigned to two fields.

        Args:
            hints: Override hints per field (merged over COLUMN_HINTS)

        Returns:
            Dictionary field -> column name

        Raises:
            ValueError: If no data is loaded or no name column can be found
        """
        if self.data is None:
            raise ValueError("No data loaded. Call load_file() first.")

        field_hints = dict(COLUMN_HINTS)
        field_hints.update(hints or {})

        columns = {}
        claimed = set()

        # Exact matches
        for field, field_hint_list in field_hints.items():
            for hint in field_hint_list:
                match = next((col for col in self.data.columns
                              if col not in claimed and str(col).strip().lower() == hint.lower()), None)
                if match is not None:
                    columns[field] = match
                    claimed.add(match)
                    break

        # Substring matches
        for field, field_hint_list in field_hints.items():
            if field in columns:
                continue
            for hint in field_hint_list:
                match = next((col for col in self.data.columns
                              if col not in claimed and hint.lower() in str(col).lower()), None)
                if match is not None:
                    columns[field] = match
                    claimed.add(match)
                    break

        if 'name' not in columns:
            available_cols = list(self.data.columns)
            raise ValueError(f"Could not auto-detect a name column. Available columns: {available_cols}")

        if 'id' not in columns:
            logger.warning("⚠️ No id column detected, row numbers will be used as record ids")

        self.columns = columns
        logger.info(f"Detected columns - {', '.join(f'{k}: {v!r}' for k, v in columns.items())}")
        return columns

    def get_basic_stats(self) -> Dict[str, Any]:
        """
        Generate basic statistics about the dataset.

        Returns:
            Dictionary with dataset statistics
        """
        if self.data is None:
            raise ValueError("No data loaded. Call load_file() first.")
        if not self.columns:
            self.detect_columns()

        name_col = self.columns['name']
        id_col = self.columns.get('id')
        stats = {
            'total_rows': len(self.data),
            'total_columns': len(self.data.columns),
            'columns': dict(self.columns),
            'unique_names': self.data[name_col].nunique(),
            'missing_names': int(self.data[name_col].isna().sum()),
            'sample_names': self.data[name_col].dropna().head(10).tolist(),
        }
        if id_col is not None:
            stats['duplicate_ids'] = int(len(self.data) - self.data[id_col].nunique())
            stats['missing_ids'] = int(self.data[id_col].isna().sum())
        return stats

    def to_records(self) -> List[Dict[str, Any]]:
        """
        Convert rows to record mappings.

        Missing cells become None; invalid rows are passed through unchanged
        so that the classifier reports them as skipped.
        """
        if self.data is None:
            raise ValueError("No data loaded. Call load_file() first.")
        if not self.columns:
            self.detect_columns()

        selected = self.data[list(self.columns.values())].rename(
            columns={col: field for field, col in self.columns.items()}
        )
        selected = selected.astype(object).where(selected.notna(), None)

        records = selected.to_dict(orient='records')
        if 'id' not in self.columns:
            for row_number, record in enumerate(records, start=1):
                record['id'] = str(row_number)

        logger.info(f"✅ Prepared {len(records):,} records for classification")
        return records
