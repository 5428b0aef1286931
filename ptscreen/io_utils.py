"""
I/O utilities for engine artifacts.
Handles lexicon blobs, result tables (feather/parquet/csv) and run metadata.
"""
import json
import logging
import time
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Union

import pandas as pd

from . import config
from .lexicon import CompressedTrie
from .summary import results_to_dataframe

logger = logging.getLogger(__name__)


def _target(name_or_path: Union[str, Path], extension: str) -> Path:
    """Explicit paths are used as given; bare names resolve into the artifacts directory."""
    path = Path(name_or_path)
    if path.suffix or path.parent != Path('.'):
        return path
    return config.get_artifact_path(str(name_or_path), extension)


# ═══════════════════════════════════════════════════════════════
# LEXICON BLOBS
# ═══════════════════════════════════════════════════════════════

def save_lexicon(trie: CompressedTrie, name: Union[str, Path]) -> Path:
    """Serialize a trie to disk."""
    path = _target(name, 'trie')
    path.parent.mkdir(parents=True, exist_ok=True)

    logger.info(f"💾 Saving lexicon with {len(trie):,} terms to {path}")
    start_time = time.time()
    path.write_bytes(trie.serialize())
    elapsed = time.time() - start_time

    file_size = path.stat().st_size / (1024 * 1024)  # MB
    logger.info(f"✅ Saved {file_size:.1f}MB in {elapsed:.1f}s")
    return path


def load_lexicon(name: Union[str, Path]) -> CompressedTrie:
    """Load a trie saved by save_lexicon()."""
    path = _target(name, 'trie')
    if not path.exists():
        raise FileNotFoundError(f"Lexicon file not found: {path}")

    logger.info(f"📂 Loading lexicon from {path}")
    start_time = time.time()
    trie = CompressedTrie.deserialize(path.read_bytes())
    elapsed = time.time() - start_time

    logger.info(f"✅ Loaded {len(trie):,} terms in {elapsed:.1f}s")
    return trie


# ═══════════════════════════════════════════════════════════════
# RESULT TABLES
# ═══════════════════════════════════════════════════════════════

def save_results(results: Union[pd.DataFrame, Iterable[Any]],
                 name: Union[str, Path],
                 extension: Optional[str] = None) -> Path:
    """Save classification results (or a prepared DataFrame) with the configured format."""
    df = results if isinstance(results, pd.DataFrame) else results_to_dataframe(results, include_skipped=True)
    path = _target(name, extension or config.OUTPUT_FORMAT)
    path.parent.mkdir(parents=True, exist_ok=True)

    logger.info(f"💾 Saving {len(df):,} rows to {path}")
    start_time = time.time()

    if path.suffix == '.feather':
        df.reset_index(drop=True).to_feather(path, compression=config.COMPRESSION)
    elif path.suffix == '.parquet':
        df.to_parquet(path, compression=config.COMPRESSION, index=False)
    elif path.suffix == '.csv':
        df.to_csv(path, index=False)
    else:
        raise ValueError(f"Unsupported format: {path.suffix}")

    elapsed = time.time() - start_time
    file_size = path.stat().st_size / (1024 * 1024)  # MB
    logger.info(f"✅ Saved {file_size:.1f}MB in {elapsed:.1f}s")
    return path


def load_results(name: Union[str, Path], extension: Optional[str] = None) -> pd.DataFrame:
    """Load a results table saved by save_results()."""
    path = _target(name, extension or config.OUTPUT_FORMAT)
    if not path.exists():
        raise FileNotFoundError(f"Results file not found: {path}")

    logger.info(f"📂 Loading {path}")
    if path.suffix == '.feather':
        df = pd.read_feather(path)
    elif path.suffix == '.parquet':
        df = pd.read_parquet(path)
    elif path.suffix == '.csv':
        df = pd.read_csv(path, dtype={'record_id': str})
    else:
        raise ValueError(f"Unsupported format: {path.suffix}")

    logger.info(f"✅ Loaded {len(df):,} rows")
    return df


# ═══════════════════════════════════════════════════════════════
# METADATA
# ═══════════════════════════════════════════════════════════════

def save_metadata(metadata: Dict[str, Any], name: Union[str, Path]) -> Path:
    """Save run metadata as JSON."""
    path = _target(name, 'json')
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(metadata, f, indent=2, ensure_ascii=False, default=str)
    logger.info(f"💾 Saved metadata to {path}")
    return path


def load_metadata(name: Union[str, Path]) -> Dict[str, Any]:
    """Load run metadata from JSON."""
    path = _target(name, 'json')
    if not path.exists():
        raise FileNotFoundError(f"Metadata file not found: {path}")
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)
