"""
Batch statistics and category summaries over classification results.
"""
import logging
from typing import Any, Dict, Iterable, List

import numpy as np
import pandas as pd

from .models import ClassificationResult, SkippedRecord

logger = logging.getLogger(__name__)

SCORE_BINS = [0, 20, 40, 60, 80, 100]
SCORE_LABELS = ['0-20', '21-40', '41-60', '61-80', '81-100']

RESULT_COLUMNS = [
    'record_id', 'name', 'brand', 'model', 'code', 'category', 'domain', 'decision',
    'confidence', 'status', 'band', 'language', 'matched_terms', 'fingerprint',
    'explanation', 'skip_reason',
]


def results_to_dataframe(results: Iterable[Any], include_skipped: bool = False) -> pd.DataFrame:
    """
    Flatten results into one row per record.

    Args:
        results: ClassificationResult (and optionally SkippedRecord) items
        include_skipped: Add rows with status 'skipped' for skip markers

    Returns:
        DataFrame with RESULT_COLUMNS
    """
    rows: List[Dict[str, Any]] = []
    for item in results:
        if isinstance(item, ClassificationResult):
            record = item.record
            rows.append({
                'record_id': item.record_id,
                'name': record.name,
                'brand': record.brand,
                'model': record.model,
                'code': record.code,
                'category': item.category,
                'domain': item.domain,
                'decision': item.decision,
                'confidence': item.confidence,
                'status': item.status,
                'band': item.band,
                'language': item.language_detected,
                'matched_terms': ', '.join(item.matched_terms),
                'fingerprint': item.fingerprint,
                'explanation': ' | '.join(item.explanation),
                'skip_reason': None,
            })
        elif include_skipped and isinstance(item, SkippedRecord):
            rows.append({
                'record_id': item.record_id,
                'status': 'skipped',
                'skip_reason': item.reason,
            })
    return pd.DataFrame(rows, columns=RESULT_COLUMNS)


def get_batch_stats(results: Iterable[Any]) -> Dict[str, Any]:
    """
    Counts per status, average confidence and the score distribution.

    Returns:
        Dictionary with 'total', 'accepted', 'review', 'rejected', 'skipped',
        'average_score' and 'score_distribution' (bin label -> count)
    """
    results = list(results)
    scored = [r for r in results if isinstance(r, ClassificationResult)]
    skipped = sum(1 for r in results if isinstance(r, SkippedRecord))

    confidences = np.array([r.confidence for r in scored], dtype=float)
    statuses = pd.Series([r.status for r in scored], dtype=object)
    counts = statuses.value_counts()

    if len(confidences):
        binned = pd.cut(confidences, bins=SCORE_BINS, labels=SCORE_LABELS, include_lowest=True)
        distribution = pd.Series(binned).value_counts().reindex(SCORE_LABELS, fill_value=0)
        average = float(np.round(confidences.mean(), 2))
    else:
        distribution = pd.Series(0, index=SCORE_LABELS)
        average = 0.0

    return {
        'total': len(scored),
        'accepted': int(counts.get('accepted', 0)),
        'review': int(counts.get('review', 0)),
        'rejected': int(counts.get('rejected', 0)),
        'skipped': skipped,
        'average_score': average,
        'score_distribution': {label: int(distribution[label]) for label in SCORE_LABELS},
    }


def get_category_summary(results: Iterable[Any]) -> pd.DataFrame:
    """Generate summary statistics by category."""
    df = results_to_dataframe(results)
    if df.empty:
        return pd.DataFrame()

    df['category'] = df['category'].fillna('Uncategorized')
    summary = df.groupby('category').agg({
        'record_id': 'count',
        'decision': 'sum',
        'confidence': 'mean',
        'name': lambda x: ', '.join(x.iloc[:3])
    }).rename(columns={
        'record_id': 'total_items',
        'decision': 'accepted',
        'confidence': 'avg_confidence',
        'name': 'example_names'
    })

    summary['accepted'] = summary['accepted'].astype(int)
    summary['avg_confidence'] = summary['avg_confidence'].round(1)

    # Calculate percentage
    total_items = summary['total_items'].sum()
    summary['percentage'] = (summary['total_items'] / total_items * 100).round(1)

    # Sort by total items
    summary = summary.sort_values('total_items', ascending=False)

    return summary.reset_index()
