"""
Duplicate detection over classification results.
Exact duplicates share a fingerprint; near duplicates have very similar names.
"""
import logging
from collections import defaultdict
from typing import Any, Dict, Iterable, List

import numpy as np
from rapidfuzz import fuzz, process
from rapidfuzz.utils import default_process

from .models import ClassificationResult

logger = logging.getLogger(__name__)


def group_duplicates(results: Iterable[Any]) -> Dict[str, List[ClassificationResult]]:
    """
    Group results whose canonical text is identical up to word order.

    Returns:
        fingerprint -> results, only for fingerprints seen more than once
    """
    groups = defaultdict(list)
    for result in results:
        if isinstance(result, ClassificationResult):
            groups[result.fingerprint].append(result)
    duplicates = {key: items for key, items in groups.items() if len(items) > 1}
    if duplicates:
        logger.info(f"🔍 Found {len(duplicates)} duplicate groups "
                    f"covering {sum(len(items) for items in duplicates.values())} records")
    return duplicates


def find_near_duplicates(results: Iterable[Any], similarity_threshold: float = 0.9) -> List[Dict[str, Any]]:
    """
    Find pairs of records with near-identical names that might need manual review.

    Args:
        results: Classification results
        similarity_threshold: Minimum token-sort similarity (0-1) to flag a pair

    Returns:
        List of pairs, most similar first
    """
    scored = [r for r in results if isinstance(r, ClassificationResult)]
    if len(scored) < 2:
        return []

    names = [r.record.name for r in scored]
    matrix = process.cdist(names, names, scorer=fuzz.token_sort_ratio, processor=default_process)
    upper = np.triu(matrix >= similarity_threshold * 100, k=1)

    potential_duplicates = []
    for i, j in np.argwhere(upper):
        potential_duplicates.append({
            'record_id1': scored[i].record_id,
            'record_id2': scored[j].record_id,
            'name1': names[i],
            'name2': names[j],
            'similarity': float(matrix[i, j]) / 100.0,
            'same_fingerprint': scored[i].fingerprint == scored[j].fingerprint,
        })

    potential_duplicates.sort(key=lambda pair: pair['similarity'], reverse=True)
    return potential_duplicates
