"""
Faceted filtering and sorting of classification results.
"""
import logging
from typing import Any, Callable, Iterable, List, Mapping, Optional, Union

from .compose import EngineConfiguration
from .models import ClassificationResult, FilterOptions
from .normalize import detect_language
from .tokenize import Tokenizer

logger = logging.getLogger(__name__)

SORT_FIELDS = {
    'confidence': lambda r: r.confidence,
    'record_id': lambda r: r.record_id,
    'name': lambda r: r.record.name.lower(),
    'brand': lambda r: (r.record.brand or '').lower(),
    'category': lambda r: (r.category or '').lower(),
    'status': lambda r: r.status,
}


class ResultFilter:
    """
    Stateless filter over classification results.

    Present facets are combined with logical AND. Category and brand match
    softly (normalized containment in either direction); status, tags, region
    and type require equality. The free-text query is normalized and
    tokenized like record text.
    """

    def __init__(self, normalizer: Callable[[str], str], tokenizer: Tokenizer):
        self.normalizer = normalizer
        self.tokenizer = tokenizer

    @classmethod
    def from_configuration(cls, configuration: EngineConfiguration) -> "ResultFilter":
        def normalize(text):
            if not text:
                return ''
            return configuration.normalize(text, detect_language(text))
        return cls(normalize, configuration.mixed_tokenizer)

    def _soft(self, wanted: Iterable[str]) -> Callable[[Optional[str]], bool]:
        targets = [t for t in (self.normalizer(w) for w in wanted) if t]

        def match(value: Optional[str]) -> bool:
            value = self.normalizer(value) if value else ''
            if not value:
                return False
            return any(target in value or value in target for target in targets)
        return match

    def _query(self, query: str) -> Optional[Callable[[ClassificationResult], bool]]:
        text = self.normalizer(query)
        pairs = list(zip(self.tokenizer.split(text), self.tokenizer.tokenize_ordered(text)))
        if not pairs:
            return None

        def match(result: ClassificationResult) -> bool:
            record = result.record
            haystack = self.normalizer(' '.join(
                part for part in (record.name, record.description, record.brand, record.model) if part
            ))
            tokens = set(result.tokens)
            return all(
                surface in haystack or canonical in haystack or surface in tokens or canonical in tokens
                for surface, canonical in pairs
            )
        return match

    def apply(self,
              results: Iterable[Any],
              options: Union[FilterOptions, Mapping[str, Any], None] = None) -> List[ClassificationResult]:
        """
        Narrow results by the facets present in options.

        Args:
            results: Classification results (skip markers are dropped)
            options: FilterOptions or a mapping accepted by it

        Returns:
            New list of matching results, in input order
        """
        if options is None:
            options = FilterOptions()
        elif not isinstance(options, FilterOptions):
            options = FilterOptions.model_validate(options)

        predicates = []
        if options.status is not None:
            statuses = set(options.status)
            predicates.append(lambda r: r.status in statuses)
        if options.category is not None:
            category_match = self._soft(options.category)
            predicates.append(lambda r: category_match(r.category or r.record.category))
        if options.brand is not None:
            brand_match = self._soft(options.brand)
            predicates.append(lambda r: brand_match(r.record.brand))
        if options.tags is not None:
            tags = {self.normalizer(tag) for tag in options.tags}
            predicates.append(lambda r: any(self.normalizer(tag) in tags for tag in r.record.tags))
        if options.region is not None:
            regions = set(options.region)
            predicates.append(lambda r: r.record.region in regions)
        if options.type is not None:
            types = set(options.type)
            predicates.append(lambda r: r.record.type in types)
        if options.query:
            query_match = self._query(options.query)
            if query_match is not None:
                predicates.append(query_match)
        if options.min_score is not None:
            predicates.append(lambda r: r.confidence >= options.min_score)
        if options.max_score is not None:
            predicates.append(lambda r: r.confidence <= options.max_score)

        filtered = [
            result for result in results
            if isinstance(result, ClassificationResult) and all(p(result) for p in predicates)
        ]
        logger.debug(f"Filter kept {len(filtered)} results with {len(predicates)} facets")
        return filtered

    filter = apply


def filter_results(results: Iterable[Any],
                   options: Union[FilterOptions, Mapping[str, Any], None],
                   configuration: EngineConfiguration) -> List[ClassificationResult]:
    """Filter results with the normalizer and tokenizer of a configuration."""
    return ResultFilter.from_configuration(configuration).apply(results, options)


def sort_results(results: Iterable[ClassificationResult],
                 field: str = 'confidence',
                 descending: bool = True) -> List[ClassificationResult]:
    """
    Sort results by a field ('confidence', 'record_id', 'name', 'brand',
    'category', 'status'). The sort is stable.
    """
    if field not in SORT_FIELDS:
        raise ValueError(f"Unknown sort field '{field}' (expected one of {sorted(SORT_FIELDS)})")
    return sorted(results, key=SORT_FIELDS[field], reverse=descending)
