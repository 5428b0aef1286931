"""
Per-record classification of inventory items against the PT domain.

Each record runs through a fixed sequence of stages:
start -> blocked (terminal), or
start -> code analysis -> vocabulary match -> contextual rules -> brand analysis -> decided.

Every stage appends to the explanation trail and records a named contribution
in the score breakdown; the breakdown sums to the unclamped confidence.
"""
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Iterable, List, Mapping, NamedTuple, Optional, Tuple, Union

from pydantic import ValidationError as PydanticValidationError
from rapidfuzz import fuzz, process

from .. import config
from ..compose import EngineConfiguration
from ..errors import ValidationError
from ..lexicon import LexiconMatch
from ..models import (
    BrandEntry, ClassificationResult, NormalizedRecord, Record, SkippedRecord, Thresholds,
)
from ..normalize import detect_language, fingerprint
from ..scoring import ContextualScorer
from ..tokenize import n_grams

logger = logging.getLogger(__name__)

RecordInput = Union[Record, Mapping[str, Any]]
BatchItem = Union[ClassificationResult, SkippedRecord]


class _Engine(NamedTuple):
    """Compiled, read-only view of one EngineConfiguration."""

    configuration: EngineConfiguration
    scorers: Dict[str, ContextualScorer]
    thresholds: Dict[str, Thresholds]
    brands: Dict[str, BrandEntry]
    brand_keys: Tuple[str, ...]


def _fmt(value: float) -> str:
    return f"{value:+g}"


def _record_id(raw) -> Optional[str]:
    if isinstance(raw, Record):
        return raw.id
    if isinstance(raw, Mapping):
        value = raw.get('id')
        if value is None:
            return None
        value = str(value).strip()
        return value or None
    return None


class Classifier:
    """
    Classifies records against an EngineConfiguration.

    The configuration is compiled once into an internal engine. ``reload``
    compiles a new one and swaps the reference; calls already running keep
    the engine they started with.
    """

    def __init__(self, configuration: EngineConfiguration):
        self._engine = self._compile(configuration)

    @property
    def configuration(self) -> EngineConfiguration:
        return self._engine.configuration

    def reload(self, configuration: EngineConfiguration):
        """Switch subsequent calls to a new configuration."""
        self._engine = self._compile(configuration)
        logger.info("🔄 Classifier configuration reloaded")

    @staticmethod
    def _compile(configuration: EngineConfiguration) -> _Engine:
        weights = configuration.weights
        ar = configuration.bundle('ar')
        en = configuration.bundle('en')

        def fold(text):
            return configuration.normalize(text, detect_language(text))

        scorers = {
            'ar': ContextualScorer([ar.ruleset], weights, fold),
            'en': ContextualScorer([en.ruleset], weights, fold),
            'mixed': ContextualScorer([ar.ruleset, en.ruleset], weights, fold),
        }

        # Mixed text must clear the stricter of the two language thresholds
        stricter = ar.ruleset.thresholds if ar.ruleset.thresholds.high >= en.ruleset.thresholds.high \
            else en.ruleset.thresholds
        thresholds = {'ar': ar.ruleset.thresholds, 'en': en.ruleset.thresholds, 'mixed': stricter}

        brands = {}
        for entry in configuration.brands:
            key = fold(entry.name)
            if key and key not in brands:
                brands[key] = entry

        return _Engine(configuration, scorers, thresholds, brands, tuple(brands))

    # ═══════════════════════════════════════════════════════════════
    # PREPARATION
    # ═══════════════════════════════════════════════════════════════

    @staticmethod
    def _coerce(raw: RecordInput) -> Record:
        if isinstance(raw, Record):
            return raw
        if not isinstance(raw, Mapping):
            raise ValidationError(f"Record must be a mapping, got {type(raw).__name__}")
        try:
            return Record.model_validate(raw)
        except PydanticValidationError as exc:
            problems = '; '.join(
                f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
            )
            raise ValidationError(f"Invalid record: {problems}", record_id=_record_id(raw)) from exc

    @staticmethod
    def _prepare(engine: _Engine, record: Record) -> NormalizedRecord:
        raw_text = record.name if not record.description else f"{record.name} {record.description}"
        detected = detect_language(raw_text)
        configuration = engine.configuration
        text = configuration.normalize(raw_text, detected)
        tokens = configuration.tokenizer_for(detected).tokenize(text)
        return NormalizedRecord(
            record=record,
            language=detected,
            text=text,
            tokens=tokens,
            fingerprint=fingerprint(text),
        )

    def prepare(self, record: RecordInput) -> NormalizedRecord:
        """
        Validate, normalize and tokenize a record without scoring it.

        Raises:
            ValidationError: If the record lacks a usable id or name
        """
        return self._prepare(self._engine, self._coerce(record))

    # ═══════════════════════════════════════════════════════════════
    # CLASSIFICATION
    # ═══════════════════════════════════════════════════════════════

    def classify(self, record: RecordInput) -> ClassificationResult:
        """
        Classify one record.

        Args:
            record: Record model or mapping with at least 'id' and 'name'

        Returns:
            ClassificationResult with explanation trail and score breakdown

        Raises:
            ValidationError: If the record lacks a usable id or name
        """
        return self._classify_with(self._engine, record)

    def _classify_with(self, engine: _Engine, raw: RecordInput) -> ClassificationResult:
        record = self._coerce(raw)
        prepared = self._prepare(engine, record)
        detected = prepared.language
        text = prepared.text
        scorer = engine.scorers[detected]

        if scorer.find_blocker(text) is not None:
            outcome = scorer.score(0.0, (), text)
            return self._result(
                prepared,
                confidence=0.0,
                decision=False,
                status='rejected',
                band='none',
                explanation=outcome.explanation,
                breakdown=dict(outcome.contributions),
                matched=(),
                category=None,
                domain=None,
            )

        explanation: List[str] = []
        breakdown: Dict[str, float] = {}

        category = self._code_stage(engine, record, explanation, breakdown)

        best, matches = self._vocab_stage(engine, prepared, explanation, breakdown)
        domain = None
        if best is not None:
            category = category or best.category
            domain = best.domain
        matched_terms = tuple(dict.fromkeys(match.canonical for match in matches))

        self._context_stage(scorer, matched_terms, text, record.brand, explanation, breakdown)
        self._brand_stage(engine, record, text, explanation, breakdown)

        total = sum(breakdown.values())
        confidence = min(max(total, 0.0), 100.0)
        thresholds = engine.thresholds[detected]
        decision = confidence >= thresholds.high
        if decision:
            status = 'accepted'
        elif confidence < thresholds.rejection:
            status = 'rejected'
        else:
            status = 'review'

        if confidence >= thresholds.high:
            band = 'high'
        elif confidence >= thresholds.medium:
            band = 'medium'
        elif confidence >= thresholds.low:
            band = 'low'
        else:
            band = 'none'

        comparison = '>=' if decision else '<'
        explanation.append(
            f"[DECISION] confidence {confidence:g} {comparison} {thresholds.high:g} "
            f"({detected} high threshold): {status}"
        )

        return self._result(
            prepared,
            confidence=confidence,
            decision=decision,
            status=status,
            band=band,
            explanation=tuple(explanation),
            breakdown=breakdown,
            matched=matched_terms,
            category=category,
            domain=domain,
        )

    @staticmethod
    def _result(prepared: NormalizedRecord, *, confidence, decision, status, band,
                explanation, breakdown, matched, category, domain) -> ClassificationResult:
        return ClassificationResult(
            record_id=prepared.record.id,
            decision=decision,
            confidence=confidence,
            status=status,
            band=band,
            category=category,
            domain=domain,
            explanation=tuple(explanation),
            language_detected=prepared.language,
            score_breakdown=breakdown,
            matched_terms=tuple(matched),
            tokens=tuple(sorted(prepared.tokens)),
            fingerprint=prepared.fingerprint,
            record=prepared.record,
        )

    # ═══════════════════════════════════════════════════════════════
    # STAGES
    # ═══════════════════════════════════════════════════════════════

    @staticmethod
    def _code_stage(engine: _Engine, record: Record, explanation: List[str],
                    breakdown: Dict[str, float]) -> Optional[str]:
        configuration = engine.configuration
        weights = configuration.weights
        breakdown['code'] = 0.0

        if not record.code or not record.code.strip():
            explanation.append("[SKIPPED] code analysis: record has no structured code")
            return None
        if not configuration.has_code_mapping:
            explanation.append("[SKIPPED] code analysis: no code mapping configured")
            return None

        code = record.code.strip().upper()
        mapping = configuration.code_mapping
        prefix = next((code[:length] for length in range(len(code), 0, -1) if code[:length] in mapping), None)
        if prefix is None:
            explanation.append(f"[CODE] '{code}' matches no known prefix {_fmt(0)}")
            return None

        entry = mapping[prefix]
        points = {
            'high': weights.code_high_bonus,
            'medium': weights.code_medium_bonus,
            'exclude': weights.code_exclude_penalty,
        }[entry.relevance]
        breakdown['code'] = points
        explanation.append(f"[CODE] prefix '{prefix}' ({entry.relevance}) {_fmt(points)}")

        if entry.relevance == 'high' and entry.category:
            return entry.category
        return None

    @staticmethod
    def _vocab_stage(engine: _Engine, prepared: NormalizedRecord, explanation: List[str],
                     breakdown: Dict[str, float]) -> Tuple[Optional[LexiconMatch], List[LexiconMatch]]:
        """
        Returns (best, all matches in discovery order). Best is None without a
        positive-weight match; ties keep the earlier candidate.
        """
        configuration = engine.configuration
        weights = configuration.weights
        lexicons = [bundle.lexicon for bundle in configuration.bundles_for(prepared.language)]
        tokenizer = configuration.tokenizer_for(prepared.language)

        canonical = list(dict.fromkeys(tokenizer.tokenize_ordered(prepared.text)))
        surface = tokenizer.split(prepared.text)
        candidates = list(canonical)
        candidates.extend(surface)
        for size in range(2, weights.ngram_max + 1):
            candidates.extend(n_grams(surface, size))
        candidates = list(dict.fromkeys(candidates))

        matches: List[LexiconMatch] = []
        hit_tokens = set()
        for candidate in candidates:
            for lexicon in lexicons:
                match = lexicon.lookup(candidate)
                if match is not None:
                    matches.append(match)
                    hit_tokens.add(candidate)
                    break

        scores = [(match, match.weight) for match in matches]

        if weights.fuzzy_distance > 0:
            for token in canonical:
                if token in hit_tokens or len(token) < config.FUZZY_MIN_TOKEN_LENGTH:
                    continue
                for lexicon in lexicons:
                    near = lexicon.fuzzy(token, weights.fuzzy_distance, limit=1)
                    if near:
                        matches.append(near[0])
                        scores.append((near[0], near[0].weight * weights.fuzzy_weight_factor))
                        break

        best, best_score = None, 0.0
        for match, score in scores:
            if score > best_score:
                best, best_score = match, score

        breakdown['vocabulary'] = best_score
        if best is None:
            explanation.append(f"[VOCAB] no vocabulary match {_fmt(0)}")
        else:
            via = best.via if best.surface == best.canonical else f"{best.via} '{best.surface}'"
            label = f" category '{best.category}'" if best.category else ""
            explanation.append(
                f"[VOCAB] '{best.canonical}' ({via}) weight {best.weight:g}{label} {_fmt(best_score)}"
            )
            if len(matches) > 1:
                others = ', '.join(dict.fromkeys(m.canonical for m in matches if m.canonical != best.canonical))
                if others:
                    explanation.append(f"[VOCAB] also matched: {others}")

        return best, matches

    @staticmethod
    def _context_stage(scorer: ContextualScorer, matched_terms: Tuple[str, ...], text: str,
                       brand: Optional[str], explanation: List[str], breakdown: Dict[str, float]):
        outcome = scorer.score(0.0, matched_terms, text, brand)
        rules = scorer.keyword_rules(text)
        breakdown.update(outcome.contributions)
        breakdown.update(rules.contributions)
        lines = outcome.explanation + rules.explanation
        if lines:
            explanation.extend(lines)
        else:
            explanation.append(f"[CONTEXT] no contextual rules fired {_fmt(0)}")

    @staticmethod
    def _brand_stage(engine: _Engine, record: Record, text: str, explanation: List[str],
                     breakdown: Dict[str, float]):
        configuration = engine.configuration
        breakdown['brand'] = 0.0

        if not configuration.has_brands:
            explanation.append("[SKIPPED] brand analysis: no brand data configured")
            return

        entry = None
        if record.brand and record.brand.strip():
            key = configuration.normalize(record.brand, detect_language(record.brand))
            entry = engine.brands.get(key)
            if entry is None and key:
                found = process.extractOne(
                    key, engine.brand_keys,
                    scorer=fuzz.ratio,
                    score_cutoff=configuration.weights.brand_match_threshold,
                )
                if found is not None:
                    entry = engine.brands[found[0]]
            if entry is None:
                explanation.append(f"[BRAND] '{record.brand}' is not a known brand {_fmt(0)}")
                return
        else:
            padded = f" {text} "
            entry = next((engine.brands[key] for key in engine.brand_keys if f" {key} " in padded), None)
            if entry is None:
                explanation.append("[SKIPPED] brand analysis: record has no brand")
                return

        if not entry.domain_focus:
            explanation.append(f"[BRAND] '{entry.name}' is not domain-focused {_fmt(0)}")
            return

        points = entry.reputation_score * configuration.weights.brand_reputation_factor
        breakdown['brand'] = points
        explanation.append(
            f"[BRAND] '{entry.name}' domain-focused, reputation {entry.reputation_score:g} {_fmt(points)}"
        )

    # ═══════════════════════════════════════════════════════════════
    # BATCH
    # ═══════════════════════════════════════════════════════════════

    def classify_batch(self,
                       records: Iterable[RecordInput],
                       n_jobs: Optional[int] = None,
                       cancel_event: Optional[threading.Event] = None) -> List[BatchItem]:
        """
        Classify many records, one output per input in input order.

        Invalid records, repeated ids and records not started before
        ``cancel_event`` was set come back as SkippedRecord entries; they
        never abort the batch.

        Args:
            records: Record models or mappings
            n_jobs: Worker threads (config.N_JOBS if None; None or 1 = sequential)
            cancel_event: Checked before each record is started

        Returns:
            List of ClassificationResult / SkippedRecord aligned with the input
        """
        records = list(records)
        if n_jobs is None:
            n_jobs = config.N_JOBS
        engine = self._engine
        start_time = time.time()
        logger.info(f"🚀 Classifying {len(records):,} records"
                    + (f" with {n_jobs} workers" if n_jobs and n_jobs > 1 else ""))

        duplicates = set()
        seen = set()
        for index, raw in enumerate(records):
            record_id = _record_id(raw)
            if record_id is None:
                continue
            if record_id in seen:
                duplicates.add(index)
            seen.add(record_id)

        def work(index: int) -> BatchItem:
            raw = records[index]
            if cancel_event is not None and cancel_event.is_set():
                return SkippedRecord(index=index, record_id=_record_id(raw), reason='cancelled')
            if index in duplicates:
                logger.warning(f"⚠️ Record {index} skipped: duplicate id '{_record_id(raw)}'")
                return SkippedRecord(index=index, record_id=_record_id(raw),
                                     reason=f"duplicate id '{_record_id(raw)}'")
            try:
                result = self._classify_with(engine, raw)
            except ValidationError as exc:
                logger.warning(f"⚠️ Record {index} skipped: {exc}")
                return SkippedRecord(index=index, record_id=exc.record_id, reason=str(exc))
            if (index + 1) % config.PROGRESS_EVERY == 0:
                logger.info(f"   Processed {index + 1:,}/{len(records):,} records")
            return result

        if n_jobs and n_jobs > 1:
            with ThreadPoolExecutor(max_workers=n_jobs) as pool:
                results = list(pool.map(work, range(len(records))))
        else:
            results = [work(index) for index in range(len(records))]

        elapsed = time.time() - start_time
        skipped = sum(1 for item in results if isinstance(item, SkippedRecord))
        accepted = sum(1 for item in results if isinstance(item, ClassificationResult) and item.decision)
        logger.info(f"✅ Classified {len(results) - skipped:,} records in {elapsed:.1f}s "
                    f"({accepted:,} accepted, {skipped:,} skipped)")
        return results

    # ═══════════════════════════════════════════════════════════════
    # EXPLANATION
    # ═══════════════════════════════════════════════════════════════

    def explain(self, result: ClassificationResult, top_n: Optional[int] = None) -> Dict[str, Any]:
        """
        Summarize why a record got its score.

        Args:
            result: A classification result
            top_n: Number of contributions to report (config default if None)

        Returns:
            Dictionary with the strongest non-zero contributions (by absolute
            value), matched terms, fingerprint and the full trail
        """
        if top_n is None:
            top_n = config.EXPLAIN_TOP_REASONS
        contributions = [(name, value) for name, value in result.score_breakdown.items() if value]
        contributions.sort(key=lambda item: abs(item[1]), reverse=True)
        return {
            'record_id': result.record_id,
            'status': result.status,
            'confidence': result.confidence,
            'top_reasons': contributions[:top_n],
            'matched_terms': list(result.matched_terms),
            'fingerprint': result.fingerprint,
            'explanation': list(result.explanation),
        }
