"""
Typed data values for the classification engine.

Every model is immutable once built and rejects unknown keys, so a
configuration or result can be shared between threads without copying.
Records are the one exception to strict keys: ingestion rows routinely
carry extra columns, which are ignored.
"""
import re
from typing import Dict, FrozenSet, Literal, Optional, Tuple

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from . import config

Language = Literal["ar", "en"]
DetectedLanguage = Literal["ar", "en", "mixed"]
Status = Literal["accepted", "review", "rejected"]
Band = Literal["high", "medium", "low", "none"]
Relevance = Literal["high", "medium", "exclude"]


class FrozenModel(BaseModel):
    """Base for immutable, strictly-keyed models."""

    model_config = ConfigDict(frozen=True, extra="forbid")


def _as_tuple(value):
    """Accept a single string, list, set or tuple and return a tuple."""
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(value)


# ═══════════════════════════════════════════════════════════════
# RECORDS
# ═══════════════════════════════════════════════════════════════

class Record(BaseModel):
    """An inventory item as handed over by the ingestion layer."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    name: str
    description: Optional[str] = None
    brand: Optional[str] = None
    model: Optional[str] = None
    category: Optional[str] = None
    code: Optional[str] = None
    tags: Tuple[str, ...] = ()
    region: Optional[str] = None
    type: Optional[str] = None

    @field_validator("id", "code", mode="before")
    @classmethod
    def _numbers_to_text(cls, value):
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("id", "name")
    @classmethod
    def _required_text(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("tags", mode="before")
    @classmethod
    def _split_tags(cls, value):
        if isinstance(value, str):
            return tuple(tag.strip() for tag in value.split(",") if tag.strip())
        return _as_tuple(value)


class NormalizedRecord(FrozenModel):
    """Pipeline-owned view of a record: canonical text, tokens and fingerprint."""

    record: Record
    language: DetectedLanguage
    text: str
    tokens: FrozenSet[str]
    fingerprint: str


# ═══════════════════════════════════════════════════════════════
# VOCABULARY
# ═══════════════════════════════════════════════════════════════

class VocabTerm(FrozenModel):
    """A canonical vocabulary term stored in the lexicon."""

    term: str = Field(..., min_length=1)
    weight: float
    category: Optional[str] = None
    domain: Optional[str] = None
    frequency: int = Field(default=0, ge=0)


class SynonymEntry(FrozenModel):
    """A canonical term and the alias strings that resolve to it."""

    canonical: str = Field(..., min_length=1)
    aliases: Tuple[str, ...] = ()
    weight: float = 0.0

    @field_validator("aliases", mode="before")
    @classmethod
    def _aliases_tuple(cls, value):
        return _as_tuple(value)


# ═══════════════════════════════════════════════════════════════
# RULES
# ═══════════════════════════════════════════════════════════════

class NormalizationRule(FrozenModel):
    """One pattern -> replacement step of a normalizer."""

    pattern: str
    replacement: str = ""
    name: Optional[str] = None

    @field_validator("pattern")
    @classmethod
    def _compiles(cls, value: str) -> str:
        try:
            re.compile(value)
        except re.error as exc:
            raise ValueError(f"invalid regular expression {value!r}: {exc}") from exc
        return value


class BoostRule(FrozenModel):
    keywords: Tuple[str, ...]
    boost_factor: float = Field(..., gt=0)


class PenaltyRule(FrozenModel):
    keywords: Tuple[str, ...]
    penalty_factor: float = Field(..., gt=0)


class CooccurrenceRule(FrozenModel):
    """Terms that are stronger evidence together than apart."""

    terms: Tuple[str, ...] = Field(..., min_length=2)
    boost: float
    name: Optional[str] = None


class Thresholds(FrozenModel):
    high: float = Field(default_factory=lambda: config.DEFAULT_HIGH_CONFIDENCE_THRESHOLD, ge=0, le=100)
    medium: float = Field(default_factory=lambda: config.DEFAULT_MEDIUM_CONFIDENCE_THRESHOLD, ge=0, le=100)
    low: float = Field(default_factory=lambda: config.DEFAULT_LOW_CONFIDENCE_THRESHOLD, ge=0, le=100)
    rejection: float = Field(default_factory=lambda: config.DEFAULT_REJECTION_THRESHOLD, ge=0, le=100)

    @model_validator(mode="after")
    def _ordered(self) -> "Thresholds":
        if not self.rejection <= self.low <= self.medium <= self.high:
            raise ValueError(
                "thresholds must satisfy rejection <= low <= medium <= high, got "
                f"{self.rejection}, {self.low}, {self.medium}, {self.high}"
            )
        return self


class RuleSet(FrozenModel):
    """
    Per-language rule bundle.

    An empty ``normalization`` tuple means the builtin normalization steps
    for the language are used.
    """

    normalization: Tuple[NormalizationRule, ...] = ()
    hard_blockers: Dict[str, Tuple[str, ...]] = Field(default_factory=dict)
    soft_demotions: Dict[str, Tuple[str, ...]] = Field(default_factory=dict)
    pt_specific_boosts: Dict[str, Tuple[str, ...]] = Field(default_factory=dict)
    contextual_boosts: Dict[str, BoostRule] = Field(default_factory=dict)
    penalty_rules: Dict[str, PenaltyRule] = Field(default_factory=dict)
    cooccurrence_boosts: Tuple[CooccurrenceRule, ...] = ()
    brand_boosts: Dict[str, float] = Field(default_factory=dict)
    stopwords: Tuple[str, ...] = ()
    thresholds: Thresholds = Field(default_factory=Thresholds)

    @field_validator("hard_blockers", "soft_demotions", "pt_specific_boosts", mode="before")
    @classmethod
    def _groups(cls, value):
        if isinstance(value, (list, tuple)):
            return {"default": tuple(value)}
        return value


# ═══════════════════════════════════════════════════════════════
# BRANDS, CODES, WEIGHTS
# ═══════════════════════════════════════════════════════════════

class BrandEntry(FrozenModel):
    name: str = Field(..., min_length=1)
    categories: Tuple[str, ...] = ()
    reputation_score: float = Field(default=0.0, ge=0, le=100)
    domain_focus: bool = False
    country: Optional[str] = None


class CodeMappingEntry(FrozenModel):
    category: Optional[str] = None
    relevance: Relevance
    description: Optional[str] = None


class ScoringWeights(FrozenModel):
    """Numeric weights of the scoring stages. Defaults come from ``config``."""

    blocker_penalty: float = Field(default_factory=lambda: config.BLOCKER_PENALTY, le=0)
    demotion_penalty: float = Field(default_factory=lambda: config.DEMOTION_PENALTY, le=0)
    code_high_bonus: float = Field(default_factory=lambda: config.CODE_HIGH_BONUS)
    code_medium_bonus: float = Field(default_factory=lambda: config.CODE_MEDIUM_BONUS)
    code_exclude_penalty: float = Field(default_factory=lambda: config.CODE_EXCLUDE_PENALTY)
    factor_to_points: float = Field(default_factory=lambda: config.FACTOR_TO_POINTS)
    brand_reputation_factor: float = Field(default_factory=lambda: config.BRAND_REPUTATION_FACTOR)
    brand_match_threshold: float = Field(default_factory=lambda: config.BRAND_MATCH_THRESHOLD, ge=0, le=100)
    pt_specific_boost: float = Field(default_factory=lambda: config.PT_SPECIFIC_BOOST)
    ngram_max: int = Field(default_factory=lambda: config.NGRAM_MAX, ge=1)
    fuzzy_distance: int = Field(default_factory=lambda: config.FUZZY_DISTANCE, ge=0)
    fuzzy_weight_factor: float = Field(default_factory=lambda: config.FUZZY_WEIGHT_FACTOR, ge=0, le=1)

    @field_validator("fuzzy_distance")
    @classmethod
    def _bounded_fuzzy(cls, value: int) -> int:
        if value > config.FUZZY_MAX_DISTANCE_LIMIT:
            raise ValueError(f"fuzzy_distance must be <= {config.FUZZY_MAX_DISTANCE_LIMIT}")
        return value


# ═══════════════════════════════════════════════════════════════
# RESULTS
# ═══════════════════════════════════════════════════════════════

class ClassificationResult(FrozenModel):
    """Scored decision for one record, with its explanation trail."""

    record_id: str
    decision: bool
    confidence: float = Field(..., ge=0, le=100)
    status: Status
    band: Band
    category: Optional[str] = None
    domain: Optional[str] = None
    explanation: Tuple[str, ...]
    language_detected: DetectedLanguage
    score_breakdown: Dict[str, float]
    matched_terms: Tuple[str, ...] = ()
    tokens: Tuple[str, ...] = ()
    fingerprint: str
    record: Record


class SkippedRecord(FrozenModel):
    """Placeholder for an input record that could not be classified."""

    index: int
    record_id: Optional[str] = None
    reason: str


class FilterOptions(FrozenModel):
    """Optional facets; present facets are combined with logical AND."""

    status: Optional[Tuple[str, ...]] = None
    category: Optional[Tuple[str, ...]] = None
    brand: Optional[Tuple[str, ...]] = None
    tags: Optional[Tuple[str, ...]] = None
    region: Optional[Tuple[str, ...]] = None
    type: Optional[Tuple[str, ...]] = None
    query: Optional[str] = None
    min_score: Optional[float] = Field(default=None, validation_alias=AliasChoices("min_score", "minScore"))
    max_score: Optional[float] = Field(default=None, validation_alias=AliasChoices("max_score", "maxScore"))

    @field_validator("status", "category", "brand", "tags", "region", "type", mode="before")
    @classmethod
    def _facet_tuple(cls, value):
        # an empty facet means "no constraint"
        values = tuple(v for v in _as_tuple(value) if v != "")
        return values or None
