"""
Composition of the engine configuration.

An EngineConfiguration is built once by ConfigurationBuilder (or from a JSON
document) and never mutated afterwards. Changing configuration means building
a new value and handing it to the classifier.
"""
import json
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from pydantic import Field, ValidationError as PydanticValidationError

from . import config
from .errors import ConfigurationError
from .lexicon import CompressedTrie, Lexicon, SynonymTable
from .models import (
    BrandEntry, CodeMappingEntry, FrozenModel, Language, RuleSet, ScoringWeights,
    SynonymEntry, VocabTerm,
)
from .normalize import TextNormalizer
from .tokenize import Tokenizer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LanguageBundle:
    """Everything the pipeline needs for one language."""

    language: str
    ruleset: RuleSet
    normalizer: TextNormalizer
    tokenizer: Tokenizer
    lexicon: Lexicon


@dataclass(frozen=True)
class EngineConfiguration:
    """Fully composed, read-only configuration consumed by the Classifier."""

    bundles: Mapping[str, LanguageBundle]
    weights: ScoringWeights
    mixed_tokenizer: Tokenizer
    brands: Tuple[BrandEntry, ...] = ()
    code_mapping: Mapping[str, CodeMappingEntry] = field(default_factory=lambda: MappingProxyType({}))

    def bundle(self, language: str) -> LanguageBundle:
        try:
            return self.bundles[language]
        except KeyError:
            raise ConfigurationError(f"No RuleSet configured for language '{language}'") from None

    def bundles_for(self, detected: str) -> Tuple[LanguageBundle, ...]:
        """Bundles consulted for a detected language ('mixed' uses Arabic then English)."""
        if detected == 'mixed':
            return self.bundle('ar'), self.bundle('en')
        return (self.bundle(detected),)

    def normalize(self, text, detected: str) -> str:
        """Canonical text for a detected language."""
        for bundle in self.bundles_for(detected):
            text = bundle.normalizer.normalize(text)
        return text

    def tokenizer_for(self, detected: str) -> Tokenizer:
        if detected == 'mixed':
            return self.mixed_tokenizer
        return self.bundle(detected).tokenizer

    @property
    def has_brands(self) -> bool:
        return bool(self.brands)

    @property
    def has_code_mapping(self) -> bool:
        return bool(self.code_mapping)


def _validate(model, value, what: str):
    if isinstance(value, model):
        return value
    try:
        return model.model_validate(value)
    except PydanticValidationError as exc:
        raise ConfigurationError(f"Invalid {what}: {exc}") from exc


def _check_language(language: str):
    if language not in config.SUPPORTED_LANGUAGES:
        raise ConfigurationError(
            f"Unsupported language '{language}' (expected one of {config.SUPPORTED_LANGUAGES})"
        )


class ConfigurationBuilder:
    """
    Fluent builder and validator for EngineConfiguration.

    Every input is validated when it is added; cross-cutting checks (required
    RuleSets, alias ambiguity, lexicon blobs) run in ``build()``.
    """

    def __init__(self):
        self._rulesets: Dict[str, RuleSet] = {}
        self._terms: Dict[str, List[VocabTerm]] = defaultdict(list)
        self._synonyms: Dict[str, List[SynonymEntry]] = defaultdict(list)
        self._stopwords: Dict[str, List[str]] = defaultdict(list)
        self._lexicon_blobs: Dict[str, Union[bytes, str]] = {}
        self._brands: List[BrandEntry] = []
        self._code_mapping: Dict[str, CodeMappingEntry] = {}
        self._weights: Optional[ScoringWeights] = None

    def with_ruleset(self, language: str, ruleset: Union[RuleSet, Mapping[str, Any]]) -> "ConfigurationBuilder":
        _check_language(language)
        self._rulesets[language] = _validate(RuleSet, ruleset, f"RuleSet for '{language}'")
        return self

    def add_terms(self, language: str, terms: Iterable[Union[VocabTerm, Mapping[str, Any]]]) -> "ConfigurationBuilder":
        _check_language(language)
        self._terms[language].extend(_validate(VocabTerm, term, "vocabulary term") for term in terms)
        return self

    def add_synonyms(self,
                     language: str,
                     entries: Iterable[Union[SynonymEntry, Mapping[str, Any]]]) -> "ConfigurationBuilder":
        """Add synonym entries; the table shards them by first character."""
        _check_language(language)
        entries = [_validate(SynonymEntry, entry, "synonym entry") for entry in entries]
        self._synonyms[language].extend(entries)
        return self

    def add_stopwords(self, language: str, words: Iterable[str]) -> "ConfigurationBuilder":
        _check_language(language)
        self._stopwords[language].extend(words)
        return self

    def with_lexicon_blob(self, language: str, blob: Union[bytes, str]) -> "ConfigurationBuilder":
        """Start the language's trie from a serialized blob instead of an empty tree."""
        _check_language(language)
        self._lexicon_blobs[language] = blob
        return self

    def with_brands(self, brands: Iterable[Union[BrandEntry, Mapping[str, Any]]]) -> "ConfigurationBuilder":
        self._brands = [_validate(BrandEntry, brand, "brand entry") for brand in brands]
        return self

    def with_code_mapping(self,
                          mapping: Mapping[str, Union[CodeMappingEntry, Mapping[str, Any]]]) -> "ConfigurationBuilder":
        self._code_mapping = {}
        for prefix, entry in mapping.items():
            key = str(prefix).strip().upper()
            if not key:
                raise ConfigurationError("Structured code prefixes must not be empty")
            self._code_mapping[key] = _validate(CodeMappingEntry, entry, f"code mapping '{prefix}'")
        return self

    def with_weights(self, weights: Union[ScoringWeights, Mapping[str, Any]]) -> "ConfigurationBuilder":
        self._weights = _validate(ScoringWeights, weights, "scoring weights")
        return self

    def build(self) -> EngineConfiguration:
        """
        Validate and compose the configuration.

        Raises:
            ConfigurationError: If a supported language has no RuleSet, an alias
                is ambiguous, or a lexicon blob is corrupt
        """
        missing = [language for language in config.SUPPORTED_LANGUAGES if language not in self._rulesets]
        if missing:
            raise ConfigurationError(f"Missing required RuleSet for: {', '.join(missing)}")

        bundles = {}
        for language in config.SUPPORTED_LANGUAGES:
            bundles[language] = self._build_bundle(language)

        mixed_aliases = dict(bundles['en'].tokenizer.aliases)
        mixed_aliases.update(bundles['ar'].tokenizer.aliases)
        mixed_stopwords = set()
        for bundle in bundles.values():
            mixed_stopwords.update(bundle.ruleset.stopwords)
            mixed_stopwords.update(bundle.tokenizer.stopwords)
        mixed_tokenizer = Tokenizer(stopwords=mixed_stopwords, aliases=mixed_aliases)

        engine_config = EngineConfiguration(
            bundles=MappingProxyType(bundles),
            weights=self._weights or ScoringWeights(),
            mixed_tokenizer=mixed_tokenizer,
            brands=tuple(self._brands),
            code_mapping=MappingProxyType(dict(self._code_mapping)),
        )

        sizes = ', '.join(f"{lang}={len(bundle.lexicon)} terms" for lang, bundle in bundles.items())
        logger.info(f"✅ Engine configuration built: {sizes}, {len(self._brands)} brands, "
                    f"{len(self._code_mapping)} code prefixes")
        return engine_config

    def _build_bundle(self, language: str) -> LanguageBundle:
        raw = self._rulesets[language]
        normalizer = TextNormalizer(language, raw.normalization or None)
        norm = normalizer.normalize

        def norm_all(words):
            return tuple(word for word in normalizer.normalize_batch(words) if word)

        def norm_groups(groups):
            return {name: norm_all(words) for name, words in groups.items()}

        ruleset = raw.model_copy(update={
            'hard_blockers': norm_groups(raw.hard_blockers),
            'soft_demotions': norm_groups(raw.soft_demotions),
            'pt_specific_boosts': norm_groups(raw.pt_specific_boosts),
            'contextual_boosts': {
                name: rule.model_copy(update={'keywords': norm_all(rule.keywords)})
                for name, rule in raw.contextual_boosts.items()
            },
            'penalty_rules': {
                name: rule.model_copy(update={'keywords': norm_all(rule.keywords)})
                for name, rule in raw.penalty_rules.items()
            },
            'cooccurrence_boosts': tuple(
                rule.model_copy(update={'terms': norm_all(rule.terms)})
                for rule in raw.cooccurrence_boosts
            ),
            'brand_boosts': {norm(brand): boost for brand, boost in raw.brand_boosts.items() if norm(brand)},
            'stopwords': norm_all(raw.stopwords + tuple(self._stopwords[language])),
        })

        if language in self._lexicon_blobs:
            trie = CompressedTrie.deserialize(self._lexicon_blobs[language])
            logger.info(f"📂 Loaded '{language}' lexicon blob with {len(trie):,} terms")
        else:
            trie = CompressedTrie()

        for term in self._terms[language]:
            key = norm(term.term)
            if not key:
                logger.warning(f"⚠️ Vocabulary term {term.term!r} is empty after normalization, skipped")
                continue
            trie.insert(key, term.model_copy(update={'term': key}))

        synonyms = SynonymTable()
        for entry in self._synonyms[language]:
            canonical = norm(entry.canonical)
            if not canonical:
                logger.warning(f"⚠️ Synonym canonical {entry.canonical!r} is empty after normalization, skipped")
                continue
            synonyms.add(entry.model_copy(update={
                'canonical': canonical,
                'aliases': norm_all(entry.aliases),
            }))

        tokenizer = Tokenizer(stopwords=ruleset.stopwords, aliases=synonyms.single_token_aliases())
        lexicon = Lexicon(language, trie, synonyms)
        logger.debug(f"Built '{language}' bundle: {lexicon!r}")
        return LanguageBundle(language, ruleset, normalizer, tokenizer, lexicon)


class ConfigurationDocument(FrozenModel):
    """Shape of a composed configuration document (e.g. a JSON file)."""

    version: Optional[str] = None
    rules: Dict[Language, RuleSet]
    vocabulary: Dict[Language, Tuple[VocabTerm, ...]] = Field(default_factory=dict)
    synonyms: Dict[Language, Tuple[SynonymEntry, ...]] = Field(default_factory=dict)
    synonym_shards: Dict[Language, Dict[str, Tuple[SynonymEntry, ...]]] = Field(default_factory=dict)
    stopwords: Dict[Language, Tuple[str, ...]] = Field(default_factory=dict)
    brands: Tuple[BrandEntry, ...] = ()
    code_mapping: Dict[str, CodeMappingEntry] = Field(default_factory=dict)
    weights: ScoringWeights = Field(default_factory=ScoringWeights)


def build_configuration(document: Union[ConfigurationDocument, Mapping[str, Any]]) -> EngineConfiguration:
    """
    Build an EngineConfiguration from an already-composed document.

    Args:
        document: Mapping with 'rules' and optional 'vocabulary', 'synonyms',
            'synonym_shards', 'stopwords', 'brands', 'code_mapping', 'weights'

    Raises:
        ConfigurationError: On unknown keys, malformed values or failed checks
    """
    document = _validate(ConfigurationDocument, document, "configuration document")

    builder = ConfigurationBuilder().with_weights(document.weights)
    for language, ruleset in document.rules.items():
        builder.with_ruleset(language, ruleset)
    for language, terms in document.vocabulary.items():
        builder.add_terms(language, terms)
    for language, entries in document.synonyms.items():
        builder.add_synonyms(language, entries)
    for language, shards in document.synonym_shards.items():
        for entries in shards.values():
            builder.add_synonyms(language, entries)
    for language, words in document.stopwords.items():
        builder.add_stopwords(language, words)
    if document.brands:
        builder.with_brands(document.brands)
    if document.code_mapping:
        builder.with_code_mapping(document.code_mapping)

    if document.version:
        logger.info(f"📋 Building configuration version {document.version}")
    return builder.build()


def load_configuration(path: Union[str, Path]) -> EngineConfiguration:
    """Read a JSON configuration document from disk and build it."""
    path = Path(path)
    logger.info(f"📂 Loading configuration from {path}")
    try:
        with open(path, 'r', encoding='utf-8') as f:
            document = json.load(f)
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Configuration file {path} is not valid JSON: {exc}") from exc
    return build_configuration(document)
