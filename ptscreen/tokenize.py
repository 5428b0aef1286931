"""
Tokenization of normalized text: script-aware splitting, stopword removal
and alias rewriting to canonical vocabulary terms.
"""
import logging
import re
from typing import FrozenSet, Iterable, Iterator, List, Mapping, NamedTuple, Optional, Sequence

from .normalize import ARABIC_LETTERS

logger = logging.getLogger(__name__)

# Stopwords are listed in their normalized form (hamza, alef maqsura and
# ta marbuta already folded).
ARABIC_STOPWORDS = frozenset({
    "في", "من", "الي", "علي", "عن", "مع", "هذا", "هذه", "ذلك", "تلك",
    "التي", "الذي", "الذين", "او", "و", "ثم", "لا", "ما", "كل", "بعض", "غير",
    "ان", "كان", "قد", "هو", "هي", "هم", "نحن", "انت", "به", "بها", "له", "لها",
    "عند", "بين", "حتي", "اذا", "كما", "لم", "لن", "ذات", "ذو",
})

ENGLISH_STOPWORDS = frozenset({
    "a", "an", "the", "and", "or", "of", "for", "with", "to", "in", "on", "at",
    "by", "from", "is", "are", "be", "this", "that", "these", "those", "as",
    "it", "its", "into", "per", "via",
})

BUILTIN_STOPWORDS = {"ar": ARABIC_STOPWORDS, "en": ENGLISH_STOPWORDS}

# An Arabic run, or a run of other word characters with internal hyphens.
# Keeping the two alternatives disjoint splits "جهازtens" into two tokens.
_TOKEN_PATTERN = re.compile(
    f"[{ARABIC_LETTERS}]+|[^\\W_{ARABIC_LETTERS}]+(?:-[^\\W_{ARABIC_LETTERS}]+)*"
)


class _TokenizerTables(NamedTuple):
    stopwords: FrozenSet[str]
    extra_stopwords: FrozenSet[str]
    aliases: Mapping[str, str]


class Tokenizer:
    """
    Splits normalized text into canonical tokens.

    Stopword and alias tables live in one immutable snapshot. ``update_config``
    builds a new snapshot and swaps the reference, so a call that is already
    running keeps working against the tables it started with.
    """

    def __init__(self,
                 stopwords: Iterable[str] = (),
                 aliases: Optional[Mapping[str, str]] = None,
                 languages: Sequence[str] = ("ar", "en")):
        """
        Args:
            stopwords: Extra stopwords added to the builtin lists
            aliases: Single-token alias -> canonical term
            languages: Languages whose builtin stopword lists are included
        """
        self.languages = tuple(languages)
        self._tables = self._build_tables(stopwords, aliases)

    def _build_tables(self, stopwords, aliases) -> _TokenizerTables:
        extra = frozenset(word for word in stopwords if word)
        combined = set(extra)
        for language in self.languages:
            combined.update(BUILTIN_STOPWORDS.get(language, ()))
        return _TokenizerTables(frozenset(combined), extra, dict(aliases or {}))

    @property
    def stopwords(self) -> FrozenSet[str]:
        return self._tables.stopwords

    @property
    def aliases(self) -> Mapping[str, str]:
        return dict(self._tables.aliases)

    def update_config(self,
                      stopwords: Optional[Iterable[str]] = None,
                      aliases: Optional[Mapping[str, str]] = None):
        """
        Replace the stopword additions and/or alias table.

        Args:
            stopwords: New extra stopwords (current additions kept if None)
            aliases: New alias table (current table kept if None)
        """
        current = self._tables
        if stopwords is None:
            stopwords = current.extra_stopwords
        if aliases is None:
            aliases = current.aliases
        self._tables = self._build_tables(stopwords, aliases)
        logger.debug(f"Tokenizer tables swapped: {len(self._tables.stopwords)} stopwords, "
                     f"{len(self._tables.aliases)} aliases")

    def split(self, text: str) -> List[str]:
        """Surface tokens in text order, stopwords removed, aliases untouched."""
        if not text:
            return []
        stopwords = self._tables.stopwords
        return [token for token in _TOKEN_PATTERN.findall(text) if token not in stopwords]

    def tokenize_ordered(self, text: str) -> List[str]:
        """Canonical tokens in text order (duplicates kept), for phrase matching."""
        if not text:
            return []
        tables = self._tables
        tokens = []
        for token in _TOKEN_PATTERN.findall(text):
            if token in tables.stopwords:
                continue
            tokens.append(tables.aliases.get(token, token))
        return tokens

    def tokenize(self, text: str) -> FrozenSet[str]:
        """
        Tokenize normalized text into a set of canonical tokens.

        Args:
            text: Normalized text

        Returns:
            Deduplicated, unordered token set
        """
        return frozenset(self.tokenize_ordered(text))

    def __call__(self, text: str) -> FrozenSet[str]:
        return self.tokenize(text)


def n_grams(tokens: Sequence[str], n: int) -> Iterator[str]:
    """
    Contiguous n-token windows joined by a single space.

    Args:
        tokens: Ordered tokens
        n: Window size (must be >= 1)

    Returns:
        A one-shot iterator over the windows, in order

    Raises:
        ValueError: If n < 1 (raised at call time, not on first iteration)
    """
    if n < 1:
        raise ValueError(f"n must be >= 1, got {n}")
    tokens = list(tokens)
    return _windows(tokens, n)


def _windows(tokens: List[str], n: int) -> Iterator[str]:
    for start in range(len(tokens) - n + 1):
        yield " ".join(tokens[start:start + n])
