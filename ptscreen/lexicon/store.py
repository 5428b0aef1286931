"""
Per-language lexicon: the vocabulary trie plus a sharded synonym table.
"""
import logging
from typing import Dict, Iterable, List, NamedTuple, Optional, Tuple

from .. import config
from ..errors import ConfigurationError
from ..models import SynonymEntry, VocabTerm
from .trie import CompressedTrie

logger = logging.getLogger(__name__)


class LexiconMatch(NamedTuple):
    surface: str
    canonical: str
    weight: float
    category: Optional[str]
    domain: Optional[str]
    via: str  # 'exact', 'alias' or 'fuzzy'


class SynonymTable:
    """
    Alias -> canonical term table, partitioned by the alias's first character.

    Shards can be loaded incrementally; every load is checked against what is
    already present so that no alias ever resolves to two canonical terms.
    """

    def __init__(self, entries: Iterable[SynonymEntry] = ()):
        self._shards: Dict[str, Dict[str, Tuple[str, float]]] = {}
        self.add_entries(entries)

    def _register(self, alias: str, canonical: str, weight: float):
        if not alias:
            return
        shard = self._shards.setdefault(alias[0], {})
        existing = shard.get(alias)
        if existing is None:
            shard[alias] = (canonical, weight)
            return
        if existing[0] != canonical:
            raise ConfigurationError(
                f"Ambiguous alias {alias!r}: maps to both {existing[0]!r} and {canonical!r}"
            )
        if weight > existing[1]:
            shard[alias] = (canonical, weight)

    def add(self, entry: SynonymEntry):
        self._register(entry.canonical, entry.canonical, entry.weight)
        for alias in entry.aliases:
            self._register(alias, entry.canonical, entry.weight)

    def add_entries(self, entries: Iterable[SynonymEntry]):
        """Load a batch (e.g. one shard file) of synonym entries."""
        for entry in entries:
            self.add(entry)

    def resolve(self, alias: str) -> Optional[Tuple[str, float]]:
        """(canonical, weight) for an alias, or None."""
        if not alias:
            return None
        shard = self._shards.get(alias[0])
        if shard is None:
            return None
        return shard.get(alias)

    def single_token_aliases(self) -> Dict[str, str]:
        """Aliases without spaces that differ from their canonical term."""
        return {
            alias: canonical
            for shard in self._shards.values()
            for alias, (canonical, _) in shard.items()
            if ' ' not in alias and alias != canonical
        }

    def shard_keys(self) -> List[str]:
        return sorted(self._shards)

    def __len__(self):
        return sum(len(shard) for shard in self._shards.values())


class Lexicon:
    """Vocabulary lookups for one language: exact, alias and fuzzy."""

    def __init__(self,
                 language: str,
                 trie: Optional[CompressedTrie] = None,
                 synonyms: Optional[SynonymTable] = None):
        self.language = language
        self.trie = trie if trie is not None else CompressedTrie()
        self.synonyms = synonyms if synonyms is not None else SynonymTable()

    def add_term(self, term: VocabTerm):
        self.trie.insert(term.term, term)

    def add_synonym(self, entry: SynonymEntry):
        self.synonyms.add(entry)

    def lookup(self, candidate: str) -> Optional[LexiconMatch]:
        """
        Resolve a token or phrase against the vocabulary.

        An exact trie hit wins. Otherwise the synonym table is consulted; an
        alias with a positive weight of its own scores that weight, else it
        inherits the canonical term's weight. Category and domain always come
        from the canonical term.
        """
        term = self.trie.lookup_exact(candidate)
        if term is not None:
            return LexiconMatch(candidate, term.term, term.weight, term.category, term.domain, 'exact')

        resolved = self.synonyms.resolve(candidate)
        if resolved is None:
            return None

        canonical, alias_weight = resolved
        term = self.trie.lookup_exact(canonical)
        if term is None:
            if alias_weight <= 0:
                return None
            return LexiconMatch(candidate, canonical, alias_weight, None, None, 'alias')

        weight = alias_weight if alias_weight > 0 else term.weight
        return LexiconMatch(candidate, term.term, weight, term.category, term.domain, 'alias')

    def fuzzy(self, candidate: str, max_edit_distance: int, limit: Optional[int] = None) -> List[LexiconMatch]:
        """Near-miss vocabulary terms for a candidate, closest first."""
        if limit is None:
            limit = config.FUZZY_LOOKUP_LIMIT
        return [
            LexiconMatch(candidate, term.term, term.weight, term.category, term.domain, 'fuzzy')
            for term, _ in self.trie.fuzzy_matches(candidate, max_edit_distance, limit)
        ]

    def __len__(self):
        return len(self.trie)

    def __repr__(self):
        return f"Lexicon(language='{self.language}', terms={len(self.trie)}, aliases={len(self.synonyms)})"
