"""
Vocabulary storage: compressed trie and per-language lexicon.
"""
from .store import Lexicon, LexiconMatch, SynonymTable
from .trie import CompressedTrie

__all__ = ['CompressedTrie', 'Lexicon', 'LexiconMatch', 'SynonymTable']
