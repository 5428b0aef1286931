"""
Text normalization utilities for inventory item descriptions.
Handles Arabic/English canonicalization, script detection and fingerprints.
"""
import hashlib
import logging
import math
import re
import unicodedata
from typing import Dict, Iterable, Optional, Sequence

from . import config
from .models import NormalizationRule

logger = logging.getLogger(__name__)

# Arabic letters (hamza through yeh, plus extended Persian/Urdu letters).
# Diacritics, tatweel and Arabic punctuation are deliberately excluded.
ARABIC_LETTERS = "\u0620-\u063F\u0641-\u064A\u066E-\u06D3\u06D5\u06FA-\u06FC"

_ARABIC_CHAR = re.compile(f"[{ARABIC_LETTERS}]")
_LATIN_CHAR = re.compile(r"[A-Za-zÀ-ɏ]")
_WHITESPACE = re.compile(r"\s+")

# Arabic-Indic (U+0660) and extended Arabic-Indic (U+06F0) digits.
_DIGIT_TABLE = str.maketrans(
    "".join(chr(0x0660 + i) for i in range(10)) + "".join(chr(0x06F0 + i) for i in range(10)),
    "0123456789" * 2,
)

_PUNCTUATION_RULES = (
    NormalizationRule(name="punctuation", pattern=r"[^\w\s-]", replacement=" "),
    NormalizationRule(name="underscore", pattern=r"_", replacement=" "),
    NormalizationRule(name="stray_hyphens", pattern=r"(?<!\w)-+|-+(?!\w)", replacement=" "),
)

# Builtin processing order per language. Diacritics must go before
# punctuation stripping, otherwise combining marks split words apart.
DEFAULT_RULES: Dict[str, tuple] = {
    "ar": (
        NormalizationRule(name="diacritics", pattern="[\u064B-\u065F\u0670]", replacement=""),
        NormalizationRule(name="tatweel", pattern="\u0640", replacement=""),
        NormalizationRule(name="hamza_alef", pattern="[\u0623\u0625\u0622\u0671]", replacement="\u0627"),
        NormalizationRule(name="alef_maqsura", pattern="\u0649", replacement="\u064A"),
        NormalizationRule(name="ta_marbuta", pattern="\u0629", replacement="\u0647"),
        NormalizationRule(name="waw_hamza", pattern="\u0624", replacement="\u0648"),
        NormalizationRule(name="ya_hamza", pattern="\u0626", replacement="\u064A"),
    ) + _PUNCTUATION_RULES,
    "en": _PUNCTUATION_RULES,
}


class TextNormalizer:
    """
    Rule-driven text normalization for one language.

    The steps are applied in their declared order after case folding and
    digit folding; whitespace is always collapsed at the end.
    """

    def __init__(self,
                 language: str = 'en',
                 rules: Optional[Sequence[NormalizationRule]] = None,
                 lowercase: bool = True,
                 fold_digits: bool = True):
        """
        Initialize normalizer with language-specific settings.

        Args:
            language: Language code ('ar' or 'en')
            rules: Ordered normalization steps (builtin steps if None or empty)
            lowercase: Whether to fold case
            fold_digits: Whether to map Arabic-Indic digits to ASCII digits

        Raises:
            re.error: If a rule pattern does not compile
        """
        self.language = language
        self.rules = tuple(rules) if rules else DEFAULT_RULES.get(language, DEFAULT_RULES['en'])
        self.lowercase = lowercase
        self.fold_digits = fold_digits
        self._compiled = [(rule, re.compile(rule.pattern)) for rule in self.rules]

    def normalize(self, text) -> str:
        """
        Apply the full normalization pipeline to text.

        Args:
            text: Input text (None, NaN and empty input yield '')

        Returns:
            Canonical text
        """
        if text is None:
            return ''
        if isinstance(text, float) and math.isnan(text):
            return ''
        if not isinstance(text, str):
            text = str(text)
        if not text:
            return ''

        result = unicodedata.normalize('NFC', text)

        if self.lowercase:
            result = result.lower()

        if self.fold_digits:
            result = result.translate(_DIGIT_TABLE)

        for rule, pattern in self._compiled:
            result = pattern.sub(rule.replacement, result)

        return _WHITESPACE.sub(' ', result).strip()

    def normalize_batch(self, texts: Iterable) -> list:
        """Normalize a batch of texts."""
        return [self.normalize(text) for text in texts]

    def __call__(self, text) -> str:
        return self.normalize(text)

    def __repr__(self):
        return f"{self.__class__.__name__}(language='{self.language}', steps={len(self.rules)})"


class MultilingualNormalizer:
    """
    Handles normalization across languages with script-based detection.
    Mixed-script text is passed through the Arabic and then the English steps.
    """

    def __init__(self, normalizers: Optional[Dict[str, TextNormalizer]] = None):
        self.normalizers = dict(normalizers or {})

    def get_normalizer(self, language: str) -> TextNormalizer:
        """Get or create the normalizer for a language."""
        if language not in self.normalizers:
            self.normalizers[language] = TextNormalizer(language)
        return self.normalizers[language]

    def detect_language(self, text: str) -> str:
        return detect_language(text)

    def normalize_multilingual(self, text, language: Optional[str] = None) -> str:
        """
        Normalize text with automatic or specified language detection.

        Args:
            text: Input text
            language: 'ar', 'en' or 'mixed' (detected when None)

        Returns:
            Normalized text
        """
        if language is None:
            language = self.detect_language(text if isinstance(text, str) else '')

        if language == 'mixed':
            return self.get_normalizer('en').normalize(self.get_normalizer('ar').normalize(text))
        return self.get_normalizer(language).normalize(text)


def detect_language(text: str, min_chars: Optional[int] = None) -> str:
    """
    Detect the script of a text.

    Any Arabic letter makes the text Arabic, unless both Arabic and Latin
    letters reach ``min_chars``, in which case it is 'mixed'.
    Everything else is treated as English.
    """
    if not text:
        return 'en'
    if min_chars is None:
        min_chars = config.MIXED_SCRIPT_MIN_CHARS

    arabic = len(_ARABIC_CHAR.findall(text))
    if not arabic:
        return 'en'
    latin = len(_LATIN_CHAR.findall(text))
    if arabic >= min_chars and latin >= min_chars:
        return 'mixed'
    return 'ar'


def fingerprint(canonical_text: str) -> str:
    """
    Stable, word-order-insensitive hash of canonical text.
    'manual wheelchair' and 'wheelchair manual' share a fingerprint.
    """
    words = sorted(set(canonical_text.split()))
    digest = hashlib.sha1(' '.join(words).encode('utf-8')).hexdigest()
    return digest[:16]
