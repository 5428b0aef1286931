"""
Central configuration for the PT equipment classification engine.
All scoring defaults, thresholds and runtime settings in one place.
"""
from pathlib import Path
from typing import Dict, Any

# ═══════════════════════════════════════════════════════════════
# PATHS AND DIRECTORIES
# ═══════════════════════════════════════════════════════════════
PROJECT_ROOT = Path(__file__).parent.parent
ARTIFACTS_DIR = PROJECT_ROOT / "artifacts"

# ═══════════════════════════════════════════════════════════════
# LANGUAGE SETTINGS
# ═══════════════════════════════════════════════════════════════
# Every configuration must carry a RuleSet for each of these
SUPPORTED_LANGUAGES = ("ar", "en")

# Both scripts need at least this many letters before a text counts as mixed
MIXED_SCRIPT_MIN_CHARS = 3

# ═══════════════════════════════════════════════════════════════
# CONFIDENCE THRESHOLDS (fallbacks when a RuleSet omits them)
# ═══════════════════════════════════════════════════════════════
DEFAULT_HIGH_CONFIDENCE_THRESHOLD = 45.0
DEFAULT_MEDIUM_CONFIDENCE_THRESHOLD = 35.0
DEFAULT_LOW_CONFIDENCE_THRESHOLD = 25.0
DEFAULT_REJECTION_THRESHOLD = 15.0

# ═══════════════════════════════════════════════════════════════
# SCORING SETTINGS
# ═══════════════════════════════════════════════════════════════
# Hard blocker match (terminal)
BLOCKER_PENALTY = -100.0

# Per soft demotion match (accumulates)
DEMOTION_PENALTY = -15.0

# Structured code tiers
CODE_HIGH_BONUS = 30.0
CODE_MEDIUM_BONUS = 15.0
CODE_EXCLUDE_PENALTY = -50.0

# A boost factor f is worth (f - 1) * FACTOR_TO_POINTS points
FACTOR_TO_POINTS = 20.0

# Domain-focused brand boost = reputation * BRAND_REPUTATION_FACTOR
BRAND_REPUTATION_FACTOR = 0.2

# Minimum rapidfuzz ratio (0-100) for a record brand to match a known brand
BRAND_MATCH_THRESHOLD = 90.0

# Points per PT-specific keyword group with a hit
PT_SPECIFIC_BOOST = 5.0

# ═══════════════════════════════════════════════════════════════
# LEXICON SETTINGS
# ═══════════════════════════════════════════════════════════════
# Longest phrase (in tokens) looked up against the vocabulary
NGRAM_MAX = 3

# Fuzzy vocabulary matching during classification (0 = disabled)
FUZZY_DISTANCE = 0
FUZZY_WEIGHT_FACTOR = 0.8
FUZZY_MIN_TOKEN_LENGTH = 5

# Hard cap on any edit-distance budget passed to lookup_fuzzy
FUZZY_MAX_DISTANCE_LIMIT = 3

# Default result limits for lexicon queries
PREFIX_LOOKUP_LIMIT = 10
FUZZY_LOOKUP_LIMIT = 5

# ═══════════════════════════════════════════════════════════════
# BATCH SETTINGS
# ═══════════════════════════════════════════════════════════════
# Worker threads for batch classification (None or 1 = sequential)
N_JOBS = None

# Log progress every N records
PROGRESS_EVERY = 10_000

# ═══════════════════════════════════════════════════════════════
# OUTPUT SETTINGS
# ═══════════════════════════════════════════════════════════════
# Output format: 'feather', 'parquet', 'csv'
OUTPUT_FORMAT = "csv"

# Compression for feather/parquet output
COMPRESSION = "lz4"

# Number of explanation contributions reported by Classifier.explain()
EXPLAIN_TOP_REASONS = 3

# ═══════════════════════════════════════════════════════════════
# LOGGING SETTINGS
# ═══════════════════════════════════════════════════════════════
LOG_LEVEL = "INFO"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def get_config() -> Dict[str, Any]:
    """Get all configuration as a dictionary."""
    config_vars = {
        name: value for name, value in globals().items()
        if not name.startswith('_') and name.isupper()
    }
    return config_vars


def override_config(**kwargs):
    """Override configuration values at runtime."""
    unknown = [key for key in kwargs if key not in get_config()]
    if unknown:
        raise KeyError(f"Unknown configuration keys: {unknown}")
    globals().update(kwargs)


def get_artifact_path(name: str, extension: str = None) -> Path:
    """Get path for an artifact file."""
    if extension is None:
        extension = OUTPUT_FORMAT
    filename = f"{name}.{extension}"
    return ARTIFACTS_DIR / filename
