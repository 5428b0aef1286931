"""
Error taxonomy for the classification engine.
"""


class ConfigurationError(ValueError):
    """
    Fatal problem with the engine configuration.

    Raised while building or validating an EngineConfiguration, before any
    record is processed: a missing RuleSet, an ambiguous alias table, an
    invalid normalization pattern or a corrupt lexicon blob.
    """


class ValidationError(ValueError):
    """A single input record is unusable (missing id or name)."""

    def __init__(self, message: str, record_id: str = None):
        super().__init__(message)
        self.record_id = record_id
