"""
Scoring stages of the classification engine.
"""
from .contextual import ContextualScorer, ScoreOutcome

__all__ = ['ContextualScorer', 'ScoreOutcome']
