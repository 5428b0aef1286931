"""
Categorisation package: rule- and vocabulary-based PT relevance classification.
"""
from .classifier import Classifier

__all__ = ['Classifier']
