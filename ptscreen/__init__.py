"""
PT equipment screening: bilingual (Arabic/English) rule- and vocabulary-based
classification of inventory items as physiotherapy/rehabilitation equipment.
"""
from .categorisation import Classifier
from .compose import ConfigurationBuilder, EngineConfiguration, build_configuration, load_configuration
from .errors import ConfigurationError, ValidationError
from .filtering import ResultFilter, filter_results, sort_results
from .models import ClassificationResult, FilterOptions, Record, SkippedRecord

__version__ = "0.1.0"

__all__ = [
    'Classifier',
    'ConfigurationBuilder',
    'EngineConfiguration',
    'build_configuration',
    'load_configuration',
    'ConfigurationError',
    'ValidationError',
    'ResultFilter',
    'filter_results',
    'sort_results',
    'ClassificationResult',
    'FilterOptions',
    'Record',
    'SkippedRecord',
]
