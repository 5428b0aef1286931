"""
Shared fixtures: a small bilingual engine configuration used across tests.
"""
import copy

import pytest

from ptscreen.categorisation import Classifier
from ptscreen.compose import build_configuration
from ptscreen.filtering import ResultFilter

SCENARIO_DOCUMENT = {
    'rules': {
        'en': {
            'hard_blockers': {'diagnostic_imaging': ['Diagnostic Ultrasound', 'x-ray']},
            'soft_demotions': {'general_medical': ['disposable', 'single use']},
            'pt_specific_boosts': {'mobility_terms': ['mobility', 'gait']},
            'contextual_boosts': {
                'therapy_context': {'keywords': ['therapeutic', 'therapy'], 'boost_factor': 1.5},
            },
            'penalty_rules': {
                'veterinary_penalty': {'keywords': ['veterinary'], 'penalty_factor': 0.5},
            },
            'cooccurrence_boosts': [
                {'name': 'therapeutic_ultrasound', 'terms': ['ultrasound', 'therapeutic'], 'boost': 15},
                {'name': 'tens_electrodes', 'terms': ['tens', 'electrode'], 'boost': 10},
            ],
            'thresholds': {'high': 60, 'medium': 40, 'low': 25, 'rejection': 15},
        },
        'ar': {
            'hard_blockers': {'pharmaceuticals': ['دواء']},
            'thresholds': {'high': 45, 'medium': 35, 'low': 25, 'rejection': 15},
        },
    },
    'vocabulary': {
        'en': [
            {'term': 'ultrasound', 'weight': 40, 'category': 'Electrotherapy', 'domain': 'modalities'},
            {'term': 'tens', 'weight': 35, 'category': 'Electrotherapy', 'domain': 'modalities'},
            {'term': 'electrode', 'weight': 10, 'category': 'Consumables', 'domain': 'consumables'},
            {'term': 'wheelchair', 'weight': 40, 'category': 'Mobility', 'domain': 'mobility'},
            {'term': 'walker', 'weight': 30, 'category': 'Mobility', 'domain': 'mobility'},
            {'term': 'parallel bars', 'weight': 45, 'category': 'Exercise', 'domain': 'gait training'},
        ],
    },
    'synonyms': {
        'en': [
            {'canonical': 'walker', 'aliases': ['rollator', 'walking frame']},
        ],
        'ar': [
            {'canonical': 'wheelchair', 'aliases': ['كرسي متحرك', 'كرسي عجلات'], 'weight': 40},
        ],
    },
    'brands': [
        {'name': 'Chattanooga', 'categories': ['Electrotherapy'], 'reputation_score': 90, 'domain_focus': True},
        {'name': 'Philips', 'categories': ['Imaging'], 'reputation_score': 90, 'domain_focus': False},
    ],
    'code_mapping': {
        '4220': {'category': 'Mobility', 'relevance': 'high'},
        '4222': {'category': 'Exercise', 'relevance': 'medium'},
        '4210': {'category': 'Imaging', 'relevance': 'exclude'},
    },
}


@pytest.fixture
def scenario_document():
    return copy.deepcopy(SCENARIO_DOCUMENT)


@pytest.fixture
def configuration(scenario_document):
    return build_configuration(scenario_document)


@pytest.fixture
def classifier(configuration):
    return Classifier(configuration)


@pytest.fixture
def result_filter(configuration):
    return ResultFilter.from_configuration(configuration)


@pytest.fixture
def catalogue():
    """Records covering the filter facets."""
    return [
        {'id': '1', 'name': 'Therapeutic Ultrasound Unit with TENS Electrode', 'brand': 'Chattanooga',
         'tags': 'rehab, modalities', 'region': 'SA', 'type': 'device'},
        {'id': '2', 'name': 'Diagnostic Ultrasound Cardiac Scanner', 'brand': 'Philips',
         'tags': 'imaging', 'region': 'AE', 'type': 'device'},
        {'id': '3', 'name': 'كرسي متحرك للمرضى', 'region': 'SA', 'type': 'mobility'},
        {'id': '4', 'name': 'Folding Walker', 'description': 'aluminium frame', 'brand': 'Invacare',
         'tags': ['rehab'], 'region': 'SA', 'type': 'mobility'},
        {'id': '5', 'name': 'Office Chair', 'brand': 'Ikea', 'region': 'AE', 'type': 'furniture'},
    ]


@pytest.fixture
def catalogue_results(classifier, catalogue):
    return [classifier.classify(record) for record in catalogue]
