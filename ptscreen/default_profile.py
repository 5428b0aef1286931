"""
Bundled rule profile for physiotherapy and rehabilitation equipment.

Used by the command-line runner when no configuration file is given, and a
reasonable starting point for custom profiles.
"""
from .compose import EngineConfiguration, build_configuration

_EN_RULES = {
    'hard_blockers': {
        'diagnostic_imaging': ['diagnostic ultrasound', 'x-ray', 'radiology', 'ct scanner', 'mri scanner'],
        'surgical_equipment': ['scalpel', 'suture', 'laparoscope', 'surgical'],
        'pharmaceuticals': ['pharmacy', 'medication', 'tablet', 'syrup'],
    },
    'soft_demotions': {
        'general_medical': ['disposable', 'syringe', 'glove', 'gauze'],
    },
    'pt_specific_boosts': {
        'mobility_terms': ['mobility', 'wheelchair', 'walker', 'crutch'],
        'therapy_modalities': ['therapy', 'rehabilitation', 'exercise'],
    },
    'contextual_boosts': {
        'rehabilitation_context': {
            'keywords': ['rehabilitation', 'therapy', 'exercise'],
            'boost_factor': 1.2,
        },
        'therapeutic_context': {
            'keywords': ['therapeutic'],
            'boost_factor': 1.5,
        },
    },
    'penalty_rules': {
        'diagnostic_penalty': {
            'keywords': ['diagnostic', 'imaging'],
            'penalty_factor': 0.5,
        },
    },
    'cooccurrence_boosts': [
        {'name': 'therapeutic_ultrasound', 'terms': ['ultrasound', 'therapeutic'], 'boost': 15},
        {'name': 'tens_electrodes', 'terms': ['tens', 'electrode'], 'boost': 10},
        {'name': 'hot_pack_heater', 'terms': ['hot pack', 'heater'], 'boost': 10},
    ],
    'thresholds': {'high': 45, 'medium': 35, 'low': 25, 'rejection': 15},
}

_AR_RULES = {
    'hard_blockers': {
        'diagnostic_imaging': ['اشعه سينيه', 'تصوير طبقي', 'رنين مغناطيسي'],
        'surgical_equipment': ['مشرط', 'جراحه', 'جراحي'],
        'pharmaceuticals': ['دواء', 'اقراص', 'شراب'],
    },
    'soft_demotions': {
        'general_medical': ['استعمال واحد', 'حقنه', 'قفازات'],
    },
    'pt_specific_boosts': {
        'mobility_terms': ['كرسي متحرك', 'مشايه', 'عكاز'],
        'therapy_modalities': ['علاج طبيعي', 'تاهيل', 'تمارين'],
    },
    'contextual_boosts': {
        'rehabilitation_context': {
            'keywords': ['تاهيل', 'علاج طبيعي', 'تمارين'],
            'boost_factor': 1.2,
        },
    },
    'penalty_rules': {
        'diagnostic_penalty': {
            'keywords': ['تشخيص', 'تشخيصي'],
            'penalty_factor': 0.5,
        },
    },
    'cooccurrence_boosts': [
        {'name': 'therapeutic_ultrasound', 'terms': ['موجات', 'علاجي'], 'boost': 15},
    ],
    'thresholds': {'high': 50, 'medium': 40, 'low': 25, 'rejection': 15},
}

_EN_VOCABULARY = [
    {'term': 'ultrasound', 'weight': 30, 'category': 'Electrotherapy', 'domain': 'modalities'},
    {'term': 'tens', 'weight': 35, 'category': 'Electrotherapy', 'domain': 'modalities'},
    {'term': 'electrotherapy', 'weight': 40, 'category': 'Electrotherapy', 'domain': 'modalities'},
    {'term': 'electrode', 'weight': 15, 'category': 'Electrotherapy', 'domain': 'consumables'},
    {'term': 'wheelchair', 'weight': 40, 'category': 'Mobility', 'domain': 'mobility'},
    {'term': 'walker', 'weight': 30, 'category': 'Mobility', 'domain': 'mobility'},
    {'term': 'rollator', 'weight': 35, 'category': 'Mobility', 'domain': 'mobility'},
    {'term': 'crutch', 'weight': 30, 'category': 'Mobility', 'domain': 'mobility'},
    {'term': 'treadmill', 'weight': 25, 'category': 'Exercise', 'domain': 'exercise'},
    {'term': 'parallel bars', 'weight': 45, 'category': 'Exercise', 'domain': 'gait training'},
    {'term': 'resistance band', 'weight': 35, 'category': 'Exercise', 'domain': 'exercise'},
    {'term': 'exercise bike', 'weight': 30, 'category': 'Exercise', 'domain': 'exercise'},
    {'term': 'hot pack', 'weight': 35, 'category': 'Thermotherapy', 'domain': 'modalities'},
    {'term': 'cold pack', 'weight': 30, 'category': 'Thermotherapy', 'domain': 'modalities'},
    {'term': 'paraffin bath', 'weight': 40, 'category': 'Thermotherapy', 'domain': 'modalities'},
    {'term': 'traction', 'weight': 35, 'category': 'Traction', 'domain': 'manual therapy'},
    {'term': 'treatment table', 'weight': 35, 'category': 'Furniture', 'domain': 'clinic'},
    {'term': 'goniometer', 'weight': 40, 'category': 'Assessment', 'domain': 'assessment'},
    {'term': 'orthosis', 'weight': 30, 'category': 'Orthotics', 'domain': 'orthotics'},
]

_AR_VOCABULARY = [
    {'term': 'علاج طبيعي', 'weight': 40, 'category': 'Therapy', 'domain': 'modalities'},
    {'term': 'تحفيز كهربائي', 'weight': 40, 'category': 'Electrotherapy', 'domain': 'modalities'},
    {'term': 'موجات فوق صوتيه', 'weight': 30, 'category': 'Electrotherapy', 'domain': 'modalities'},
    {'term': 'مشايه', 'weight': 30, 'category': 'Mobility', 'domain': 'mobility'},
    {'term': 'عكاز', 'weight': 30, 'category': 'Mobility', 'domain': 'mobility'},
    {'term': 'جهاز شد', 'weight': 35, 'category': 'Traction', 'domain': 'manual therapy'},
    {'term': 'كمادات ساخنه', 'weight': 35, 'category': 'Thermotherapy', 'domain': 'modalities'},
]

_SYNONYMS = {
    'en': [
        {'canonical': 'wheelchair', 'aliases': ['wheel chair', 'w/c']},
        {'canonical': 'tens', 'aliases': ['tens unit', 'nerve stimulator']},
        {'canonical': 'walker', 'aliases': ['walking frame', 'zimmer frame']},
        {'canonical': 'crutch', 'aliases': ['crutches']},
        {'canonical': 'treatment table', 'aliases': ['plinth', 'treatment couch']},
    ],
    'ar': [
        {'canonical': 'wheelchair', 'aliases': ['كرسي متحرك', 'كرسي عجلات', 'كرسي مقعدين'], 'weight': 40},
        {'canonical': 'علاج طبيعي', 'aliases': ['علاج فيزيائي']},
        {'canonical': 'مشايه', 'aliases': ['ووكر']},
    ],
}

_BRANDS = [
    {'name': 'Chattanooga', 'categories': ['Electrotherapy', 'Thermotherapy'],
     'reputation_score': 90, 'domain_focus': True, 'country': 'US'},
    {'name': 'Enraf-Nonius', 'categories': ['Electrotherapy'],
     'reputation_score': 85, 'domain_focus': True, 'country': 'NL'},
    {'name': 'BTL', 'categories': ['Electrotherapy'],
     'reputation_score': 80, 'domain_focus': True, 'country': 'CZ'},
    {'name': 'Invacare', 'categories': ['Mobility'],
     'reputation_score': 80, 'domain_focus': True, 'country': 'US'},
    {'name': 'Ottobock', 'categories': ['Orthotics', 'Mobility'],
     'reputation_score': 85, 'domain_focus': True, 'country': 'DE'},
    {'name': 'Thera-Band', 'categories': ['Exercise'],
     'reputation_score': 75, 'domain_focus': True, 'country': 'US'},
    {'name': 'Philips', 'categories': ['Imaging'],
     'reputation_score': 90, 'domain_focus': False, 'country': 'NL'},
    {'name': 'GE Healthcare', 'categories': ['Imaging'],
     'reputation_score': 90, 'domain_focus': False, 'country': 'US'},
]

_CODE_MAPPING = {
    '4220': {'category': 'Mobility', 'relevance': 'high', 'description': 'Wheelchairs and mobility aids'},
    '4221': {'category': 'Electrotherapy', 'relevance': 'high', 'description': 'Physiotherapy modalities'},
    '4222': {'category': 'Exercise', 'relevance': 'medium', 'description': 'Exercise and fitness equipment'},
    '4210': {'category': 'Imaging', 'relevance': 'exclude', 'description': 'Diagnostic imaging'},
    '4212': {'category': 'Surgical', 'relevance': 'exclude', 'description': 'Surgical instruments'},
}

DEFAULT_PROFILE = {
    'version': '1.0.0',
    'rules': {'en': _EN_RULES, 'ar': _AR_RULES},
    'vocabulary': {'en': _EN_VOCABULARY, 'ar': _AR_VOCABULARY},
    'synonyms': _SYNONYMS,
    'brands': _BRANDS,
    'code_mapping': _CODE_MAPPING,
}


def load_default_configuration() -> EngineConfiguration:
    """Build an EngineConfiguration from the bundled profile."""
    return build_configuration(DEFAULT_PROFILE)
