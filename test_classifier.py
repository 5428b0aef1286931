"""
Tests for the classification pipeline, batch processing and explanations.
"""
import threading

import pytest

from ptscreen.categorisation import Classifier
from ptscreen.compose import build_configuration
from ptscreen.errors import ValidationError
from ptscreen.models import ClassificationResult, SkippedRecord

BREAKDOWN_KEYS = [
    'code', 'vocabulary', 'demotions', 'cooccurrence', 'brand_boost',
    'context_boosts', 'penalties', 'pt_boosts', 'brand',
]


def by_id(results):
    return {result.record_id: result for result in results}


# ═══════════════════════════════════════════════════════════════
# SCENARIOS
# ═══════════════════════════════════════════════════════════════

def test_therapeutic_ultrasound_accepted(catalogue_results):
    result = by_id(catalogue_results)['1']
    assert result.confidence == 93
    assert result.decision is True
    assert result.status == 'accepted'
    assert result.band == 'high'
    assert result.category == 'Electrotherapy'
    assert result.domain == 'modalities'
    assert result.language_detected == 'en'
    assert result.matched_terms == ('ultrasound', 'tens', 'electrode')
    assert result.score_breakdown['vocabulary'] == 40
    assert result.score_breakdown['cooccurrence'] == 25
    assert result.score_breakdown['context_boosts'] == 10
    assert result.score_breakdown['brand'] == 18
    assert result.explanation == (
        "[SKIPPED] code analysis: record has no structured code",
        "[VOCAB] 'ultrasound' (exact) weight 40 category 'Electrotherapy' +40",
        "[VOCAB] also matched: tens, electrode",
        "[COOCCURRENCE] therapeutic_ultrasound: ultrasound + therapeutic +15",
        "[COOCCURRENCE] tens_electrodes: tens + electrode +10",
        "[CONTEXT] therapy_context: 'therapeutic' x1.5 +10",
        "[BRAND] 'Chattanooga' domain-focused, reputation 90 +18",
        "[DECISION] confidence 93 >= 60 (en high threshold): accepted",
    )


def test_diagnostic_imaging_blocked(catalogue_results):
    result = by_id(catalogue_results)['2']
    assert result.confidence == 0
    assert result.decision is False
    assert result.status == 'rejected'
    assert result.band == 'none'
    assert result.category is None
    assert result.explanation == ("[BLOCKER] 'diagnostic ultrasound' (diagnostic_imaging) -100",)
    assert result.score_breakdown == {'blocker': -100.0}


def test_arabic_wheelchair_alias(catalogue_results):
    result = by_id(catalogue_results)['3']
    assert result.language_detected == 'ar'
    assert result.confidence == 40
    assert result.status == 'review'
    assert result.band == 'medium'
    assert result.matched_terms == ('wheelchair',)
    assert result.category is None
    assert "[VOCAB] 'wheelchair' (alias 'كرسي متحرك') weight 40 +40" in result.explanation
    assert "[CONTEXT] no contextual rules fired +0" in result.explanation
    assert result.explanation[-1] == "[DECISION] confidence 40 < 45 (ar high threshold): review"


def test_walker_with_unknown_brand(catalogue_results):
    result = by_id(catalogue_results)['4']
    assert result.confidence == 30
    assert result.status == 'review'
    assert result.band == 'low'
    assert result.category == 'Mobility'
    assert "[BRAND] 'Invacare' is not a known brand +0" in result.explanation


def test_unrelated_item_rejected(catalogue_results):
    result = by_id(catalogue_results)['5']
    assert result.confidence == 0
    assert result.status == 'rejected'
    assert result.band == 'none'
    assert result.category is None
    assert result.matched_terms == ()
    assert "[VOCAB] no vocabulary match +0" in result.explanation


# ═══════════════════════════════════════════════════════════════
# INVARIANTS
# ═══════════════════════════════════════════════════════════════

def test_classification_is_deterministic(classifier, catalogue):
    for record in catalogue:
        assert classifier.classify(record) == classifier.classify(record)


def test_breakdown_sums_to_confidence(catalogue_results):
    for result in catalogue_results:
        if 'blocker' in result.score_breakdown:
            continue
        assert list(result.score_breakdown) == BREAKDOWN_KEYS
        assert sum(result.score_breakdown.values()) == pytest.approx(result.confidence)


def test_blocker_dominates_everything(classifier):
    result = classifier.classify({
        'id': 'b1', 'name': 'Diagnostic Ultrasound therapeutic TENS electrode gait',
        'brand': 'Chattanooga', 'code': '4220',
    })
    assert result.confidence == 0
    assert result.status == 'rejected'
    assert len(result.explanation) == 1
    assert result.explanation[0].startswith('[BLOCKER]')


def test_arabic_blocker(classifier):
    result = classifier.classify({'id': 'b2', 'name': 'دواء مسكن للالم'})
    assert result.language_detected == 'ar'
    assert result.status == 'rejected'
    assert result.explanation == ("[BLOCKER] 'دواء' (pharmaceuticals) -100",)


def test_confidence_clamped_to_range(classifier):
    high = classifier.classify({
        'id': 'c1', 'name': 'Therapeutic ultrasound TENS electrode gait trainer',
        'brand': 'Chattanooga', 'code': '4220',
    })
    assert sum(high.score_breakdown.values()) > 100
    assert high.confidence == 100
    assert high.decision

    low = classifier.classify({'id': 'c2', 'name': 'Disposable walker, single use', 'code': '4210'})
    assert sum(low.score_breakdown.values()) < 0
    assert low.confidence == 0
    assert low.status == 'rejected'


def test_higher_vocabulary_weight_never_lowers_confidence(scenario_document):
    record = {'id': '4', 'name': 'Folding Walker'}
    before = Classifier(build_configuration(scenario_document)).classify(record)

    for term in scenario_document['vocabulary']['en']:
        if term['term'] == 'walker':
            term['weight'] = 50
    after = Classifier(build_configuration(scenario_document)).classify(record)

    assert before.confidence == 30
    assert after.confidence == 50


# ═══════════════════════════════════════════════════════════════
# STAGES
# ═══════════════════════════════════════════════════════════════

def test_code_tiers(classifier):
    high = classifier.classify({'id': '1', 'name': 'Folding Walker', 'code': '4220-7'})
    assert high.score_breakdown['code'] == 30
    assert high.confidence == 60
    assert high.status == 'accepted'
    assert "[CODE] prefix '4220' (high) +30" in high.explanation

    medium = classifier.classify({'id': '2', 'name': 'Folding Walker', 'code': '4222'})
    assert medium.score_breakdown['code'] == 15
    assert medium.confidence == 45
    assert medium.band == 'medium'

    unknown = classifier.classify({'id': '3', 'name': 'Folding Walker', 'code': '9999'})
    assert unknown.score_breakdown['code'] == 0
    assert "[CODE] '9999' matches no known prefix +0" in unknown.explanation


def test_high_relevance_code_sets_category_first(classifier):
    result = classifier.classify({'id': '1', 'name': 'Therapeutic ultrasound', 'code': '4220'})
    assert result.category == 'Mobility'
    assert result.domain == 'modalities'


def test_stages_degrade_without_brand_and_code_data(scenario_document):
    del scenario_document['brands']
    del scenario_document['code_mapping']
    classifier = Classifier(build_configuration(scenario_document))

    result = classifier.classify({'id': '1', 'name': 'Folding Walker', 'brand': 'Chattanooga', 'code': '4220'})
    assert "[SKIPPED] code analysis: no code mapping configured" in result.explanation
    assert "[SKIPPED] brand analysis: no brand data configured" in result.explanation
    assert result.confidence == 30


def test_unfocused_brand_scores_nothing(classifier):
    result = classifier.classify({'id': '1', 'name': 'Therapeutic ultrasound', 'brand': 'Philips'})
    assert result.score_breakdown['brand'] == 0
    assert "[BRAND] 'Philips' is not domain-focused +0" in result.explanation


def test_brand_matched_fuzzily(classifier):
    result = classifier.classify({'id': '1', 'name': 'Hot pack', 'brand': 'Chatanooga'})
    assert result.score_breakdown['brand'] == 18


def test_brand_found_in_text(classifier):
    result = classifier.classify({'id': '1', 'name': 'Chattanooga Intelect TENS'})
    assert result.score_breakdown['brand'] == 18

    result = classifier.classify({'id': '2', 'name': 'TENS stimulator'})
    assert "[SKIPPED] brand analysis: record has no brand" in result.explanation


def test_cooccurrence_needs_whole_words(classifier):
    result = classifier.classify({'id': 'x', 'name': 'Electrode extension cable'})
    assert 'electrode' in result.matched_terms
    assert 'tens' not in result.matched_terms
    assert result.score_breakdown['cooccurrence'] == 0
    assert not any(line.startswith('[COOCCURRENCE]') for line in result.explanation)


def test_multi_word_alias_and_phrases(classifier):
    result = classifier.classify({'id': '1', 'name': 'Walking frame, adjustable'})
    assert result.matched_terms == ('walker',)
    assert "[VOCAB] 'walker' (alias 'walking frame') weight 30 category 'Mobility' +30" in result.explanation

    result = classifier.classify({'id': '2', 'name': 'Parallel Bars 3m'})
    assert result.category == 'Exercise'
    assert result.score_breakdown['vocabulary'] == 45


def test_single_token_alias_rewritten(classifier):
    result = classifier.classify({'id': '1', 'name': 'Rollator with seat'})
    assert result.matched_terms == ('walker',)
    assert 'walker' in result.tokens
    assert result.confidence == 30


def test_fuzzy_vocabulary_match(scenario_document):
    scenario_document['weights'] = {'fuzzy_distance': 1}
    classifier = Classifier(build_configuration(scenario_document))
    result = classifier.classify({'id': '1', 'name': 'Wheelchar cushion'})
    assert result.score_breakdown['vocabulary'] == pytest.approx(32)
    assert result.category == 'Mobility'
    assert "[VOCAB] 'wheelchair' (fuzzy 'wheelchar') weight 40 category 'Mobility' +32" in result.explanation


def test_fuzzy_disabled_by_default(classifier):
    result = classifier.classify({'id': '1', 'name': 'Wheelchar cushion'})
    assert result.score_breakdown['vocabulary'] == 0


def test_mixed_language_record(classifier):
    result = classifier.classify({'id': 'm1', 'name': 'جهاز TENS unit'})
    assert result.language_detected == 'mixed'
    assert result.matched_terms == ('tens',)
    assert result.confidence == 35
    assert result.status == 'review'
    # Mixed text uses the stricter (English) thresholds
    assert result.explanation[-1] == "[DECISION] confidence 35 < 60 (mixed high threshold): review"
    assert result.band == 'low'


# ═══════════════════════════════════════════════════════════════
# VALIDATION AND BATCHES
# ═══════════════════════════════════════════════════════════════

def test_invalid_records_raise(classifier):
    with pytest.raises(ValidationError):
        classifier.classify({'id': '', 'name': 'Walker'})
    with pytest.raises(ValidationError) as excinfo:
        classifier.classify({'id': '7', 'name': '   '})
    assert excinfo.value.record_id == '7'
    with pytest.raises(ValidationError):
        classifier.classify('Walker')


def test_prepare(classifier):
    prepared = classifier.prepare({'id': 1, 'name': 'Folding WALKER', 'description': 'for adults'})
    assert prepared.record.id == '1'
    assert prepared.language == 'en'
    assert prepared.text == 'folding walker for adults'
    assert prepared.tokens == frozenset({'folding', 'walker', 'adults'})


def test_batch_preserves_order_and_skips(classifier, catalogue):
    records = catalogue[:2] + [{'id': '9'}, dict(catalogue[0])] + catalogue[2:]
    results = classifier.classify_batch(records)

    assert len(results) == len(records)
    assert [r.record_id for r in results] == ['1', '2', '9', '1', '3', '4', '5']
    assert isinstance(results[2], SkippedRecord)
    assert results[2].index == 2
    assert isinstance(results[3], SkippedRecord)
    assert results[3].reason == "duplicate id '1'"
    assert all(isinstance(r, ClassificationResult) for i, r in enumerate(results) if i not in (2, 3))


def test_batch_parallel_matches_sequential(classifier, catalogue):
    records = catalogue * 3
    for i, record in enumerate(records):
        records[i] = dict(record, id=f"{record['id']}-{i}")
    assert classifier.classify_batch(records, n_jobs=4) == classifier.classify_batch(records, n_jobs=1)


def test_batch_cancellation(classifier, catalogue):
    event = threading.Event()
    event.set()
    results = classifier.classify_batch(catalogue, cancel_event=event)
    assert len(results) == len(catalogue)
    assert all(isinstance(r, SkippedRecord) and r.reason == 'cancelled' for r in results)


def test_reload_switches_configuration(classifier, scenario_document, catalogue):
    before = classifier.classify(catalogue[0])
    del scenario_document['brands']
    new_configuration = build_configuration(scenario_document)

    classifier.reload(new_configuration)

    assert classifier.configuration is new_configuration
    after = classifier.classify(catalogue[0])
    assert before.confidence == 93
    assert after.confidence == 75


def test_explain(classifier, catalogue_results):
    explained = classifier.explain(catalogue_results[0])
    assert explained['record_id'] == '1'
    assert explained['top_reasons'] == [('vocabulary', 40), ('cooccurrence', 25), ('brand', 18)]
    assert explained['matched_terms'] == ['ultrasound', 'tens', 'electrode']
    assert explained['explanation'] == list(catalogue_results[0].explanation)

    assert classifier.explain(catalogue_results[0], top_n=1)['top_reasons'] == [('vocabulary', 40)]
    assert classifier.explain(catalogue_results[4])['top_reasons'] == []


def test_adding_stronger_term_raises_vocabulary_score(classifier):
    base = classifier.classify({'id': '1', 'name': 'Folding Walker'})
    richer = classifier.classify({'id': '1', 'name': 'Folding Walker wheelchair combo'})
    assert richer.score_breakdown['vocabulary'] >= base.score_breakdown['vocabulary']
    assert richer.score_breakdown['vocabulary'] == 40
