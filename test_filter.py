"""
Tests for faceted filtering and sorting of results.
"""
import pytest

from ptscreen.filtering import filter_results, sort_results
from ptscreen.models import FilterOptions, SkippedRecord


def ids(results):
    return [result.record_id for result in results]


@pytest.mark.parametrize('options, expected', [
    ({'status': ['review']}, ['3', '4']),
    ({'status': 'accepted'}, ['1']),
    ({'category': 'electro'}, ['1']),
    ({'category': 'Mobility'}, ['4']),
    ({'brand': 'chatta'}, ['1']),
    ({'brand': ['PHILIPS', 'ikea']}, ['2', '5']),
    ({'tags': 'Rehab'}, ['1', '4']),
    ({'region': 'SA'}, ['1', '3', '4']),
    ({'type': ['device', 'furniture']}, ['1', '2', '5']),
    ({'min_score': 30}, ['1', '3', '4']),
    ({'max_score': 30}, ['2', '4', '5']),
    ({'min_score': 30, 'max_score': 40}, ['3', '4']),
])
def test_single_facets(result_filter, catalogue_results, options, expected):
    assert ids(result_filter.apply(catalogue_results, options)) == expected


@pytest.mark.parametrize('query, expected', [
    ('ultrasound', ['1', '2']),
    ('Therapeutic ULTRASOUND', ['1']),
    ('rollator', ['4']),
    ('aluminium walker', ['4']),
    ('كرسي', ['3']),
    ('treadmill', []),
])
def test_free_text_query(result_filter, catalogue_results, query, expected):
    assert ids(result_filter.apply(catalogue_results, {'query': query})) == expected


def test_stopword_only_query_keeps_everything(result_filter, catalogue_results):
    assert ids(result_filter.apply(catalogue_results, {'query': 'the'})) == ['1', '2', '3', '4', '5']


def test_no_facets_returns_everything(result_filter, catalogue_results):
    assert ids(result_filter.apply(catalogue_results)) == ['1', '2', '3', '4', '5']
    assert ids(result_filter.apply(catalogue_results, FilterOptions())) == ['1', '2', '3', '4', '5']


def test_empty_facets_keep_everything(result_filter, catalogue_results):
    options = {'category': [], 'status': [], 'brand': (), 'tags': [], 'region': [''], 'type': []}
    assert ids(result_filter.apply(catalogue_results, options)) == ['1', '2', '3', '4', '5']
    assert FilterOptions(status=[], category=[]).status is None


def test_empty_facet_alongside_a_real_one(result_filter, catalogue_results):
    assert ids(result_filter.apply(catalogue_results, {'status': [], 'region': ['AE']})) == ['2', '5']


def test_facets_combine_with_and(result_filter, catalogue_results):
    combined = result_filter.apply(catalogue_results, {'region': 'SA', 'status': 'review'})
    region = set(ids(result_filter.apply(catalogue_results, {'region': 'SA'})))
    status = set(ids(result_filter.apply(catalogue_results, {'status': 'review'})))
    assert set(ids(combined)) == region & status == {'3', '4'}


def test_camel_case_score_bounds(result_filter, catalogue_results):
    options = FilterOptions.model_validate({'minScore': 35, 'maxScore': 95})
    assert ids(result_filter.apply(catalogue_results, options)) == ['1', '3']


def test_skip_markers_dropped(result_filter, catalogue_results):
    mixed = [SkippedRecord(index=0, reason='cancelled')] + catalogue_results
    assert ids(result_filter.filter(mixed)) == ['1', '2', '3', '4', '5']


def test_input_not_mutated(result_filter, catalogue_results):
    snapshot = list(catalogue_results)
    filtered = result_filter.apply(catalogue_results, {'status': 'accepted'})
    assert catalogue_results == snapshot
    assert filtered is not catalogue_results


def test_unknown_option_rejected(result_filter, catalogue_results):
    with pytest.raises(ValueError):
        result_filter.apply(catalogue_results, {'colour': 'red'})


def test_filter_results_with_configuration(configuration, catalogue_results):
    assert ids(filter_results(catalogue_results, {'brand': 'Chattanooga'}, configuration)) == ['1']


def test_sort_by_confidence_is_stable(catalogue_results):
    assert ids(sort_results(catalogue_results)) == ['1', '3', '4', '2', '5']
    assert ids(sort_results(catalogue_results, descending=False)) == ['2', '5', '4', '3', '1']


def test_sort_by_name(catalogue_results):
    assert ids(sort_results(catalogue_results, 'name', descending=False)) == ['2', '4', '5', '1', '3']


def test_sort_unknown_field(catalogue_results):
    with pytest.raises(ValueError):
        sort_results(catalogue_results, 'colour')


def test_combined_facets_equal_sequential_application(result_filter, catalogue_results):
    combined = result_filter.apply(catalogue_results, {'category': 'Mobility', 'minScore': 25})
    sequential = result_filter.apply(result_filter.apply(catalogue_results, {'category': 'Mobility'}),
                                     {'min_score': 25})
    assert combined == sequential
    assert ids(combined) == ['4']
