"""
Tests for tabular ingestion and column detection.
"""
import pandas as pd
import pytest

from ptscreen.ingest import RecordIngester


@pytest.fixture
def export_csv(tmp_path):
    path = tmp_path / 'items.csv'
    df = pd.DataFrame({
        'Item_ID': ['001', '002', '003'],
        'Product Name': ['Folding Walker', 'كرسي متحرك', None],
        'Long_Description': ['aluminium frame', None, 'spare part'],
        'Manufacturer': ['Invacare', None, 'Ikea'],
        'NUPCO_CODE': ['4220-1', '4220-2', None],
        'Country': ['SA', 'SA', 'AE'],
    })
    df.to_csv(path, index=False)
    return path


def test_detect_columns(export_csv):
    ingester = RecordIngester()
    ingester.load_file(export_csv)
    columns = ingester.detect_columns()
    assert columns == {
        'id': 'Item_ID',
        'name': 'Product Name',
        'description': 'Long_Description',
        'brand': 'Manufacturer',
        'code': 'NUPCO_CODE',
        'region': 'Country',
    }


def test_ids_kept_as_text(export_csv):
    ingester = RecordIngester()
    ingester.load_file(export_csv)
    records = ingester.to_records()
    assert [r['id'] for r in records] == ['001', '002', '003']
    assert records[1]['brand'] is None
    assert records[2]['name'] is None
    assert records[0]['code'] == '4220-1'


def test_row_numbers_used_without_id_column():
    ingester = RecordIngester()
    ingester.load_dataframe(pd.DataFrame({'title': ['Walker', 'Crutch']}))
    records = ingester.to_records()
    assert records == [{'name': 'Walker', 'id': '1'}, {'name': 'Crutch', 'id': '2'}]


def test_custom_hints():
    ingester = RecordIngester()
    ingester.load_dataframe(pd.DataFrame({'ref': ['a'], 'label': ['Walker']}))
    columns = ingester.detect_columns(hints={'id': ['ref'], 'name': ['label']})
    assert columns == {'id': 'ref', 'name': 'label'}


def test_missing_name_column():
    ingester = RecordIngester()
    ingester.load_dataframe(pd.DataFrame({'price': [1.0]}))
    with pytest.raises(ValueError, match='name column'):
        ingester.detect_columns()


def test_no_data_loaded():
    with pytest.raises(ValueError):
        RecordIngester().detect_columns()


def test_unsupported_format(tmp_path):
    with pytest.raises(ValueError):
        RecordIngester().load_file(tmp_path / 'items.xlsx')


def test_basic_stats(export_csv):
    ingester = RecordIngester()
    ingester.load_file(export_csv)
    stats = ingester.get_basic_stats()
    assert stats['total_rows'] == 3
    assert stats['missing_names'] == 1
    assert stats['duplicate_ids'] == 0
    assert stats['sample_names'] == ['Folding Walker', 'كرسي متحرك']


def test_records_classify_end_to_end(export_csv, classifier):
    ingester = RecordIngester()
    ingester.load_file(export_csv)
    results = classifier.classify_batch(ingester.to_records())
    assert results[0].record_id == '001'
    assert results[0].score_breakdown['code'] == 30
    assert results[2].__class__.__name__ == 'SkippedRecord'
    assert results[2].record_id == '003'
