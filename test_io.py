"""
Tests for artifact persistence: lexicon blobs, result tables and metadata.
"""
import pytest

from ptscreen import config
from ptscreen.io_utils import (
    load_lexicon, load_metadata, load_results, save_lexicon, save_metadata, save_results,
)
from ptscreen.lexicon import CompressedTrie
from ptscreen.models import SkippedRecord, VocabTerm


@pytest.fixture(autouse=True)
def artifacts_dir(tmp_path, monkeypatch):
    directory = tmp_path / 'artifacts'
    monkeypatch.setattr(config, 'ARTIFACTS_DIR', directory)
    return directory


@pytest.fixture
def trie():
    t = CompressedTrie()
    t.insert('wheelchair', VocabTerm(term='wheelchair', weight=40, category='Mobility'))
    t.insert('walker', VocabTerm(term='walker', weight=30, category='Mobility'))
    return t


def test_lexicon_saved_under_artifacts(trie, artifacts_dir):
    path = save_lexicon(trie, 'en_lexicon')
    assert path == artifacts_dir / 'en_lexicon.trie'

    restored = load_lexicon('en_lexicon')
    assert restored.lookup_exact('walker') == trie.lookup_exact('walker')
    assert len(restored) == 2


def test_lexicon_explicit_path(trie, tmp_path):
    path = save_lexicon(trie, tmp_path / 'nested' / 'custom.trie')
    assert path.exists()
    assert len(load_lexicon(path)) == 2


def test_missing_files(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_lexicon('missing')
    with pytest.raises(FileNotFoundError):
        load_results(tmp_path / 'missing.csv')
    with pytest.raises(FileNotFoundError):
        load_metadata('missing')


def test_results_csv_round_trip(catalogue_results, artifacts_dir):
    items = catalogue_results + [SkippedRecord(index=5, record_id='006', reason='cancelled')]
    path = save_results(items, 'run', extension='csv')
    assert path == artifacts_dir / 'run.csv'

    df = load_results('run', extension='csv')
    assert len(df) == 6
    assert df['record_id'].tolist() == ['1', '2', '3', '4', '5', '006']
    assert df['status'].tolist()[-1] == 'skipped'


def test_results_parquet_round_trip(catalogue_results, tmp_path):
    path = save_results(catalogue_results, tmp_path / 'run.parquet')
    df = load_results(path)
    assert len(df) == 5
    assert df.loc[0, 'confidence'] == 93
    assert df.loc[0, 'category'] == 'Electrotherapy'


def test_results_feather_round_trip(catalogue_results):
    save_results(catalogue_results, 'run', extension='feather')
    df = load_results('run', extension='feather')
    assert df['status'].tolist() == ['accepted', 'rejected', 'review', 'review', 'rejected']


def test_unsupported_format(catalogue_results, tmp_path):
    with pytest.raises(ValueError):
        save_results(catalogue_results, tmp_path / 'run.xlsx')


def test_metadata_round_trip(artifacts_dir):
    metadata = {'input_file': 'items.csv', 'stats': {'accepted': 3}, 'note': 'كرسي متحرك'}
    path = save_metadata(metadata, 'run_metadata')
    assert path == artifacts_dir / 'run_metadata.json'
    assert load_metadata('run_metadata') == metadata
