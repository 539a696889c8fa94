import json
import pytest
from pathlib import Path
from pkm.lib.keys import init_user
from pkm.lib.notes import Note
from pkm.lib.session import open_session
from pkm.lib.store import NoteStore
from pkm.lib.errors import CorruptRecord, InvalidInput, NotFound

def make_store(tmp_path: Path, user='alice'):
    init_user(tmp_path, user, 'pw')
    return NoteStore(tmp_path), open_session(tmp_path, user, 'pw')

def test_save_and_load(tmp_path: Path):
    store, s = make_store(tmp_path)
    n = Note.new('Test Title', 'Test Content')
    n.add_tags('test-tag')
    store.save(n, s)
    assert (tmp_path / 'alice' / f'{n.id}.pkm').is_file()
    loaded = store.load(n.id, s)
    assert loaded == n

def test_note_file_is_encrypted(tmp_path: Path):
    store, s = make_store(tmp_path)
    n = Note.new('Secret', 'Encrypted Content')
    store.save(n, s)
    raw = (tmp_path / 'alice' / f'{n.id}.pkm').read_bytes()
    assert raw[:4] == b'PKM\n'
    assert b'Encrypted Content' not in raw
    with pytest.raises(ValueError):
        json.loads(raw[4:])

def test_graph_theory_scenario(tmp_path: Path):
    store, s = make_store(tmp_path)
    n = Note.new('Graph Theory', 'breadth first search')
    n.add_tags('algorithms')
    store.save(n, s)
    assert store.search('keyword', ['graph'], s) == [n.id]
    assert store.search('tag', ['algorithms'], s) == [n.id]

def test_update_reindexes(tmp_path: Path):
    store, s = make_store(tmp_path)
    n = Note.new('Original Title', 'Original Content')
    n.add_tags('old')
    store.save(n, s)
    n.title = 'Updated Title'; n.content = 'Updated Content'
    n.remove_tags('old'); n.add_tags('new')
    store.save(n, s)
    loaded = store.load(n.id, s)
    assert loaded.title == 'Updated Title'
    assert store.search('keyword', ['original'], s) == []
    assert store.search('keyword', ['updated'], s) == [n.id]
    assert store.search('tag', ['old'], s) == []
    assert store.search('tag', ['new'], s) == [n.id]

def test_delete_prunes_index(tmp_path: Path):
    store, s = make_store(tmp_path)
    keep = Note.new('Rust Note', 'ownership'); drop = Note.new('Go Note', 'goroutines')
    store.save(keep, s); store.save(drop, s)
    store.delete(drop.id, s)
    assert not (tmp_path / 'alice' / f'{drop.id}.pkm').exists()
    assert store.search('keyword', ['note'], s) == [keep.id]
    assert store.search('keyword', ['goroutines'], s) == []
    with pytest.raises(NotFound):
        store.delete(drop.id, s)

def test_load_missing_and_invalid_ids(tmp_path: Path):
    store, s = make_store(tmp_path)
    with pytest.raises(NotFound):
        store.load('non-existent-id', s)
    for bad in ['', '../x', '.index', 'a/b', 'a\x00b']:
        with pytest.raises(InvalidInput):
            store.load(bad, s)

def test_list_sorted_by_title(tmp_path: Path):
    store, s = make_store(tmp_path)
    assert store.list(s) == []
    for title in ['beta', 'alpha', 'gamma']:
        store.save(Note.new(title, 'body'), s)
    assert [x.title for x in store.list(s)] == ['alpha', 'beta', 'gamma']

def test_users_are_isolated(tmp_path: Path):
    store, alice = make_store(tmp_path, 'alice')
    init_user(tmp_path, 'bob', 'pw2')
    bob = open_session(tmp_path, 'bob', 'pw2')
    n = Note.new('alice only', 'private')
    store.save(n, alice)
    assert store.list(bob) == []
    assert store.search('keyword', ['private'], bob) == []
    with pytest.raises(NotFound):
        store.load(n.id, bob)

def test_corrupt_note_is_reported(tmp_path: Path):
    store, s = make_store(tmp_path)
    (tmp_path / 'alice' / 'broken.pkm').write_bytes(b'nope')
    with pytest.raises(CorruptRecord):
        store.load('broken', s)
    with pytest.raises(CorruptRecord):
        store.list(s)

def test_link_and_unlink(tmp_path: Path):
    store, s = make_store(tmp_path)
    a = Note.new('A', 'a'); b = Note.new('B', 'b')
    store.save(a, s); store.save(b, s)
    store.link(a.id, b.id, s)
    assert store.load(a.id, s).links == [b.id]
    assert store.load(b.id, s).links == [a.id]
    with pytest.raises(InvalidInput):
        store.link(a.id, b.id, s)
    store.unlink(a.id, b.id, s)
    assert store.load(a.id, s).links == []
    assert store.load(b.id, s).links == []

def test_unlink_tolerates_missing_back_link(tmp_path: Path):
    store, s = make_store(tmp_path)
    a = Note.new('A', 'a'); b = Note.new('B', 'b')
    a.add_link(b.id)
    store.save(a, s); store.save(b, s)
    store.unlink(a.id, b.id, s)
    assert store.load(a.id, s).links == []
