import pytest
from pkm.lib.notes import Note, split_tags
from pkm.lib.errors import CorruptRecord, InvalidInput, NotFound

def test_new_note_defaults():
	n = Note.new('Title', 'Body')
	assert len(n.id) == 36
	assert n.links == [] and n.tags == []
	assert n.created_at.endswith('+00:00')
	assert Note.new('Title', 'Body').id != n.id

def test_split_tags():
	assert split_tags('Go, rust,,go , ') == ['go', 'rust']

def test_tags():
	n = Note.new('t', 'c')
	assert n.add_tags('Go,Rust') == ['go', 'rust']
	with pytest.raises(InvalidInput):
		n.add_tags('go')
	with pytest.raises(InvalidInput):
		n.add_tags(' , ')
	with pytest.raises(NotFound):
		n.remove_tags('go,python')
	assert n.tags == ['go', 'rust']
	n.remove_tags('GO')
	assert n.tags == ['rust']

def test_links():
	n = Note.new('t', 'c')
	n.add_link('other')
	with pytest.raises(InvalidInput):
		n.add_link('other')
	with pytest.raises(InvalidInput):
		n.add_link(n.id)
	n.remove_link('other')
	with pytest.raises(NotFound):
		n.remove_link('other')

def test_dict_round_trip_and_payload_keys():
	n = Note.new('t', 'c')
	d = n.to_dict()
	assert set(d) == {'id', 'title', 'content', 'links', 'tags', 'created_at'}
	assert Note.from_dict(d) == n

def test_from_dict_missing_fields():
	with pytest.raises(CorruptRecord):
		Note.from_dict({'id': 'x'})
	with pytest.raises(CorruptRecord):
		Note.from_dict(['x'])
