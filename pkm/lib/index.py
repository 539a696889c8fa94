"""Encrypted inverted index over a user's notes.

The index maps normalized words and tags to the ids of the notes that carry
them. It is stored as a single encrypted record next to the notes and is
rewritten whole on every note save or delete:

	{"keywords": {word: [id, ...]}, "tags": {tag: [id, ...]}}

Read, merge and write happen once per operation inside one process. Two
processes saving notes for the same user at the same time can still lose
one of the index updates; there is no cross-process locking.
"""
from __future__ import annotations
import logging, re
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, TYPE_CHECKING
from config.settings import INDEX_FILENAME
from .errors import CorruptRecord, InvalidInput
from .record import read_record, write_record
from .session import SessionKeyProvider

if TYPE_CHECKING:
	from .notes import Note

log = logging.getLogger(__name__)

KEYWORD = 'keyword'
TAG = 'tag'
KINDS = (KEYWORD, TAG)

STOP_WORDS = frozenset('''
a about above after again against all am an and any are as at be because been
before being below between both but by can could did do does doing down during
each few for from further had has have having he her here hers herself him
himself his how i if in into is it its itself just me more most my myself no
nor not now of off on once only or other our ours ourselves out over own same
she should so some such than that the their theirs them themselves then there
these they this those through to too under until up very was we were what when
where which while who whom why will with would you your yours yourself
yourselves
'''.split())

_WORD_RE = re.compile(r'[^\W_]+')

def tokenize(text: str) -> List[str]:
	"""Case-fold and split on anything that is not a letter or digit."""
	return _WORD_RE.findall(text.casefold())

def normalize(text: str) -> List[str]:
	"""Words worth indexing: tokens minus stop words, in order of appearance."""
	return [w for w in tokenize(text) if w not in STOP_WORDS]

def normalize_tag(tag: str) -> str:
	return tag.strip().casefold()

def index_path(user_dir: Path) -> Path:
	return Path(user_dir) / INDEX_FILENAME


class SearchIndex:
	def __init__(self, keywords: Optional[Dict[str, List[str]]] = None, tags: Optional[Dict[str, List[str]]] = None):
		self.keywords: Dict[str, List[str]] = keywords if keywords is not None else {}
		self.tags: Dict[str, List[str]] = tags if tags is not None else {}

	@classmethod
	def from_payload(cls, payload) -> 'SearchIndex':
		if not isinstance(payload, dict):
			raise CorruptRecord('Index corrupted: payload is not an object')
		return cls(_table(payload.get('keywords'), 'keywords'), _table(payload.get('tags'), 'tags'))

	def to_payload(self) -> Dict[str, Dict[str, List[str]]]:
		return {'tags': self.tags, 'keywords': self.keywords}

	def table(self, kind: str) -> Dict[str, List[str]]:
		if kind == KEYWORD: return self.keywords
		if kind == TAG: return self.tags
		raise InvalidInput(f'Unknown search type: {kind!r} (expected one of {", ".join(KINDS)})')

	def add_note(self, note_id: str, title: str, content: str, tags: Iterable[str] = ()) -> None:
		for word in normalize(f'{title} {content}'):
			_add(self.keywords, word, note_id)
		for tag in tags:
			tag = normalize_tag(tag)
			if tag:
				_add(self.tags, tag, note_id)

	def remove_note(self, note_id: str) -> int:
		"""Drop every entry for `note_id`; returns how many were removed."""
		removed = 0
		for table in (self.keywords, self.tags):
			for term in list(table):
				ids = table[term]
				if note_id in ids:
					ids[:] = [i for i in ids if i != note_id]
					removed += 1
					if not ids:
						del table[term]
		return removed

	def reindex(self, note: 'Note') -> None:
		"""Make the index reflect exactly the note's current words and tags."""
		self.remove_note(note.id)
		self.add_note(note.id, note.title, note.content, note.tags)

	def search(self, kind: str, terms: Sequence[str]) -> List[str]:
		"""Ids present under every term (AND), in the first term's order."""
		table = self.table(kind)
		if not terms:
			raise InvalidInput('At least one search term required')
		keys: List[str] = []
		for term in terms:
			found = tokenize(term) if kind == KEYWORD else [normalize_tag(term)]
			if not found or not all(found):
				return []
			keys.extend(found)
		candidates = list(dict.fromkeys(table.get(keys[0], ())))
		for key in keys[1:]:
			present = set(table.get(key, ()))
			candidates = [i for i in candidates if i in present]
			if not candidates:
				break
		return candidates


def _add(table: Dict[str, List[str]], term: str, note_id: str) -> None:
	ids = table.setdefault(term, [])
	if note_id not in ids:
		ids.append(note_id)

def _table(raw, name: str) -> Dict[str, List[str]]:
	if raw is None:
		return {}
	if not isinstance(raw, dict):
		raise CorruptRecord(f'Index corrupted: {name} is not an object')
	out: Dict[str, List[str]] = {}
	for term, ids in raw.items():
		if not isinstance(ids, list) or not all(isinstance(i, str) for i in ids):
			raise CorruptRecord(f'Index corrupted: bad id list for {name}[{term!r}]')
		out[term] = list(dict.fromkeys(ids))
	return out


def load_index(path: Path, provider: SessionKeyProvider) -> SearchIndex:
	"""Absent index -> empty. Present but unreadable -> the error propagates."""
	if not path.exists():
		log.debug('No index at %s, starting empty', path)
		return SearchIndex()
	return SearchIndex.from_payload(read_record(path, provider))

def save_index(path: Path, provider: SessionKeyProvider, index: SearchIndex) -> None:
	write_record(path, provider, index.to_payload())
	log.debug('Index saved: %d keywords, %d tags', len(index.keywords), len(index.tags))

def index_on_save(path: Path, provider: SessionKeyProvider, note: 'Note') -> SearchIndex:
	index = load_index(path, provider)
	index.reindex(note)
	save_index(path, provider, index)
	return index

def index_on_delete(path: Path, provider: SessionKeyProvider, note_id: str) -> SearchIndex:
	index = load_index(path, provider)
	if index.remove_note(note_id):
		save_index(path, provider, index)
	return index

def search(path: Path, provider: SessionKeyProvider, kind: str, terms: Sequence[str]) -> List[str]:
	index = load_index(path, provider)
	return index.search(kind, terms)
