"""Note storage: one encrypted record per note plus the user's search index.

Layout under the store root:

	<root>/.crypt                 credential registry (see keys.py)
	<root>/<user>/<note-id>.pkm   encrypted note
	<root>/<user>/.index.pkm      encrypted search index
"""
from __future__ import annotations
import logging
from pathlib import Path
from typing import List, Sequence
from config.settings import DEFAULT_STORE_PATH, INDEX_FILENAME, NOTE_SUFFIX
from .errors import InvalidInput, NotFound
from .index import index_on_delete, index_on_save, index_path, search as search_index
from .notes import Note, NoteSummary
from .record import read_record, write_record
from .session import SessionKeyProvider

log = logging.getLogger(__name__)

class NoteStore:
	def __init__(self, root: Path | str | None = None):
		self.root = Path(root) if root is not None else DEFAULT_STORE_PATH

	def user_dir(self, session: SessionKeyProvider) -> Path:
		return self.root / session.username

	def note_path(self, note_id: str, session: SessionKeyProvider) -> Path:
		if not note_id or note_id.startswith('.') or '/' in note_id or '\\' in note_id or '\x00' in note_id:
			raise InvalidInput(f'Invalid note id: {note_id!r}')
		return self.user_dir(session) / f'{note_id}{NOTE_SUFFIX}'

	def index_path(self, session: SessionKeyProvider) -> Path:
		return index_path(self.user_dir(session))

	def save(self, note: Note, session: SessionKeyProvider) -> None:
		"""Write the note, then bring the index in line with it."""
		write_record(self.note_path(note.id, session), session, note.to_dict())
		index_on_save(self.index_path(session), session, note)
		log.info('Saved note %s for %r', note.id, session.username)

	def load(self, note_id: str, session: SessionKeyProvider) -> Note:
		return Note.from_dict(read_record(self.note_path(note_id, session), session))

	def delete(self, note_id: str, session: SessionKeyProvider) -> None:
		path = self.note_path(note_id, session)
		try:
			path.unlink()
		except FileNotFoundError as e:
			raise NotFound(f'No such note: {note_id}') from e
		index_on_delete(self.index_path(session), session, note_id)
		log.info('Deleted note %s for %r', note_id, session.username)

	def list(self, session: SessionKeyProvider) -> List[NoteSummary]:
		user_dir = self.user_dir(session)
		if not user_dir.is_dir():
			return []
		summaries = []
		for path in user_dir.glob(f'*{NOTE_SUFFIX}'):
			if path.name == INDEX_FILENAME or not path.is_file():
				continue
			note = Note.from_dict(read_record(path, session))
			summaries.append(NoteSummary(note.id, note.title, note.tags))
		return sorted(summaries, key=lambda s: (s.title, s.id))

	def search(self, kind: str, terms: Sequence[str], session: SessionKeyProvider) -> List[str]:
		return search_index(self.index_path(session), session, kind, terms)

	def link(self, source_id: str, target_id: str, session: SessionKeyProvider) -> None:
		"""Link two notes both ways."""
		source = self.load(source_id, session)
		target = self.load(target_id, session)
		source.add_link(target.id)
		if source.id not in target.links:
			target.add_link(source.id)
		self.save(source, session)
		self.save(target, session)

	def unlink(self, source_id: str, target_id: str, session: SessionKeyProvider) -> None:
		source = self.load(source_id, session)
		source.remove_link(target_id)
		self.save(source, session)
		try:
			target = self.load(target_id, session)
			target.remove_link(source_id)
		except NotFound:
			# target deleted, or the back-link was never there
			return
		self.save(target, session)
