"""Note model: the JSON payload stored inside each encrypted note record."""
from __future__ import annotations
import uuid
from dataclasses import dataclass, asdict, field
from datetime import datetime, timezone
from typing import Any, Dict, List
from .errors import CorruptRecord, InvalidInput, NotFound
from .index import normalize_tag

def _now() -> str:
	return datetime.now(timezone.utc).replace(microsecond=0).isoformat()

def split_tags(tag_list: str) -> List[str]:
	"""'Go, rust,,go' -> ['go', 'rust'] (normalized, blanks and repeats dropped)."""
	tags = [normalize_tag(t) for t in tag_list.split(',')]
	return list(dict.fromkeys(t for t in tags if t))


@dataclass
class Note:
	id: str
	title: str
	content: str
	links: List[str] = field(default_factory=list)
	tags: List[str] = field(default_factory=list)
	created_at: str = field(default_factory=_now)

	@classmethod
	def new(cls, title: str, content: str) -> 'Note':
		return cls(str(uuid.uuid4()), title, content)

	@classmethod
	def from_dict(cls, raw: Dict[str, Any]) -> 'Note':
		if not isinstance(raw, dict):
			raise CorruptRecord('Note corrupted: payload is not an object')
		try:
			return cls(
				id=str(raw['id']),
				title=str(raw['title']),
				content=str(raw['content']),
				links=list(raw.get('links') or []),
				tags=list(raw.get('tags') or []),
				created_at=str(raw.get('created_at') or ''),
			)
		except KeyError as e:
			raise CorruptRecord(f'Note corrupted: missing field {e}') from e

	def to_dict(self) -> Dict[str, Any]:
		return asdict(self)

	def add_tags(self, tag_list: str) -> List[str]:
		tags = split_tags(tag_list)
		if not tags:
			raise InvalidInput('No tags given')
		for tag in tags:
			if tag in self.tags:
				raise InvalidInput(f'Tag already present: {tag}')
		self.tags.extend(tags)
		return tags

	def remove_tags(self, tag_list: str) -> List[str]:
		"""Remove every listed tag, or none of them if any is missing."""
		tags = split_tags(tag_list)
		if not tags:
			raise InvalidInput('No tags given')
		for tag in tags:
			if tag not in self.tags:
				raise NotFound(f'Tag not found: {tag}')
		self.tags = [t for t in self.tags if t not in tags]
		return tags

	def add_link(self, target_id: str) -> None:
		if target_id == self.id:
			raise InvalidInput('A note cannot link to itself')
		if target_id in self.links:
			raise InvalidInput('Link already present')
		self.links.append(target_id)

	def remove_link(self, target_id: str) -> None:
		if target_id not in self.links:
			raise NotFound('Link not found')
		self.links.remove(target_id)


@dataclass
class NoteSummary:
	id: str
	title: str
	tags: List[str]
