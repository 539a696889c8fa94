"""Encrypted record framing shared by note files and the search index.

Layout: RECORD_MAGIC (4 bytes) || nonce (12) || AES-GCM ciphertext + tag.
The plaintext is canonical JSON (sorted keys, compact, UTF-8).
"""
from __future__ import annotations
import json, logging, os
from pathlib import Path
from typing import Any
from config.settings import NONCE_LENGTH, RECORD_MAGIC
from .errors import CorruptRecord, NotFound
from .session import SessionKeyProvider

log = logging.getLogger(__name__)

MAGIC_LENGTH = len(RECORD_MAGIC)

def encode_record(provider: SessionKeyProvider, payload: Any) -> bytes:
	body = json.dumps(payload, sort_keys=True, separators=(',', ':'), ensure_ascii=False).encode('utf-8')
	return RECORD_MAGIC + provider.encrypt(body)

def decode_record(provider: SessionKeyProvider, data: bytes) -> Any:
	"""Verify the magic marker, decrypt and parse.

	AuthFailed from the session is propagated untouched.
	"""
	if len(data) < MAGIC_LENGTH or data[:MAGIC_LENGTH] != RECORD_MAGIC:
		raise CorruptRecord('Record corrupted: bad magic marker')
	body = data[MAGIC_LENGTH:]
	if len(body) < NONCE_LENGTH:
		raise CorruptRecord('Record corrupted: truncated body')
	plaintext = provider.decrypt(body)
	try:
		return json.loads(plaintext.decode('utf-8'))
	except ValueError as e:
		raise CorruptRecord(f'Record corrupted: {e}') from e

def write_record(path: Path, provider: SessionKeyProvider, payload: Any) -> None:
	"""Encode and atomically replace `path` (owner-only permissions)."""
	data = encode_record(provider, payload)
	path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
	tmp = path.with_name(path.name + '.tmp')
	fd = os.open(tmp, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
	try:
		os.chmod(tmp, 0o600)
		with os.fdopen(fd, 'wb') as f:
			f.write(data)
		os.replace(tmp, path)
	except BaseException:
		tmp.unlink(missing_ok=True)
		raise
	log.debug('Record written -> %s (%d bytes)', path, len(data))

def read_record(path: Path, provider: SessionKeyProvider) -> Any:
	try:
		data = path.read_bytes()
	except FileNotFoundError as e:
		raise NotFound(f'No such record: {path.name}') from e
	return decode_record(provider, data)
