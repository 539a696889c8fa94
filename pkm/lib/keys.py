"""Credential store: the `.crypt` registry of wrapped data keys.

Each user gets a random 32-byte data encryption key (DEK). The DEK never
touches disk in clear; it is wrapped with AES-GCM under a key encryption key
(KEK) derived from the user's password and a per-entry salt. Rotating the
password re-wraps the same DEK, so existing notes stay readable.

The file is handled as a value: read whole, mutate in memory, write whole.
"""
from __future__ import annotations
import base64, binascii, json, logging, os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional
from config.settings import CRYPT_FILENAME, CRYPT_FILE_VERSION, KEY_LENGTH, NONCE_LENGTH, SALT_LENGTH
from .crypto import NoteCrypto, SecretKey
from .errors import AuthFailed, CorruptStore, InvalidInput, NotFound, UserExists

log = logging.getLogger(__name__)

def crypt_path(root: Path | str) -> Path:
	return Path(root) / CRYPT_FILENAME

def check_username(username: str) -> None:
	if not username:
		raise InvalidInput('Username required')
	# dot names are reserved for store files (.crypt, its .tmp)
	if username.startswith('.') or '/' in username or '\\' in username or '\x00' in username:
		raise InvalidInput(f'Invalid username: {username!r}')

def _b64(raw: bytes) -> str:
	return base64.b64encode(raw).decode('ascii')

def _unb64(value: Any, name: str) -> bytes:
	if not isinstance(value, str) or not value:
		raise ValueError(f'{name} missing')
	return base64.b64decode(value.encode('ascii'), validate=True)


@dataclass
class CredentialEntry:
	username: str
	salt: bytes
	nonce: bytes
	encrypted_dek: bytes

	def to_dict(self) -> Dict[str, str]:
		return {
			'username': self.username,
			'salt': _b64(self.salt),
			'nonce': _b64(self.nonce),
			'encrypted_dek': _b64(self.encrypted_dek),
		}

	@classmethod
	def from_dict(cls, raw: Dict[str, Any]) -> 'CredentialEntry':
		"""Raises ValueError on a missing field or bad base64; callers map it."""
		if not isinstance(raw, dict):
			raise ValueError('entry is not an object')
		username = raw.get('username')
		if not isinstance(username, str) or not username:
			raise ValueError('username missing')
		try:
			entry = cls(username, _unb64(raw.get('salt'), 'salt'), _unb64(raw.get('nonce'), 'nonce'),
				_unb64(raw.get('encrypted_dek'), 'encrypted_dek'))
		except (binascii.Error, UnicodeEncodeError) as e:
			raise ValueError(f'bad base64 in entry {username!r}: {e}') from e
		if len(entry.salt) < SALT_LENGTH or len(entry.nonce) != NONCE_LENGTH:
			raise ValueError(f'bad salt or nonce length in entry {username!r}')
		return entry


@dataclass
class CredentialFile:
	version: int = CRYPT_FILE_VERSION
	entries: List[CredentialEntry] = field(default_factory=list)

	def find(self, username: str) -> Optional[CredentialEntry]:
		for e in self.entries:
			if e.username == username:
				return e
		return None

	def add_or_update(self, entry: CredentialEntry) -> None:
		for i, e in enumerate(self.entries):
			if e.username == entry.username:
				self.entries[i] = entry
				return
		self.entries.append(entry)

	def to_dict(self) -> Dict[str, Any]:
		return {'version': self.version, 'entries': [e.to_dict() for e in self.entries]}


def read_credential_file(path: Path | str) -> CredentialFile:
	"""Load the registry; a missing file is an empty registry, not an error."""
	path = Path(path)
	try:
		raw = path.read_bytes()
	except FileNotFoundError:
		return CredentialFile()
	try:
		obj = json.loads(raw.decode('utf-8'))
		if not isinstance(obj, dict) or not isinstance(obj.get('entries', []), list):
			raise ValueError('unexpected structure')
		version = obj.get('version', CRYPT_FILE_VERSION)
		if not isinstance(version, int):
			raise ValueError('version is not an integer')
		entries = [CredentialEntry.from_dict(e) for e in obj.get('entries') or []]
	except ValueError as e:
		# JSONDecodeError and UnicodeDecodeError are ValueErrors
		raise CorruptStore(f'Corrupt credential file {path}: {e}') from e
	return CredentialFile(version, entries)

def write_credential_file(path: Path | str, cf: CredentialFile) -> None:
	"""Rewrite the whole registry, owner-only, via temp file + rename."""
	path = Path(path)
	path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
	data = json.dumps(cf.to_dict(), indent=2).encode('utf-8')
	tmp = path.with_name(path.name + '.tmp')
	fd = os.open(tmp, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
	try:
		with os.fdopen(fd, 'wb') as f:
			f.write(data)
		os.chmod(tmp, 0o600)
		os.replace(tmp, path)
	except BaseException:
		tmp.unlink(missing_ok=True)
		raise
	log.debug('Credential file written -> %s (%d entries)', path, len(cf.entries))


def wrap_dek(crypto: NoteCrypto, username: str, password: str, dek: bytes) -> CredentialEntry:
	"""Wrap `dek` under a KEK from `password` with a fresh salt and nonce."""
	salt = crypto.generate_salt()
	nonce = crypto.generate_nonce()
	kek = crypto.derive_key(password, salt)
	return CredentialEntry(username, salt, nonce, crypto.encrypt(kek, nonce, dek))

def unwrap_dek(crypto: NoteCrypto, entry: CredentialEntry, password: str) -> SecretKey:
	"""Return the entry's DEK; AuthFailed if the password is wrong."""
	try:
		kek = crypto.derive_key(password, entry.salt)
		dek = crypto.decrypt(kek, entry.nonce, entry.encrypted_dek)
	except AuthFailed as e:
		raise AuthFailed(f'Decryption failed for {entry.username!r}, check password') from e
	if len(dek) != KEY_LENGTH:
		raise CorruptStore(f'Wrapped key for {entry.username!r} has bad length')
	return SecretKey(dek)

def _user_dir(root: Path, username: str) -> Path:
	d = root / username
	d.mkdir(mode=0o700, parents=True, exist_ok=True)
	return d


def init_user(root: Path | str, username: str, password: str) -> None:
	check_username(username)
	if not password:
		raise InvalidInput('Password required')
	root = Path(root)
	path = crypt_path(root)
	cf = read_credential_file(path)
	if cf.find(username) is not None:
		raise UserExists(f'User {username!r} already exists')
	crypto = NoteCrypto()
	with SecretKey(crypto.generate_key()) as dek:
		cf.add_or_update(wrap_dek(crypto, username, password, dek.reveal()))
	_user_dir(root, username)
	write_credential_file(path, cf)
	log.info('User %r initialised in %s', username, root)

def change_password(root: Path | str, username: str, old_password: str, new_password: str) -> None:
	"""Re-wrap the same DEK under a new password (new salt + nonce)."""
	if not new_password:
		raise InvalidInput('New password required')
	path = crypt_path(root)
	cf = read_credential_file(path)
	entry = cf.find(username)
	if entry is None:
		raise NotFound(f'User {username!r} not found')
	crypto = NoteCrypto()
	with unwrap_dek(crypto, entry, old_password) as dek:
		cf.add_or_update(wrap_dek(crypto, username, new_password, dek.reveal()))
	write_credential_file(path, cf)
	log.info('Password changed for %r', username)

def export_entry(root: Path | str, username: str, password: str) -> str:
	"""Serialize a user's entry for transfer; the password is checked by unwrapping."""
	cf = read_credential_file(crypt_path(root))
	entry = cf.find(username)
	if entry is None:
		raise NotFound(f'User {username!r} not found')
	unwrap_dek(NoteCrypto(), entry, password).destroy()
	log.info('Exported credential entry for %r', username)
	return json.dumps(entry.to_dict())

def import_entry(root: Path | str, serialized: str) -> str:
	"""Add an exported entry verbatim. Returns the imported username."""
	try:
		raw = json.loads(serialized)
	except ValueError as e:
		raise InvalidInput(f'Entry is not valid JSON: {e}') from e
	if not isinstance(raw, dict) or not isinstance(raw.get('username'), str) or not raw['username']:
		raise InvalidInput('Username not found in input')
	check_username(raw['username'])
	try:
		entry = CredentialEntry.from_dict(raw)
	except ValueError as e:
		raise InvalidInput(f'Invalid entry: {e}') from e
	root = Path(root)
	path = crypt_path(root)
	cf = read_credential_file(path)
	if cf.find(entry.username) is not None:
		raise UserExists(f'User {entry.username!r} already exists')
	cf.add_or_update(entry)
	_user_dir(root, entry.username)
	write_credential_file(path, cf)
	log.info('Imported credential entry for %r', entry.username)
	return entry.username
