"""Per-invocation session holding the unwrapped data key."""
from __future__ import annotations
import logging
from pathlib import Path
from config.settings import NONCE_LENGTH
from .crypto import NoteCrypto, SecretKey
from .errors import InvalidInput, NotFound
from .keys import crypt_path, read_credential_file, unwrap_dek

log = logging.getLogger(__name__)

class SessionKeyProvider:
	"""Encrypts and decrypts with one user's DEK for the life of the process.

	The DEK lives only in memory. close() (or leaving a `with` block) zeroes
	it; any later encrypt/decrypt raises SessionClosed.
	"""

	def __init__(self, username: str, dek: SecretKey):
		self.username = username
		self._dek = dek
		self._crypto = NoteCrypto()

	@property
	def closed(self) -> bool:
		return self._dek.destroyed

	def encrypt(self, plaintext: bytes) -> bytes:
		"""Return nonce || ciphertext+tag under a fresh random nonce."""
		nonce = self._crypto.generate_nonce()
		return nonce + self._crypto.encrypt(self._dek.reveal(), nonce, plaintext)

	def decrypt(self, blob: bytes) -> bytes:
		if len(blob) < NONCE_LENGTH:
			raise InvalidInput('Ciphertext too short')
		return self._crypto.decrypt(self._dek.reveal(), blob[:NONCE_LENGTH], blob[NONCE_LENGTH:])

	def close(self) -> None:
		if not self._dek.destroyed:
			self._dek.destroy()
			log.debug('Session for %r closed', self.username)

	def __enter__(self) -> 'SessionKeyProvider':
		return self

	def __exit__(self, *exc) -> None:
		self.close()

	def __repr__(self) -> str:
		return f"<SessionKeyProvider user={self.username!r} closed={self.closed}>"


def open_session(root: Path | str, username: str, password: str) -> SessionKeyProvider:
	"""Unwrap `username`'s DEK with `password`.

	Raises InvalidInput (no username), NotFound (no entry) or AuthFailed
	(wrong password).
	"""
	if not username:
		raise InvalidInput('Username required')
	cf = read_credential_file(crypt_path(root))
	entry = cf.find(username)
	if entry is None:
		raise NotFound(f"User {username!r} not found. Run 'pkm user init {username}' first")
	dek = unwrap_dek(NoteCrypto(), entry, password)
	log.debug('Session opened for %r', username)
	return SessionKeyProvider(username, dek)
