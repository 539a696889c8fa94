"""Cryptographic primitives: PBKDF2 key derivation + AES-256-GCM."""
from __future__ import annotations
import secrets
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from config.settings import (
	PBKDF2_ITERATIONS, SALT_LENGTH, KEY_LENGTH, NONCE_LENGTH, AUTH_TAG_LENGTH
)
from .errors import AuthFailed, InvalidInput, SessionClosed

class SecretKey:
	"""Owned key buffer that can be zeroed explicitly.

	Use as a context manager, or call destroy() when the owner is done with it.
	"""
	__slots__ = ('_buf', '_destroyed')

	def __init__(self, raw: bytes):
		self._buf = bytearray(raw)
		self._destroyed = False

	@property
	def destroyed(self) -> bool:
		return self._destroyed

	def reveal(self) -> bytes:
		if self._destroyed: raise SessionClosed('Key material has been destroyed')
		return bytes(self._buf)

	def destroy(self) -> None:
		for i in range(len(self._buf)):
			self._buf[i] = 0
		self._destroyed = True

	def __len__(self) -> int:
		return len(self._buf)

	def __repr__(self) -> str:
		return f"<SecretKey len={len(self._buf)} destroyed={self._destroyed}>"

	def __enter__(self) -> 'SecretKey':
		return self

	def __exit__(self, *exc) -> None:
		self.destroy()

class NoteCrypto:
	"""Stateless cipher engine and key derivation.

	Every call is independent; keys and nonces are always passed in.
	"""

	def generate_salt(self) -> bytes:
		return secrets.token_bytes(SALT_LENGTH)

	def generate_nonce(self) -> bytes:
		return secrets.token_bytes(NONCE_LENGTH)

	def generate_key(self) -> bytes:
		return secrets.token_bytes(KEY_LENGTH)

	def derive_key(self, password: str, salt: bytes, iterations: int = PBKDF2_ITERATIONS) -> bytes:
		"""Derive a 32-byte key from password + salt (PBKDF2-HMAC-SHA256)."""
		if len(salt) < SALT_LENGTH:
			raise InvalidInput(f"Salt must be at least {SALT_LENGTH} bytes")
		kdf = PBKDF2HMAC(algorithm=hashes.SHA256(), length=KEY_LENGTH, salt=bytes(salt), iterations=iterations)
		return kdf.derive(password.encode('utf-8'))

	def encrypt(self, key: bytes, nonce: bytes, data: bytes) -> bytes:
		"""Return ciphertext || 16-byte GCM tag."""
		self._check(key, nonce)
		enc = Cipher(algorithms.AES(bytes(key)), modes.GCM(bytes(nonce))).encryptor()
		ct = enc.update(data) + enc.finalize()
		return ct + enc.tag

	def decrypt(self, key: bytes, nonce: bytes, blob: bytes) -> bytes:
		self._check(key, nonce)
		if len(blob) < AUTH_TAG_LENGTH: raise AuthFailed("Ciphertext too short")
		ct = blob[:-AUTH_TAG_LENGTH]; tag = blob[-AUTH_TAG_LENGTH:]
		dec = Cipher(algorithms.AES(bytes(key)), modes.GCM(bytes(nonce), bytes(tag))).decryptor()
		try:
			return dec.update(ct) + dec.finalize()
		except InvalidTag as e:
			raise AuthFailed("Decryption failed, check password") from e

	@staticmethod
	def _check(key: bytes, nonce: bytes) -> None:
		if len(key) != KEY_LENGTH: raise InvalidInput("Bad key length")
		if len(nonce) != NONCE_LENGTH: raise InvalidInput("Bad nonce length")
