"""Error taxonomy shared by every layer of the core.

Callers catch `PKMError` to handle anything raised here; the subclasses say
whether the caller, the password or the persisted data is at fault.
"""
from __future__ import annotations

class PKMError(Exception):
	"""Base class for all pkm failures"""

class InvalidInput(PKMError): ...
class NotFound(PKMError): ...
class UserExists(PKMError): ...

class AuthFailed(PKMError):
	"""Wrong password, or ciphertext that failed authentication."""

class CorruptStore(PKMError):
	"""Credential file present but structurally invalid."""

class CorruptRecord(PKMError):
	"""Encrypted record with bad framing or a malformed payload."""

class SessionClosed(PKMError): ...

__all__ = ['PKMError','InvalidInput','NotFound','UserExists','AuthFailed','CorruptStore','CorruptRecord','SessionClosed']
