"""pkm: password-protected personal knowledge manager.

Notes are stored as encrypted records under a per-user data key which is
itself wrapped by a key derived from the user's password.
"""

__version__ = "0.1.0"
