"""Project configuration settings.

Constants shared by the key hierarchy, the record format and the CLI.
Values that touch the on-disk format must not change without a version bump.
"""

from pathlib import Path
import os

# Security / crypto
PBKDF2_ITERATIONS = 100_000
SALT_LENGTH = 16
KEY_LENGTH = 32  # AES-256 (KEK and DEK)
NONCE_LENGTH = 12  # GCM nonce
AUTH_TAG_LENGTH = 16  # GCM tag length

# On-disk layout
CRYPT_FILENAME = ".crypt"
CRYPT_FILE_VERSION = 1
RECORD_MAGIC = b"PKM\n"
NOTE_SUFFIX = ".pkm"
INDEX_FILENAME = ".index" + NOTE_SUFFIX

# Store
DEFAULT_STORE_PATH = Path(os.environ.get("PKM_STORE", Path.home() / ".pkm"))

# Logging
LOG_LEVEL = "WARNING"
LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"

__all__ = [
	'PBKDF2_ITERATIONS','SALT_LENGTH','KEY_LENGTH','NONCE_LENGTH','AUTH_TAG_LENGTH',
	'CRYPT_FILENAME','CRYPT_FILE_VERSION','RECORD_MAGIC','NOTE_SUFFIX','INDEX_FILENAME',
	'DEFAULT_STORE_PATH','LOG_LEVEL','LOG_FORMAT'
]
