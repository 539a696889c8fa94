"""Configuration settings and constants for pkm.

Application code imports from `config.settings`; the same names are
re-exported here so `from config import PBKDF2_ITERATIONS` keeps working.
"""

from .settings import *  # noqa: F401,F403
from .settings import __all__  # noqa: F401
