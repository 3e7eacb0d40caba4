"""mnemo: session memory with hybrid semantic/keyword recall."""

from mnemo.config import MnemoConfig, load_config
from mnemo.core import Mnemo, format_results
from mnemo.errors import BackendUnavailable, EmptyContentError, MnemoError

__version__ = "0.1.0"

__all__ = [
    "BackendUnavailable",
    "EmptyContentError",
    "Mnemo",
    "MnemoConfig",
    "MnemoError",
    "format_results",
    "load_config",
]
