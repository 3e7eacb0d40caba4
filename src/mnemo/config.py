"""Configuration loading from environment variables and mnemo.toml."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib
from pathlib import Path

_DEFAULT_MEMORY_DIR = Path.home() / ".mnemo" / "memory"
_CONFIG_FILENAME = "mnemo.toml"


@dataclass
class BackendConfig:
    """OpenAI-compatible embedding/chat backend."""

    embeddings_url: str = "http://localhost:4000/v1/embeddings"
    chat_url: str = "http://localhost:4000/v1/chat/completions"
    api_key: str = ""
    embedding_model: str = "mistral-embed"
    chat_model: str = "mistral-medium-latest"
    max_tokens: int = 8000
    timeout: float = 30.0


@dataclass
class MemoryConfig:
    """Retention and consolidation policy."""

    persisted_cap: int = 50
    working_cap: int = 40
    working_keep: int = 35
    session_window_minutes: int = 30
    consolidation_window_minutes: int = 30
    consolidation_threshold: float = 0.7


@dataclass
class MnemoConfig:
    """Top-level mnemo configuration."""

    backend: BackendConfig = field(default_factory=BackendConfig)
    memory: MemoryConfig = field(default_factory=MemoryConfig)
    memory_dir: Path = _DEFAULT_MEMORY_DIR
    log_level: str = "INFO"


def load_config(config_path: Path | None = None) -> MnemoConfig:
    """Load configuration from environment variables and optional mnemo.toml.

    Priority: environment variables > mnemo.toml > defaults.
    """
    file_data: dict = {}
    if config_path and config_path.exists():
        file_data = tomllib.loads(config_path.read_text())
    else:
        # Search current dir and ~/.mnemo/
        for candidate in [Path.cwd() / _CONFIG_FILENAME, Path.home() / ".mnemo" / _CONFIG_FILENAME]:
            if candidate.exists():
                file_data = tomllib.loads(candidate.read_text())
                break

    backend_data = file_data.get("backend", {})
    memory_data = file_data.get("memory", {})
    defaults = BackendConfig()
    memory_defaults = MemoryConfig()

    config = MnemoConfig(
        backend=BackendConfig(
            embeddings_url=os.getenv(
                "MNEMO_EMBEDDINGS_URL", backend_data.get("embeddings_url", defaults.embeddings_url)
            ),
            chat_url=os.getenv("MNEMO_CHAT_URL", backend_data.get("chat_url", defaults.chat_url)),
            api_key=os.getenv("MNEMO_API_KEY", backend_data.get("api_key", "")),
            embedding_model=os.getenv(
                "MNEMO_EMBEDDING_MODEL", backend_data.get("embedding_model", defaults.embedding_model)
            ),
            chat_model=os.getenv("MNEMO_CHAT_MODEL", backend_data.get("chat_model", defaults.chat_model)),
            max_tokens=int(backend_data.get("max_tokens", defaults.max_tokens)),
            timeout=float(os.getenv("MNEMO_TIMEOUT", backend_data.get("timeout", defaults.timeout))),
        ),
        memory=MemoryConfig(
            persisted_cap=int(memory_data.get("persisted_cap", memory_defaults.persisted_cap)),
            working_cap=int(memory_data.get("working_cap", memory_defaults.working_cap)),
            working_keep=int(memory_data.get("working_keep", memory_defaults.working_keep)),
            session_window_minutes=int(
                memory_data.get("session_window_minutes", memory_defaults.session_window_minutes)
            ),
            consolidation_window_minutes=int(
                memory_data.get(
                    "consolidation_window_minutes", memory_defaults.consolidation_window_minutes
                )
            ),
            consolidation_threshold=float(
                memory_data.get("consolidation_threshold", memory_defaults.consolidation_threshold)
            ),
        ),
        memory_dir=Path(
            os.getenv("MNEMO_MEMORY_DIR", file_data.get("memory_dir", str(_DEFAULT_MEMORY_DIR)))
        ).expanduser(),
        log_level=os.getenv("MNEMO_LOG_LEVEL", file_data.get("log_level", "INFO")),
    )
    return config
