"""
FOLLOWGRAPH CONFIG - TOML Settings Loaded Once

Configuration lives in config/followgraph.toml and is decoded into typed
msgspec Structs. Components ask get_config() instead of reading files.

Usage:
    from infrastructure.config import get_config

    sigil = get_config().handles.sigil

Resolution order:
1. Explicit path passed to load_config()
2. FOLLOWGRAPH_CONFIG environment variable
3. config/followgraph.toml next to the package
An explicit or FOLLOWGRAPH_CONFIG file that is missing or unreadable falls
back to the built-in defaults with a warning. config/followgraph.toml is
not shipped in the wheel; when it is absent (a non-editable install) the
built-in defaults, which mirror that file, are used without a warning.
"""
import os
import tomllib
import warnings
from pathlib import Path
from typing import Any, Dict, List, Optional

import msgspec


DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "config" / "followgraph.toml"
CONFIG_ENV_VAR = "FOLLOWGRAPH_CONFIG"


# =============================================================================
# CONFIG SECTIONS
# =============================================================================

class HandleConfig(msgspec.Struct, kw_only=True):
    sigil: str = "@"


class FormatConfig(msgspec.Struct, kw_only=True):
    users_markers: List[str] = msgspec.field(default_factory=lambda: ["users", "usuarios"])
    relations_markers: List[str] = msgspec.field(default_factory=lambda: ["relations", "relaciones"])
    write_users_marker: str = "users"
    write_relations_marker: str = "relations"


class LoggingConfig(msgspec.Struct, kw_only=True):
    level: str = "INFO"
    format: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class ExportConfig(msgspec.Struct, kw_only=True):
    format: str = "parquet"         # 'parquet' | 'csv'
    output_dir: str = "./export"


class FollowGraphConfig(msgspec.Struct, kw_only=True):
    """Top-level settings, one attribute per TOML table."""
    handles: HandleConfig = msgspec.field(default_factory=HandleConfig)
    format: FormatConfig = msgspec.field(default_factory=FormatConfig)
    logging: LoggingConfig = msgspec.field(default_factory=LoggingConfig)
    export: ExportConfig = msgspec.field(default_factory=ExportConfig)
    source: Optional[str] = None


# =============================================================================
# LOADING
# =============================================================================

def load_toml_config(path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Read the raw TOML tables.

    Returns:
        Dict with all configuration sections ({} when the file is unusable)
    """
    config_path = _resolve_path(path)
    try:
        with open(config_path, "rb") as f:
            return tomllib.load(f)
    except Exception as e:
        warnings.warn(f"Failed to load config from {config_path}: {e}")
        return {}


def load_config(path: Optional[Path] = None) -> FollowGraphConfig:
    """
    Load and validate configuration.

    Raises:
        msgspec.ValidationError: If a section has the wrong shape
            (e.g. sigil = 3). A missing file is not an error.
    """
    config_path = _resolve_path(path)
    if config_path == DEFAULT_CONFIG_PATH and not config_path.exists():
        # Installed without the source tree; built-in defaults mirror the file
        return FollowGraphConfig()
    raw = load_toml_config(config_path)
    config = msgspec.convert(raw, type=FollowGraphConfig)
    if raw:
        config.source = str(config_path)
    _validate(config)
    return config


def _resolve_path(path: Optional[Path]) -> Path:
    if path is not None:
        return Path(path)
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    return DEFAULT_CONFIG_PATH


def _validate(config: FollowGraphConfig) -> None:
    if len(config.handles.sigil) > 1:
        raise ValueError(f"handles.sigil must be at most one character, got {config.handles.sigil!r}")
    if config.export.format not in ("parquet", "csv"):
        raise ValueError(f"export.format must be 'parquet' or 'csv', got {config.export.format!r}")
    if not config.format.users_markers or not config.format.relations_markers:
        raise ValueError("format.users_markers and format.relations_markers cannot be empty")


# =============================================================================
# SINGLETON ACCESS
# =============================================================================

_config: Optional[FollowGraphConfig] = None


def get_config() -> FollowGraphConfig:
    """Get the process-wide configuration, loading it on first use."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def set_config(config: Optional[FollowGraphConfig]) -> None:
    """
    Replace the process-wide configuration.

    This is the injection point for tests; pass None to force a reload.
    """
    global _config
    _config = config
