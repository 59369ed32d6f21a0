"""Host integration data with bundled defaults and external override.

The analyzer needs a few tables owned by the host integration layer:
reference-type codes, the allowed dialog screen locations, supported
picture extensions and the BEGIN_TABLE column types. They ship as a YAML
file next to this module and can be replaced wholesale.

Environment Variables:
    PARAMSCRIPT_HOST_DATA: Path to a YAML file used instead of the bundled
                           host data.

Example:
    export PARAMSCRIPT_HOST_DATA="/path/to/site_host.yaml"
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from .types import ValueType

__all__ = [
    "PARAMSCRIPT_HOST_DATA",
    "HostConfig",
    "host_config_from_dict",
    "load_host_config",
    "default_host_config",
    "clear_cache",
]

# Environment variable name for a custom host data file
PARAMSCRIPT_HOST_DATA = "PARAMSCRIPT_HOST_DATA"

# Bundled data location (relative to this file)
_BUNDLED_HOST_DATA = Path(__file__).parent / "data" / "host.yaml"

_REQUIRED_SECTIONS = ("reference_types", "screen_locations", "image_extensions")


@dataclass(frozen=True)
class HostConfig:
    """Validated host tables used during analysis."""
    reference_types: Dict[str, int]
    screen_locations: Tuple[str, ...]
    image_extensions: Tuple[str, ...]
    table_column_types: Dict[str, ValueType] = field(default_factory=dict)
    unknown_reference_type: int = -1
    base_directory_symbol: str = "GIF_DIR"
    double_epsilon: float = 1e-9
    source_path: Optional[str] = None

    def reference_code(self, type_name: str) -> int:
        """Case-insensitive lookup; unknown names give the sentinel code."""
        return self.reference_types.get(type_name.strip().upper(), self.unknown_reference_type)

    def is_known_reference(self, type_name: str) -> bool:
        return type_name.strip().upper() in self.reference_types

    def is_supported_image(self, path: str) -> bool:
        return Path(path).suffix.lower() in self.image_extensions


def clear_cache() -> None:
    """Clear cached host data.

    Call this after changing PARAMSCRIPT_HOST_DATA or editing the file.
    """
    _load_cached.cache_clear()


def _host_data_path() -> Path:
    env_path = os.environ.get(PARAMSCRIPT_HOST_DATA)
    if env_path:
        return Path(env_path).expanduser()
    return _BUNDLED_HOST_DATA


@lru_cache(maxsize=8)
def _load_cached(path_str: str) -> HostConfig:
    """Cached loading (string path for hashability)."""
    return _load_yaml(Path(path_str))


def _load_yaml(path: Path) -> HostConfig:
    """Load and validate a host data file."""
    if not path.exists():
        raise FileNotFoundError(f"Host data file not found: {path}")

    with open(path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f)

    if not isinstance(data, dict):
        raise ValueError(f"Invalid host data in {path}: expected mapping at root")

    schema_version = str(data.get("schema_version", "1.0"))
    if not schema_version.startswith("1."):
        raise ValueError(
            f"Unsupported schema version '{schema_version}' in {path}. "
            f"Expected version 1.x"
        )

    missing = [s for s in _REQUIRED_SECTIONS if s not in data]
    if missing:
        raise ValueError(f"Host data {path} missing required section(s): {', '.join(missing)}")

    return host_config_from_dict(data, source_path=str(path))


def host_config_from_dict(data: Dict[str, Any], source_path: Optional[str] = None) -> HostConfig:
    """Build a HostConfig from an already-parsed mapping."""
    ref_types = {str(k).upper(): int(v) for k, v in (data.get("reference_types") or {}).items()}

    column_types: Dict[str, ValueType] = {}
    for name, type_name in (data.get("table_column_types") or {}).items():
        try:
            column_types[str(name).upper()] = ValueType(str(type_name).upper())
        except ValueError:
            raise ValueError(
                f"Unknown value type '{type_name}' for table column '{name}'"
            ) from None

    return HostConfig(
        reference_types=ref_types,
        screen_locations=tuple(str(s).upper() for s in data.get("screen_locations") or ()),
        image_extensions=tuple(str(e).lower() for e in data.get("image_extensions") or ()),
        table_column_types=column_types,
        unknown_reference_type=int(data.get("unknown_reference_type", -1)),
        base_directory_symbol=str(data.get("base_directory_symbol", "GIF_DIR")),
        double_epsilon=float(data.get("double_epsilon", 1e-9)),
        source_path=source_path,
    )


def load_host_config(custom_path: Optional[Path] = None) -> HostConfig:
    """Load host data.

    Args:
        custom_path: Optional explicit path to a YAML file (overrides the
                     environment variable and the bundled file)

    Returns:
        HostConfig with reference types, screen locations, image
        extensions and table column types

    Raises:
        FileNotFoundError: If the host data file does not exist
        ValueError: If the file has an invalid format
    """
    path = Path(custom_path) if custom_path else _host_data_path()
    return _load_cached(str(path.resolve()))


def default_host_config() -> HostConfig:
    """Host data from PARAMSCRIPT_HOST_DATA or the bundled file."""
    return load_host_config()
