"""
Configuration loader for outbreak covariate modeling.
Loads YAML config and provides typed access to settings.
"""
import yaml
from pathlib import Path
from typing import Any, Dict, Optional


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to config file. Defaults to config/config_default.yaml

    Returns:
        Dictionary containing all configuration settings
    """
    if config_path is None:
        config_path = get_project_root() / "config" / "config_default.yaml"
    else:
        config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, 'r') as f:
        config = yaml.safe_load(f)

    return config or {}


def get_project_root() -> Path:
    """Get the project root directory."""
    return Path(__file__).parent.parent


def get_data_path(relative_path: str) -> Path:
    """
    Get absolute path for a data file.

    Args:
        relative_path: Path relative to project root (e.g., "data/raw/outbreaks.csv")

    Returns:
        Absolute Path object
    """
    path = Path(relative_path)
    if path.is_absolute():
        return path
    return get_project_root() / path


def get_section(config: Dict[str, Any], *keys: str) -> Dict[str, Any]:
    """Walk nested config sections, returning {} for anything missing."""
    section: Any = config
    for key in keys:
        if not isinstance(section, dict):
            return {}
        section = section.get(key) or {}
    return section if isinstance(section, dict) else {}


# Convenience: load default config on module import
try:
    CONFIG = load_config()
except FileNotFoundError:
    CONFIG = {}
