"""
Configuration management for blobfs.

Handles loading and saving user configuration from:
- XDG config directory: ~/.config/blobfs/config.json
- Fallback: ~/.blobfs/config.json
"""

import json
import logging
from pathlib import Path
from typing import Dict, Any, Optional
from dataclasses import dataclass, asdict, field

logger = logging.getLogger(__name__)


@dataclass
class StoreConfig:
    """Object store backend configuration."""
    backend: str = "local"
    root: str = "~/.local/share/blobfs"
    container: Optional[str] = None


@dataclass
class FSConfig:
    """File system layer settings."""
    separator: str = "/"
    padding_chunk_size: int = 10000


@dataclass
class CLIConfig:
    """CLI default options."""
    verbose: bool = False
    color: bool = True


@dataclass
class BlobFSConfig:
    """Main blobfs configuration."""
    store: StoreConfig = field(default_factory=StoreConfig)
    fs: FSConfig = field(default_factory=FSConfig)
    cli: CLIConfig = field(default_factory=CLIConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "store": asdict(self.store),
            "fs": asdict(self.fs),
            "cli": asdict(self.cli),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BlobFSConfig':
        """Create from dictionary."""
        return cls(
            store=StoreConfig(**data.get("store", {})),
            fs=FSConfig(**data.get("fs", {})),
            cli=CLIConfig(**data.get("cli", {})),
        )


def get_config_path() -> Path:
    """
    Get configuration file path.

    1. ~/.config/blobfs/config.json when ~/.config exists
    2. Fallback: ~/.blobfs/config.json

    Returns:
        Path to config file
    """
    xdg_config_home = Path.home() / ".config"
    if xdg_config_home.exists():
        config_dir = xdg_config_home / "blobfs"
    else:
        config_dir = Path.home() / ".blobfs"

    return config_dir / "config.json"


def load_config() -> BlobFSConfig:
    """
    Load configuration from file.

    Returns:
        BlobFSConfig instance with loaded values or defaults
    """
    config_path = get_config_path()

    if not config_path.exists():
        return BlobFSConfig()

    try:
        with open(config_path, 'r') as f:
            data = json.load(f)
        return BlobFSConfig.from_dict(data)
    except (json.JSONDecodeError, OSError, TypeError) as e:
        logger.warning(f"Failed to load config from {config_path}: {e}; using defaults")
        return BlobFSConfig()


def save_config(config: BlobFSConfig) -> Path:
    """
    Save configuration to file.

    Args:
        config: Configuration to save

    Returns:
        Path the configuration was written to
    """
    config_path = get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, 'w') as f:
        json.dump(config.to_dict(), f, indent=2)

    logger.info(f"Configuration saved to {config_path}")
    return config_path


def ensure_config_exists() -> Path:
    """
    Ensure configuration file exists, creating with defaults if not.

    Returns:
        Path to config file
    """
    config_path = get_config_path()

    if not config_path.exists():
        save_config(BlobFSConfig())
        logger.info(f"Created default configuration at {config_path}")

    return config_path


def update_config(
    # Store settings
    store_backend: Optional[str] = None,
    store_root: Optional[str] = None,
    store_container: Optional[str] = None,
    # File system settings
    fs_separator: Optional[str] = None,
    fs_padding_chunk_size: Optional[int] = None,
    # CLI settings
    cli_verbose: Optional[bool] = None,
    cli_color: Optional[bool] = None,
) -> BlobFSConfig:
    """
    Update configuration.

    Only updates provided values, leaving others unchanged. An empty string
    for ``store_container`` clears the default container.
    """
    config = load_config()

    if store_backend is not None:
        config.store.backend = store_backend
    if store_root is not None:
        config.store.root = store_root
    if store_container is not None:
        config.store.container = store_container or None

    if fs_separator is not None:
        config.fs.separator = fs_separator
    if fs_padding_chunk_size is not None:
        config.fs.padding_chunk_size = fs_padding_chunk_size

    if cli_verbose is not None:
        config.cli.verbose = cli_verbose
    if cli_color is not None:
        config.cli.color = cli_color

    save_config(config)
    return config
