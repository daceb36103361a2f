# gallery/config.py
"""
Gallery configuration.

Configuration is a YAML mapping:

    data_dir: ~/.gallery
    overpayment: seller        # or "refund"
    host: 127.0.0.1
    port: 8080
    log_level: INFO
    signature_max_age: 300

Lookup order: explicit path, $GALLERY_CONFIG, built-in defaults.
"""

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .registry import OVERPAYMENT_POLICIES, OVERPAYMENT_SELLER

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "GALLERY_CONFIG"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class GalleryConfig:
    """Settings shared by the CLI and the server."""
    data_dir: Path = Path("~/.gallery")
    overpayment: str = OVERPAYMENT_SELLER
    host: str = "127.0.0.1"
    port: int = 8080
    log_level: str = "INFO"
    signature_max_age: float = 300.0

    def __post_init__(self):
        self.data_dir = Path(self.data_dir).expanduser()
        self.log_level = str(self.log_level).upper()
        if self.overpayment not in OVERPAYMENT_POLICIES:
            raise ValueError(
                f"overpayment must be one of {', '.join(OVERPAYMENT_POLICIES)}, "
                f"got {self.overpayment!r}"
            )
        if self.log_level not in LOG_LEVELS:
            raise ValueError(f"Unknown log_level: {self.log_level}")
        if not isinstance(self.port, int) or not 0 <= self.port <= 65535:
            raise ValueError(f"Invalid port: {self.port!r}")
        if not isinstance(self.signature_max_age, (int, float)) or self.signature_max_age <= 0:
            raise ValueError(f"signature_max_age must be positive, got {self.signature_max_age!r}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GalleryConfig":
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown config keys: {', '.join(sorted(unknown))}")
        return cls(**data)

    @classmethod
    def from_yaml(cls, yaml_content: str) -> "GalleryConfig":
        """Parse configuration from a YAML string."""
        data = yaml.safe_load(yaml_content) or {}
        if not isinstance(data, dict):
            raise ValueError("Config must be a YAML mapping")
        return cls.from_dict(data)

    @classmethod
    def from_file(cls, path: Path) -> "GalleryConfig":
        """Load configuration from a YAML file."""
        with open(path, "r") as f:
            return cls.from_yaml(f.read())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "data_dir": str(self.data_dir),
            "overpayment": self.overpayment,
            "host": self.host,
            "port": self.port,
            "log_level": self.log_level,
            "signature_max_age": self.signature_max_age,
        }


def load_config(path: Optional[Path | str] = None) -> GalleryConfig:
    """Load configuration from ``path``, $GALLERY_CONFIG, or defaults."""
    if path is None:
        path = os.environ.get(CONFIG_ENV_VAR) or None
    if path is None:
        return GalleryConfig()
    path = Path(path).expanduser()
    logger.debug(f"Loading config from {path}")
    return GalleryConfig.from_file(path)
