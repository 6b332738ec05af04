"""
Tokenvote Configuration

Loads the [governance] section of a TOML file.
Environment variables override TOML values.
"""

from .loader import (
    GovernanceConfig,
    load_config,
)

__all__ = [
    "GovernanceConfig",
    "load_config",
]
