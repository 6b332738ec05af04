"""
Tokenvote TOML Configuration Loader

Loads the [governance] section of a TOML file with environment variable
overrides (dataclass + from_dict + from_file).

Environment variable mapping:
    [governance] max_voters         → TOKENVOTE_MAX_VOTERS
    [governance] owner_voting_power → TOKENVOTE_OWNER_VOTING_POWER
    [governance] quorum_percent     → TOKENVOTE_QUORUM_PERCENT
    [governance] token_unit         → TOKENVOTE_TOKEN_UNIT
    [governance] voting_period      → TOKENVOTE_VOTING_PERIOD
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

try:
    import tomllib as tomli  # Python 3.11+
except ImportError:
    import tomli  # type: ignore[no-redef]

from ..constants import (
    GOVERNANCE_DEFAULT_VOTING_PERIOD,
    GOVERNANCE_MAX_VOTERS,
    GOVERNANCE_OWNER_VOTING_POWER,
    GOVERNANCE_QUORUM_PERCENT,
    TOKEN_UNIT,
)

logger = logging.getLogger(__name__)


@dataclass
class GovernanceConfig:
    """[governance] section."""
    max_voters: int = GOVERNANCE_MAX_VOTERS
    owner_voting_power: int = GOVERNANCE_OWNER_VOTING_POWER
    quorum_percent: int = GOVERNANCE_QUORUM_PERCENT
    token_unit: int = TOKEN_UNIT
    voting_period: int = GOVERNANCE_DEFAULT_VOTING_PERIOD

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GovernanceConfig":
        return cls(
            max_voters=int(data.get("max_voters", GOVERNANCE_MAX_VOTERS)),
            owner_voting_power=int(data.get("owner_voting_power", GOVERNANCE_OWNER_VOTING_POWER)),
            quorum_percent=int(data.get("quorum_percent", GOVERNANCE_QUORUM_PERCENT)),
            token_unit=int(data.get("token_unit", TOKEN_UNIT)),
            voting_period=int(data.get("voting_period", GOVERNANCE_DEFAULT_VOTING_PERIOD)),
        )

    @classmethod
    def from_file(cls, config_path: str) -> "GovernanceConfig":
        """
        Load configuration from a TOML file.

        Args:
            config_path: Path to the TOML file

        Returns:
            GovernanceConfig instance with env overrides applied
        """
        path = Path(config_path)
        if not path.exists():
            logger.warning("Config file not found: %s, using defaults", config_path)
            cfg = cls()
            cfg.apply_env()
            return cfg

        with open(path, "rb") as f:
            raw = tomli.load(f)

        cfg = cls.from_dict(raw.get("governance", {}))
        cfg.apply_env()
        return cfg

    def apply_env(self) -> None:
        """Override from environment variables."""
        if v := os.environ.get("TOKENVOTE_MAX_VOTERS"):
            self.max_voters = int(v)
        if v := os.environ.get("TOKENVOTE_OWNER_VOTING_POWER"):
            self.owner_voting_power = int(v)
        if v := os.environ.get("TOKENVOTE_QUORUM_PERCENT"):
            self.quorum_percent = int(v)
        if v := os.environ.get("TOKENVOTE_TOKEN_UNIT"):
            self.token_unit = int(v)
        if v := os.environ.get("TOKENVOTE_VOTING_PERIOD"):
            self.voting_period = int(v)

    def validate(self) -> bool:
        """
        Raises:
            ValueError: on invalid config
        """
        if self.max_voters < 1:
            raise ValueError("max_voters must be >= 1")
        if self.owner_voting_power < 0:
            raise ValueError("owner_voting_power must be >= 0")
        if not 1 <= self.quorum_percent <= 100:
            raise ValueError("quorum_percent must be between 1 and 100")
        if self.token_unit < 1:
            raise ValueError("token_unit must be >= 1")
        if self.voting_period < 0:
            raise ValueError("voting_period must be >= 0")
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "maxVoters": self.max_voters,
            "ownerVotingPower": self.owner_voting_power,
            "quorumPercent": self.quorum_percent,
            "tokenUnit": str(self.token_unit),
            "votingPeriod": self.voting_period,
        }


def load_config(config_path: Optional[str] = None) -> GovernanceConfig:
    """Load, apply env overrides and validate."""
    if config_path:
        cfg = GovernanceConfig.from_file(config_path)
    else:
        cfg = GovernanceConfig()
        cfg.apply_env()
    cfg.validate()
    return cfg
