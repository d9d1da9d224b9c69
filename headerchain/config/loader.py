"""
Header Chain TOML Configuration Loader

Loads every section of config.toml with environment variable overrides
(dataclass + from_dict + from_file).

Environment variable mapping:
    [node] chain_name                    → HEADERCHAIN_CHAIN_NAME
    [node] log_level                     → HEADERCHAIN_LOG_LEVEL
    [verifier] reject_unknown_voters     → HEADERCHAIN_REJECT_UNKNOWN_VOTERS
    [verifier] reject_equivocations      → HEADERCHAIN_REJECT_EQUIVOCATIONS
    [verifier] reject_redundant_ancestry → HEADERCHAIN_REJECT_REDUNDANT_ANCESTRY
    [tracker] headers_to_keep            → HEADERCHAIN_HEADERS_TO_KEEP
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

try:
    import tomllib as tomli  # Python 3.11+
except ImportError:
    import tomli  # type: ignore[no-redef]

from ..constants import DEFAULT_HEADERS_TO_KEEP
from ..exceptions import ConfigurationError
from ..logger import LOG_DIR, LogManager

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _env_flag(name: str) -> Optional[bool]:
    v = os.environ.get(name)
    if v is None or v == "":
        return None
    return v.lower() in ("1", "true", "yes")


# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------


@dataclass
class NodeSectionConfig:
    """[node] section."""
    chain_name: str = "remote"
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NodeSectionConfig":
        return cls(
            chain_name=data.get("chain_name", "remote"),
            log_level=data.get("log_level", "INFO"),
        )

    def apply_env(self) -> None:
        """Override from environment variables."""
        if v := os.environ.get("HEADERCHAIN_CHAIN_NAME"):
            self.chain_name = v
        if v := os.environ.get("HEADERCHAIN_LOG_LEVEL"):
            self.log_level = v


@dataclass
class VerifierConfig:
    """
    [verifier] section.

    All policies default to lenient: unknown voters are ignored, the first
    vote of an equivocating authority is counted, unused ancestry headers
    are tolerated.
    """
    reject_unknown_voters: bool = False
    reject_equivocations: bool = False
    reject_redundant_ancestry: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VerifierConfig":
        return cls(
            reject_unknown_voters=data.get("reject_unknown_voters", False),
            reject_equivocations=data.get("reject_equivocations", False),
            reject_redundant_ancestry=data.get("reject_redundant_ancestry", False),
        )

    def apply_env(self) -> None:
        if (v := _env_flag("HEADERCHAIN_REJECT_UNKNOWN_VOTERS")) is not None:
            self.reject_unknown_voters = v
        if (v := _env_flag("HEADERCHAIN_REJECT_EQUIVOCATIONS")) is not None:
            self.reject_equivocations = v
        if (v := _env_flag("HEADERCHAIN_REJECT_REDUNDANT_ANCESTRY")) is not None:
            self.reject_redundant_ancestry = v


@dataclass
class TrackerConfig:
    """[tracker] section."""
    headers_to_keep: int = DEFAULT_HEADERS_TO_KEEP

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TrackerConfig":
        return cls(headers_to_keep=data.get("headers_to_keep", DEFAULT_HEADERS_TO_KEEP))

    def apply_env(self) -> None:
        if v := os.environ.get("HEADERCHAIN_HEADERS_TO_KEEP"):
            self.headers_to_keep = int(v)

    def validate(self) -> None:
        if self.headers_to_keep < 1:
            raise ValueError("headers_to_keep must be >= 1")


# -----------------------------------------------------------------------
# Top-level config
# -----------------------------------------------------------------------

@dataclass
class BridgeConfig:
    """
    Unified configuration of the header chain core.

    The host loads it once, calls `configure_logging()` and passes the
    relevant sections to `initialize` and `JustificationVerifier`.
    """
    node: NodeSectionConfig = field(default_factory=NodeSectionConfig)
    verifier: VerifierConfig = field(default_factory=VerifierConfig)
    tracker: TrackerConfig = field(default_factory=TrackerConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BridgeConfig":
        """Create BridgeConfig from a parsed TOML dict."""
        return cls(
            node=NodeSectionConfig.from_dict(data.get("node", {})),
            verifier=VerifierConfig.from_dict(data.get("verifier", {})),
            tracker=TrackerConfig.from_dict(data.get("tracker", {})),
        )

    @classmethod
    def from_file(cls, config_path: str) -> "BridgeConfig":
        """
        Load configuration from a TOML file.

        Args:
            config_path: Path to config.toml

        Returns:
            BridgeConfig instance

        Raises:
            ConfigurationError: file exists but is not valid TOML
        """
        path = Path(config_path)
        if not path.exists():
            logger.warning("Config file not found: %s, using defaults", config_path)
            cfg = cls()
            cfg.apply_env()
            return cfg

        with open(path, "rb") as f:
            try:
                raw = tomli.load(f)
            except tomli.TOMLDecodeError as e:
                raise ConfigurationError(f"Invalid TOML in {config_path}: {e}") from e

        cfg = cls.from_dict(raw)
        cfg.apply_env()
        return cfg

    def apply_env(self) -> None:
        """Apply environment variable overrides to all sections."""
        self.node.apply_env()
        self.verifier.apply_env()
        self.tracker.apply_env()

    def validate(self) -> bool:
        """
        Validate all configuration sections.

        Returns:
            True if all valid

        Raises:
            ValueError: on invalid config
        """
        if self.node.log_level not in LOG_LEVELS:
            raise ValueError(f"Invalid log_level: {self.node.log_level}")
        self.tracker.validate()
        return True

    def configure_logging(self, **kwargs: Any) -> None:
        """
        Configure the `headerchain` loggers from the [node] section.

        The level comes from `log_level`; the rotating log file, when file
        output is enabled, is named after `chain_name`. Extra keyword
        arguments go to `LogManager.configure`.
        """
        kwargs.setdefault("log_file", LOG_DIR / f"{self.node.chain_name}.log")
        LogManager().configure(log_level=self.node.log_level, **kwargs)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dict (for diagnostics)."""
        return {
            "node": {
                "chain_name": self.node.chain_name,
                "log_level": self.node.log_level,
            },
            "verifier": {
                "reject_unknown_voters": self.verifier.reject_unknown_voters,
                "reject_equivocations": self.verifier.reject_equivocations,
                "reject_redundant_ancestry": self.verifier.reject_redundant_ancestry,
            },
            "tracker": {
                "headers_to_keep": self.tracker.headers_to_keep,
            },
        }


def load_config(path: Optional[str] = None) -> BridgeConfig:
    """
    Load bridge configuration.

    Resolution order:
        1. Explicit *path* argument
        2. HEADERCHAIN_CONFIG env var
        3. ./config.toml in current directory
        4. Defaults (with env overrides)
    """
    if path is None:
        path = os.environ.get("HEADERCHAIN_CONFIG", "config.toml")

    return BridgeConfig.from_file(path)
