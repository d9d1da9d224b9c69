"""
Header Chain Configuration

Loads all sections of config.toml. Environment variables override TOML values.
"""

from .loader import (
    BridgeConfig,
    NodeSectionConfig,
    TrackerConfig,
    VerifierConfig,
    load_config,
)

__all__ = [
    "BridgeConfig",
    "NodeSectionConfig",
    "TrackerConfig",
    "VerifierConfig",
    "load_config",
]
