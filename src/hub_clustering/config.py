"""
Configuration management for hub_clustering.

Loads clustering defaults from environment variables (typically from a .env
file). Uses python-dotenv to load .env automatically.

Usage:
    from hub_clustering.config import config

    # Defaults for the global variants (GHPC / GHPKM)
    cfg = config.get_clustering_config("global")

    # Defaults for the local variant (LHPC), with an override
    cfg = config.get_clustering_config("local", k=7)
"""

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from .algorithms.errors import InvalidConfigurationError

# Look for .env in project root (parent of src/)
env_path = Path(__file__).parent.parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)

ENV_PREFIX = "HUB_CLUSTER_"
_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class ClusteringConfig:
    """Parameters shared by the hubness-proportional clustering variants."""

    k: int = 10
    probabilistic_iterations: int = 20
    max_iterations: int = 100
    error_threshold: float = 0.001
    max_retries: int = 10
    metric: str = "euclidean"
    keep_history: bool = False

    def __post_init__(self):
        """Validate parameter ranges."""
        if self.k < 1:
            raise InvalidConfigurationError(f"k must be >= 1, got {self.k}")
        if self.probabilistic_iterations < 0:
            raise InvalidConfigurationError(
                f"probabilistic_iterations must be >= 0, got {self.probabilistic_iterations}"
            )
        if self.max_iterations < 1:
            raise InvalidConfigurationError(
                f"max_iterations must be >= 1, got {self.max_iterations}"
            )
        if not self.error_threshold > 0:
            raise InvalidConfigurationError(
                f"error_threshold must be > 0, got {self.error_threshold}"
            )
        if self.max_retries < 0:
            raise InvalidConfigurationError(
                f"max_retries must be >= 0, got {self.max_retries}"
            )

    def with_overrides(self, **overrides: Any) -> "ClusteringConfig":
        """Copy with the given fields replaced; None values are ignored."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


# Defaults per variant before environment overrides
VARIANT_DEFAULTS: Dict[str, ClusteringConfig] = {
    "global": ClusteringConfig(),
    "local": ClusteringConfig(k=5, probabilistic_iterations=15, max_iterations=45),
}


def _parse_env_value(name: str, raw: str, annotation: type) -> Any:
    """Convert one environment string to the field's type."""
    try:
        if annotation is bool:
            return raw.strip().lower() in _TRUE_VALUES
        if annotation is int:
            return int(raw)
        if annotation is float:
            return float(raw)
        return raw.strip()
    except ValueError as e:
        raise InvalidConfigurationError(
            f"Environment variable {ENV_PREFIX}{name.upper()}={raw!r} is not a valid {annotation.__name__}"
        ) from e


class Config:
    """
    Application configuration loaded from environment variables.

    Environment variables can be set:
    1. In a .env file in the project root
    2. In the system environment
    3. In a container/deployment environment

    Every ``ClusteringConfig`` field maps to ``HUB_CLUSTER_<FIELD>``, e.g.
    ``HUB_CLUSTER_K`` or ``HUB_CLUSTER_MAX_ITERATIONS``.
    """

    _FIELD_TYPES = {"k": int, "probabilistic_iterations": int, "max_iterations": int,
                    "error_threshold": float, "max_retries": int, "metric": str,
                    "keep_history": bool}

    def __init__(self):
        """Load configuration from environment."""
        self.log_level = os.getenv(f"{ENV_PREFIX}LOG_LEVEL", "INFO")
        self._env_overrides = self._read_env()

    @classmethod
    def _read_env(cls) -> Dict[str, Any]:
        overrides = {}
        for f in fields(ClusteringConfig):
            raw = os.getenv(f"{ENV_PREFIX}{f.name.upper()}")
            if raw is not None and raw != "":
                overrides[f.name] = _parse_env_value(f.name, raw, cls._FIELD_TYPES[f.name])
        return overrides

    def get_clustering_config(self, variant: str = "global", **overrides: Any) -> ClusteringConfig:
        """
        Get clustering parameters for a variant.

        Args:
            variant: ``"global"`` (GHPC / GHPKM) or ``"local"`` (LHPC)
            **overrides: Explicit values, applied after environment values

        Returns:
            ClusteringConfig

        Raises:
            InvalidConfigurationError: If the variant is unknown or a value is invalid
        """
        variant = variant.lower()
        if variant not in VARIANT_DEFAULTS:
            raise InvalidConfigurationError(
                f"Unknown variant: {variant} (expected one of {sorted(VARIANT_DEFAULTS)})"
            )
        return VARIANT_DEFAULTS[variant].with_overrides(**self._env_overrides).with_overrides(**overrides)


# Global config instance
config = Config()


def load_config(variant: str = "global", env: Optional[Dict[str, str]] = None, **overrides: Any) -> ClusteringConfig:
    """
    Build a ClusteringConfig from a fresh read of the environment.

    Args:
        variant: ``"global"`` or ``"local"``
        env: Extra environment values to apply for this call only
        **overrides: Explicit field values

    Returns:
        ClusteringConfig
    """
    if not env:
        return Config().get_clustering_config(variant, **overrides)
    original = {key: os.environ.get(key) for key in env}
    os.environ.update(env)
    try:
        return Config().get_clustering_config(variant, **overrides)
    finally:
        for key, value in original.items():
            if value is None:
                os.environ.pop(key, None)
            else:
                os.environ[key] = value
