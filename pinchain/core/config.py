"""pinchain.core.config

Three config surfaces only:
1) `config/default.yaml` (or `config/user.yaml`)
2) `config/networks/<network>.yaml` (optional overlay, base wins)
3) Environment variables, `PINCHAIN_` prefix

Everything else is derived.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings

from pinchain.core.exceptions import ConfigError
from pinchain.core.types import Network


def _deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    result: dict[str, Any] = dict(base)
    for k, v in overlay.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _load_yaml(path: Path) -> dict[str, Any]:
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Config file unreadable: {path}: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigError(f"Config file must be a mapping: {path}")
    return raw


class FeedConfig(BaseModel):
    """Remote checkpoint feed. Off unless asked for."""

    enabled: bool = False
    # When False a feed failure is logged and the load carries on.
    required: bool = False
    urls: dict[Network, list[str]] = Field(default_factory=dict)
    timeout_s: float = 10.0
    max_retries: int = 2
    max_bytes: int = 256 * 1024
    max_records: int = 10_000
    allow_private: bool = False

    @field_validator("max_retries")
    @classmethod
    def max_retries_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("max_retries must be >= 0")
        return v

    def urls_for(self, network: Network) -> list[str]:
        return list(self.urls.get(Network(network), []))


class LoggingConfig(BaseModel):
    level: str = "INFO"
    json_output: bool = False

    @field_validator("level")
    @classmethod
    def level_is_known(cls, v: str) -> str:
        v = v.upper()
        if v not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {v}")
        return v


class Config(BaseSettings):
    """Root configuration. Single source of truth."""

    network: Network = Network.MAINNET

    # Paths
    data_dir: Path = Path("data")
    config_dir: Path = Path("config")
    # Relative paths resolve under data_dir. None disables the file overlay.
    checkpoints_file: Path | None = Path("checkpoints.json")

    feed: FeedConfig = Field(default_factory=FeedConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"env_prefix": "PINCHAIN_", "env_nested_delimiter": "__"}

    @property
    def checkpoints_path(self) -> Path | None:
        if self.checkpoints_file is None:
            return None
        if self.checkpoints_file.is_absolute():
            return self.checkpoints_file
        return self.data_dir / self.checkpoints_file

    @classmethod
    def from_yaml(cls, path: Path, *, network: str | None = None) -> Config:
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")

        raw = _load_yaml(path)

        if network is not None:
            raw["network"] = network
        network = str(raw.get("network", Network.MAINNET))
        overlay_path = path.parent / "networks" / f"{network}.yaml"
        if overlay_path.exists():
            raw = _deep_merge(_load_yaml(overlay_path), raw)

        raw.setdefault("config_dir", str(path.parent))
        try:
            return cls(**raw)
        except ValidationError as e:
            raise ConfigError(f"Invalid config {path}: {e}") from e

    @classmethod
    def from_repo_defaults(cls, repo_root: Path | None = None) -> Config:
        root = repo_root or Path.cwd()
        return cls.from_yaml(root / "config" / "default.yaml")

    @classmethod
    def resolve(
        cls,
        repo_root: Path | None = None,
        *,
        network: Literal["mainnet", "testnet", "stagenet"] | None = None,
    ) -> Config:
        """user.yaml, else default.yaml, else built-in defaults."""

        root = repo_root or Path.cwd()
        user = root / "config" / "user.yaml"
        default = root / "config" / "default.yaml"
        if user.exists():
            cfg = cls.from_yaml(user, network=network)
        elif default.exists():
            cfg = cls.from_yaml(default, network=network)
        elif network is not None:
            cfg = cls(network=Network(network))
        else:
            cfg = cls()
        return cfg
