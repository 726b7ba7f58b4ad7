"""
multisig.config — runtime configuration for the multisig engine host.

Knobs:
  • Record store location (sqlite URI)
  • Derivation namespace mixed into every wallet/proposal address
  • Owner-set cap
  • Logging level and format

Environment variables (all optional):
  MULTISIG_DB           -> sqlite URI or path (default: sqlite:///multisig.db)
  MULTISIG_NAMESPACE    -> derivation domain string (default: multisig.v1)
  MULTISIG_MAX_OWNERS   -> integer in [1, 65535] (default: 20)
  MULTISIG_LOG_LEVEL    -> DEBUG/INFO/WARNING/ERROR (default: INFO)
  MULTISIG_LOG_FORMAT   -> json|text (default: auto by TTY)

Programmatic usage:
    from multisig.config import get_config
    cfg = get_config()
    store = RecordStore.open(cfg.db_uri)
"""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass
from functools import lru_cache
from typing import Dict, Mapping, Optional, Union

# Owner count is stored as u16 in the record layout.
OWNER_COUNT_CEILING = 0xFFFF

DEFAULT_DB_URI = "sqlite:///multisig.db"
DEFAULT_NAMESPACE = "multisig.v1"
DEFAULT_MAX_OWNERS = 20

_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "NOTSET")


@dataclass(frozen=True)
class MultisigConfig:
    db_uri: str = DEFAULT_DB_URI
    namespace: str = DEFAULT_NAMESPACE
    max_owners: int = DEFAULT_MAX_OWNERS
    log_level: str = "INFO"
    log_format: Optional[str] = None

    @property
    def namespace_bytes(self) -> bytes:
        return self.namespace.encode("utf-8")

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


def _validate(cfg: MultisigConfig) -> MultisigConfig:
    if not cfg.db_uri:
        raise ValueError("db_uri must be non-empty")
    if not cfg.namespace:
        raise ValueError("namespace must be non-empty")
    if len(cfg.namespace_bytes) > 255:
        raise ValueError("namespace must encode to at most 255 bytes")
    if not (1 <= cfg.max_owners <= OWNER_COUNT_CEILING):
        raise ValueError(f"max_owners must be in [1, {OWNER_COUNT_CEILING}]")
    if cfg.log_level not in _LOG_LEVELS:
        raise ValueError(f"log_level must be one of {', '.join(_LOG_LEVELS)}")
    if cfg.log_format not in (None, "json", "text"):
        raise ValueError("log_format must be 'json' or 'text'")
    return cfg


def load_config(
    env: Optional[Mapping[str, str]] = None,
    *,
    overrides: Optional[Mapping[str, Union[str, int]]] = None,
) -> MultisigConfig:
    """
    Build a MultisigConfig from environment and optional overrides.

    Args:
        env: mapping to read variables from (default: os.environ)
        overrides: explicit field overrides; keys are the dataclass field names
          ('db_uri', 'namespace', 'max_owners', 'log_level', 'log_format')

    Raises:
        ValueError: on unparsable or out-of-range values.
    """
    env = os.environ if env is None else env
    overrides = dict(overrides or {})

    fmt = overrides.get("log_format", env.get("MULTISIG_LOG_FORMAT"))
    fmt = str(fmt).strip().lower() if fmt not in (None, "") else None

    try:
        max_owners = int(
            overrides.get("max_owners", env.get("MULTISIG_MAX_OWNERS", DEFAULT_MAX_OWNERS))
        )
    except (TypeError, ValueError) as e:
        raise ValueError(f"invalid MULTISIG_MAX_OWNERS: {e}") from None

    cfg = MultisigConfig(
        db_uri=str(overrides.get("db_uri", env.get("MULTISIG_DB", DEFAULT_DB_URI))).strip(),
        namespace=str(
            overrides.get("namespace", env.get("MULTISIG_NAMESPACE", DEFAULT_NAMESPACE))
        ),
        max_owners=max_owners,
        log_level=str(overrides.get("log_level", env.get("MULTISIG_LOG_LEVEL", "INFO")))
        .strip()
        .upper(),
        log_format=fmt,
    )
    return _validate(cfg)


@lru_cache(maxsize=1)
def get_config() -> MultisigConfig:
    """Cached process-wide config."""
    return load_config()


def summary(cfg: Optional[MultisigConfig] = None) -> str:
    """One-line summary of the active knobs, for startup logs."""
    cfg = cfg or get_config()
    return (
        "multisig{"
        f"db={cfg.db_uri}, ns={cfg.namespace}, max_owners={cfg.max_owners}, "
        f"log={cfg.log_level}/{cfg.log_format or 'auto'}"
        "}"
    )


__all__ = [
    "OWNER_COUNT_CEILING",
    "DEFAULT_DB_URI",
    "DEFAULT_NAMESPACE",
    "DEFAULT_MAX_OWNERS",
    "MultisigConfig",
    "load_config",
    "get_config",
    "summary",
]
