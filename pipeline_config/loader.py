"""
Settings loader (``pipeline_config.loader``).

Responsibility
--------------
Reads the YAML settings file, applies ``PIPELINE_*`` environment
overrides, and parses the result into ``pipeline_config.schema``
dataclasses.  Runtime code does not call this module; it calls
``pipeline_config.get_active_config()``.

Invariants enforced
-------------------
* Every parsed object is a frozen dataclass from ``schema.py``.
* Every invalid or missing value raises ``ConfigurationError`` naming the
  offending key; nothing is silently defaulted once a key is present.
* ``compute_checksum`` is deterministic for identical effective settings.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Invalid values  -> ``ConfigurationError``.
"""

from __future__ import annotations

import copy
import hashlib
import json
import logging
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Mapping

import yaml

from pipeline_config.schema import (
    AccessSettings,
    DatabaseSettings,
    DispatcherSettings,
    LoggingSettings,
    PipelineSettings,
    ScoreSettings,
)
from pipeline_kernel.domain.values import ActorRole
from pipeline_kernel.exceptions import ConfigurationError

# Environment variable -> (section, key)
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "PIPELINE_DATABASE_URL": ("database", "url"),
    "PIPELINE_LOG_LEVEL": ("logging", "level"),
    "PIPELINE_MAX_MOVE_ATTEMPTS": ("movement", "max_move_attempts"),
}

_VALID_ROLES = frozenset(role.value for role in ActorRole)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ConfigurationError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigurationError(str(path), "top-level YAML value must be a mapping")
    return data


def apply_env_overrides(
    data: Mapping[str, Any], environ: Mapping[str, str]
) -> tuple[dict[str, Any], list[str]]:
    """
    Return a copy of ``data`` with environment overrides applied.

    Returns:
        (effective data, names of the variables that were applied)
    """
    merged = copy.deepcopy(dict(data))
    applied: list[str] = []
    for var, (section, key) in ENV_OVERRIDES.items():
        value = environ.get(var)
        if value is None or value == "":
            continue
        if merged.get(section) is None:
            merged[section] = {}
        if not isinstance(merged[section], dict):
            raise ConfigurationError(section, "must be a mapping")
        merged[section][key] = value
        applied.append(var)
    return merged, applied


def compute_checksum(data: Mapping[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


# ---------------------------------------------------------------------------
# Field parsers
# ---------------------------------------------------------------------------


def _section(data: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    value = data.get(name, {})
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ConfigurationError(name, "must be a mapping")
    return value


def _parse_int(value: Any, key: str, minimum: int) -> int:
    if isinstance(value, bool):
        raise ConfigurationError(key, f"expected an integer, got {value!r}")
    try:
        result = int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(key, f"expected an integer, got {value!r}") from None
    if result < minimum:
        raise ConfigurationError(key, f"must be >= {minimum}, got {result}")
    return result


def _parse_float(value: Any, key: str) -> float:
    try:
        result = float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(key, f"expected a number, got {value!r}") from None
    if result < 0:
        raise ConfigurationError(key, f"must not be negative, got {result}")
    return result


def _parse_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in ("true", "false"):
        return value.lower() == "true"
    raise ConfigurationError(key, f"expected a boolean, got {value!r}")


def _parse_decimal(value: Any, key: str) -> Decimal:
    try:
        result = Decimal(str(value))
    except InvalidOperation:
        raise ConfigurationError(key, f"expected a number, got {value!r}") from None
    if not result.is_finite():
        raise ConfigurationError(key, f"expected a finite number, got {value!r}")
    return result


def _parse_role(value: Any, key: str) -> str:
    if not isinstance(value, str) or value not in _VALID_ROLES:
        raise ConfigurationError(
            key, f"unknown role {value!r}; expected one of {sorted(_VALID_ROLES)}"
        )
    return value


def _parse_level(value: Any, key: str) -> str:
    level = str(value).upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ConfigurationError(key, f"unknown log level {value!r}")
    return level


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


def parse_settings(data: Mapping[str, Any], source: str = "") -> PipelineSettings:
    """
    Parse effective settings data into ``PipelineSettings``.

    Raises:
        ConfigurationError: on any missing or invalid value.
    """
    database = _section(data, "database")
    url = database.get("url")
    if not url or not isinstance(url, str):
        raise ConfigurationError("database.url", "a database URL is required")

    access = _section(data, "access")
    roles_raw = access.get("privileged_roles", ["admin", "recruiter"])
    if not isinstance(roles_raw, (list, tuple)):
        raise ConfigurationError("access.privileged_roles", "must be a list of roles")
    privileged_roles = tuple(
        _parse_role(role, "access.privileged_roles") for role in roles_raw
    )

    scoring = _section(data, "scoring")
    min_score = _parse_decimal(scoring.get("min_score", "0"), "scoring.min_score")
    max_score = _parse_decimal(scoring.get("max_score", "10"), "scoring.max_score")
    if min_score > max_score:
        raise ConfigurationError(
            "scoring", f"min_score {min_score} exceeds max_score {max_score}"
        )

    movement = _section(data, "movement")
    dispatcher = _section(data, "dispatcher")

    return PipelineSettings(
        database=DatabaseSettings(
            url=url,
            echo=_parse_bool(database.get("echo", False), "database.echo"),
            pool_size=_parse_int(database.get("pool_size", 20), "database.pool_size", 1),
            max_overflow=_parse_int(
                database.get("max_overflow", 10), "database.max_overflow", 0
            ),
        ),
        logging=LoggingSettings(
            level=_parse_level(_section(data, "logging").get("level", "INFO"), "logging.level"),
        ),
        access=AccessSettings(
            privileged_roles=privileged_roles,
            super_admin_role=_parse_role(
                access.get("super_admin_role", "super_admin"), "access.super_admin_role"
            ),
        ),
        scoring=ScoreSettings(min_score=min_score, max_score=max_score),
        dispatcher=DispatcherSettings(
            queue_size=_parse_int(
                dispatcher.get("queue_size", 1000), "dispatcher.queue_size", 1
            ),
            stop_timeout_seconds=_parse_float(
                dispatcher.get("stop_timeout_seconds", 5.0),
                "dispatcher.stop_timeout_seconds",
            ),
        ),
        max_move_attempts=_parse_int(
            movement.get("max_move_attempts", 3), "movement.max_move_attempts", 1
        ),
        source=source,
        checksum=compute_checksum(data),
    )
