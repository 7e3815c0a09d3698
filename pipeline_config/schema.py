"""
Typed pipeline settings (``pipeline_config.schema``).

Every section is a frozen dataclass.  Instances are produced only by
``pipeline_config.loader.parse_settings``, which validates every field.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class DatabaseSettings:
    url: str
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"


@dataclass(frozen=True)
class AccessSettings:
    privileged_roles: tuple[str, ...] = ("admin", "recruiter")
    super_admin_role: str = "super_admin"


@dataclass(frozen=True)
class ScoreSettings:
    min_score: Decimal = Decimal("0")
    max_score: Decimal = Decimal("10")


@dataclass(frozen=True)
class DispatcherSettings:
    queue_size: int = 1000
    stop_timeout_seconds: float = 5.0


@dataclass(frozen=True)
class PipelineSettings:
    """
    The complete runtime configuration.

    ``source`` names where the settings came from (file path plus any
    environment overrides); ``checksum`` is the SHA-256 of the effective
    settings, so two processes can tell whether they run the same config.
    """

    database: DatabaseSettings
    logging: LoggingSettings
    access: AccessSettings
    scoring: ScoreSettings
    dispatcher: DispatcherSettings
    max_move_attempts: int = 3
    source: str = ""
    checksum: str = ""
