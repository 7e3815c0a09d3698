"""
pipeline_config -- single public entrypoint for pipeline settings.

Responsibility:
    ``get_active_config()`` is the ONLY way to obtain settings at runtime.
    No kernel component reads configuration files or environment variables
    directly; ``pipeline_config.bridges`` turns settings into kernel inputs.

Architecture position:
    Configuration -- sits above ``pipeline_kernel``.  The kernel MUST NEVER
    import from ``pipeline_config``.

Resolution order:
    1. ``path`` argument, else ``PIPELINE_CONFIG_FILE``, else the packaged
       ``defaults.yaml``.
    2. ``PIPELINE_DATABASE_URL``, ``PIPELINE_LOG_LEVEL`` and
       ``PIPELINE_MAX_MOVE_ATTEMPTS`` override single keys.

Failure modes:
    - ``FileNotFoundError`` -- the named settings file does not exist.
    - ``yaml.YAMLError`` -- the file is not valid YAML.
    - ``ConfigurationError`` -- a value is missing or invalid.

Audit relevance:
    Every successful call logs ``pipeline_config_loaded`` with the source
    and the checksum of the effective settings.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Mapping

from pipeline_config.loader import apply_env_overrides, load_yaml_file, parse_settings
from pipeline_config.schema import PipelineSettings

_logger = logging.getLogger("pipeline_kernel.config")

DEFAULT_CONFIG_FILE = Path(__file__).parent / "defaults.yaml"

CONFIG_FILE_ENV = "PIPELINE_CONFIG_FILE"


def get_active_config(
    path: Path | str | None = None,
    environ: Mapping[str, str] | None = None,
) -> PipelineSettings:
    """The ONLY public configuration entrypoint.

    Args:
        path: Settings file to read instead of the default.
        environ: Environment to read overrides from.  Defaults to
            ``os.environ``.

    Returns:
        Validated, frozen PipelineSettings.
    """
    env = os.environ if environ is None else environ
    if path is None:
        path = env.get(CONFIG_FILE_ENV) or DEFAULT_CONFIG_FILE
    config_path = Path(path)

    raw = load_yaml_file(config_path)
    effective, applied = apply_env_overrides(raw, env)

    source = str(config_path)
    if applied:
        source = f"{source} + env({', '.join(applied)})"
    settings = parse_settings(effective, source=source)

    _logger.info(
        "pipeline_config_loaded",
        extra={
            "config_source": settings.source,
            "checksum": settings.checksum,
            "max_move_attempts": settings.max_move_attempts,
            "env_overrides": applied,
        },
    )
    return settings


__all__ = ["get_active_config", "PipelineSettings", "DEFAULT_CONFIG_FILE"]
