"""
payroll_config -- single public entrypoint for payroll engine configuration.

Responsibility:
    Provides the one way to obtain engine configuration at runtime through
    ``get_active_config()``.  Returns a frozen ``PayrollEngineConfig``.

Architecture position:
    Configuration -- YAML-driven settings above ``payroll_kernel`` and
    ``payroll_engines``.  Neither of those imports from ``payroll_config``;
    the batch aggregator receives a config object.

Failure modes:
    - ``FileNotFoundError`` -- the requested configuration file is missing.
    - ``ValueError`` -- a setting fails schema validation.
    - ``yaml.YAMLError`` -- the file is not valid YAML.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``PAYROLL_CONFIG_TRACE`` log entry with the config id, version and
    checksum, tying a payroll run to the exact settings it ran under.
"""

from __future__ import annotations

from pathlib import Path

from payroll_config.loader import load_yaml_file, parse_config
from payroll_config.schema import PayrollEngineConfig
from payroll_kernel.logging_config import get_logger

_logger = get_logger("config")

# Default configuration sets directory
_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"
DEFAULT_CONFIG_PATH = _DEFAULT_CONFIG_DIR / "default.yaml"


def get_active_config(path: Path | str | None = None) -> PayrollEngineConfig:
    """The public configuration entrypoint.

    Args:
        path: YAML file to load.  Defaults to the bundled
            ``payroll_config/sets/default.yaml``.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        ValueError: If a setting is invalid.
    """
    config_path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    data = load_yaml_file(config_path)
    config = parse_config(data.get("config", data))

    _logger.info(
        "PAYROLL_CONFIG_TRACE",
        extra={
            "trace_type": "PAYROLL_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "currency": config.currency,
            "rounding": config.rounding,
            "max_workers": config.max_workers,
        },
    )
    return config


__all__ = ["DEFAULT_CONFIG_PATH", "PayrollEngineConfig", "get_active_config"]
