from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from result import Err, Ok, Result

from bundlelens.config.defaults import default_config
from bundlelens.config.schema import AnalyzerConfig

log = logging.getLogger(__name__)

CONFIG_PATH = "~/.config/bundlelens/config.json"
CONFIG_ENV = "BUNDLELENS_CONFIG"


def config_path(path: str | Path | None = None) -> Path:
    """Explicit *path*, else $BUNDLELENS_CONFIG, else the per-user default."""
    chosen = path or os.environ.get(CONFIG_ENV) or CONFIG_PATH
    return Path(chosen).expanduser()


def load_config(path: str | Path | None = None) -> Result[AnalyzerConfig, str]:
    """Read analyzer settings; a missing file means defaults, not an error."""
    resolved = config_path(path)
    if not resolved.is_file():
        log.debug("No config at %s, using defaults", resolved)
        return Ok(default_config())

    try:
        payload = json.loads(resolved.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        return Err(f"Failed reading config at {resolved}: {exc}.")
    if not isinstance(payload, dict):
        return Err(f"Config at {resolved} must be a JSON object.")

    try:
        config = AnalyzerConfig.from_dict(payload, default_config())
    except (AttributeError, TypeError, ValueError) as exc:
        return Err(f"Invalid value in config at {resolved}: {exc}.")
    log.debug("Loaded config from %s", resolved)
    return Ok(config)


def sample_config_json() -> str:
    return json.dumps(default_config().to_dict(), indent=2, sort_keys=True)
