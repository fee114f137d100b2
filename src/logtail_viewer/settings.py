# Copyright (c) 2025 Stephen Clau

# This file is part of Logtail Viewer.

# Logtail Viewer is dual-licensed:

# 1. GNU Affero General Public License v3.0 (AGPL-3.0)
#    See LICENSE file for full terms

# 2. Commercial License
#    For proprietary use without AGPL requirements
#    Contact: licensing@laudiversified.com

# SPDX-License-Identifier: AGPL-3.0-only OR Commercial

"""
Persisted viewer settings.

Filter text, exclude text and strip prefix survive restarts in a small
YAML file. Failures to load or save are logged and otherwise ignored;
the viewer keeps running with defaults.
"""

from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

import structlog
import yaml

logger = structlog.get_logger()


@dataclass(frozen=True)
class ViewerSettings:
    """User-facing display settings."""

    filter_text: str = ""
    """Only show lines containing this text (case-insensitive)."""

    exclude_text: str = ""
    """Semicolon-separated terms; lines containing any are hidden."""

    strip_prefix: str = ""
    """Prefix removed from the start of each displayed line."""

    def merged(self, overrides: Dict[str, Optional[str]]) -> "ViewerSettings":
        """Return a copy with every non-None override applied."""
        known = {f.name for f in fields(self)}
        changes = {k: v for k, v in overrides.items() if k in known and v is not None}
        return replace(self, **changes)


def load_settings(path: Path) -> ViewerSettings:
    """
    Load settings from ``path``.

    Returns:
        Stored settings, or defaults when the file is missing or unreadable
    """
    if not path.exists():
        return ViewerSettings()

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.warning("settings_load_failed", path=str(path), error=str(e))
        return ViewerSettings()

    if not isinstance(data, dict):
        logger.warning("settings_load_failed", path=str(path), error="not a mapping")
        return ViewerSettings()

    values: Dict[str, Any] = {}
    for f in fields(ViewerSettings):
        value = data.get(f.name)
        if value is not None:
            values[f.name] = str(value)

    logger.debug("settings_loaded", path=str(path))
    return ViewerSettings(**values)


def save_settings(settings: ViewerSettings, path: Path) -> bool:
    """
    Write settings to ``path``.

    Returns:
        True on success, False if the file could not be written
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump(asdict(settings), f, default_flow_style=False, sort_keys=True)
    except (OSError, yaml.YAMLError) as e:
        logger.warning("settings_save_failed", path=str(path), error=str(e))
        return False

    logger.debug("settings_saved", path=str(path))
    return True
