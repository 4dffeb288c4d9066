"""Configuration loader for BOQ extraction."""

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "BOQ_EXTRACT_CONFIG"


@dataclass
class ExtractionSettings:
    line_tolerance: float = 2.0             # Max y distance inside one line
    column_gap: float = 10.0                # Horizontal gap that starts a new column
    max_pages: Optional[int] = 20           # Page cap per document (None = all)
    sufficiency_threshold: int = 10         # Items that end the strategy search early
    use_cache: bool = True                  # Reuse decoded pages across calls


@dataclass
class PoolSettings:
    max_workers: int = 4                    # Clamped to 1..8
    failure_threshold: int = 3              # Consecutive failures before degrading
    default_priority: int = 5               # 0 (lowest) .. 10 (highest)


@dataclass
class ProfileSettings:
    profiles_path: Optional[str] = None     # YAML file of saved mapping profiles
    default_profile: Optional[str] = None   # Profile applied when none is given


@dataclass
class BOQExtractConfig:
    extraction: ExtractionSettings = field(default_factory=ExtractionSettings)
    pool: PoolSettings = field(default_factory=PoolSettings)
    profiles: ProfileSettings = field(default_factory=ProfileSettings)


def _section(cls, raw: Optional[Dict[str, Any]]):
    """Build a settings dataclass, ignoring unknown keys."""
    raw = raw or {}
    known = {f.name for f in fields(cls)}
    unknown = set(raw) - known
    if unknown:
        logger.warning(f"Ignoring unknown {cls.__name__} keys: {sorted(unknown)}")
    return cls(**{k: v for k, v in raw.items() if k in known})


def default_search_paths():
    return [
        Path.cwd() / 'config' / 'boq_extract.yaml',
        Path(__file__).parent.parent / 'config' / 'boq_extract.yaml',
        Path.home() / '.boq_extract' / 'config.yaml',
    ]


def load_config(config_path: Optional[str] = None) -> BOQExtractConfig:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to config file. If None, uses $BOQ_EXTRACT_CONFIG
            or the first default location that exists.

    Returns:
        BOQExtractConfig (defaults when no file is found)

    Raises:
        FileNotFoundError: an explicitly given path does not exist
    """
    if config_path is None:
        config_path = os.environ.get(CONFIG_ENV_VAR)

    if config_path is None:
        for path in default_search_paths():
            if path.exists():
                config_path = str(path)
                break
        else:
            logger.debug("No config file found, using defaults")
            return BOQExtractConfig()

    if not Path(config_path).exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    logger.debug(f"Loaded config from {config_path}")
    config = BOQExtractConfig(
        extraction=_section(ExtractionSettings, raw.get('extraction')),
        pool=_section(PoolSettings, raw.get('pool')),
        profiles=_section(ProfileSettings, raw.get('profiles')),
    )
    # 0 means "all pages", as on the command line
    if not config.extraction.max_pages:
        config.extraction.max_pages = None
    return config
