"""Settings loaded from configs/analysis.yaml with environment overrides."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import yaml
from loguru import logger

PROJECT_ROOT = Path(__file__).parent.parent

DEFAULT_CONFIG_PATH = PROJECT_ROOT / "configs" / "analysis.yaml"


@dataclass
class Settings:
    """Runtime settings.

    Attributes:
        db_path: SQLite database file.
        db_timeout: Seconds to wait for the database write lock.
        min_support: Default minimum support for runs.
        min_confidence: Default minimum confidence for runs.
        default_period_days: Period length used when none is given.
        top_n: Number of rules shown in reports.
    """

    db_path: Path = PROJECT_ROOT / "data" / "store.sqlite"
    db_timeout: float = 30.0
    min_support: float = 0.05
    min_confidence: float = 0.3
    default_period_days: int = 30
    top_n: int = 10

    @classmethod
    def from_yaml(cls, config_path: str | Path) -> Settings:
        """Create settings from a YAML config file.

        Args:
            config_path: Path to analysis.yaml. Defaults are used when the
                file does not exist.

        Returns:
            Settings instance.
        """
        config_path = Path(config_path)
        if not config_path.exists():
            logger.warning(f"Config not found: {config_path}, using defaults")
            return cls()

        with open(config_path) as f:
            config = yaml.safe_load(f) or {}

        database = config.get("database", {})
        analysis = config.get("analysis", {})

        db_path = Path(database.get("db_path", "data/store.sqlite"))
        if not db_path.is_absolute():
            db_path = PROJECT_ROOT / db_path

        return cls(
            db_path=db_path,
            db_timeout=database.get("timeout", 30.0),
            min_support=analysis.get("min_support", 0.05),
            min_confidence=analysis.get("min_confidence", 0.3),
            default_period_days=analysis.get("default_period_days", 30),
            top_n=analysis.get("top_n", 10),
        )


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Load settings, honouring BASKETREC_CONFIG and BASKETREC_DB_PATH.

    Args:
        config_path: Explicit config file (overrides BASKETREC_CONFIG).

    Returns:
        Settings instance.
    """
    config_path = config_path or os.getenv("BASKETREC_CONFIG", str(DEFAULT_CONFIG_PATH))
    settings = Settings.from_yaml(config_path)

    db_path = os.getenv("BASKETREC_DB_PATH")
    if db_path:
        settings.db_path = Path(db_path)

    return settings
