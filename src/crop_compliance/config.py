"""
Configuration loader.

Loads settings from config/settings.yaml and .env,
merges them, and provides a typed Settings object
accessible everywhere via `get_settings()`.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml
from dotenv import load_dotenv

# Project root = 2 levels up from src/crop_compliance/
ROOT = Path(__file__).resolve().parent.parent.parent
CONFIG_DIR = ROOT / "config"
SETTINGS_FILE = CONFIG_DIR / "settings.yaml"


@dataclass
class PathSettings:
    state_file: Path = field(default_factory=lambda: ROOT / "data" / "state.json")
    policy_dir: Path = field(default_factory=lambda: ROOT / "config" / "policies")
    log_dir: Path = field(default_factory=lambda: ROOT / "outputs" / "logs")


@dataclass
class EngineSettings:
    admin: str = "deployer"
    initial_version: int = 1
    max_rules_per_standard: int = 32
    max_description_length: int = 500
    max_categories: int = 10
    max_category_length: int = 50


@dataclass
class CLISettings:
    default_clock: int = 0
    log_to_file: bool = False


@dataclass
class Settings:
    """Top-level settings object."""

    paths: PathSettings = field(default_factory=PathSettings)
    engine: EngineSettings = field(default_factory=EngineSettings)
    cli: CLISettings = field(default_factory=CLISettings)
    log_level: str = "INFO"

    def ensure_dirs(self) -> None:
        """Create state and log directories if they don't exist."""
        for p in [self.paths.state_file.parent, self.paths.log_dir]:
            p.mkdir(parents=True, exist_ok=True)


# ── Singleton ─────────────────────────────────────────

_settings: Settings | None = None


def _load_yaml() -> dict:
    """Load the YAML config file."""
    if SETTINGS_FILE.exists():
        with open(SETTINGS_FILE, "r") as f:
            return yaml.safe_load(f) or {}
    return {}


def get_settings() -> Settings:
    """Get the global Settings instance (lazy-loaded singleton)."""
    global _settings
    if _settings is not None:
        return _settings

    load_dotenv(ROOT / ".env")

    raw = _load_yaml()

    paths_raw = raw.get("paths", {})
    paths = PathSettings(**{k: ROOT / v for k, v in paths_raw.items()}) if paths_raw else PathSettings()
    if os.getenv("CC_STATE_FILE"):
        paths.state_file = Path(os.environ["CC_STATE_FILE"])

    eng_raw = raw.get("engine", {})
    text_raw = eng_raw.get("text_limits", {})
    engine = EngineSettings(
        admin=os.getenv("CC_ADMIN", eng_raw.get("admin", "deployer")),
        initial_version=eng_raw.get("initial_version", 1),
        max_rules_per_standard=int(
            os.getenv("CC_MAX_RULES_PER_STANDARD", eng_raw.get("max_rules_per_standard", 32))
        ),
        max_description_length=text_raw.get("description", 500),
        max_categories=text_raw.get("categories", 10),
        max_category_length=text_raw.get("category", 50),
    )

    cli_raw = raw.get("cli", {})
    cli = CLISettings(
        default_clock=cli_raw.get("default_clock", 0),
        log_to_file=cli_raw.get("log_to_file", False),
    )

    log_raw = raw.get("logging", {})

    _settings = Settings(
        paths=paths,
        engine=engine,
        cli=cli,
        log_level=os.getenv("LOG_LEVEL", log_raw.get("level", "INFO")),
    )

    return _settings


def reset_settings() -> None:
    """Drop the cached Settings so the next call re-reads YAML and env."""
    global _settings
    _settings = None


def get_root() -> Path:
    """Get the project root directory."""
    return ROOT
