"""Project-level configuration and path helpers."""

import os
from pathlib import Path
from typing import Union

from .models import AttentionConfig

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
DATA_DIR = PROJECT_ROOT / "03_data"
LOGS_DIR = PROJECT_ROOT / "04_logs"
DEFAULT_DB_PATH = DATA_DIR / "rina.db"
DEFAULT_LOG_PATH = LOGS_DIR / "app.log"
DEFAULT_CHARACTER_PATH = DATA_DIR / "characters" / "rina.toml"

DATA_DIR.mkdir(parents=True, exist_ok=True)
LOGS_DIR.mkdir(parents=True, exist_ok=True)


PathLike = Union[str, Path]


def resolve_db_path(env_value: PathLike | None = None) -> PathLike:
    """Resolve DATABASE_URL to an absolute path."""
    if not env_value:
        return DEFAULT_DB_PATH

    if str(env_value) == ":memory:":
        return ":memory:"

    candidate = Path(env_value)
    return candidate if candidate.is_absolute() else PROJECT_ROOT / candidate


def resolve_character_path(env_value: PathLike | None = None) -> Path:
    """Resolve CHARACTER_PATH to an absolute path."""
    if not env_value:
        return DEFAULT_CHARACTER_PATH

    candidate = Path(env_value)
    return candidate if candidate.is_absolute() else PROJECT_ROOT / candidate


def load_attention_config() -> AttentionConfig:
    """Build AttentionConfig, overriding bot names from BOT_NAMES if set."""
    config = AttentionConfig()

    bot_names = os.getenv("BOT_NAMES")
    if bot_names:
        config.bot_names = [
            name.strip() for name in bot_names.split(",") if name.strip()
        ]

    max_history = os.getenv("MAX_HISTORY_MESSAGES")
    if max_history:
        config.max_history_messages = int(max_history)

    return config
