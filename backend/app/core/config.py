import logging
import os
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

from backend.app.engine.constants import (
    DEFAULT_NR_ROWS, DEFAULT_NR_COLS, DEFAULT_WINNING_NR,
    MIN_BOARD_SIZE, MAX_BOARD_SIZE, MIN_WINNING_NR, MAX_NR_TURNS,
)
from backend.app.models.enums import Symbol

load_dotenv()

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[2] / "config" / "settings.yaml"


class GameSettings(BaseModel):
    nr_rows: int = Field(DEFAULT_NR_ROWS, ge=MIN_BOARD_SIZE, le=MAX_BOARD_SIZE)
    nr_cols: int = Field(DEFAULT_NR_COLS, ge=MIN_BOARD_SIZE, le=MAX_BOARD_SIZE)
    winning_nr: int = Field(DEFAULT_WINNING_NR, ge=MIN_WINNING_NR)
    bot_symbol: Symbol = Symbol.O
    user_first: bool = True
    horizon: int = Field(MAX_NR_TURNS, ge=4)

    @model_validator(mode="after")
    def check_winning_nr(self):
        # A run must fit on the board
        if self.winning_nr > max(self.nr_rows, self.nr_cols):
            raise ValueError(
                f"winning_nr must be between {MIN_WINNING_NR} and {max(self.nr_rows, self.nr_cols)}"
            )
        return self


class AppSettings(BaseModel):
    game: GameSettings = GameSettings()
    log_level: str = "INFO"


def load_settings(path: Optional[str] = None) -> AppSettings:
    """
    Reads settings from YAML. The path defaults to CONNECTN_CONFIG or the
    bundled backend/config/settings.yaml; LOG_LEVEL overrides the file.
    """
    config_path = Path(path or os.getenv("CONNECTN_CONFIG") or DEFAULT_CONFIG_PATH)
    data = {}
    if config_path.exists():
        with open(config_path, "r") as f:
            data = yaml.safe_load(f) or {}

    env_level = os.getenv("LOG_LEVEL")
    if env_level:
        data["log_level"] = env_level
    return AppSettings(**data)


def configure_logging(level: str = "INFO"):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# Singleton instance
settings = load_settings()
