from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import List, Optional

from backend.app.core.config import settings
from backend.app.engine.constants import MIN_BOARD_SIZE, MAX_BOARD_SIZE, MIN_WINNING_NR
from backend.app.models.enums import GameStatus, PlayerType, Symbol


class MoveRecord(BaseModel):
    # Allow extra fields to prevent crashes if the schema evolves
    model_config = ConfigDict(extra='ignore')

    player: Symbol
    column: int
    duration: Optional[float] = 0.0


def default_player(symbol: Symbol) -> PlayerType:
    """The configured bot symbol plays as the bot, the other side is human."""
    return PlayerType.BOT if settings.game.bot_symbol == symbol else PlayerType.HUMAN


def default_first_player() -> Symbol:
    bot_symbol = settings.game.bot_symbol
    return bot_symbol.opposite if settings.game.user_first else bot_symbol


class GameCreate(BaseModel):
    player_x: PlayerType = Field(default_factory=lambda: default_player(Symbol.X))
    player_o: PlayerType = Field(default_factory=lambda: default_player(Symbol.O))
    first_player: Symbol = Field(default_factory=default_first_player)
    nr_rows: int = Field(settings.game.nr_rows, ge=MIN_BOARD_SIZE, le=MAX_BOARD_SIZE)
    nr_cols: int = Field(settings.game.nr_cols, ge=MIN_BOARD_SIZE, le=MAX_BOARD_SIZE)
    winning_nr: int = Field(settings.game.winning_nr, ge=MIN_WINNING_NR)

    @model_validator(mode="after")
    def check_settings(self):
        max_nr = max(self.nr_rows, self.nr_cols)
        if self.winning_nr > max_nr:
            raise ValueError(f"winning_nr must be between {MIN_WINNING_NR} and {max_nr}")
        if self.player_x == PlayerType.BOT and self.player_o == PlayerType.BOT:
            raise ValueError("At most one player can be the bot")
        return self


class MoveRequest(BaseModel):
    column: int


class GameResponse(BaseModel):
    id: int
    status: GameStatus
    winner: Optional[Symbol] = None
    current_turn: Symbol
    nr_rows: int
    nr_cols: int
    winning_nr: int
    player_x: PlayerType
    player_o: PlayerType
    board: List[List[str]]
    visual_board: str
    history: List[MoveRecord]
