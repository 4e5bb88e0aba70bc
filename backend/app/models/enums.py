from enum import StrEnum

class GameStatus(StrEnum):
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    DRAW = "DRAW"
    CONCEDED = "CONCEDED"

class PlayerType(StrEnum):
    HUMAN = "human"
    BOT = "bot"

class Symbol(StrEnum):
    X = "x"
    O = "o"

    @property
    def opposite(self) -> "Symbol":
        return Symbol.O if self is Symbol.X else Symbol.X
