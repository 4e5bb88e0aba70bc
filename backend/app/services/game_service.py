"""
Game Service - Centralized Game Logic

This service is the single source of truth for all game state modifications.
It handles:
- Game creation
- Move processing (human and bot)
- Keeping the bot's simulations in sync with every real move
- Game completion logic (win, full board, concession)

Games are kept in memory; the bot's simulation tree is rebuilt for every new game.
Game actions are serialized by a lock since the API runs them in worker threads.
"""

import logging
import threading
import time
from typing import Dict, Optional

from backend.app.core.config import settings
from backend.app.engine.bot import Bot
from backend.app.engine.game import ConnectN
from backend.app.models.enums import GameStatus, PlayerType, Symbol
from backend.app.schemas.game_schema import GameCreate, GameResponse, MoveRecord

logger = logging.getLogger(__name__)


class GameNotFoundError(ValueError):
    pass


class InvalidMoveError(ValueError):
    pass


class GameSession:
    """One running game: the rules engine, the players and the optional bot."""

    def __init__(self, game_id: int, engine: ConnectN, players: Dict[Symbol, PlayerType],
                 bot: Optional[Bot] = None):
        self.game_id = game_id
        self.engine = engine
        self.players = players
        self.bot = bot
        self.status = GameStatus.IN_PROGRESS
        self.winner: Optional[Symbol] = None
        self.history: list[MoveRecord] = []

    def is_bot_turn(self) -> bool:
        return self.players[self.engine.turn_of_player] == PlayerType.BOT

    def to_response(self) -> GameResponse:
        return GameResponse(
            id=self.game_id,
            status=self.status,
            winner=self.winner,
            current_turn=self.engine.turn_of_player,
            nr_rows=self.engine.nr_rows,
            nr_cols=self.engine.nr_cols,
            winning_nr=self.engine.winning_nr,
            player_x=self.players[Symbol.X],
            player_o=self.players[Symbol.O],
            board=[[str(cell) for cell in row] for row in self.engine.board],
            visual_board=self.engine.get_visual_board(),
            history=self.history,
        )


class GameService:
    """Centralized service for all game operations"""

    def __init__(self, horizon: int = settings.game.horizon):
        self.horizon = horizon
        self.games: Dict[int, GameSession] = {}
        self._next_id = 1
        # One game action at a time: sessions and bot trees are not thread-safe
        self._lock = threading.Lock()

    def create_game(self, data: GameCreate) -> GameSession:
        """Create a new game and let the bot open if it goes first"""
        with self._lock:
            engine = ConnectN(data.nr_rows, data.nr_cols, data.winning_nr, data.first_player)
            players = {Symbol.X: data.player_x, Symbol.O: data.player_o}

            bot = None
            for symbol, player_type in players.items():
                if player_type == PlayerType.BOT:
                    bot = Bot(engine, symbol, horizon=self.horizon)

            session = GameSession(self._next_id, engine, players, bot)
            self.games[session.game_id] = session
            self._next_id += 1
            logger.info("Created game %d (%dx%d, run length %d)",
                        session.game_id, engine.nr_rows, engine.nr_cols, engine.winning_nr)

            if session.is_bot_turn():
                self.step_bot_turn(session)
            return session

    def get_game(self, game_id: int) -> GameSession:
        session = self.games.get(game_id)
        if session is None:
            raise GameNotFoundError(f"Game {game_id} not found")
        return session

    def process_human_move(self, game_id: int, column: int) -> GameSession:
        """Process a human player's move (0-indexed column), then the bot's reply"""
        with self._lock:
            session = self.get_game(game_id)

            if session.status != GameStatus.IN_PROGRESS:
                raise InvalidMoveError(f"Game {game_id} is already over")
            if session.is_bot_turn():
                raise InvalidMoveError("It is the bot's turn")
            if not session.engine.is_valid_move(column):
                raise InvalidMoveError(f"Invalid move: column {column}")

            self._play(session, column, duration=0.0)

            if session.status == GameStatus.IN_PROGRESS and session.is_bot_turn():
                self.step_bot_turn(session)
            return session

    def step_bot_turn(self, session: GameSession) -> GameSession:
        """Execute one bot turn. Callers hold the service lock."""
        start_time = time.time()
        column = session.bot.choose_move() - 1
        duration = round(time.time() - start_time, 3)

        if not session.engine.is_valid_move(column):
            # The bot only ever picks legal columns; anything else is a logic defect
            raise RuntimeError(f"Bot generated invalid move: {column}")

        self._play(session, column, duration=duration)
        return session

    def concede(self, game_id: int) -> GameSession:
        """The player to move concedes; the opponent wins"""
        with self._lock:
            session = self.get_game(game_id)
            if session.status != GameStatus.IN_PROGRESS:
                raise InvalidMoveError(f"Game {game_id} is already over")

            loser = session.engine.turn_of_player
            session.status = GameStatus.CONCEDED
            session.winner = loser.opposite
            logger.warning("Player %s conceded game %d", loser, game_id)
            return session

    def _play(self, session: GameSession, column: int, duration: float):
        player = session.engine.turn_of_player
        session.engine.drop_piece(column)
        session.history.append(MoveRecord(player=player, column=column, duration=duration))

        # Update game status if finished
        if session.engine.winner:
            session.winner = session.engine.winner
            session.status = GameStatus.COMPLETED
            logger.info("Game %d won by %s", session.game_id, session.winner)
        elif session.engine.is_draw():
            session.status = GameStatus.DRAW
            logger.info("Game %d ended in a draw", session.game_id)
        elif session.bot is not None:
            session.bot.advance_after_move(column + 1)


# Singleton instance
game_service = GameService()
