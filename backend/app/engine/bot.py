"""
Bot - Search Driver

Chooses the bot's moves by looking at the boards they lead to six moves into
the future, assuming both players always make the best move. The simulated
boards are reused for later moves, so the tree is kept between turns and only
re-rooted and deepened by one ply after every real move.

Columns are 1-indexed at this boundary and 0-indexed everywhere inside.
"""

import logging
from typing import Optional, Tuple

from backend.app.engine.constants import LOSS_SCORE, MAX_NR_TURNS
from backend.app.engine.game import ConnectN
from backend.app.engine.simulation import Simulation, SimulationTree
from backend.app.models.enums import Symbol

logger = logging.getLogger(__name__)


class Bot:
    DEFAULT_SYMBOL = Symbol.O

    def __init__(self, game: Optional[ConnectN] = None, symbol: Symbol = DEFAULT_SYMBOL,
                 horizon: int = MAX_NR_TURNS):
        self.symbol = Symbol(symbol)
        self.horizon = horizon
        self.used = True
        self.tree: Optional[SimulationTree] = None
        if game is not None:
            self.initialise(game, symbol)

    def initialise(self, game: ConnectN, symbol: Optional[Symbol] = None):
        """Sets the bot's symbol and builds the simulations from the real board."""
        if symbol is not None:
            self.symbol = Symbol(symbol)
        self.tree = SimulationTree(game, self.symbol, self.horizon)
        logger.info("Bot initialised as %s on a %dx%d board (run length %d)",
                    self.symbol, game.nr_rows, game.nr_cols, game.winning_nr)

    def _require_tree(self) -> SimulationTree:
        if self.tree is None:
            raise RuntimeError("Bot has not been initialised with a game")
        return self.tree

    # --- Public API ---

    def choose_move(self) -> int:
        """
        Returns the bot's column (1-indexed). An obvious move is taken when
        there is one; otherwise the simulations are searched.
        """
        tree = self._require_tree()
        move = self._get_obvious_move()
        if move:
            logger.info("Bot plays obvious column %d", move)
            return move

        best, score = self._best_bot_move(tree.root_node)
        move = best.move_col + 1
        logger.info("Bot plays column %d (score %d)", move, score)
        return move

    def advance_after_move(self, column: int):
        """
        Keeps the simulations in sync with the real game. Must be called once
        after every move, whoever made it.
        """
        tree = self._require_tree()
        tree.advance(column - 1)
        tree.extend_horizon()

    # --- Search ---

    def _get_obvious_move(self) -> int:
        """
        Returns an arbitrary legal move if every simulation has been discarded
        because the game is lost anyway, the only remaining move, or a move
        that wins right away. Returns 0 if there is no obvious move.
        """
        tree = self.tree
        root = tree.root_node
        candidates = tree.children_of(root)

        if not candidates:
            valid = root.board.get_valid_moves()
            if not valid:
                raise ValueError("No legal moves left")
            return valid[0] + 1

        if len(candidates) == 1:
            return candidates[0].move_col + 1

        for simulation in candidates:
            if simulation.bot_won:
                return simulation.move_col + 1

        return 0

    def _best_bot_move(self, last_user_move: Simulation) -> Tuple[Optional[Simulation], int]:
        """
        Picks the bot move whose best user reply is worst for the user, i.e.
        has the highest score. The chosen simulation caches that score.
        """
        next_bot_moves = self.tree.children_of(last_user_move)
        if not next_bot_moves:
            # A line the user has already won scores as a loss
            if last_user_move.user_won:
                return None, LOSS_SCORE
            return None, last_user_move.score

        # A full board after the next move is the only continuation: a draw
        if next_bot_moves[0].full:
            next_bot_moves[0].score = 0
            return next_bot_moves[0], 0

        best, best_score = None, 0
        for bot_move in next_bot_moves:
            _, score = self._best_user_move(bot_move)
            if best is None or score > best_score:
                best, best_score = bot_move, score

        best.score = best_score
        return best, best_score

    def _best_user_move(self, last_bot_move: Simulation) -> Tuple[Optional[Simulation], int]:
        """
        Picks the user reply whose best bot continuation is worst for the bot,
        i.e. has the lowest score. One ply above the horizon the replies are
        leaves and are compared directly.
        """
        next_user_moves = self.tree.children_of(last_bot_move)
        if not next_user_moves:
            return None, last_bot_move.score

        if next_user_moves[0].full:
            next_user_moves[0].score = 0
            return next_user_moves[0], 0

        if last_bot_move.depth == self.tree.horizon - 1:
            worst = min(next_user_moves, key=lambda s: s.score)
            return worst, worst.score

        best, best_score = None, 0
        for user_move in next_user_moves:
            _, score = self._best_bot_move(user_move)
            if best is None or score < best_score:
                best, best_score = user_move, score

        best.score = best_score
        return best, best_score
