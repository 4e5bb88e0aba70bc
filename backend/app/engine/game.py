import logging
from typing import List, Optional, Dict, Any

from backend.app.engine.constants import (
    DEFAULT_NR_ROWS, DEFAULT_NR_COLS, DEFAULT_WINNING_NR,
    MIN_BOARD_SIZE, MAX_BOARD_SIZE, MIN_WINNING_NR, EMPTY,
)
from backend.app.models.enums import Symbol

# Logger setup
logger = logging.getLogger(__name__)

# Directions: Horizontal, Vertical, Diagonal /, Diagonal \
DIRECTIONS = [(0, 1), (1, 0), (1, -1), (1, 1)]


class ConnectN:
    def __init__(
        self,
        nr_rows: int = DEFAULT_NR_ROWS,
        nr_cols: int = DEFAULT_NR_COLS,
        winning_nr: int = DEFAULT_WINNING_NR,
        first_player: Symbol = Symbol.X,
        board: Optional[List[List[str]]] = None,
    ):
        """
        Board uses (row, col) indexing.
        Row 0 is the TOP of the board.
        Row nr_rows - 1 is the BOTTOM of the board.
        Values: " "=Empty, "x", "o"
        """
        self.nr_rows = nr_rows
        self.nr_cols = nr_cols
        self.winning_nr = winning_nr
        if board is None:
            board = [[EMPTY for _ in range(nr_cols)] for _ in range(nr_rows)]
        self.board = board
        self.turn_of_player = Symbol(first_player)
        self.winner: Optional[Symbol] = None
        self.history: List[Dict[str, Any]] = []

    @classmethod
    def from_matrix(cls, matrix: List[str], winning_nr: int = DEFAULT_WINNING_NR,
                    first_player: Symbol = Symbol.X) -> "ConnectN":
        """
        Builds a position from rows of text (Row 0=Top), "." or " " for empty cells.
        Automatically detects whose turn it is based on piece count.
        """
        board = [[EMPTY if cell in ". " else Symbol(cell.lower()) for cell in row] for row in matrix]
        first = Symbol(first_player)
        nr_first = sum(row.count(first) for row in board)
        nr_second = sum(row.count(first.opposite) for row in board)
        if nr_first not in (nr_second, nr_second + 1):
            raise ValueError(f"Piece counts {nr_first}/{nr_second} can't come from alternating moves")

        turn = first if nr_first == nr_second else first.opposite
        return cls(len(board), len(board[0]), winning_nr, turn, board=board)

    # --- Settings ---

    def resize_board(self, nr_rows: int, nr_cols: int):
        self.nr_rows = nr_rows
        self.nr_cols = nr_cols
        self.board = [[EMPTY for _ in range(nr_cols)] for _ in range(nr_rows)]
        self.winner = None
        self.history = []

    def set_winning_nr(self, winning_nr: int):
        self.winning_nr = winning_nr

    def set_turn_of_player(self, player: Symbol):
        self.turn_of_player = Symbol(player)

    @staticmethod
    def is_valid_board_size(size: int) -> bool:
        return MIN_BOARD_SIZE <= size <= MAX_BOARD_SIZE

    @property
    def max_winning_nr(self) -> int:
        return max(self.nr_rows, self.nr_cols)

    def is_valid_winning_nr(self, nr: int) -> bool:
        return MIN_WINNING_NR <= nr <= self.max_winning_nr

    def is_forced_winning_nr(self) -> bool:
        """On a 4x4 board the only winnable run length is 4."""
        return self.nr_rows == 4 and self.nr_cols == 4

    # --- Moves ---

    def is_col(self, move: int) -> bool:
        """1-indexed column existence check used by the interaction layer."""
        return 1 <= move <= self.nr_cols

    def is_col_full(self, col: int) -> bool:
        return self.board[0][col] != EMPTY

    def is_full(self) -> bool:
        return all(self.board[0][c] != EMPTY for c in range(self.nr_cols))

    def get_valid_moves(self) -> List[int]:
        """Returns a list of column indices that are not full."""
        return [c for c in range(self.nr_cols) if self.board[0][c] == EMPTY]

    def is_valid_move(self, col: int) -> bool:
        if col < 0 or col >= self.nr_cols:
            return False
        return self.board[0][col] == EMPTY

    def calc_move_row(self, col: int) -> int:
        """Gravity: Find the lowest empty row of a column."""
        for r in range(self.nr_rows - 1, -1, -1):
            if self.board[r][col] == EMPTY:
                return r
        raise ValueError(f"Column {col} is full")

    def is_win(self, col: int, player: Symbol) -> bool:
        """
        Checks whether dropping a piece of `player` into `col` would complete
        a run of `winning_nr`. Evaluated before the piece is placed.
        """
        r = self.calc_move_row(col)
        needed = self.winning_nr - 1

        for dr, dc in DIRECTIONS:
            count = 0
            # Check positive direction
            for i in range(1, self.winning_nr):
                nr, nc = r + dr * i, col + dc * i
                if 0 <= nr < self.nr_rows and 0 <= nc < self.nr_cols and self.board[nr][nc] == player:
                    count += 1
                else:
                    break
            # Check negative direction
            for i in range(1, self.winning_nr):
                nr, nc = r - dr * i, col - dc * i
                if 0 <= nr < self.nr_rows and 0 <= nc < self.nr_cols and self.board[nr][nc] == player:
                    count += 1
                else:
                    break

            if count >= needed:
                return True
        return False

    def make_move(self, col: int) -> int:
        """Places the piece of the player to move. Returns the row it landed in."""
        row = self.calc_move_row(col)
        self.board[row][col] = self.turn_of_player
        return row

    def switch_player(self):
        self.turn_of_player = self.turn_of_player.opposite

    def drop_piece(self, col: int) -> bool:
        """
        Drops a piece into the specified column.
        Returns True if successful, False if invalid or game over.
        """
        if self.winner is not None or not self.is_valid_move(col):
            return False

        won = self.is_win(col, self.turn_of_player)
        self.make_move(col)
        self.history.append({
            "player": self.turn_of_player,
            "column": col
        })

        if won:
            self.winner = self.turn_of_player
            logger.info("Player %s wins with column %d", self.turn_of_player, col + 1)
        else:
            self.switch_player()
        return True

    def is_draw(self) -> bool:
        """Returns True if board is full and no winner."""
        return self.winner is None and self.is_full()

    def copy(self) -> "ConnectN":
        """Independent snapshot of the position. History is not carried over."""
        clone = ConnectN(
            self.nr_rows,
            self.nr_cols,
            self.winning_nr,
            self.turn_of_player,
            board=[row[:] for row in self.board],
        )
        clone.winner = self.winner
        return clone

    # --- Formatting ---

    def get_visual_board(self) -> str:
        """Generates an ASCII grid with 1-indexed column numbers above and below."""
        col_nrs = "".join(f" {i}" for i in range(1, self.nr_cols + 1))
        divider = "-" * (self.nr_cols * 2 + 1)
        lines = [col_nrs, divider]
        for row in self.board:
            lines.append("|" + "|".join(row) + "|")
            lines.append(divider)
        lines.append(col_nrs)
        return "\n".join(lines)
