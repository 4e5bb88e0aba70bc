"""
Window Ledger

To score a position, we count how many possibilities for a run of the winning
size (a "window") are still open for a player and how many of the player's
pieces already sit in each of them.

A window is identified by its lexicographically-smallest cell (row, col), which
makes membership a direct dict lookup: the windows covering a cell are found by
walking back `winning_nr - 1` steps from the cell along each orientation.
"""

from typing import Dict, List, Optional, Tuple

from backend.app.engine.constants import EMPTY

# Orientation -> (row step, col step) from a window's anchor to its next cell.
# Row 0 is the top of the board, so every anchor is the top-most cell
# (left-most for horizontal windows).
ORIENTATIONS: Dict[str, Tuple[int, int]] = {
    "horizontal": (0, 1),
    "vertical": (1, 0),
    "ascending": (1, -1),
    "descending": (1, 1),
}


class Windows:
    """
    Live windows of one player with their scores.

    Every window starts with score 1. Each piece the owner places in it
    multiplies the score by `winning_nr`, so a window holding k of the owner's
    pieces scores winning_nr ** k. A window is removed for good as soon as an
    opponent piece lands in it. `total` is kept equal to the sum of all live
    scores at every step.
    """

    def __init__(self, nr_rows: int, nr_cols: int, winning_nr: int,
                 windows: Optional[Dict[str, Dict[Tuple[int, int], int]]] = None,
                 total: Optional[int] = None):
        self.nr_rows = nr_rows
        self.nr_cols = nr_cols
        self.winning_nr = winning_nr

        if windows is None:
            windows = {name: self._initialise(dr, dc) for name, (dr, dc) in ORIENTATIONS.items()}
            total = sum(len(w) for w in windows.values())
        self.windows = windows
        self.total = total

    @classmethod
    def from_board(cls, board: List[List[str]], owner: str, winning_nr: int) -> "Windows":
        """
        Builds the ledger of `owner` for a board that may already hold pieces
        by replaying them. On an empty board this is a fresh ledger.
        """
        nr_rows, nr_cols = len(board), len(board[0])
        ledger = cls(nr_rows, nr_cols, winning_nr)
        for r in range(nr_rows):
            for c in range(nr_cols):
                if board[r][c] == EMPTY:
                    continue
                if board[r][c] == owner:
                    ledger.reinforce(r, c)
                else:
                    ledger.remove_broken_windows(r, c)
        return ledger

    def _initialise(self, dr: int, dc: int) -> Dict[Tuple[int, int], int]:
        """Creates every window of one orientation that fits on the board."""
        span = self.winning_nr - 1
        scores = {}
        for r in range(self.nr_rows):
            for c in range(self.nr_cols):
                end_r, end_c = r + dr * span, c + dc * span
                if 0 <= end_r < self.nr_rows and 0 <= end_c < self.nr_cols:
                    scores[(r, c)] = 1
        return scores

    def clone(self) -> "Windows":
        """Independent copy for a new simulation."""
        return Windows(
            self.nr_rows,
            self.nr_cols,
            self.winning_nr,
            windows={name: scores.copy() for name, scores in self.windows.items()},
            total=self.total,
        )

    def _covering(self, row: int, col: int):
        """Yields (scores, anchor) of every live window containing (row, col)."""
        for name, (dr, dc) in ORIENTATIONS.items():
            scores = self.windows[name]
            for i in range(self.winning_nr):
                anchor = (row - dr * i, col - dc * i)
                if anchor in scores:
                    yield scores, anchor

    def remove_broken_windows(self, row: int, col: int):
        """
        Deletes the windows that can't hold a winning run anymore because the
        opponent just moved to (row, col), and subtracts their scores.
        """
        for scores, anchor in list(self._covering(row, col)):
            self.total -= scores.pop(anchor)

    def reinforce(self, row: int, col: int):
        """Multiplies the score of every window containing the owner's new piece."""
        for scores, anchor in list(self._covering(row, col)):
            old = scores[anchor]
            scores[anchor] = old * self.winning_nr
            self.total += scores[anchor] - old

    def aggregate(self) -> int:
        return self.total

    def live_windows(self) -> int:
        return sum(len(scores) for scores in self.windows.values())

    def recount(self) -> int:
        """Direct sum of all live window scores."""
        return sum(sum(scores.values()) for scores in self.windows.values())

    def __contains__(self, key: Tuple[str, int, int]) -> bool:
        name, row, col = key
        return (row, col) in self.windows[name]

    def __repr__(self) -> str:
        return f"Windows(live={self.live_windows()}, total={self.total})"
