"""
Simulation Tree - persistent look-ahead for the bot

Every node ("simulation") is a hypothetical position reached by one column
move from its parent. Nodes carry a pair of window ledgers that are copied and
updated incrementally, so a position is scored without scanning the board.

The tree lives in an arena: nodes are addressed by stable integer indices,
a node stores its parent's index and an insertion-ordered mapping
column -> child index. Discarded indices go to a free list and are reused.
All whole-tree work (building, pruning, renumbering, re-deepening, releasing)
is done with explicit stacks instead of recursion.

The tree is kept between real moves: after a move it is re-rooted at the
matching child, renumbered and deepened by one more ply.
"""

import logging
from typing import Dict, Iterator, List, Optional

from backend.app.engine.constants import MAX_NR_TURNS
from backend.app.engine.game import ConnectN
from backend.app.engine.windows import Windows
from backend.app.models.enums import Symbol

logger = logging.getLogger(__name__)


class Simulation:
    """One node of the simulation tree."""

    __slots__ = (
        "index", "parent", "children", "depth", "move_col", "move_row",
        "board", "mover", "bot_windows", "user_windows", "score",
        "bot_won", "user_won", "full", "discarded",
    )

    def __init__(
        self,
        index: int,
        parent: Optional[int],
        depth: int,
        move_col: int,
        move_row: int,
        board: ConnectN,
        mover: Symbol,
        bot_windows: Windows,
        user_windows: Windows,
        bot_won: bool = False,
        user_won: bool = False,
    ):
        self.index = index
        self.parent = parent
        self.children: Dict[int, int] = {}
        # how many turns this simulation is in the future
        self.depth = depth
        self.move_col = move_col
        self.move_row = move_row
        self.board = board
        # the player whose move produced this position
        self.mover = mover
        self.bot_windows = bot_windows
        self.user_windows = user_windows
        self.score = bot_windows.aggregate() - user_windows.aggregate()
        self.bot_won = bot_won
        self.user_won = user_won
        self.full = board.is_full()
        self.discarded = False

    def __repr__(self) -> str:
        return (f"Simulation(index={self.index}, depth={self.depth}, "
                f"col={self.move_col}, mover={self.mover}, score={self.score}, "
                f"children={list(self.children)})")


class SimulationTree:
    """
    Arena of simulations rooted at the real position.

    The root is rebuilt from the authoritative board, then every legal column
    is simulated down to `horizon` plies. At every opponent-move node the bot's
    candidate moves underneath are pruned (loss certain, impasse, win found).
    """

    def __init__(self, game: ConnectN, bot_symbol: Symbol, horizon: int = MAX_NR_TURNS):
        if horizon < 4:
            raise ValueError(f"Horizon must be at least 4 plies, got {horizon}")

        self.bot_symbol = Symbol(bot_symbol)
        self.horizon = horizon
        self.nodes: List[Optional[Simulation]] = []
        self._free: List[int] = []

        board = game.copy()
        root = Simulation(
            index=-1,
            parent=None,
            depth=0,
            move_col=-1,
            move_row=-1,
            board=board,
            # the root is "reached" by whoever moved last
            mover=board.turn_of_player.opposite,
            bot_windows=Windows.from_board(board.board, self.bot_symbol, board.winning_nr),
            user_windows=Windows.from_board(board.board, self.bot_symbol.opposite, board.winning_nr),
        )
        self.root = self._allocate(root)

        self._add_next(self.root)
        for child in list(root.children.values()):
            self._grow(child)
        # Same pass every later root got when it was built as a child
        if root.mover != self.bot_symbol:
            self._discard_bad_next(root)

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Built simulation tree: %d nodes, horizon %d", self.size(), self.horizon)

    # --- Arena ---

    def _allocate(self, node: Simulation) -> int:
        if self._free:
            index = self._free.pop()
            self.nodes[index] = node
        else:
            index = len(self.nodes)
            self.nodes.append(node)
        node.index = index
        return index

    def _release(self, index: int):
        """Frees a detached node and its whole subtree."""
        stack = [index]
        while stack:
            i = stack.pop()
            node = self.nodes[i]
            node.discarded = True
            stack.extend(node.children.values())
            node.children = {}
            self.nodes[i] = None
            self._free.append(i)

    def node(self, index: int) -> Simulation:
        node = self.nodes[index]
        if node is None:
            raise KeyError(f"Simulation {index} has been discarded")
        return node

    @property
    def root_node(self) -> Simulation:
        return self.nodes[self.root]

    def children_of(self, node: Simulation) -> List[Simulation]:
        return [self.nodes[i] for i in node.children.values()]

    def iter_subtree(self, index: Optional[int] = None) -> Iterator[Simulation]:
        """Pre-order walk over the live subtree under `index` (default: root)."""
        stack = [self.root if index is None else index]
        while stack:
            node = self.nodes[stack.pop()]
            yield node
            stack.extend(reversed(list(node.children.values())))

    def size(self) -> int:
        return sum(1 for _ in self.iter_subtree())

    def depth_errors(self) -> List[int]:
        """Indices of nodes whose depth differs from their distance to the root."""
        errors = []
        stack = [(self.root, 0)]
        while stack:
            index, distance = stack.pop()
            node = self.nodes[index]
            if node.depth != distance:
                errors.append(index)
            stack.extend((child, distance + 1) for child in node.children.values())
        return errors

    # --- Building ---

    def _spawn(self, parent_index: int, col: int) -> int:
        """Creates the simulation of a move in `col` from its parent."""
        parent = self.nodes[parent_index]
        board = parent.board.copy()
        mover = board.turn_of_player
        won = board.is_win(col, mover)
        row = board.make_move(col)
        board.switch_player()

        bot_windows = parent.bot_windows.clone()
        user_windows = parent.user_windows.clone()
        if mover == self.bot_symbol:
            user_windows.remove_broken_windows(row, col)
            bot_windows.reinforce(row, col)
            bot_won, user_won = parent.bot_won or won, parent.user_won
        else:
            bot_windows.remove_broken_windows(row, col)
            user_windows.reinforce(row, col)
            bot_won, user_won = parent.bot_won, parent.user_won or won

        node = Simulation(
            index=-1,
            parent=parent_index,
            depth=parent.depth + 1,
            move_col=col,
            move_row=row,
            board=board,
            mover=mover,
            bot_windows=bot_windows,
            user_windows=user_windows,
            bot_won=bot_won,
            user_won=user_won,
        )
        return self._allocate(node)

    def _add_next(self, index: int):
        """Adds one child per column that is not full."""
        node = self.nodes[index]
        for col in range(node.board.nr_cols):
            if col not in node.children and not node.board.is_col_full(col):
                node.children[col] = self._spawn(index, col)

    def _grow(self, start: int):
        """
        Expands the subtree under `start` down to the horizon. Pruning runs
        post-order: a node is pruned only once all of its descendants exist.
        """
        stack = [(start, False)]
        while stack:
            index, expanded = stack.pop()
            node = self.nodes[index]
            if expanded:
                if node.mover != self.bot_symbol:
                    self._discard_bad_next(node)
                continue
            if node.depth < self.horizon and not node.full:
                self._add_next(index)
                stack.append((index, True))
                stack.extend((child, False) for child in reversed(list(node.children.values())))

    # --- Pruning ---

    def _discard(self, node: Simulation):
        """Removes a simulation from its parent's children and frees its subtree."""
        parent = self.nodes[node.parent]
        assert parent.children.get(node.move_col) == node.index, "child set out of sync"
        del parent.children[node.move_col]
        self._release(node.index)

    def _discard_bad_next(self, node: Simulation):
        self._discard_if_loss_certain(node)
        if node.depth < self.horizon - 3:
            self._discard_if_impasse(node)
        self._discard_others_if_win_found(node)

    def _discard_if_loss_certain(self, node: Simulation):
        """Discards every bot move after which the user can win in one move."""
        for bot_move in self.children_of(node):
            if bot_move.bot_won:
                continue
            if any(user_move.user_won for user_move in self.children_of(bot_move)):
                self._discard(bot_move)

    def _discard_if_impasse(self, node: Simulation):
        """
        Discards every bot move that allows a user reply from which all bot
        moves have been discarded, so the bot never steers into a dead end.
        """
        for bot_move in self.children_of(node):
            if bot_move.bot_won:
                continue
            for user_move in self.children_of(bot_move):
                if not user_move.full and not user_move.children:
                    self._discard(bot_move)
                    break

    def _discard_others_if_win_found(self, node: Simulation):
        """If a bot move leads to a certain win, its alternatives are discarded."""
        for bot_move in self.children_of(node):
            if bot_move.discarded or bot_move.bot_won:
                continue
            if self._is_win_certain(bot_move):
                for sibling in self.children_of(node):
                    if sibling is not bot_move and not sibling.bot_won:
                        self._discard(sibling)

    def _is_win_certain(self, bot_move: Simulation) -> bool:
        """Whether every user reply allows a winning bot move right after."""
        if bot_move.depth > self.horizon - 2:
            return False
        return all(
            any(reply.bot_won for reply in self.children_of(user_move))
            for user_move in self.children_of(bot_move)
        )

    def _recursive_discard_if_impasse(self, node: Optional[Simulation]):
        """
        Impasse pruning that walks up two plies at a time, since discarding
        may create new impasses further up.
        """
        while node is not None and node.depth < self.horizon - 2:
            self._discard_if_impasse(node)
            if node.depth <= 1:
                break
            node = self._ancestor(node, 2)

    def _ancestor(self, node: Simulation, levels: int) -> Optional[Simulation]:
        for _ in range(levels):
            if node.parent is None:
                return None
            node = self.nodes[node.parent]
        return node

    # --- Advancing ---

    def advance(self, col: int):
        """
        Re-roots the tree at the simulation of the move actually played.

        If that move's simulation was discarded, the position is lost anyway;
        its branch is rebuilt from the current root so the tree keeps matching
        the real board.
        """
        root = self.root_node
        if not root.board.is_valid_move(col):
            raise ValueError(f"Invalid move: column {col}")

        new_root = root.children.pop(col, None)
        if new_root is None:
            logger.warning("Column %d was not simulated, rebuilding its branch", col + 1)
            new_root = self._spawn(self.root, col)
            self._grow(new_root)

        self._release(self.root)
        self.nodes[new_root].parent = None
        self.root = new_root

        for node in self.iter_subtree():
            node.depth -= 1

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Advanced to column %d: %d nodes", col + 1, self.size())

    def extend_horizon(self):
        """
        Adds the simulations of the last ply to every node one ply above the
        horizon, then prunes again with what the new simulations reveal.
        """
        stack = [self.root_node]
        while stack:
            node = stack.pop()
            if node.discarded:
                continue
            if node.depth == self.horizon - 1:
                self._add_next(node.index)
                self._discard_with_new_information(node)
            elif node.depth < self.horizon - 1:
                stack.extend(reversed(self.children_of(node)))

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Extended horizon: %d nodes", self.size())

    def _discard_with_new_information(self, node: Simulation):
        if node.mover != self.bot_symbol:
            grandparent = self._ancestor(node, 2)
            if grandparent is not None:
                self._discard_others_if_win_found(grandparent)
        else:
            if node.parent is not None:
                self._discard_if_loss_certain(self.nodes[node.parent])
            self._recursive_discard_if_impasse(self._ancestor(node, 3))
