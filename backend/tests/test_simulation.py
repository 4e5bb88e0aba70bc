import unittest

from backend.app.engine.game import ConnectN
from backend.app.engine.simulation import SimulationTree
from backend.app.models.enums import Symbol


def root_child(tree, col):
    return tree.node(tree.root_node.children[col])


class TestSimulationTree(unittest.TestCase):
    def setUp(self):
        # 4x4, user X moves first, bot plays O
        self.game = ConnectN(4, 4, 4)
        self.tree = SimulationTree(self.game, Symbol.O)

    def assert_consistent(self, tree):
        self.assertEqual(tree.depth_errors(), [])
        # Every live arena slot is reachable from the root
        self.assertEqual(sum(1 for n in tree.nodes if n is not None), tree.size())
        for node in tree.iter_subtree():
            self.assertFalse(node.discarded)
            for col, index in node.children.items():
                child = tree.node(index)
                self.assertEqual(child.parent, node.index)
                self.assertEqual(child.move_col, col)

    def test_root_matches_board(self):
        root = self.tree.root_node
        self.assertEqual(root.depth, 0)
        self.assertIsNone(root.parent)
        self.assertEqual(root.board.board, self.game.board)
        self.assertEqual(root.mover, Symbol.O)
        # The user's first moves are never pruned
        self.assertEqual(list(root.children), [0, 1, 2, 3])

    def test_built_down_to_horizon(self):
        depths = [node.depth for node in self.tree.iter_subtree()]
        self.assertEqual(max(depths), self.tree.horizon)
        self.assert_consistent(self.tree)

    def test_scores_follow_ledgers(self):
        for node in self.tree.iter_subtree():
            self.assertEqual(node.score, node.bot_windows.aggregate() - node.user_windows.aggregate())
            self.assertEqual(node.bot_windows.aggregate(), node.bot_windows.recount())
            self.assertEqual(node.user_windows.aggregate(), node.user_windows.recount())

    def test_movers_alternate(self):
        for node in self.tree.iter_subtree():
            for child in self.tree.children_of(node):
                self.assertEqual(child.mover, node.mover.opposite)
                self.assertEqual(child.depth, node.depth + 1)
                if node.bot_won:
                    self.assertTrue(child.bot_won)
                if node.user_won:
                    self.assertTrue(child.user_won)

    def test_advance_and_extend_keep_depths(self):
        self.tree.advance(1)
        self.assertEqual(self.tree.root_node.depth, 0)
        self.assertEqual(self.tree.root_node.board.board[3][1], Symbol.X)
        self.assert_consistent(self.tree)

        self.tree.extend_horizon()
        depths = [node.depth for node in self.tree.iter_subtree()]
        self.assertEqual(max(depths), self.tree.horizon)
        self.assert_consistent(self.tree)

    def test_advance_twice(self):
        self.tree.advance(0)
        self.tree.extend_horizon()
        bot_col = next(iter(self.tree.root_node.children))
        self.tree.advance(bot_col)
        self.tree.extend_horizon()

        root = self.tree.root_node
        self.assertEqual(root.mover, Symbol.O)
        self.assertEqual(root.board.turn_of_player, Symbol.X)
        self.assert_consistent(self.tree)

    def test_advance_rejects_invalid_column(self):
        with self.assertRaises(ValueError):
            self.tree.advance(4)

        game = ConnectN.from_matrix([
            "x...",
            "o...",
            "x...",
            "o...",
        ])
        tree = SimulationTree(game, Symbol.O)
        with self.assertRaises(ValueError):
            tree.advance(0)

    def test_discarded_indices_are_reused(self):
        self.tree.advance(2)
        freed = set(self.tree._free)
        self.assertTrue(freed)
        self.assertTrue(all(self.tree.nodes[i] is None for i in freed))

        # Growing the last ply takes freed slots before extending the arena
        self.tree.extend_horizon()
        self.assertTrue(any(self.tree.nodes[i] is not None for i in freed))
        self.assert_consistent(self.tree)

    def test_horizon_too_small(self):
        with self.assertRaises(ValueError):
            SimulationTree(self.game, Symbol.O, horizon=3)

    def test_node_lookup_after_discard(self):
        old_root = self.tree.root
        self.tree.advance(0)
        with self.assertRaises(KeyError):
            self.tree.node(old_root)


class TestPruning(unittest.TestCase):
    def test_loss_certain(self):
        """
        Scenario: X to move with (4,0) and (4,1). If X plays Col 2, every bot
        move except blocking Col 3 lets X win right away.
        Bot moves after the user's reply are pruned down to the block.
        """
        game = ConnectN.from_matrix([
            ".....",
            ".....",
            ".....",
            "....o",
            "xx..o",
        ])
        tree = SimulationTree(game, Symbol.O)

        self.assertEqual(list(tree.root_node.children), [0, 1, 2, 3, 4])
        self.assertEqual(list(root_child(tree, 2).children), [3])

    def test_root_pruned_when_bot_to_move(self):
        """
        Scenario: O to move, X has (4,0), (4,1), (4,2).
        Only the block at Col 3 survives at the root.
        """
        game = ConnectN.from_matrix([
            ".....",
            ".....",
            ".....",
            "....o",
            "xxx.o",
        ])
        tree = SimulationTree(game, Symbol.O)

        self.assertEqual(list(tree.root_node.children), [3])

    def test_root_emptied_by_open_three(self):
        """
        Scenario: O to move, X has (5,1), (5,2), (5,3) with both ends open.
        Every bot move lets X win next, so no root candidate survives.
        """
        game = ConnectN.from_matrix([
            ".....ox",
            ".....xo",
            ".....oo",
            ".....xx",
            ".....ox",
            ".xxx.oo",
        ])
        tree = SimulationTree(game, Symbol.O)

        self.assertEqual(tree.root_node.children, {})
        self.assertEqual(tree.size(), 1)

    def test_win_found(self):
        """
        Scenario: O has (4,1) and (4,2) with both ends open.
        After X plays Col 1, O at Col 3 makes an open three that X can't stop,
        so every other bot move is discarded.
        """
        game = ConnectN.from_matrix([
            ".....",
            ".....",
            ".....",
            ".xx..",
            ".oo..",
        ])
        tree = SimulationTree(game, Symbol.O)

        self.assertEqual(list(root_child(tree, 1).children), [3])

    def test_winning_moves_never_pruned(self):
        """
        Scenario: Same open position. At every node where the bot is to move,
        each column that wins on the spot is still simulated.
        """
        game = ConnectN.from_matrix([
            ".....",
            ".....",
            ".....",
            ".xx..",
            ".oo..",
        ])
        tree = SimulationTree(game, Symbol.O)
        checked = self._check_winning_moves_kept(tree)
        self.assertGreater(checked, 0)

        tree.advance(0)
        tree.extend_horizon()
        self._check_winning_moves_kept(tree)

    def test_no_bot_move_allows_a_user_win(self):
        game = ConnectN.from_matrix([
            ".....",
            ".....",
            ".....",
            "....o",
            "xx..o",
        ])
        tree = SimulationTree(game, Symbol.O)
        self._check_no_loss_in_one(tree)

        tree.advance(2)
        tree.extend_horizon()
        self._check_no_loss_in_one(tree)

    def test_advance_into_discarded_move(self):
        """
        Scenario: After X plays Col 1 only Col 3 is kept for O.
        O plays Col 0 anyway; its branch is rebuilt to match the real board.
        """
        game = ConnectN.from_matrix([
            ".....",
            ".....",
            ".....",
            ".xx..",
            ".oo..",
        ])
        tree = SimulationTree(game, Symbol.O)
        tree.advance(1)
        tree.extend_horizon()
        self.assertNotIn(0, tree.root_node.children)

        tree.advance(0)
        tree.extend_horizon()

        root = tree.root_node
        self.assertEqual(root.depth, 0)
        self.assertEqual(root.move_col, 0)
        self.assertEqual(root.board.board[4][0], Symbol.O)
        self.assertEqual(root.board.turn_of_player, Symbol.X)
        self.assertTrue(root.children)
        self.assertEqual(tree.depth_errors(), [])
        self.assertEqual(max(n.depth for n in tree.iter_subtree()), tree.horizon)

    def _check_winning_moves_kept(self, tree):
        checked = 0
        for node in tree.iter_subtree():
            if node.mover == tree.bot_symbol or node.full or node.depth >= tree.horizon:
                continue
            for col in node.board.get_valid_moves():
                if node.board.is_win(col, tree.bot_symbol):
                    self.assertIn(col, node.children)
                    checked += 1
        return checked

    def _check_no_loss_in_one(self, tree):
        for node in tree.iter_subtree():
            if node.mover == tree.bot_symbol or node.depth > tree.horizon - 2:
                continue
            for bot_move in tree.children_of(node):
                if bot_move.bot_won:
                    continue
                self.assertFalse(any(reply.user_won for reply in tree.children_of(bot_move)))


if __name__ == '__main__':
    unittest.main()
