"""
Unit tests for the Reversi engine.

Covers:
- Board value type (initial position, text fixtures, copying)
- Rules (capture runs, legality, applying moves, terminal detection, score)
- Evaluator (weight table, symmetry)
- Search (easy / medium / hard, alpha-beta vs exhaustive minimax, timeouts)
- Config loading
"""

import random
import time

import pytest

from reversi.config import CONFIG, POSITION_WEIGHTS, Config
from reversi.core.board import (
    CORNERS,
    DIRECTIONS,
    Board,
    Side,
    is_corner,
    is_edge,
    is_near_corner,
)
from reversi.core.evaluator import Evaluator
from reversi.core.search import Difficulty, SearchEngine
from reversi.errors import InvalidMoveError

OPENING_BLACK_MOVES = [(2, 3), (3, 2), (4, 5), (5, 4)]

# Black can take the (0,0) corner or play (3,2) in the middle
CORNER_BOARD = Board.from_rows([
    ".WB.....",
    "........",
    "........",
    "...WB...",
    "........",
    "........",
    "........",
    "........",
])

# Black is boxed in at both corners; White has (0,2) and (7,2)
BLACK_BLOCKED_BOARD = Board.from_rows([
    "WB......",
    "........",
    "........",
    "........",
    "........",
    "........",
    "........",
    "WB......",
])


class _FixedRandom:
    """random() always returns `value`; choice() stays seeded."""

    def __init__(self, value):
        self.value = value
        self._rng = random.Random(0)

    def random(self):
        return self.value

    def choice(self, seq):
        return self._rng.choice(seq)


def _play_random_game(seed: int, plies: int):
    """Yield (board, side) pairs along a seeded random game."""
    rng = random.Random(seed)
    board, side = Board.initial(), Side.BLACK
    for _ in range(plies):
        yield board, side
        moves = board.legal_moves(side)
        if not moves:
            if not board.has_any_move(side.opposite()):
                return
            side = side.opposite()
            continue
        board = board.apply_move(side, rng.choice(moves))
        side = side.opposite()


# ════════════════════════════════════════════════════════════════════════════
#  BOARD TESTS
# ════════════════════════════════════════════════════════════════════════════

class TestBoard:
    def test_initial_position(self):
        b = Board.initial()
        assert b.cell(3, 4) is Side.BLACK
        assert b.cell(4, 3) is Side.BLACK
        assert b.cell(3, 3) is Side.WHITE
        assert b.cell(4, 4) is Side.WHITE
        assert b.empty_count() == 60
        assert b.score() == (2, 2)

    def test_sixty_four_cells(self):
        assert len(Board.initial().cells) == 64
        with pytest.raises(ValueError):
            Board([None] * 63)

    def test_rows_round_trip(self):
        rows = Board.initial().to_rows()
        assert rows[3] == "...WB..."
        assert rows[4] == "...BW..."
        assert Board.from_rows(rows) == Board.initial()

    def test_from_rows_rejects_garbage(self):
        with pytest.raises(ValueError):
            Board.from_rows(["........"] * 7)
        with pytest.raises(ValueError):
            Board.from_rows(["X......."] + ["........"] * 7)

    def test_copy_is_equal_value(self):
        b = Board.initial()
        c = b.copy()
        assert c == b
        assert hash(c) == hash(b)
        c2 = c.apply_move(Side.BLACK, (2, 3))
        assert b == Board.initial()
        assert c2 != b

    def test_str_has_header_and_rows(self):
        lines = str(Board.initial()).splitlines()
        assert lines[0] == "  0 1 2 3 4 5 6 7"
        assert lines[4] == "3 . . . W B . . ."

    def test_side_opposite(self):
        assert Side.BLACK.opposite() is Side.WHITE
        assert Side.WHITE.opposite() is Side.BLACK

    def test_side_parse(self):
        assert Side.parse("black") is Side.BLACK
        assert Side.parse("W") is Side.WHITE
        assert Side.parse(-1) is Side.WHITE
        with pytest.raises(ValueError):
            Side.parse("red")

    def test_directions_complete(self):
        assert len(DIRECTIONS) == 8
        assert len(set(DIRECTIONS)) == 8
        assert (0, 0) not in DIRECTIONS
        assert all(dr in (-1, 0, 1) and dc in (-1, 0, 1) for dr, dc in DIRECTIONS)

    def test_cell_classification(self):
        assert all(is_corner(c) for c in CORNERS)
        assert is_edge((0, 3)) and is_edge((5, 7))
        assert not is_edge((3, 3))
        assert is_near_corner((1, 1)) and is_near_corner((0, 6)) and is_near_corner((7, 1))
        assert not is_near_corner((0, 0))
        assert not is_near_corner((2, 2))


# ════════════════════════════════════════════════════════════════════════════
#  RULES TESTS
# ════════════════════════════════════════════════════════════════════════════

class TestRules:
    def test_opening_moves_black(self):
        assert Board.initial().legal_moves(Side.BLACK) == OPENING_BLACK_MOVES

    def test_opening_moves_white(self):
        assert Board.initial().legal_moves(Side.WHITE) == [(2, 4), (3, 5), (4, 2), (5, 3)]

    def test_apply_opening_flips_exactly_one(self):
        b = Board.initial()
        assert b.flips(Side.BLACK, (2, 3)) == [(3, 3)]
        after = b.apply_move(Side.BLACK, (2, 3))
        assert after.cell(2, 3) is Side.BLACK
        assert after.cell(3, 3) is Side.BLACK
        assert after.cell(4, 4) is Side.WHITE
        assert after.score() == (4, 1)

    def test_capture_run_requires_closing_disk(self):
        b = Board.initial()
        assert b.capture_run(Side.BLACK, (2, 3), (1, 0)) == [(3, 3)]
        # Runs ending on an empty cell capture nothing
        assert b.capture_run(Side.BLACK, (2, 2), (1, 1)) == []
        # Runs running off the board capture nothing
        edge = Board.from_rows(["BB......"] + ["........"] * 7)
        assert edge.capture_run(Side.WHITE, (0, 2), (0, -1)) == []

    def test_capture_run_multiple_cells(self):
        b = Board.from_rows(["BWWW...."] + ["........"] * 7)
        assert b.capture_run(Side.BLACK, (0, 4), (0, -1)) == [(0, 3), (0, 2), (0, 1)]
        after = b.apply_move(Side.BLACK, (0, 4))
        assert after.to_rows()[0] == "BBBBB..."

    def test_multi_direction_capture(self):
        b = Board.from_rows([
            "B.B.....",
            ".WW.....",
            "........",
            "........",
            "........",
            "........",
            "........",
            "........",
        ])
        assert b.flips(Side.BLACK, (2, 2)) == [(1, 1), (1, 2)]
        after = b.apply_move(Side.BLACK, (2, 2))
        assert after.to_rows()[1] == ".BB....."

    def test_is_legal_rejections(self):
        b = Board.initial()
        assert not b.is_legal(Side.BLACK, (3, 3))   # occupied
        assert not b.is_legal(Side.BLACK, (0, 0))   # captures nothing
        assert not b.is_legal(Side.BLACK, (8, 0))   # off board
        assert not b.is_legal(Side.BLACK, (-1, 2))

    @pytest.mark.parametrize("move,reason", [
        ((3, 3), "cell is occupied"),
        ((0, 0), "captures nothing"),
        ((8, 8), "out of range"),
    ])
    def test_apply_illegal_raises(self, move, reason):
        with pytest.raises(InvalidMoveError) as info:
            Board.initial().apply_move(Side.BLACK, move)
        assert info.value.reason == reason
        assert info.value.move == move
        assert isinstance(info.value, ValueError)

    def test_has_any_move(self):
        assert Board.initial().has_any_move(Side.BLACK)
        assert not BLACK_BLOCKED_BOARD.has_any_move(Side.BLACK)
        assert BLACK_BLOCKED_BOARD.has_any_move(Side.WHITE)

    def test_iter_legal_moves_is_lazy_and_ordered(self):
        it = Board.initial().iter_legal_moves(Side.BLACK)
        assert next(it) == (2, 3)
        assert list(it) == OPENING_BLACK_MOVES[1:]

    def test_terminal_non_full_board(self):
        lone = Board.from_rows(["B......."] + ["........"] * 7)
        assert lone.is_terminal()
        assert not lone.is_full()

    def test_terminal_with_both_colours_blocked(self):
        b = Board.from_rows(["B.W....."] + ["........"] * 7)
        assert not b.has_any_move(Side.BLACK)
        assert not b.has_any_move(Side.WHITE)
        assert b.is_terminal()
        assert b.score() == (1, 1)

    def test_full_board_is_terminal(self):
        full = Board.from_rows(["BBBBWWWW"] * 8)
        assert full.is_full()
        assert full.is_terminal()

    def test_one_side_blocked_is_not_terminal(self):
        assert not BLACK_BLOCKED_BOARD.is_terminal()
        assert not Board.initial().is_terminal()

    def test_legal_moves_always_flip(self):
        """Every listed move is on an empty cell and flips at least one disk."""
        for board, side in _play_random_game(seed=7, plies=60):
            for move in board.legal_moves(side):
                assert board.cell(*move) is None
                assert len(board.flips(side, move)) >= 1

    def test_disk_total_grows_by_one(self):
        for board, side in _play_random_game(seed=11, plies=60):
            for move in board.legal_moves(side):
                before_own = board.count(side)
                before_total = sum(board.score())
                flipped = board.flips(side, move)
                after = board.apply_move(side, move)
                assert sum(after.score()) == before_total + 1
                assert after.count(side) == before_own + 1 + len(flipped)
                assert after.count(side.opposite()) == board.count(side.opposite()) - len(flipped)

    def test_apply_is_deterministic(self):
        b = Board.initial()
        assert b.apply_move(Side.BLACK, (5, 4)) == b.apply_move(Side.BLACK, (5, 4))


# ════════════════════════════════════════════════════════════════════════════
#  EVALUATOR TESTS
# ════════════════════════════════════════════════════════════════════════════

class TestEvaluator:
    def setup_method(self):
        self.ev = Evaluator()

    def test_default_table(self):
        assert CONFIG.eval.position_weights == POSITION_WEIGHTS
        assert POSITION_WEIGHTS[0] == [100, -20, 10, 5, 5, 10, -20, 100]
        assert POSITION_WEIGHTS[1][1] == -50
        assert POSITION_WEIGHTS[3][3] == -1

    def test_table_is_symmetric(self):
        for r in range(8):
            for c in range(8):
                w = POSITION_WEIGHTS[r][c]
                assert w == POSITION_WEIGHTS[7 - r][c] == POSITION_WEIGHTS[r][7 - c]
                assert w == POSITION_WEIGHTS[c][r]

    def test_starting_position_is_even(self):
        assert self.ev.evaluate(Board.initial(), Side.BLACK) == 0

    def test_evaluate_returns_int(self):
        assert isinstance(self.ev.evaluate(CORNER_BOARD, Side.BLACK), int)

    def test_corner_owner(self):
        b = Board.from_rows(["B......."] + ["........"] * 7)
        assert self.ev.evaluate(b, Side.BLACK) == 100
        assert self.ev.evaluate(b, Side.WHITE) == -100

    def test_x_square_penalty(self):
        b = Board.from_rows(["........", ".B......"] + ["........"] * 6)
        assert self.ev.evaluate(b, Side.BLACK) == -50

    def test_zero_sum(self):
        for board, _ in _play_random_game(seed=3, plies=30):
            assert self.ev.evaluate(board, Side.BLACK) == -self.ev.evaluate(board, Side.WHITE)


# ════════════════════════════════════════════════════════════════════════════
#  SEARCH ENGINE TESTS
# ════════════════════════════════════════════════════════════════════════════

class TestDifficulty:
    def test_parse_names_and_levels(self):
        assert Difficulty.parse("Hard") is Difficulty.HARD
        assert Difficulty.parse(1) is Difficulty.EASY
        assert Difficulty.parse("2") is Difficulty.MEDIUM
        assert Difficulty.parse(Difficulty.HARD) is Difficulty.HARD

    def test_parse_unknown(self):
        with pytest.raises(ValueError):
            Difficulty.parse("expert")


class TestEasy:
    def test_returns_legal_move(self):
        engine = SearchEngine(rng=random.Random(1))
        for _ in range(20):
            assert engine.select_move(Board.initial(), Side.BLACK, Difficulty.EASY) in OPENING_BLACK_MOVES

    def test_prefers_corner_when_roll_succeeds(self):
        engine = SearchEngine(rng=_FixedRandom(0.0))
        assert engine.select_move(CORNER_BOARD, Side.BLACK, Difficulty.EASY) == (0, 0)

    def test_random_when_roll_fails(self):
        engine = SearchEngine(rng=_FixedRandom(0.99))
        seen = {engine.select_move(CORNER_BOARD, Side.BLACK, Difficulty.EASY) for _ in range(40)}
        assert seen <= {(0, 0), (3, 2)}
        assert (3, 2) in seen

    def test_seeded_is_reproducible(self):
        a = SearchEngine(rng=random.Random(42))
        b = SearchEngine(rng=random.Random(42))
        moves_a = [a.select_move(Board.initial(), Side.BLACK, Difficulty.EASY) for _ in range(10)]
        moves_b = [b.select_move(Board.initial(), Side.BLACK, Difficulty.EASY) for _ in range(10)]
        assert moves_a == moves_b


class TestMedium:
    def setup_method(self):
        self.engine = SearchEngine()

    def test_scores(self):
        assert self.engine.medium_score(CORNER_BOARD, Side.BLACK, (0, 0)) == 96
        assert self.engine.medium_score(CORNER_BOARD, Side.BLACK, (3, 2)) == -4

    def test_takes_corner(self):
        assert self.engine.select_move(CORNER_BOARD, Side.BLACK, Difficulty.MEDIUM) == (0, 0)

    def test_opening_tie_goes_to_first(self):
        # All four openings score 1 flip - 5 * 3 replies
        for move in OPENING_BLACK_MOVES:
            assert self.engine.medium_score(Board.initial(), Side.BLACK, move) == -14
        result = self.engine.search(Board.initial(), Side.BLACK, Difficulty.MEDIUM)
        assert result.move == (2, 3)
        assert result.score == -14

    def test_near_corner_penalty(self):
        b = Board.from_rows([
            "........",
            "........",
            "..W.....",
            "...B....",
            "........",
            "........",
            "........",
            "........",
        ])
        # (1,1): -50 near corner, 1 flip, White then has no reply
        assert b.legal_moves(Side.BLACK) == [(1, 1)]
        assert self.engine.medium_score(b, Side.BLACK, (1, 1)) == -49

    def test_edge_bonus(self):
        b = Board.from_rows([
            "........",
            "...W....",
            "...B....",
            "........",
            "........",
            "........",
            "........",
            "........",
        ])
        # (0,3): +10 edge, 1 flip, no White reply
        assert b.legal_moves(Side.BLACK) == [(0, 3)]
        assert self.engine.medium_score(b, Side.BLACK, (0, 3)) == 11


class TestHard:
    def test_takes_corner(self):
        engine = SearchEngine(depth=4)
        result = engine.search(CORNER_BOARD, Side.BLACK, Difficulty.HARD)
        assert result.move == (0, 0)
        assert result.score == 93

    def test_opening_move_is_legal(self):
        engine = SearchEngine(depth=4)
        assert engine.select_move(Board.initial(), Side.BLACK, Difficulty.HARD) in OPENING_BLACK_MOVES

    def test_white_minimises(self):
        engine = SearchEngine(depth=3)
        board = Board.initial().apply_move(Side.BLACK, (2, 3))
        move = engine.select_move(board, Side.WHITE, Difficulty.HARD)
        assert move in board.legal_moves(Side.WHITE)

    def test_does_not_touch_input_board(self):
        engine = SearchEngine(depth=3)
        board = Board.initial()
        engine.select_move(board, Side.BLACK, Difficulty.HARD)
        assert board == Board.initial()

    def test_no_moves_returns_none(self):
        engine = SearchEngine(depth=4)
        assert engine.select_move(BLACK_BLOCKED_BOARD, Side.BLACK, Difficulty.HARD) is None
        assert engine.select_move(BLACK_BLOCKED_BOARD, Side.BLACK, Difficulty.EASY) is None

    def test_pass_inside_search(self):
        # White to move, after any reply Black may be blocked; search must still finish
        engine = SearchEngine(depth=4)
        move = engine.select_move(BLACK_BLOCKED_BOARD, Side.WHITE, Difficulty.HARD)
        assert move in [(0, 2), (7, 2)]

    @pytest.mark.parametrize("seed,plies,depth", [(1, 0, 4), (5, 9, 3), (9, 16, 3), (13, 24, 3)])
    def test_alpha_beta_matches_exhaustive(self, seed, plies, depth):
        """Pruning must not change the chosen move."""
        positions = list(_play_random_game(seed=seed, plies=plies + 1))
        board, side = positions[-1]
        if not board.has_any_move(side):
            side = side.opposite()
        pruned = SearchEngine(depth=depth, use_alpha_beta=True)
        full = SearchEngine(depth=depth, use_alpha_beta=False)
        r1 = pruned.search(board, side, Difficulty.HARD)
        r2 = full.search(board, side, Difficulty.HARD)
        assert r1.move == r2.move
        assert r1.score == r2.score
        assert r1.nodes <= r2.nodes

    def test_pruning_saves_nodes(self):
        pruned = SearchEngine(depth=4, use_alpha_beta=True)
        full = SearchEngine(depth=4, use_alpha_beta=False)
        r1 = pruned.search(Board.initial(), Side.BLACK, Difficulty.HARD)
        r2 = full.search(Board.initial(), Side.BLACK, Difficulty.HARD)
        assert r1.move == r2.move
        assert r1.nodes < r2.nodes


class TestSearchEdgeCases:
    def test_unknown_difficulty_plays_random_legal(self):
        engine = SearchEngine(rng=random.Random(3))
        result = engine.search(Board.initial(), Side.BLACK, "expert")
        assert result.move in OPENING_BLACK_MOVES
        assert result.difficulty == "expert"

    def test_string_difficulty_dispatches(self):
        engine = SearchEngine()
        assert engine.select_move(CORNER_BOARD, Side.BLACK, "medium") == (0, 0)

    def test_time_limit_returns_legal_move(self):
        class SlowEvaluator(Evaluator):
            def evaluate(self, board, side):
                time.sleep(0.005)
                return super().evaluate(board, side)

        engine = SearchEngine(SlowEvaluator(), depth=6, time_limit_ms=50)
        result = engine.search(Board.initial(), Side.BLACK, Difficulty.HARD)
        assert result.timed_out
        assert not result.cancelled
        assert result.move in OPENING_BLACK_MOVES

    def test_nodes_counted(self):
        engine = SearchEngine(depth=2)
        result = engine.search(Board.initial(), Side.BLACK, Difficulty.HARD)
        assert result.nodes > 0
        assert engine.nodes == result.nodes


# ════════════════════════════════════════════════════════════════════════════
#  CONFIG TESTS
# ════════════════════════════════════════════════════════════════════════════

class TestConfig:
    def test_defaults(self):
        cfg = Config()
        assert cfg.search.depth == 4
        assert cfg.search.use_alpha_beta is True
        assert cfg.search.time_limit_ms is None
        assert cfg.ai.easy_corner_probability == 0.2
        assert cfg.game.ai_side == "black"

    def test_missing_file_gives_defaults(self, tmp_path):
        cfg = Config.load_from_toml(str(tmp_path / "nope.toml"))
        assert cfg.search.depth == 4

    def test_load_from_toml(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text(
            'log_level = "DEBUG"\n'
            "[search]\ndepth = 2\nbogus = 1\n"
            '[ai]\ndifficulty = "hard"\nseed = 7\n'
        )
        cfg = Config.load_from_toml(str(path))
        assert cfg.search.depth == 2
        assert not hasattr(cfg.search, "bogus")
        assert cfg.ai.difficulty == "hard"
        assert cfg.ai.seed == 7
        assert cfg.log_level == "DEBUG"
