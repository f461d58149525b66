"""Static positional evaluator: weighted cell ownership, own minus opponent."""

from reversi.config import CONFIG
from reversi.core.board import BOARD_SIZE, Board, Side


class Evaluator:
    def __init__(self, weights=None):
        self.cfg = CONFIG.eval
        self.weights = weights or self.cfg.position_weights

    def evaluate(self, board: Board, side: Side) -> int:
        """Return the positional score of `board` from `side`'s point of view."""
        score = 0
        for row in range(BOARD_SIZE):
            weights = self.weights[row]
            for col in range(BOARD_SIZE):
                owner = board.cell(row, col)
                if owner is None:
                    continue
                # Table is symmetric between sides, so the sum is zero-sum
                if owner is side:
                    score += weights[col]
                else:
                    score -= weights[col]
        return score
