import logging
import random
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Tuple

from reversi.config import CONFIG
from reversi.core.board import Board, Move, Side, is_corner, is_edge, is_near_corner
from reversi.core.evaluator import Evaluator
from reversi.core.utils import log_search_info

logger = logging.getLogger(__name__)

INF = 1000000


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"

    @classmethod
    def parse(cls, value) -> "Difficulty":
        """Accept a Difficulty, its name, or the numeric level 1-3."""
        if isinstance(value, Difficulty):
            return value
        text = str(value).strip().lower()
        levels = {"1": cls.EASY, "2": cls.MEDIUM, "3": cls.HARD}
        if text in levels:
            return levels[text]
        return cls(text)


@dataclass
class SearchResult:
    move: Optional[Move]
    score: int
    nodes: int
    elapsed: float
    difficulty: str
    cancelled: bool = False
    timed_out: bool = False


class _SearchAborted(Exception):
    pass


class _SearchContext:
    """Per-search bookkeeping: node count, stop/deadline checks, best root move so far."""

    def __init__(self, stop_event: threading.Event, deadline: Optional[float], prune: bool):
        self.stop_event = stop_event
        self.deadline = deadline
        self.prune = prune
        self.nodes = 0
        self.cancelled = False
        self.timed_out = False
        self.best_move: Optional[Move] = None
        self.best_score = 0

    def tick(self):
        self.nodes += 1
        if self.stop_event.is_set():
            self.cancelled = True
            raise _SearchAborted()
        if self.deadline is not None and time.time() >= self.deadline:
            self.timed_out = True
            raise _SearchAborted()


class SearchEngine:
    def __init__(
        self,
        evaluator: Optional[Evaluator] = None,
        depth: Optional[int] = None,
        rng: Optional[random.Random] = None,
        use_alpha_beta: Optional[bool] = None,
        time_limit_ms: Optional[int] = None,
    ):
        self.evaluator = evaluator or Evaluator()
        self.max_depth = depth if depth is not None else CONFIG.search.depth
        self.use_alpha_beta = (
            CONFIG.search.use_alpha_beta if use_alpha_beta is None else use_alpha_beta
        )
        self.time_limit_ms = (
            time_limit_ms if time_limit_ms is not None else CONFIG.search.time_limit_ms
        )
        self.rng = rng or random.Random(CONFIG.ai.seed)
        self.corner_probability = CONFIG.ai.easy_corner_probability
        self.medium_weights = CONFIG.eval.medium_weights

        self._handlers = {
            Difficulty.EASY: self._easy_move,
            Difficulty.MEDIUM: self._medium_move,
            Difficulty.HARD: self._hard_move,
        }

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.nodes = 0

    # ── Public API ──────────────────────────────────────────

    def select_move(self, board: Board, side: Side, difficulty) -> Optional[Move]:
        """Pick a move for `side`, or None when it has no legal move (caller passes)."""
        return self.search(board, side, difficulty).move

    def search(self, board: Board, side: Side, difficulty) -> SearchResult:
        self._stop_event = threading.Event()
        return self._run(board, side, difficulty, self._stop_event)

    def start_search(
        self,
        board: Board,
        side: Side,
        difficulty,
        callback: Optional[Callable[[SearchResult], None]] = None,
        error_callback: Optional[Callable[[BaseException], None]] = None,
    ) -> threading.Thread:
        """Run the search on a daemon thread; `callback` receives the SearchResult."""
        stop_event = threading.Event()
        self._stop_event = stop_event
        snapshot = board.copy()

        def worker():
            try:
                result = self._run(snapshot, side, difficulty, stop_event)
            except Exception as exc:
                logger.exception("Search failed for %s", side.label)
                if error_callback:
                    error_callback(exc)
                return
            if callback:
                callback(result)

        self._thread = threading.Thread(target=worker, daemon=True)
        self._thread.start()
        return self._thread

    def stop(self):
        self._stop_event.set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Join the background search; True once no search thread is running."""
        if self._thread:
            self._thread.join(timeout=timeout)
            return not self._thread.is_alive()
        return True

    @property
    def is_searching(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    # ── Dispatch ────────────────────────────────────────────

    def _run(self, board: Board, side: Side, difficulty, stop_event: threading.Event) -> SearchResult:
        board = board.copy()
        start_time = time.time()
        deadline = start_time + self.time_limit_ms / 1000.0 if self.time_limit_ms else None
        ctx = _SearchContext(stop_event, deadline, self.use_alpha_beta)
        label = getattr(difficulty, "value", str(difficulty))

        moves = board.legal_moves(side)
        if not moves:
            return SearchResult(None, self.evaluator.evaluate(board, side), 0,
                                time.time() - start_time, label)

        # Unknown difficulty falls back to a uniform random move
        handler = self._handlers.get(difficulty, self._random_move)
        try:
            move, score = handler(board, side, moves, ctx)
        except _SearchAborted:
            move = ctx.best_move or moves[0]
            score = ctx.best_score

        self.nodes = ctx.nodes
        result = SearchResult(
            move=move,
            score=score,
            nodes=ctx.nodes,
            elapsed=time.time() - start_time,
            difficulty=label,
            cancelled=ctx.cancelled,
            timed_out=ctx.timed_out,
        )
        log_search_info(result)
        return result

    # ── Easy / fallback ─────────────────────────────────────

    def _random_move(self, board: Board, side: Side, moves: List[Move], ctx) -> Tuple[Move, int]:
        return self.rng.choice(moves), 0

    def _easy_move(self, board: Board, side: Side, moves: List[Move], ctx) -> Tuple[Move, int]:
        corners = [m for m in moves if is_corner(m)]
        if corners and self.rng.random() < self.corner_probability:
            return self.rng.choice(corners), 0
        return self.rng.choice(moves), 0

    # ── Medium (greedy heuristic) ───────────────────────────

    def medium_score(self, board: Board, side: Side, move: Move) -> int:
        w = self.medium_weights
        score = 0
        if is_corner(move):
            score += w["corner"]
        elif is_edge(move):
            score += w["edge"]
        if is_near_corner(move):
            score += w["near_corner"]
        score += w["flip"] * len(board.flips(side, move))
        child = board.apply_move(side, move)
        score += w["opponent_mobility"] * len(child.legal_moves(side.opposite()))
        return score

    def _medium_move(self, board: Board, side: Side, moves: List[Move], ctx) -> Tuple[Move, int]:
        best_move, best_score = None, -INF
        for move in moves:
            ctx.tick()
            score = self.medium_score(board, side, move)
            # Strict comparison keeps the first move in row-major order on ties
            if best_move is None or score > best_score:
                best_move, best_score = move, score
                ctx.best_move, ctx.best_score = move, score
        return best_move, best_score

    # ── Hard (minimax, Black maximises) ─────────────────────

    def _hard_move(self, board: Board, side: Side, moves: List[Move], ctx) -> Tuple[Move, int]:
        maximizing = side is Side.BLACK
        depth = max(1, self.max_depth)
        alpha, beta = -INF, INF
        best_move: Optional[Move] = None
        best_score = 0

        for move in moves:
            child = board.apply_move(side, move)
            score = self._minimax(child, depth - 1, side.opposite(), alpha, beta, ctx)
            better = score > best_score if maximizing else score < best_score
            if best_move is None or better:
                best_move, best_score = move, score
                ctx.best_move, ctx.best_score = move, score
            if ctx.prune:
                if maximizing:
                    alpha = max(alpha, best_score)
                else:
                    beta = min(beta, best_score)

        return best_move, best_score

    def _minimax(self, board: Board, depth: int, to_move: Side, alpha: int, beta: int, ctx) -> int:
        ctx.tick()
        if depth <= 0:
            return self.evaluator.evaluate(board, Side.BLACK)

        moves = board.legal_moves(to_move)
        if not moves:
            if not board.has_any_move(to_move.opposite()):
                return self.evaluator.evaluate(board, Side.BLACK)
            # Pass: same position, opponent to move, one ply consumed
            return self._minimax(board, depth - 1, to_move.opposite(), alpha, beta, ctx)

        if to_move is Side.BLACK:
            value = -INF
            for move in moves:
                child = board.apply_move(to_move, move)
                value = max(value, self._minimax(child, depth - 1, Side.WHITE, alpha, beta, ctx))
                alpha = max(alpha, value)
                if ctx.prune and beta <= alpha:
                    break
            return value

        value = INF
        for move in moves:
            child = board.apply_move(to_move, move)
            value = min(value, self._minimax(child, depth - 1, Side.BLACK, alpha, beta, ctx))
            beta = min(beta, value)
            if ctx.prune and beta <= alpha:
                break
        return value
