"""Game session: turn order, automatic passes, undo history and the AI turn lifecycle.

The session owns the only live board. The search engine always receives a
copy, and every AI turn is tagged with a generation number so a result that
arrives after a reset or cancellation is dropped instead of applied.
"""

import logging
import threading
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Callable, List, Optional, Tuple

from reversi.config import CONFIG
from reversi.core.board import Board, Move, Side
from reversi.core.search import Difficulty, SearchEngine, SearchResult
from reversi.errors import IllegalStateTransitionError

logger = logging.getLogger(__name__)


class Mode(str, Enum):
    HUMAN_VS_AI = "human_vs_ai"
    HUMAN_VS_HUMAN = "human_vs_human"


class Phase(str, Enum):
    AWAITING_MOVE = "awaiting_move"
    THINKING = "thinking"
    TERMINAL = "terminal"


@dataclass(frozen=True)
class HistoryEntry:
    """State right before `move` was applied."""
    board: Board
    side_to_move: Side
    move: Move


@dataclass(frozen=True)
class GameResult:
    black: int
    white: int
    winner: Optional[Side]  # None is a draw

    @property
    def is_draw(self) -> bool:
        return self.winner is None

    @classmethod
    def from_board(cls, board: Board) -> "GameResult":
        black, white = board.score()
        if black > white:
            winner = Side.BLACK
        elif white > black:
            winner = Side.WHITE
        else:
            winner = None
        return cls(black, white, winner)


@dataclass
class GameStats:
    games_played: int = 0
    human_wins: int = 0
    ai_wins: int = 0
    draws: int = 0

    def record(self, result: GameResult, mode: Mode, ai_side: Side):
        self.games_played += 1
        # Win/draw tally only means something against the AI
        if mode is not Mode.HUMAN_VS_AI:
            return
        if result.winner is None:
            self.draws += 1
        elif result.winner is ai_side:
            self.ai_wins += 1
        else:
            self.human_wins += 1

    def as_dict(self):
        return asdict(self)


class GameSession:
    def __init__(
        self,
        mode=None,
        difficulty=None,
        ai_side=None,
        engine: Optional[SearchEngine] = None,
        board: Optional[Board] = None,
        side_to_move=Side.BLACK,
        show_hints: Optional[bool] = None,
    ):
        self.mode = Mode(mode or CONFIG.game.mode)
        self.difficulty = Difficulty.parse(CONFIG.ai.difficulty)
        if difficulty is not None:
            self.set_difficulty(difficulty)
        self.ai_side = Side.parse(ai_side if ai_side is not None else CONFIG.game.ai_side)
        self.show_hints = CONFIG.game.show_hints if show_hints is None else show_hints
        self.engine = engine or SearchEngine()
        self.stats = GameStats()
        self.last_error: Optional[BaseException] = None

        self._lock = threading.RLock()
        self._generation = 0
        self._load(board or Board.initial(), Side.parse(side_to_move))

    # ── State accessors ─────────────────────────────────────

    @property
    def board(self) -> Board:
        return self._board

    @property
    def side_to_move(self) -> Side:
        return self._side

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def is_terminal(self) -> bool:
        return self._phase is Phase.TERMINAL

    @property
    def is_thinking(self) -> bool:
        return self._phase is Phase.THINKING

    @property
    def history(self) -> Tuple[HistoryEntry, ...]:
        return tuple(self._history)

    @property
    def last_move(self) -> Optional[Move]:
        return self._last_move

    @property
    def last_flips(self) -> List[Move]:
        return list(self._last_flips)

    def is_ai_side(self, side: Side) -> bool:
        return self.mode is Mode.HUMAN_VS_AI and side is self.ai_side

    @property
    def is_ai_turn(self) -> bool:
        return not self.is_terminal and self.is_ai_side(self._side)

    @property
    def is_human_turn(self) -> bool:
        return not self.is_terminal and not self.is_ai_side(self._side)

    def legal_moves(self) -> List[Move]:
        if self.is_terminal:
            return []
        return self._board.legal_moves(self._side)

    def hint_moves(self) -> List[Move]:
        """Legal moves to highlight: only when hints are on and a human is to move."""
        if not self.show_hints or not self.is_human_turn:
            return []
        return self.legal_moves()

    def score(self) -> Tuple[int, int]:
        return self._board.score()

    def result(self) -> Optional[GameResult]:
        if not self.is_terminal:
            return None
        return GameResult.from_board(self._board)

    # ── Settings ────────────────────────────────────────────

    def new_game(self, mode=None):
        with self._lock:
            if self._phase is Phase.THINKING:
                self._generation += 1
                self.engine.stop()
            if mode is not None:
                self.mode = Mode(mode)
            self._load(Board.initial(), Side.BLACK)
            logger.info("New game (%s, %s)", self.mode.value, self._difficulty_label())

    def set_mode(self, mode):
        self.new_game(mode=mode)

    def set_difficulty(self, difficulty):
        try:
            self.difficulty = Difficulty.parse(difficulty)
        except ValueError:
            logger.warning("Unknown difficulty %r: AI will play random legal moves", difficulty)
            self.difficulty = difficulty

    def toggle_hints(self) -> bool:
        self.show_hints = not self.show_hints
        return self.show_hints

    def load_position(self, board: Board, side_to_move=Side.BLACK):
        """Start from an arbitrary position; clears history."""
        with self._lock:
            if self._phase is Phase.THINKING:
                self._generation += 1
                self.engine.stop()
            self._load(board, Side.parse(side_to_move))

    # ── Moves ───────────────────────────────────────────────

    def submit_move(self, row: int, col: int) -> List[Move]:
        """Apply a human move and return the flipped cells."""
        with self._lock:
            self._require_turn(human=True)
            return self._apply(self._side, (row, col))

    def request_ai_move(self) -> Optional[Move]:
        """Run the AI turn synchronously. Returns None if it was cancelled meanwhile."""
        token, board, side, difficulty = self._begin_thinking()
        try:
            result = self.engine.search(board, side, difficulty)
        except Exception:
            with self._lock:
                if token == self._generation and self._phase is Phase.THINKING:
                    self._phase = Phase.AWAITING_MOVE
            raise
        return self._finish_thinking(token, result)

    def start_ai_move(self, callback: Optional[Callable[[Optional[Move]], None]] = None):
        """Run the AI turn on a background thread; `callback` gets the applied move or None."""
        token, board, side, difficulty = self._begin_thinking()

        def on_done(result: SearchResult):
            try:
                move = self._finish_thinking(token, result)
            except Exception as exc:
                logger.exception("Could not apply AI move")
                self._search_failed(token, exc)
                return
            if callback:
                callback(move)

        def on_error(exc: BaseException):
            self._search_failed(token, exc)

        self.engine.start_search(board, side, difficulty, callback=on_done, error_callback=on_error)

    def cancel_ai_move(self) -> bool:
        with self._lock:
            if self._phase is not Phase.THINKING:
                return False
            self._generation += 1
            self._phase = Phase.AWAITING_MOVE
            self.engine.stop()
            logger.info("AI search cancelled")
            return True

    def wait_for_ai(self, timeout: Optional[float] = None) -> bool:
        return self.engine.wait(timeout)

    def undo(self) -> bool:
        """Restore the state before the last move. False when there is nothing to undo."""
        with self._lock:
            if self._phase is Phase.THINKING:
                raise IllegalStateTransitionError("Cannot undo while the AI is thinking")
            if not self._history:
                return False
            entry = self._history.pop()
            self._board = entry.board
            self._side = entry.side_to_move
            self._phase = Phase.AWAITING_MOVE
            self._last_move = self._history[-1].move if self._history else None
            self._last_flips = []
            logger.debug("Undo %s by %s", entry.move, entry.side_to_move.label)
            return True

    # ── Output ──────────────────────────────────────────────

    def snapshot(self) -> dict:
        with self._lock:
            black, white = self._board.score()
            result = self.result()
            winner = None
            if result is not None:
                winner = result.winner.label if result.winner else "draw"
            return {
                "board": self._board.to_rows(),
                "turn": self._side.label,
                "phase": self._phase.value,
                "legal_moves": [list(m) for m in self.legal_moves()],
                "hints": [list(m) for m in self.hint_moves()],
                "score": {"black": black, "white": white},
                "game_over": self.is_terminal,
                "winner": winner,
                "thinking": self.is_thinking,
                "mode": self.mode.value,
                "difficulty": self._difficulty_label(),
                "ai_side": self.ai_side.label,
                "show_hints": self.show_hints,
                "last_move": list(self._last_move) if self._last_move else None,
                "last_flips": [list(m) for m in self._last_flips],
                "history_length": len(self._history),
                "stats": self.stats.as_dict(),
            }

    # ── Internals ───────────────────────────────────────────

    def _difficulty_label(self) -> str:
        return getattr(self.difficulty, "value", str(self.difficulty))

    def _load(self, board: Board, side: Side):
        self._board = board.copy()
        self._history: List[HistoryEntry] = []
        self._last_move: Optional[Move] = None
        self._last_flips: List[Move] = []
        self._phase = Phase.AWAITING_MOVE
        self._settle_turn(side, record=False)

    def _require_turn(self, human: bool):
        if self._phase is Phase.TERMINAL:
            raise IllegalStateTransitionError("Game is over")
        if self._phase is Phase.THINKING:
            raise IllegalStateTransitionError("AI is thinking")
        ai_turn = self.is_ai_side(self._side)
        if human and ai_turn:
            raise IllegalStateTransitionError(f"It is the AI's turn ({self._side.label})")
        if not human and not ai_turn:
            raise IllegalStateTransitionError(f"{self._side.label} is not played by the AI")

    def _apply(self, side: Side, move: Move) -> List[Move]:
        # apply_move raises InvalidMoveError before anything is touched
        new_board = self._board.apply_move(side, move)
        flipped = self._board.flips(side, move)
        self._history.append(HistoryEntry(self._board, self._side, move))
        self._board = new_board
        self._last_move = move
        self._last_flips = flipped
        logger.debug("%s plays %s flipping %d", side.label, move, len(flipped))
        self._settle_turn(side.opposite(), record=True)
        return flipped

    def _settle_turn(self, candidate: Side, record: bool):
        """Hand the turn to `candidate`, passing back or ending the game when it is blocked."""
        if self._board.has_any_move(candidate):
            self._side = candidate
            self._phase = Phase.AWAITING_MOVE
        elif self._board.has_any_move(candidate.opposite()):
            logger.info("%s has no legal move and passes", candidate.label)
            self._side = candidate.opposite()
            self._phase = Phase.AWAITING_MOVE
        else:
            self._side = candidate
            self._phase = Phase.TERMINAL
            result = GameResult.from_board(self._board)
            logger.info("Game over: black %d - white %d", result.black, result.white)
            if record:
                self.stats.record(result, self.mode, self.ai_side)

    def _begin_thinking(self):
        with self._lock:
            self._require_turn(human=False)
            self._phase = Phase.THINKING
            self._generation += 1
            return self._generation, self._board.copy(), self._side, self.difficulty

    def _finish_thinking(self, token: int, result: SearchResult) -> Optional[Move]:
        with self._lock:
            if token != self._generation or self._phase is not Phase.THINKING:
                logger.info("Discarding stale AI result %s", result.move)
                return None
            self._phase = Phase.AWAITING_MOVE
            if result.cancelled:
                logger.info("AI search was stopped before finishing")
                return None
            if result.move is None:
                raise RuntimeError(f"Search returned no move for {self._side.label} with legal moves available")
            self._apply(self._side, result.move)
            return result.move

    def _search_failed(self, token: int, exc: BaseException):
        with self._lock:
            self.last_error = exc
            if token == self._generation and self._phase is Phase.THINKING:
                self._phase = Phase.AWAITING_MOVE
