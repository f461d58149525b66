"""Exceptions raised by the rules engine and the game session."""

from typing import Optional, Tuple


class ReversiError(Exception):
    pass


class InvalidMoveError(ReversiError, ValueError):
    """Cell is off the board, already occupied, or captures nothing."""

    def __init__(self, move: Tuple[int, int], reason: str, side: Optional[object] = None):
        self.move = move
        self.reason = reason
        self.side = side
        super().__init__(f"Illegal move {move}: {reason}")


class IllegalStateTransitionError(ReversiError):
    """Request does not fit the current phase (wrong actor, game over, AI thinking)."""
