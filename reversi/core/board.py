"""Immutable 8x8 Reversi board with move generation, capture and scoring."""

from enum import IntEnum
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

from reversi.errors import InvalidMoveError

BOARD_SIZE = 8
CELL_COUNT = BOARD_SIZE * BOARD_SIZE

Move = Tuple[int, int]

# 8 compass offsets (drow, dcol)
DIRECTIONS: Tuple[Tuple[int, int], ...] = (
    (-1, -1), (-1, 0), (-1, 1),
    (0, -1),           (0, 1),
    (1, -1),  (1, 0),  (1, 1),
)

CORNERS: Tuple[Move, ...] = ((0, 0), (0, 7), (7, 0), (7, 7))


class Side(IntEnum):
    BLACK = 1   # Black moves first
    WHITE = -1

    def opposite(self) -> "Side":
        return Side.WHITE if self is Side.BLACK else Side.BLACK

    @property
    def symbol(self) -> str:
        return "B" if self is Side.BLACK else "W"

    @property
    def label(self) -> str:
        return self.name.lower()

    @classmethod
    def parse(cls, value) -> "Side":
        """Accept a Side, 1/-1, or a name/symbol like 'black', 'W'."""
        if isinstance(value, Side):
            return value
        if isinstance(value, int):
            return cls(value)
        text = str(value).strip().lower()
        if text in ("black", "b"):
            return cls.BLACK
        if text in ("white", "w"):
            return cls.WHITE
        raise ValueError(f"Unknown side: {value!r}")


Cell = Optional[Side]

_SYMBOLS = {None: ".", Side.BLACK: "B", Side.WHITE: "W"}
_FROM_SYMBOL = {".": None, "B": Side.BLACK, "W": Side.WHITE}


def in_bounds(row: int, col: int) -> bool:
    return 0 <= row < BOARD_SIZE and 0 <= col < BOARD_SIZE


def is_corner(move: Move) -> bool:
    return move in CORNERS


def is_edge(move: Move) -> bool:
    row, col = move
    return row in (0, BOARD_SIZE - 1) or col in (0, BOARD_SIZE - 1)


def is_near_corner(move: Move) -> bool:
    """True for the (up to 3) cells touching a corner, the corner itself excluded."""
    row, col = move
    for cr, cc in CORNERS:
        if abs(row - cr) <= 1 and abs(col - cc) <= 1 and (row, col) != (cr, cc):
            return True
    return False


class Board:
    """Value-type board. Rule operations never mutate; they return new boards."""

    __slots__ = ("_cells",)

    def __init__(self, cells: Optional[Iterable[Cell]] = None):
        cells = tuple(cells) if cells is not None else (None,) * CELL_COUNT
        if len(cells) != CELL_COUNT:
            raise ValueError(f"A board has {CELL_COUNT} cells, got {len(cells)}")
        self._cells: Tuple[Cell, ...] = cells

    @classmethod
    def initial(cls) -> "Board":
        """Standard opening: Black on (3,4)/(4,3), White on (3,3)/(4,4)."""
        cells: List[Cell] = [None] * CELL_COUNT
        cells[3 * BOARD_SIZE + 3] = Side.WHITE
        cells[3 * BOARD_SIZE + 4] = Side.BLACK
        cells[4 * BOARD_SIZE + 3] = Side.BLACK
        cells[4 * BOARD_SIZE + 4] = Side.WHITE
        return cls(cells)

    @classmethod
    def from_rows(cls, rows: Sequence[str]) -> "Board":
        """Build from 8 strings of 'B', 'W' and '.' (spaces ignored)."""
        cleaned = [row.replace(" ", "") for row in rows]
        if len(cleaned) != BOARD_SIZE or any(len(r) != BOARD_SIZE for r in cleaned):
            raise ValueError("Expected 8 rows of 8 cells")
        try:
            return cls(_FROM_SYMBOL[ch.upper()] for row in cleaned for ch in row)
        except KeyError as e:
            raise ValueError(f"Unknown cell symbol: {e.args[0]!r}") from None

    def to_rows(self) -> List[str]:
        return [
            "".join(_SYMBOLS[self.cell(r, c)] for c in range(BOARD_SIZE))
            for r in range(BOARD_SIZE)
        ]

    def cell(self, row: int, col: int) -> Cell:
        return self._cells[row * BOARD_SIZE + col]

    @property
    def cells(self) -> Tuple[Cell, ...]:
        return self._cells

    def copy(self) -> "Board":
        return Board(self._cells)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Board):
            return NotImplemented
        return self._cells == other._cells

    def __hash__(self) -> int:
        return hash(self._cells)

    def __repr__(self) -> str:
        return f"Board({'/'.join(self.to_rows())})"

    def __str__(self) -> str:
        lines = ["  " + " ".join(str(c) for c in range(BOARD_SIZE))]
        for r, row in enumerate(self.to_rows()):
            lines.append(f"{r} " + " ".join(row))
        return "\n".join(lines)

    # ── Counting ────────────────────────────────────────────

    def count(self, side: Side) -> int:
        return sum(1 for cell in self._cells if cell is side)

    def score(self) -> Tuple[int, int]:
        """Return (black, white) disk counts."""
        return self.count(Side.BLACK), self.count(Side.WHITE)

    def empty_count(self) -> int:
        return sum(1 for cell in self._cells if cell is None)

    def is_full(self) -> bool:
        return self.empty_count() == 0

    # ── Rules ───────────────────────────────────────────────

    def capture_run(self, side: Side, move: Move, direction: Tuple[int, int]) -> List[Move]:
        """Opposing cells bracketed from `move` along `direction`, else []."""
        dr, dc = direction
        opponent = side.opposite()
        run: List[Move] = []
        r, c = move[0] + dr, move[1] + dc
        while in_bounds(r, c) and self.cell(r, c) is opponent:
            run.append((r, c))
            r += dr
            c += dc
        # Run must be closed by our own disk; edge or empty invalidates it
        if run and in_bounds(r, c) and self.cell(r, c) is side:
            return run
        return []

    def flips(self, side: Side, move: Move) -> List[Move]:
        flipped: List[Move] = []
        for direction in DIRECTIONS:
            flipped.extend(self.capture_run(side, move, direction))
        return flipped

    def _rejection(self, side: Side, move: Move) -> Optional[str]:
        row, col = move
        if not in_bounds(row, col):
            return "out of range"
        if self.cell(row, col) is not None:
            return "cell is occupied"
        if not any(self.capture_run(side, move, d) for d in DIRECTIONS):
            return "captures nothing"
        return None

    def is_legal(self, side: Side, move: Move) -> bool:
        return self._rejection(side, move) is None

    def iter_legal_moves(self, side: Side) -> Iterator[Move]:
        """Lazily yield legal moves in row-major order."""
        for row in range(BOARD_SIZE):
            for col in range(BOARD_SIZE):
                if self.cell(row, col) is None and self.is_legal(side, (row, col)):
                    yield (row, col)

    def legal_moves(self, side: Side) -> List[Move]:
        return list(self.iter_legal_moves(side))

    def has_any_move(self, side: Side) -> bool:
        return next(self.iter_legal_moves(side), None) is not None

    def apply_move(self, side: Side, move: Move) -> "Board":
        """Return the board after `side` plays `move`. Raises InvalidMoveError."""
        reason = self._rejection(side, move)
        if reason is not None:
            raise InvalidMoveError(move, reason, side)
        cells = list(self._cells)
        for r, c in [move] + self.flips(side, move):
            cells[r * BOARD_SIZE + c] = side
        return Board(cells)

    def is_terminal(self) -> bool:
        return not self.has_any_move(Side.BLACK) and not self.has_any_move(Side.WHITE)
