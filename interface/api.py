"""FastAPI REST interface for the game session."""

from typing import List, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from reversi.config import CONFIG
from reversi.core.board import Board, Side
from reversi.core.search import Difficulty
from reversi.core.utils import configure_logging
from reversi.errors import IllegalStateTransitionError, InvalidMoveError
from reversi.session import GameSession, Mode

configure_logging(CONFIG.log_level)

app = FastAPI(title=CONFIG.ui.engine_name, version="1.0.0")

# Shared session (the session serialises access itself).
session = GameSession()


class NewGameRequest(BaseModel):
    mode: Optional[Mode] = None
    auto_reply: bool = True  # let the AI open when it plays Black


class ModeRequest(BaseModel):
    mode: Mode


class DifficultyRequest(BaseModel):
    difficulty: Difficulty


class MoveRequest(BaseModel):
    row: int
    col: int
    auto_reply: bool = True  # let the AI answer while it is its turn


class PositionRequest(BaseModel):
    board: List[str]  # 8 rows of B/W/.
    turn: str = "black"


def _play_ai_turns() -> List[List[int]]:
    # The AI may move several times in a row when the human has to pass
    played = []
    while session.is_ai_turn:
        move = session.request_ai_move()
        if move is None:
            break
        played.append(list(move))
    return played


@app.get("/state")
def get_state():
    return session.snapshot()


@app.post("/new")
def new_game(req: NewGameRequest = NewGameRequest()):
    session.new_game(mode=req.mode)
    ai_moves = _play_ai_turns() if req.auto_reply else []
    snap = session.snapshot()
    snap["ai_moves"] = ai_moves
    return snap


@app.post("/mode")
def set_mode(req: ModeRequest):
    session.set_mode(req.mode)
    return session.snapshot()


@app.post("/difficulty")
def set_difficulty(req: DifficultyRequest):
    session.set_difficulty(req.difficulty)
    return session.snapshot()


@app.post("/position")
def set_position(req: PositionRequest):
    try:
        board = Board.from_rows(req.board)
        side = Side.parse(req.turn)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid position: {e}")
    session.load_position(board, side)
    return session.snapshot()


@app.post("/move")
def make_move(req: MoveRequest):
    try:
        flipped = session.submit_move(req.row, req.col)
    except InvalidMoveError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except IllegalStateTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))

    ai_moves = _play_ai_turns() if req.auto_reply else []
    snap = session.snapshot()
    snap["move"] = [req.row, req.col]
    snap["flipped"] = [list(m) for m in flipped]
    snap["ai_moves"] = ai_moves
    return snap


@app.post("/ai-move")
def ai_move():
    try:
        move = session.request_ai_move()
    except IllegalStateTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    snap = session.snapshot()
    snap["ai_move"] = list(move) if move else None
    return snap


@app.post("/undo")
def undo():
    try:
        undone = session.undo()
    except IllegalStateTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    snap = session.snapshot()
    snap["undone"] = undone
    return snap


@app.post("/hints")
def toggle_hints():
    session.toggle_hints()
    return session.snapshot()


@app.post("/cancel")
def cancel():
    cancelled = session.cancel_ai_move()
    snap = session.snapshot()
    snap["cancelled"] = cancelled
    return snap
