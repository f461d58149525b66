import argparse
from typing import List, Optional

from reversi.config import CONFIG
from reversi.core.utils import configure_logging
from reversi.errors import IllegalStateTransitionError, InvalidMoveError
from reversi.session import GameSession, Mode

HELP = "Enter 'row col' (0-7), u=undo, h=hints, n=new game, q=quit"


def render(session: GameSession) -> str:
    """ASCII board with hint markers, score and whose turn it is."""
    hints = set(session.hint_moves())
    rows = session.board.to_rows()
    lines = ["  " + " ".join(str(c) for c in range(8))]
    for r, row in enumerate(rows):
        cells = ["*" if (r, c) in hints else ch for c, ch in enumerate(row)]
        lines.append(f"{r} " + " ".join(cells))
    black, white = session.score()
    lines.append(f"Black {black} - White {white}")
    if not session.is_terminal:
        who = "AI" if session.is_ai_turn else "You"
        lines.append(f"{session.side_to_move.label.capitalize()} to move ({who})")
    return "\n".join(lines)


def parse_move(text: str) -> Optional[tuple]:
    parts = text.replace(",", " ").split()
    if len(parts) != 2 or not all(p.isdigit() for p in parts):
        return None
    return int(parts[0]), int(parts[1])


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Play Reversi in the terminal.")
    parser.add_argument("--mode", choices=[m.value for m in Mode], default=CONFIG.game.mode)
    parser.add_argument("--difficulty", default=CONFIG.ai.difficulty,
                        help="easy, medium, hard (or 1-3)")
    parser.add_argument("--ai-side", choices=["black", "white"], default=CONFIG.game.ai_side)
    parser.add_argument("--hints", action="store_true", default=CONFIG.game.show_hints)
    return parser


def play(session: GameSession, read=None, write=print) -> None:
    read = read or input
    write(HELP)
    while True:
        write(render(session))
        if session.is_terminal:
            result = session.result()
            if result.is_draw:
                write(f"Draw! {result.black} - {result.white}")
            else:
                write(f"{result.winner.label.capitalize()} wins {result.black} - {result.white}")
            return

        if session.is_ai_turn:
            move = session.request_ai_move()
            write(f"AI plays {move[0]} {move[1]}")
            continue

        try:
            command = read("> ").strip().lower()
        except EOFError:
            return

        if command in ("q", "quit", "exit"):
            return
        if command == "u":
            if not session.undo():
                write("Nothing to undo.")
            # Step back over the AI reply too so the human is to move again
            elif session.is_ai_turn and session.history:
                session.undo()
            continue
        if command == "h":
            write("Hints on." if session.toggle_hints() else "Hints off.")
            continue
        if command == "n":
            session.new_game()
            continue

        move = parse_move(command)
        if move is None:
            write(HELP)
            continue
        try:
            flipped = session.submit_move(*move)
        except (InvalidMoveError, IllegalStateTransitionError) as e:
            write(f"{e}. Try again.")
            continue
        write(f"Flipped {len(flipped)}.")


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    configure_logging(CONFIG.log_level)
    session = GameSession(
        mode=args.mode,
        difficulty=args.difficulty,
        ai_side=args.ai_side,
        show_hints=args.hints,
    )
    play(session)
    stats = session.stats
    print(f"Games {stats.games_played} | you {stats.human_wins} | AI {stats.ai_wins} | draws {stats.draws}")


if __name__ == "__main__":
    main()
