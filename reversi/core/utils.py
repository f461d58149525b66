import logging

logger = logging.getLogger("reversi.search")


def configure_logging(level: str = "INFO"):
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def format_move(move) -> str:
    return "-" if move is None else f"{move[0]},{move[1]}"


def log_search_info(result):
    nps = int(result.nodes / result.elapsed) if result.elapsed > 0 else 0
    status = "cancelled" if result.cancelled else ("timeout" if result.timed_out else "done")
    logger.info(
        "info difficulty %s score %s nodes %d nps %d time %d move %s %s",
        result.difficulty, result.score, result.nodes, nps,
        int(result.elapsed * 1000), format_move(result.move), status,
    )
