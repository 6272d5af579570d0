"""Convert engine and room objects to JSON-serializable payloads."""
import logging
from datetime import datetime

from minerace.types import Board, Cell, GameState, Player, Room

logger = logging.getLogger(__name__)


def serialize_datetime(obj):
    """Helper to serialize datetime objects."""
    if isinstance(obj, datetime):
        return obj.isoformat()
    return obj


def serialize_cell(cell: Cell) -> dict:
    return {
        'isMine': cell.is_mine,
        'isRevealed': cell.is_revealed,
        'isFlagged': cell.is_flagged,
        'adjacentMines': cell.adjacent_mines,
    }


def serialize_board(board: Board | None) -> list:
    """Rows of cells, the shape the browser client renders directly."""
    if board is None:
        return []
    return [[serialize_cell(cell) for cell in row] for row in board.cells]


def serialize_player(player: Player) -> dict:
    return {
        'id': player.id,
        'name': player.name,
        'ready': player.ready,
        'isAdmin': player.is_admin,
        'wantsToPlayAgain': player.wants_to_play_again,
    }


def serialize_room(room: Room) -> dict:
    return {
        'id': room.id,
        'difficulty': room.difficulty.value,
        'players': [serialize_player(p) for p in room.players],
        'gameState': room.phase.value,
        'seed': room.seed,
        'gameStartTime': room.game_start_time,
        'winner': room.winner,
    }


def serialize_game_state(game_state: GameState | None) -> dict | None:
    """Convert a single-player game state to a JSON-serializable dict."""
    if not game_state:
        return None

    board = game_state.board
    status = game_state.status
    # Queries during workflow start-up can hand back a plain string.
    status_str = str(getattr(status, 'value', status) or 'NOT_STARTED').upper()
    logger.debug(f"Serializing game {game_state.id} with status {status_str}")

    return {
        'id': game_state.id,
        'difficulty': game_state.difficulty,
        'board': {
            'cells': serialize_board(board),
            'rows': board.rows if board else 0,
            'cols': board.cols if board else 0,
            'mineCount': board.mine_count if board else 0,
        },
        'status': status_str,
        'startTime': serialize_datetime(game_state.start_time),
        'endTime': serialize_datetime(game_state.end_time),
        'flagsUsed': game_state.flags_used,
        'cellsRevealed': game_state.cells_revealed,
    }
