"""Temporal activities for the single-player game."""
import copy
from datetime import datetime, timezone

from temporalio import activity

from minerace import board as engine
from minerace.types import Board, GameConfig, GameState, GameStatus, get_difficulty_settings

FINISHED_STATUSES = (GameStatus.WON, GameStatus.LOST, GameStatus.CLOSED)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _arm_board(unarmed: Board, seed: int, row: int, col: int) -> Board:
    """Lay mines around a safe first click, keeping flags placed before it."""
    armed = engine.generate_board(seed, unarmed.rows, unarmed.cols, unarmed.mine_count, row, col)
    for r in range(unarmed.rows):
        for c in range(unarmed.cols):
            armed.cells[r][c].is_flagged = unarmed.cells[r][c].is_flagged
    return armed


@activity.defn
async def create_game_board(config: GameConfig) -> Board:
    """Create a hidden board; mines are laid on the first reveal."""
    settings = get_difficulty_settings(config.difficulty)
    return engine.empty_board(settings.rows, settings.cols, settings.mines)


@activity.defn
async def reveal_cell(game_state: GameState, row: int, col: int) -> GameState:
    """Reveal a cell and potentially cascade to neighbors."""
    board = game_state.board
    if game_state.status in FINISHED_STATUSES or not board.in_bounds(row, col):
        return game_state
    cell = board.cell(row, col)
    if cell.is_revealed or cell.is_flagged:
        return game_state

    new_game_state = copy.deepcopy(game_state)

    if new_game_state.status == GameStatus.NOT_STARTED:
        new_game_state.board = _arm_board(board, game_state.seed, row, col)
        new_game_state.status = GameStatus.IN_PROGRESS
        new_game_state.start_time = _now()
        activity.logger.info(f"Game {game_state.id} armed around ({row}, {col})")

    if new_game_state.board.cell(row, col).is_mine:
        new_game_state.board = engine.reveal_all_mines(new_game_state.board)
        new_game_state.status = GameStatus.LOST
        new_game_state.end_time = _now()
        return new_game_state

    new_game_state.board = engine.flood_reveal(new_game_state.board, row, col)
    new_game_state.cells_revealed = engine.count_revealed_safe(new_game_state.board)

    if engine.check_win(new_game_state.board):
        new_game_state.status = GameStatus.WON
        new_game_state.end_time = _now()

    return new_game_state


@activity.defn
async def toggle_flag(game_state: GameState, row: int, col: int) -> GameState:
    """Toggle flag on a cell."""
    board = game_state.board
    if game_state.status in FINISHED_STATUSES or not board.in_bounds(row, col):
        return game_state
    if board.cell(row, col).is_revealed:
        return game_state

    new_game_state = copy.deepcopy(game_state)
    new_game_state.board = engine.toggle_flag(board, row, col)
    new_game_state.flags_used = engine.count_flags(new_game_state.board)
    return new_game_state
