"""Deterministic board engine.

Pure functions over `Board` values: seeded mine placement, flood reveal,
win detection and progress. Every function that changes a board returns a
new one and leaves its argument untouched.
"""
import copy
import math
from typing import Iterator, List, Set, Tuple

from minerace.errors import BoardConfigError
from minerace.types import Board, Cell


class SeededRandom:
    """Reproducible integer stream derived from (seed, call counter).

    Two instances built from the same seed yield the same sequence, which
    is all the two-player race needs; the statistical quality is poor.
    """

    def __init__(self, seed: int):
        self.seed = seed
        self.counter = 0

    def randint(self, low: int, high: int) -> int:
        """Return an integer in [low, high]."""
        x = math.sin(self.seed + self.counter) * 10000
        self.counter += 1
        return math.floor((x - math.floor(x)) * (high - low + 1)) + low


def neighbors(row: int, col: int, rows: int, cols: int) -> Iterator[Tuple[int, int]]:
    """Yield the in-bounds cells at Chebyshev distance 1."""
    for dr in (-1, 0, 1):
        for dc in (-1, 0, 1):
            if dr == 0 and dc == 0:
                continue
            new_row = row + dr
            new_col = col + dc
            if 0 <= new_row < rows and 0 <= new_col < cols:
                yield new_row, new_col


def safe_zone(row: int, col: int, rows: int, cols: int) -> Set[Tuple[int, int]]:
    zone = {(row, col)}
    zone.update(neighbors(row, col, rows, cols))
    return zone


def empty_board(rows: int, cols: int, mine_count: int) -> Board:
    """A board with every cell hidden and no mines placed yet."""
    cells = [[Cell() for _ in range(cols)] for _ in range(rows)]
    return Board(cells=cells, rows=rows, cols=cols, mine_count=mine_count)


def count_neighbor_mines(cells: List[List[Cell]], row: int, col: int, rows: int, cols: int) -> int:
    """Count the number of mines in neighboring cells."""
    return sum(1 for r, c in neighbors(row, col, rows, cols) if cells[r][c].is_mine)


def generate_board(seed: int, rows: int, cols: int, mine_count: int,
                   safe_row: int, safe_col: int) -> Board:
    """Place `mine_count` mines outside the safe zone around (safe_row, safe_col).

    Raises BoardConfigError when the mines cannot fit, since rejection
    sampling would otherwise never terminate.
    """
    if not (0 <= safe_row < rows and 0 <= safe_col < cols):
        raise BoardConfigError(f"Safe cell ({safe_row}, {safe_col}) is outside a {rows}x{cols} board")
    zone = safe_zone(safe_row, safe_col, rows, cols)
    if mine_count < 0 or mine_count > rows * cols - len(zone):
        raise BoardConfigError(
            f"Cannot place {mine_count} mines on a {rows}x{cols} board with a safe zone of {len(zone)}"
        )

    board = empty_board(rows, cols, mine_count)
    cells = board.cells
    random = SeededRandom(seed)

    mines_placed = 0
    while mines_placed < mine_count:
        row = random.randint(0, rows - 1)
        col = random.randint(0, cols - 1)
        if cells[row][col].is_mine or (row, col) in zone:
            continue
        cells[row][col].is_mine = True
        mines_placed += 1

    for row in range(rows):
        for col in range(cols):
            if not cells[row][col].is_mine:
                cells[row][col].adjacent_mines = count_neighbor_mines(cells, row, col, rows, cols)

    return board


def first_click_cell(seed: int, rows: int, cols: int) -> Tuple[int, int]:
    """The opening cell both players start from, drawn from the room seed."""
    random = SeededRandom(seed)
    return random.randint(0, rows - 1), random.randint(0, cols - 1)


def copy_board(board: Board) -> Board:
    return copy.deepcopy(board)


def flood_reveal(board: Board, row: int, col: int) -> Board:
    """Reveal (row, col) and spread through zero-count cells.

    Flagged and already revealed cells stop the spread; out-of-bounds
    origins return an unchanged copy.
    """
    new_board = copy_board(board)
    cells = new_board.cells
    stack = [(row, col)]
    visited: Set[Tuple[int, int]] = set()

    while stack:
        r, c = stack.pop()
        if not new_board.in_bounds(r, c) or (r, c) in visited:
            continue
        cell = cells[r][c]
        if cell.is_revealed or cell.is_flagged:
            continue
        visited.add((r, c))
        cell.is_revealed = True

        if cell.adjacent_mines == 0 and not cell.is_mine:
            for dr in (-1, 0, 1):
                for dc in (-1, 0, 1):
                    if dr != 0 or dc != 0:
                        stack.append((r + dr, c + dc))

    return new_board


def reveal_all_mines(board: Board) -> Board:
    new_board = copy_board(board)
    for row in new_board.cells:
        for cell in row:
            if cell.is_mine:
                cell.is_revealed = True
    return new_board


def toggle_flag(board: Board, row: int, col: int) -> Board:
    """Flip the flag on an unrevealed cell; revealed cells are left alone."""
    new_board = copy_board(board)
    cell = new_board.cell(row, col)
    if not cell.is_revealed:
        cell.is_flagged = not cell.is_flagged
    return new_board


def count_revealed_safe(board: Board) -> int:
    return sum(1 for row in board.cells for cell in row if cell.is_revealed and not cell.is_mine)


def count_flags(board: Board) -> int:
    return sum(1 for row in board.cells for cell in row if cell.is_flagged)


def check_win(board: Board) -> bool:
    """True once every non-mine cell is revealed. Flags do not matter."""
    for row in board.cells:
        for cell in row:
            if not cell.is_mine and not cell.is_revealed:
                return False
    return True


def get_player_progress(board: Board, mine_count: int) -> int:
    """Percentage of safe cells revealed, rounded half up."""
    safe_cells = board.rows * board.cols - mine_count
    if safe_cells <= 0:
        return 100
    return math.floor(count_revealed_safe(board) * 100 / safe_cells + 0.5)
