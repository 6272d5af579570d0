"""Temporal workflows for single-player Minesweeper."""
import asyncio
from datetime import timedelta
from temporalio import workflow
from temporalio.exceptions import ApplicationError

with workflow.unsafe.imports_passed_through():
    from minerace.types import Difficulty, GameConfig, GameState, GameStatus, MoveRequest
    from minerace.activities import FINISHED_STATUSES, create_game_board, reveal_cell, toggle_flag

ACTIVITY_TIMEOUT = timedelta(seconds=60)
INACTIVITY_TIMEOUT = timedelta(hours=24)


@workflow.defn
class MinesweeperWorkflow:
    """Workflow that manages a single solo game."""

    def __init__(self):
        self.game_id: str = ""
        self.game_state: GameState | None = None
        self.last_activity_time: float = 0
        self.should_close: bool = False

    @workflow.run
    async def run(self, game_id: str, initial_config: GameConfig) -> GameState:
        """Main workflow entry point. Returns the closed game."""
        # Store game_id immediately so queries can access it during initialization
        self.game_id = game_id
        self.last_activity_time = workflow.time()
        self.game_state = await self._new_game(initial_config)

        while not self.should_close:
            remaining = INACTIVITY_TIMEOUT.total_seconds() - self._idle_for()
            if remaining <= 0:
                workflow.logger.info(f"Game {game_id} auto-closing due to 24 hours of inactivity")
                break
            # Moves push last_activity_time forward; the deadline is recomputed on wake-up.
            try:
                await workflow.wait_condition(lambda: self.should_close, timeout=remaining)
            except asyncio.TimeoutError:
                pass

        self.game_state.status = GameStatus.CLOSED
        self.game_state.end_time = workflow.now()
        workflow.logger.info(f"Minesweeper workflow {game_id} completed")
        return self.game_state

    def _idle_for(self) -> float:
        return workflow.time() - self.last_activity_time

    async def _new_game(self, config: GameConfig) -> GameState:
        board = await workflow.execute_activity(
            create_game_board,
            config,
            start_to_close_timeout=ACTIVITY_TIMEOUT,
        )
        return GameState(
            id=self.game_id,
            board=board,
            status=GameStatus.NOT_STARTED,
            difficulty=Difficulty.parse(config.difficulty).value,
            seed=workflow.random().randrange(1_000_000),
        )

    @workflow.update
    async def make_move_update(self, move_request: MoveRequest) -> GameState:
        """Update to make a move and return the updated state."""
        if not self.game_state:
            raise ApplicationError("Game state not initialized")

        if self.game_state.status in FINISHED_STATUSES:
            return self.game_state

        self.last_activity_time = workflow.time()
        row, col, action = move_request.row, move_request.col, move_request.action

        if action == 'reveal':
            self.game_state = await workflow.execute_activity(
                reveal_cell,
                args=[self.game_state, row, col],
                start_to_close_timeout=ACTIVITY_TIMEOUT,
            )
        elif action == 'flag':
            self.game_state = await workflow.execute_activity(
                toggle_flag,
                args=[self.game_state, row, col],
                start_to_close_timeout=ACTIVITY_TIMEOUT,
            )
        else:
            raise ApplicationError(f"Unknown action: {action}", non_retryable=True)

        return self.game_state

    @make_move_update.validator
    def validate_move(self, move_request: MoveRequest) -> None:
        if move_request.action not in ('reveal', 'flag'):
            raise ValueError(f"Unknown action: {move_request.action}")

    @workflow.update
    async def restart_game_update(self, config: GameConfig) -> GameState:
        """Update to restart the game and return the new state."""
        if self.game_state and self.game_state.status == GameStatus.CLOSED:
            return self.game_state  # Cannot restart closed games

        self.last_activity_time = workflow.time()
        self.game_state = await self._new_game(config)
        return self.game_state

    @workflow.signal
    def close_game_signal(self) -> None:
        """Signal to close the game."""
        self.should_close = True

    @workflow.query
    def get_game_state_query(self) -> GameState | None:
        """Query to get the current game state; None while the board is being built."""
        return self.game_state
