"""
Tests for the single-player game workflow.

Each test runs against temporalio's time-skipping test server with a worker
hosting the workflow and its three activities, one event loop per test.
"""
import asyncio
import uuid
from datetime import timedelta

import pytest
from temporalio.client import WorkflowUpdateFailedError
from temporalio.testing import WorkflowEnvironment
from temporalio.worker import Worker

from minerace import activities
from minerace.server import query_with_retry
from minerace.types import GameConfig, GameStatus, MoveRequest
from minerace.workflows import INACTIVITY_TIMEOUT, MinesweeperWorkflow

TASK_QUEUE = "minesweeper-test-queue"


def run_scenario(scenario):
    """Start a test server and worker, then run `scenario(env)` against them."""
    async def main():
        async with await WorkflowEnvironment.start_time_skipping() as env:
            async with Worker(
                env.client,
                task_queue=TASK_QUEUE,
                workflows=[MinesweeperWorkflow],
                activities=[
                    activities.create_game_board,
                    activities.reveal_cell,
                    activities.toggle_flag,
                ],
            ):
                return await scenario(env)
    return asyncio.run(main())


async def start_game(env, difficulty='easy'):
    game_id = str(uuid.uuid4())
    handle = await env.client.start_workflow(
        MinesweeperWorkflow.run,
        args=[game_id, GameConfig(difficulty=difficulty)],
        id=game_id,
        task_queue=TASK_QUEUE,
    )
    state = await query_with_retry(handle)
    assert state is not None
    return handle, state


# ============================================================================
# New Game Tests
# ============================================================================

class TestNewGame:
    """Test workflow start-up."""

    def test_starts_unarmed(self) -> None:
        """A new game should wait for its first click with a hidden board."""
        async def scenario(env):
            _, state = await start_game(env, 'medium')
            return state

        state = run_scenario(scenario)
        assert state.status == GameStatus.NOT_STARTED
        assert state.difficulty == 'medium'
        assert (state.board.rows, state.board.cols, state.board.mine_count) == (16, 16, 40)
        assert not any(cell.is_mine for row in state.board.cells for cell in row)


# ============================================================================
# Move Tests
# ============================================================================

class TestMoves:
    """Test moves through the update handler."""

    def test_first_reveal_is_safe_and_starts_clock(self) -> None:
        """The first reveal should arm the board around the clicked cell."""
        async def scenario(env):
            handle, _ = await start_game(env)
            return await handle.execute_update(
                MinesweeperWorkflow.make_move_update, MoveRequest(row=3, col=3, action='reveal'))

        state = run_scenario(scenario)
        assert state.status in (GameStatus.IN_PROGRESS, GameStatus.WON)
        assert state.board.cells[3][3].is_revealed is True
        assert state.board.cells[3][3].is_mine is False
        assert sum(cell.is_mine for row in state.board.cells for cell in row) == 10
        assert state.start_time is not None
        assert state.cells_revealed >= 1

    def test_flag_counts(self) -> None:
        """Flagging should be reflected in the queried state."""
        async def scenario(env):
            handle, _ = await start_game(env)
            await handle.execute_update(
                MinesweeperWorkflow.make_move_update, MoveRequest(row=0, col=0, action='flag'))
            return await handle.query(MinesweeperWorkflow.get_game_state_query)

        state = run_scenario(scenario)
        assert state.flags_used == 1
        assert state.board.cells[0][0].is_flagged is True
        assert state.status == GameStatus.NOT_STARTED

    def test_unknown_action_is_rejected(self) -> None:
        """The validator should turn away actions other than reveal and flag."""
        async def scenario(env):
            handle, _ = await start_game(env)
            with pytest.raises(WorkflowUpdateFailedError):
                await handle.execute_update(
                    MinesweeperWorkflow.make_move_update, MoveRequest(row=0, col=0, action='dig'))
            return await handle.query(MinesweeperWorkflow.get_game_state_query)

        state = run_scenario(scenario)
        assert state.status == GameStatus.NOT_STARTED
        assert state.flags_used == 0


# ============================================================================
# Restart and Close Tests
# ============================================================================

class TestLifecycle:
    """Test restart, close and inactivity."""

    def test_restart_changes_difficulty_and_seed(self) -> None:
        """Restart should build a fresh board with a new seed."""
        async def scenario(env):
            handle, before = await start_game(env)
            await handle.execute_update(
                MinesweeperWorkflow.make_move_update, MoveRequest(row=4, col=4, action='reveal'))
            after = await handle.execute_update(
                MinesweeperWorkflow.restart_game_update, GameConfig(difficulty='hard'))
            return before, after

        before, after = run_scenario(scenario)
        assert after.status == GameStatus.NOT_STARTED
        assert after.difficulty == 'hard'
        assert (after.board.rows, after.board.cols, after.board.mine_count) == (20, 20, 100)
        assert after.seed != before.seed
        assert after.cells_revealed == 0
        assert not any(cell.is_revealed for row in after.board.cells for cell in row)

    def test_close_signal_closes_game(self) -> None:
        """The close signal should end the workflow with a closed game."""
        async def scenario(env):
            handle, _ = await start_game(env)
            await handle.signal(MinesweeperWorkflow.close_game_signal)
            return await handle.result()

        state = run_scenario(scenario)
        assert state.status == GameStatus.CLOSED
        assert state.end_time is not None

    def test_idle_game_auto_closes(self) -> None:
        """A game nobody touches should close after the inactivity timeout."""
        async def scenario(env):
            started = await env.get_current_time()
            handle, _ = await start_game(env)
            state = await handle.result()
            return state, await env.get_current_time() - started

        state, elapsed = run_scenario(scenario)
        assert state.status == GameStatus.CLOSED
        assert elapsed >= INACTIVITY_TIMEOUT

    def test_move_pushes_back_auto_close(self) -> None:
        """Activity should restart the inactivity clock."""
        async def scenario(env):
            started = await env.get_current_time()
            handle, _ = await start_game(env)
            await env.sleep(timedelta(hours=20))
            await handle.execute_update(
                MinesweeperWorkflow.make_move_update, MoveRequest(row=0, col=0, action='flag'))
            state = await handle.result()
            return state, await env.get_current_time() - started

        state, elapsed = run_scenario(scenario)
        assert state.status == GameStatus.CLOSED
        assert state.flags_used == 1
        assert elapsed >= timedelta(hours=44)
