"""Flask server for Minerace: Socket.IO rooms plus the solo-game REST API."""
import asyncio
import logging
import uuid
from datetime import datetime

from flask import Blueprint, Flask, current_app, jsonify, request
from flask_cors import CORS
from flask_socketio import SocketIO
from temporalio.client import Client, WorkflowUpdateFailedError
from temporalio.service import RPCError, RPCStatusCode

from minerace.client_provider import get_temporal_client
from minerace.config import ServerConfig
from minerace.gateway import Gateway, SocketIOTransport
from minerace.registry import RoomRegistry
from minerace.serialization import serialize_game_state
from minerace.session import SessionManager
from minerace.types import DIFFICULTY_SETTINGS, Difficulty, GameConfig, MoveRequest
from minerace.workflows import MinesweeperWorkflow

logger = logging.getLogger(__name__)

api = Blueprint('api', __name__, url_prefix='/api')


class SoloUnavailable(Exception):
    pass


def _config() -> ServerConfig:
    return current_app.config['MINERACE']


def _temporal_client() -> Client:
    client = current_app.extensions.get('temporal_client')
    if not _config().solo_enabled or client is None:
        raise SoloUnavailable()
    return client


def _difficulty_from(data) -> str | None:
    value = (data or {}).get('difficulty', Difficulty.MEDIUM.value)
    if value not in {d.value for d in Difficulty}:
        return None
    return value


async def query_with_retry(handle, max_retries=5):
    """Query with retry logic for workflow initialization."""
    for i in range(max_retries):
        try:
            result = await handle.query(MinesweeperWorkflow.get_game_state_query)
        except RPCError as error:
            if error.status == RPCStatusCode.NOT_FOUND or i == max_retries - 1:
                raise
            result = None
        if result is not None:
            return result
        if i < max_retries - 1:
            logger.info(f"Query not ready yet, retrying in {(i + 1) * 100}ms...")
            await asyncio.sleep((i + 1) * 0.1)
    return None


@api.errorhandler(SoloUnavailable)
def solo_unavailable(error):
    return jsonify({'error': 'Single-player mode is unavailable'}), 503


@api.errorhandler(RPCError)
def temporal_rpc_error(error):
    if error.status == RPCStatusCode.NOT_FOUND:
        return jsonify({'error': 'Game not found'}), 404
    logger.error(f"Temporal request failed: {error}")
    return jsonify({'error': 'Game service error'}), 500


@api.errorhandler(WorkflowUpdateFailedError)
def update_failed(error):
    logger.error(f"Move rejected by game workflow: {error.cause}")
    return jsonify({'error': 'Invalid move request'}), 400


@api.route('/games', methods=['POST'])
def create_game():
    """Create a new solo game."""
    client = _temporal_client()
    difficulty = _difficulty_from(request.get_json(silent=True))
    if difficulty is None:
        return jsonify({'error': 'Invalid difficulty'}), 400

    game_id = str(uuid.uuid4())
    task_queue = _config().task_queue

    async def start_workflow():
        handle = await client.start_workflow(
            MinesweeperWorkflow.run,
            args=[game_id, GameConfig(difficulty=difficulty)],
            id=game_id,
            task_queue=task_queue,
        )
        return await query_with_retry(handle)

    game_state = asyncio.run(start_workflow())
    logger.info(f"Solo game {game_id} created ({difficulty})")
    return jsonify({'gameState': serialize_game_state(game_state)})


@api.route('/games/<game_id>', methods=['GET'])
def get_game_state(game_id):
    client = _temporal_client()

    async def query_game():
        handle = client.get_workflow_handle_for(MinesweeperWorkflow.run, game_id)
        return await query_with_retry(handle)

    game_state = asyncio.run(query_game())
    return jsonify({'gameState': serialize_game_state(game_state)})


@api.route('/games/<game_id>/moves', methods=['POST'])
def make_move(game_id):
    client = _temporal_client()
    data = request.get_json(silent=True) or {}

    row, col = data.get('row'), data.get('col')
    if not isinstance(row, int) or not isinstance(col, int) or data.get('action') not in ('reveal', 'flag'):
        return jsonify({'error': 'Invalid move request'}), 400
    move_request = MoveRequest(row=row, col=col, action=data['action'])

    async def execute_move():
        handle = client.get_workflow_handle_for(MinesweeperWorkflow.run, game_id)
        return await handle.execute_update(MinesweeperWorkflow.make_move_update, move_request)

    game_state = asyncio.run(execute_move())
    return jsonify({'gameState': serialize_game_state(game_state)})


@api.route('/games/<game_id>/restart', methods=['POST'])
def restart_game(game_id):
    client = _temporal_client()
    difficulty = _difficulty_from(request.get_json(silent=True))
    if difficulty is None:
        return jsonify({'error': 'Invalid difficulty'}), 400

    async def execute_restart():
        handle = client.get_workflow_handle_for(MinesweeperWorkflow.run, game_id)
        return await handle.execute_update(MinesweeperWorkflow.restart_game_update,
                                           GameConfig(difficulty=difficulty))

    game_state = asyncio.run(execute_restart())
    return jsonify({'gameState': serialize_game_state(game_state)})


@api.route('/games/<game_id>', methods=['DELETE'])
def close_game(game_id):
    client = _temporal_client()

    async def signal_close():
        handle = client.get_workflow_handle_for(MinesweeperWorkflow.run, game_id)
        await handle.signal(MinesweeperWorkflow.close_game_signal)

    asyncio.run(signal_close())
    return jsonify({'closed': game_id})


@api.route('/difficulties', methods=['GET'])
def list_difficulties():
    return jsonify({
        difficulty.value: {'rows': s.rows, 'cols': s.cols, 'mines': s.mines}
        for difficulty, s in DIFFICULTY_SETTINGS.items()
    })


@api.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    session = current_app.extensions['minerace_session']
    return jsonify({
        'status': 'OK',
        'timestamp': datetime.now().isoformat(),
        'rooms': len(session.registry),
    })


def create_app(config: ServerConfig | None = None, temporal_client: Client | None = None):
    """Build the Flask app and its Socket.IO server. Returns (app, socketio)."""
    config = config or ServerConfig.from_env()

    app = Flask(__name__)
    app.config['MINERACE'] = config
    CORS(app, origins=config.cors_origins)
    socketio = SocketIO(app, cors_allowed_origins=config.cors_origins)

    session = SessionManager(
        RoomRegistry(),
        SocketIOTransport(socketio),
        countdown_seconds=config.countdown_seconds,
        countdown_interval=config.countdown_interval,
    )
    Gateway(socketio, session).register()

    app.extensions['minerace_session'] = session
    app.extensions['temporal_client'] = temporal_client
    app.register_blueprint(api)
    return app, socketio


async def initialize_client() -> Client | None:
    """Connect to Temporal; solo mode stays off if it is unreachable."""
    try:
        client = await get_temporal_client()
    except RuntimeError as error:
        logger.warning(f"Temporal unavailable, single-player mode disabled: {error}")
        return None
    logger.info("Connected to Temporal server")
    return client


def main():
    """Start the server."""
    config = ServerConfig.from_env()
    logging.basicConfig(level=config.log_level)

    temporal_client = asyncio.run(initialize_client()) if config.solo_enabled else None
    app, socketio = create_app(config, temporal_client)

    logger.info(f"Minerace server running on http://{config.host}:{config.port}")
    if temporal_client is not None:
        logger.info("Make sure to start the Temporal worker in another terminal: python -m minerace.worker")
    socketio.run(app, host=config.host, port=config.port, allow_unsafe_werkzeug=True)


if __name__ == "__main__":
    main()
