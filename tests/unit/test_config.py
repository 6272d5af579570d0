"""
Tests for environment-driven configuration and payload serialization.
"""
from minerace.config import ServerConfig
from minerace.registry import RoomRegistry
from minerace.serialization import serialize_board, serialize_room
from conftest import board_from_layout


class TestServerConfig:
    """Test loading settings from the environment."""

    def test_defaults(self, monkeypatch) -> None:
        """Without variables the documented defaults apply."""
        for name in ("HOST", "PORT", "CORS_ORIGINS", "COUNTDOWN_SECONDS", "COUNTDOWN_INTERVAL",
                     "SOLO_ENABLED", "TEMPORAL_TASK_QUEUE", "LOG_LEVEL"):
            monkeypatch.delenv(name, raising=False)
        config = ServerConfig.from_env()
        assert config.port == 3001
        assert config.cors_origins == ["http://localhost:3000"]
        assert config.countdown_seconds == 5
        assert config.solo_enabled is True
        assert config.task_queue == "minesweeper-task-queue"

    def test_overrides(self, monkeypatch) -> None:
        """Variables should override each field."""
        monkeypatch.setenv("PORT", "8080")
        monkeypatch.setenv("CORS_ORIGINS", "http://a.test, http://b.test")
        monkeypatch.setenv("COUNTDOWN_SECONDS", "3")
        monkeypatch.setenv("SOLO_ENABLED", "no")
        monkeypatch.setenv("LOG_LEVEL", "debug")
        config = ServerConfig.from_env()
        assert config.port == 8080
        assert config.cors_origins == ["http://a.test", "http://b.test"]
        assert config.countdown_seconds == 3
        assert config.solo_enabled is False
        assert config.log_level == "DEBUG"

    def test_invalid_numbers_fall_back(self, monkeypatch) -> None:
        """Garbage numbers should not crash start-up."""
        monkeypatch.setenv("PORT", "abc")
        monkeypatch.setenv("COUNTDOWN_INTERVAL", "soon")
        config = ServerConfig.from_env()
        assert config.port == 3001
        assert config.countdown_interval == 1.0


class TestSerialization:
    """Test the wire shapes sent to clients."""

    def test_board_uses_client_field_names(self) -> None:
        """Cells should carry the camelCase names the client reads."""
        rows = serialize_board(board_from_layout(["*.", ".."]))
        assert rows[0][0] == {'isMine': True, 'isRevealed': False, 'isFlagged': False, 'adjacentMines': 0}
        assert rows[1][1]['adjacentMines'] == 1

    def test_room_payload(self) -> None:
        """Rooms should expose gameState and player flags."""
        room = RoomRegistry().create_room('easy', 'Alice', 'a')
        payload = serialize_room(room)
        assert payload['id'] == room.id
        assert payload['gameState'] == 'waiting'
        assert payload['difficulty'] == 'easy'
        assert payload['players'] == [{
            'id': 'a', 'name': 'Alice', 'ready': False, 'isAdmin': True, 'wantsToPlayAgain': False,
        }]
        assert payload['winner'] is None
