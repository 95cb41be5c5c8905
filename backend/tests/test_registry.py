import pytest

from bingo_relay.directory import RoomDirectory
from bingo_relay.errors import DuplicateConnectionError
from bingo_relay.registry import ConnectionRegistry


def test_register_and_lookup():
    registry = ConnectionRegistry()
    session = registry.register('sid-1')
    assert registry.lookup('sid-1') is session
    assert session.connected
    assert session.current_game_id is None
    assert len(registry) == 1


def test_register_twice_fails():
    registry = ConnectionRegistry()
    registry.register('sid-1')
    with pytest.raises(DuplicateConnectionError):
        registry.register('sid-1')


def test_lookup_missing_returns_none():
    assert ConnectionRegistry().lookup('nope') is None


def test_update_session_is_idempotent():
    registry = ConnectionRegistry()
    registry.register('sid-1')
    registry.update_session('sid-1', 'Almaz', '0911223344', 'G1')
    session = registry.update_session('sid-1', 'Almaz', '0911223344', 'G1')
    assert session.display_name == 'Almaz'
    assert session.contact == '0911223344'
    assert session.current_game_id == 'G1'
    assert len(registry) == 1


def test_mark_disconnected_and_unregister():
    registry = ConnectionRegistry()
    registry.register('sid-1')
    registry.mark_disconnected('sid-1')
    assert not registry.is_live('sid-1')
    assert registry.unregister('sid-1').connection_id == 'sid-1'
    assert registry.unregister('sid-1') is None
    assert len(registry) == 0


def test_get_or_create_reuses_record():
    directory = RoomDirectory(clock=lambda: 42.0)
    game = directory.get_or_create('G1', '90ball')
    assert game.game_type == '90ball'
    assert game.created_at == 42.0
    assert directory.get_or_create('G1', '75ball') is game
    assert len(directory) == 1


def test_get_or_create_uses_default_type():
    directory = RoomDirectory(default_game_type='75ball')
    assert directory.get_or_create('G1').game_type == '75ball'


def test_create_mints_unique_ids():
    directory = RoomDirectory()
    a = directory.create(settings={'maxPlayers': 10})
    b = directory.create('90ball')
    assert a.game_id != b.game_id
    assert a.settings == {'maxPlayers': 10}
    assert b.game_type == '90ball'
    assert a.game_id.startswith('game-')


def test_get_missing_and_remove_idempotent():
    directory = RoomDirectory()
    assert directory.get('G1') is None
    directory.get_or_create('G1')
    assert directory.remove('G1') is not None
    assert directory.remove('G1') is None
    assert 'G1' not in directory


def test_all_is_a_snapshot():
    directory = RoomDirectory()
    directory.get_or_create('G1')
    snapshot = directory.all()
    directory.get_or_create('G2')
    directory.remove('G1')
    assert [g.game_id for g in snapshot] == ['G1']
    assert [g.game_id for g in directory.all()] == ['G2']
