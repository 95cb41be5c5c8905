from bingo_relay.models import (
    FINISHED,
    WAITING,
    GameRecord,
    Player,
    Winner,
    generate_game_id,
    isoformat,
)


def make_player(cid, name=None, **data):
    payload = dict(data)
    if name:
        payload['name'] = name
    return Player.from_payload(cid, payload, now=100.0)


def test_new_record_starts_waiting_and_empty():
    game = GameRecord(game_id='G1', created_at=50.0)
    assert game.status == WAITING
    assert game.is_empty
    assert game.called_numbers == []
    assert game.host is None
    assert game.last_activity == 50.0


def test_roster_counts_distinct_connections():
    game = GameRecord(game_id='G1')
    for cid in ('a', 'b', 'c'):
        assert game.add_or_update_player(make_player(cid, cid.upper()))
    game.remove_player('b')
    assert [p.connection_id for p in game.players] == ['a', 'c']
    assert len(game.players) == 2


def test_rejoin_updates_without_duplicating():
    game = GameRecord(game_id='G1')
    game.add_or_update_player(Player.from_payload('a', {'name': 'Abebe', 'boardId': 3}, now=10.0))
    is_new = game.add_or_update_player(
        Player.from_payload('a', {'name': 'Abebe K', 'stake': 50}, board_id=3, now=20.0), now=20.0)
    assert is_new is False
    assert len(game.players) == 1
    player = game.players[0]
    assert player.name == 'Abebe K'
    assert player.stake == 50
    assert player.board_id == 3
    assert player.joined_at == 10.0
    assert player.last_seen == 20.0


def test_player_defaults():
    player = Player.from_payload('a', {}, now=1.0)
    assert player.name == 'Anonymous'
    assert player.board_id == 1
    assert player.stake == 25


def test_zero_board_and_stake_are_kept():
    player = Player.from_payload('a', {'boardId': 0, 'stake': 0}, board_id=3, stake=50, now=1.0)
    assert player.board_id == 0
    assert player.stake == 0


def test_first_player_becomes_host():
    game = GameRecord(game_id='G1')
    game.add_or_update_player(make_player('a'))
    game.add_or_update_player(make_player('b'))
    assert game.host == 'a'


def test_host_passes_to_next_player_when_host_leaves():
    game = GameRecord(game_id='G1')
    for cid in ('a', 'b', 'c'):
        game.add_or_update_player(make_player(cid))
    removed = game.remove_player('a')
    assert removed.connection_id == 'a'
    assert game.host == 'b'
    game.remove_player('b')
    game.remove_player('c')
    assert game.host is None
    assert game.is_empty


def test_remove_unknown_player_returns_none():
    game = GameRecord(game_id='G1')
    assert game.remove_player('ghost') is None


def test_host_calls_are_kept_in_order():
    game = GameRecord(game_id='G1')
    game.add_or_update_player(make_player('host'))
    for n in (12, 7, 44, 3):
        assert game.append_called_number('host', n) is not None
    assert game.called_values() == [12, 7, 44, 3]
    assert game.called_numbers[0].display_text == '12'


def test_non_host_call_is_ignored():
    game = GameRecord(game_id='G1')
    game.add_or_update_player(make_player('host'))
    game.add_or_update_player(make_player('guest'))
    before = game.last_activity
    assert game.append_called_number('guest', 9, now=before + 5) is None
    assert game.called_numbers == []
    assert game.last_activity == before


def test_anyone_may_call_without_host():
    game = GameRecord(game_id='G1')
    call = game.append_called_number('anyone', 5, 'B-5', now=3.0)
    assert call.display_text == 'B-5'
    assert call.called_by == 'anyone'
    assert game.last_activity == 3.0


def test_history_is_not_truncated_but_recent_view_is_bounded():
    game = GameRecord(game_id='G1')
    for n in range(1, 151):
        game.append_called_number('x', n)
    assert len(game.called_numbers) == 150
    assert game.called_values(10) == list(range(141, 151))


def test_second_winner_overwrites_first():
    game = GameRecord(game_id='G1')
    game.announce_winner(Winner('a', 'Almaz', 'row', 100, won_at=10.0))
    game.announce_winner(Winner('b', 'Bekele', 'full-house', 500, won_at=20.0))
    assert game.status == FINISHED
    assert game.winner.player_name == 'Bekele'
    assert game.last_activity == 20.0


def test_summary_truncates_host():
    game = GameRecord(game_id='G1', created_at=0.0)
    game.add_or_update_player(make_player('abcdefghijkl', 'A'))
    summary = game.to_summary()
    assert summary['host'] == 'abcdefgh...'
    assert summary['players'] == 1
    assert summary['status'] == 'waiting'
    assert summary['winner'] is None


def test_state_snapshot_lists_players_and_numbers():
    game = GameRecord(game_id='G1', game_type='90ball')
    game.add_or_update_player(make_player('a', 'Almaz', boardId=4, stake=50))
    game.append_called_number('a', 17)
    state = game.to_state()
    assert state['gameId'] == 'G1'
    assert state['gameType'] == '90ball'
    assert state['calledNumbers'] == [17]
    assert state['players'][0]['name'] == 'Almaz'
    assert state['players'][0]['boardId'] == 4
    assert state['players'][0]['stake'] == 50


def test_isoformat_matches_browser_format():
    assert isoformat(0) == '1970-01-01T00:00:00.000Z'
    assert isoformat(None) is None


def test_generate_game_id_shape():
    game_id = generate_game_id(now=1.5)
    prefix, millis, suffix = game_id.split('-')
    assert prefix == 'game'
    assert millis == '1500'
    assert len(suffix) == 9
