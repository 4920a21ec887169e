import time

from trivia.commands import play_solo, purge_stale_rooms
from trivia.services.rooms import SinglePlayerGame
from trivia.services.rooms.questions import fallback_questions


def test_purge_stale_rooms(services):
    first = services.rooms.create_room('host', 'Alice')
    second = services.rooms.create_room('other', 'Bob')
    assert purge_stale_rooms(services, hours=24) == 0

    a_day_later = time.time() + 25 * 3600
    assert purge_stale_rooms(services, hours=24, now=a_day_later) == 2
    assert services.store.get(services.room_path(first.room_id)) is None
    assert services.store.get(services.room_path(second.room_id)) is None


def test_purge_rooms_command(flask_app, services):
    services.rooms.create_room('host', 'Alice')
    runner = flask_app.test_cli_runner()
    result = runner.invoke(args=['purge-rooms', '--older-than-hours', '0'])
    assert result.exit_code == 0
    assert 'Deleted 1 room(s)' in result.output


def test_play_solo_with_scripted_answers():
    game = SinglePlayerGame('Zed', fallback_questions())
    # option 2 is Paris, option 3 is Leo Tolstoy
    choices = iter([2, 3])
    lines = []
    score = play_solo(game, prompt=lambda text, type=None: next(choices), echo=lines.append)
    assert score == 1
    assert 'Correct!' in lines
    assert 'Wrong, the answer was: William Shakespeare' in lines
    assert lines[-1].endswith('Zed scored 1/2.')


def test_solo_command(flask_app):
    runner = flask_app.test_cli_runner()
    result = runner.invoke(args=['solo', '--name', 'Zed'], input='2\n2\n')
    assert result.exit_code == 0
    assert 'What is the capital of France?' in result.output
    assert 'Zed scored 2/2.' in result.output


def test_db_reset_command(flask_app, services):
    services.rooms.create_room('host', 'Alice')
    result = flask_app.test_cli_runner().invoke(args=['db-reset'])
    assert 'Database has been reset!' in result.output
    assert services.store.list_paths(services.room_path('')) == []


def test_purge_rooms_command_reports_store_failure(flask_app, monkeypatch):
    from sqlalchemy.exc import OperationalError
    from trivia import db

    def failing_query(*args, **kwargs):
        raise OperationalError('SELECT', {}, Exception('database is locked'))

    monkeypatch.setattr(db.session, 'query', failing_query)
    result = flask_app.test_cli_runner().invoke(args=['purge-rooms'])
    assert result.exit_code == 1
    assert 'Network problem. Please try again.' in result.output
