import click
import time
from trivia import db
from trivia.services.rooms.errors import TriviaError
from trivia.services.rooms.gameplay import SinglePlayerGame


def register_commands(flask_app):

    @flask_app.cli.command('db-reset')
    def db_reset_command():
        """Drops and recreates the room document table."""
        import trivia.models  # noqa: F401
        db.drop_all()
        db.create_all()
        click.echo('Database has been reset!')

    @flask_app.cli.command('purge-rooms')
    @click.option('--older-than-hours', type=int, default=None,
                  help='Delete rooms not updated for this many hours (default: STALE_ROOM_HOURS).')
    def purge_rooms_command(older_than_hours):
        """Deletes abandoned rooms."""
        hours = older_than_hours if older_than_hours is not None else flask_app.config['STALE_ROOM_HOURS']
        try:
            deleted = purge_stale_rooms(flask_app.extensions['trivia'], hours)
        except TriviaError as exc:
            raise click.ClickException(exc.message)
        click.echo(f'Deleted {deleted} room(s) idle for more than {hours}h.')

    @flask_app.cli.command('solo')
    @click.option('--name', default=None, help='Player name.')
    @click.option('--amount', type=int, default=None, help='Number of questions.')
    @click.option('--category', default=None)
    @click.option('--difficulty', type=click.Choice(['easy', 'medium', 'hard']), default=None)
    def solo_command(name, amount, category, difficulty):
        """Plays a single-player game in the terminal."""
        from trivia.services.rooms.documents import generate_player_name
        questions = flask_app.extensions['trivia'].loader.load(amount, category, difficulty)
        game = SinglePlayerGame(name or generate_player_name(), questions)
        play_solo(game, prompt=click.prompt, echo=click.echo)


def purge_stale_rooms(services, hours, now=None):
    """Delete every room document whose last write is older than `hours`."""
    cutoff = (now or time.time()) - hours * 3600
    prefix = services.room_path('')
    paths = services.store.list_paths(prefix, updated_before=cutoff)
    for path in paths:
        services.store.delete(path)
    if paths:
        from flask import current_app
        current_app.logger.info(f"[purge] deleted={len(paths)} cutoff={cutoff}")
    return len(paths)


def play_solo(game, prompt, echo):
    """Drive a SinglePlayerGame with the given prompt/echo callables."""
    total = len(game.room.questions)
    while not game.is_finished:
        question = game.current_question
        echo(f"\nQuestion {game.room.current_question_index + 1}/{total} [{question.category}, {question.difficulty}]")
        echo(question.question)
        for number, option in enumerate(question.answers, start=1):
            echo(f"  {number}. {option}")
        choice = prompt('Your answer', type=click.IntRange(1, len(question.answers)))
        correct = game.submit_answer(question.answers[choice - 1])
        echo('Correct!' if correct else f"Wrong, the answer was: {question.correct_answer}")
        game.advance()
    echo(f"\nGame over! {game.player.name} scored {game.player.score}/{total}.")
    return game.player.score
