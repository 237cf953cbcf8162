from datetime import timedelta

import pytest

from confidence_pool import create_app, db
from confidence_pool.models import Dependent, Game, Participant, Pool
from confidence_pool.utils.timezone_utils import utc_now_naive

DEFAULT_PASSWORD = "secret123"


def kickoff(days):
    """Naive UTC kickoff relative to now"""
    return utc_now_naive().replace(microsecond=0) + timedelta(days=days)


@pytest.fixture
def app():
    app = create_app("testing")
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def app_ctx(app):
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_participant(app):
    """Create a participant and return their id"""

    def _make(email, display_name=None, password=DEFAULT_PASSWORD):
        with app.app_context():
            participant = Participant(username=email.split("@")[0], email=email)
            participant.set_display_name(display_name or email.split("@")[0].title())
            participant.set_password(password)
            db.session.add(participant)
            db.session.commit()
            return participant.id

    return _make


@pytest.fixture
def make_dependent(app):
    def _make(participant_id, display_name):
        with app.app_context():
            dependent = Dependent(participant_id=participant_id, display_name=display_name)
            db.session.add(dependent)
            db.session.commit()
            return dependent.id

    return _make


@pytest.fixture
def make_pool(app):
    """Create the active pool with an admin and extra members; returns its id"""

    def _make(admin_id, members=(), total_games=13, name="NFL Playoffs"):
        with app.app_context():
            admin = db.session.get(Participant, admin_id)
            pool = Pool.create_pool(
                name,
                admin,
                start_date=kickoff(-1),
                end_date=kickoff(40),
                total_games=total_games,
            )
            for member_id in members:
                pool.add_member(db.session.get(Participant, member_id))
            db.session.commit()
            return pool.id

    return _make


@pytest.fixture
def make_game(app):
    def _make(
        pool_id,
        home_team,
        away_team,
        round="Wild Card",
        days=3,
        is_complete=False,
        winner=None,
    ):
        with app.app_context():
            game = Game(
                pool_id=pool_id,
                round=round,
                home_team=home_team,
                away_team=away_team,
                game_time=kickoff(days),
                is_complete=is_complete,
                winner=winner,
            )
            db.session.add(game)
            db.session.commit()
            return game.id

    return _make


@pytest.fixture
def login(app):
    """Return a fresh test client logged in as the given email"""

    def _login(email, password=DEFAULT_PASSWORD):
        client = app.test_client()
        response = client.post(
            "/api/auth/login", json={"login": email, "password": password}
        )
        assert response.status_code == 200, response.get_json()
        return client

    return _login


@pytest.fixture
def wild_card(make_participant, make_pool, make_game):
    """
    A pool run by admin@example.com with alice and bob as members and
    three open wild card games.
    """
    admin_id = make_participant("admin@example.com", "Admin")
    alice_id = make_participant("alice@example.com", "Alice")
    bob_id = make_participant("bob@example.com", "Bob")
    pool_id = make_pool(admin_id, members=(alice_id, bob_id))

    games = [
        make_game(pool_id, "Baltimore Ravens", "Los Angeles Chargers"),
        make_game(pool_id, "Buffalo Bills", "Pittsburgh Steelers"),
        make_game(pool_id, "Philadelphia Eagles", "Green Bay Packers"),
    ]

    return {
        "admin_id": admin_id,
        "alice_id": alice_id,
        "bob_id": bob_id,
        "pool_id": pool_id,
        "games": games,
    }


def pick(game_id, team, points, pool_id, round="Wild Card"):
    return {
        "game_id": game_id,
        "selected_team": team,
        "confidence_points": points,
        "pool_id": pool_id,
        "round": round,
    }
