#!/usr/bin/env python3
"""
Confidence Pool Management CLI

This script provides command-line management functionality for the confidence pool application.
"""

import logging
import secrets
from datetime import datetime

import click
from flask.cli import with_appcontext
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from confidence_pool import create_app, db
from confidence_pool.errors import PoolError
from confidence_pool.models import ROUNDS, Game, Participant, Pick, Pool
from confidence_pool.services.game_results import record_game_result, rescore_pool
from confidence_pool.utils.cache_utils import CacheManager

app = create_app()

DATETIME_FORMATS = ["%Y-%m-%d", "%Y-%m-%dT%H:%M", "%Y-%m-%d %H:%M"]

SEED_GAMES = [
    ("AFC Wild Card Game 1", "Baltimore Ravens", "Los Angeles Chargers", "2026-01-10 21:30", "ESPN"),
    ("AFC Wild Card Game 2", "Buffalo Bills", "Pittsburgh Steelers", "2026-01-11 01:15", "CBS"),
    ("AFC Wild Card Game 3", "Houston Texans", "Denver Broncos", "2026-01-11 18:00", "CBS"),
    ("NFC Wild Card Game 1", "Philadelphia Eagles", "Green Bay Packers", "2026-01-11 21:30", "FOX"),
    ("NFC Wild Card Game 2", "Detroit Lions", "Washington Commanders", "2026-01-12 01:15", "NBC"),
    ("NFC Wild Card Game 3", "Los Angeles Rams", "Minnesota Vikings", "2026-01-13 01:15", "ESPN"),
]


def _find_participant(login):
    participant = Participant.find_by_login(login)
    if not participant:
        raise click.ClickException(f"Participant '{login}' not found")
    return participant


def _find_pool(pool_id):
    pool = db.session.get(Pool, pool_id)
    if not pool:
        raise click.ClickException(f"Pool {pool_id} not found")
    return pool


@click.group()
def cli():
    """Confidence Pool Management CLI"""
    pass


# Pool Management Commands
@cli.group()
def pool():
    """Pool management commands"""
    pass


@pool.command()
@click.argument("name")
@click.option("--admin", "admin_login", required=True, help="Admin email or username")
@click.option(
    "--start-date",
    type=click.DateTime(formats=DATETIME_FORMATS),
    required=True,
    help="Pool start (YYYY-MM-DD)",
)
@click.option(
    "--end-date",
    type=click.DateTime(formats=DATETIME_FORMATS),
    required=True,
    help="Pool end (YYYY-MM-DD)",
)
@click.option("--total-games", type=int, default=None, help="Games in the pool")
@click.option("--entry-fee", type=float, default=None, help="Entry fee")
@with_appcontext
def create(name, admin_login, start_date, end_date, total_games, entry_fee):
    """Create a pool and make it the active one"""
    try:
        admin = _find_participant(admin_login)
        new_pool = Pool.create_pool(
            name, admin, start_date, end_date, total_games=total_games, entry_fee=entry_fee
        )
        db.session.commit()
        click.echo(
            f"✅ Created pool '{new_pool.name}' (id {new_pool.id}) with "
            f"{new_pool.total_games} games; it is now the active pool"
        )
    except PoolError as e:
        db.session.rollback()
        click.echo(f"❌ {e.message}: {e.details}")
    except SQLAlchemyError as e:
        db.session.rollback()
        click.echo(f"❌ Database error creating pool: {str(e)}")
        logging.error(f"Pool creation failed - SQL error: {e}")


@pool.command()
@click.argument("pool_id", type=int)
@with_appcontext
def activate(pool_id):
    """Make a pool the active one"""
    try:
        target = _find_pool(pool_id)
        target.activate()
        db.session.commit()
        click.echo(f"✅ Activated pool '{target.name}'")
    except SQLAlchemyError as e:
        db.session.rollback()
        click.echo(f"❌ Database error activating pool: {str(e)}")
        logging.error(f"Pool activation failed - SQL error: {e}")


@pool.command("list")
@with_appcontext
def list_pools():
    """List all pools"""
    pools = Pool.query.order_by(Pool.created_at.desc()).all()

    if not pools:
        click.echo("No pools found.")
        return

    click.echo("Pools:")
    for p in pools:
        status = "🟢 ACTIVE" if p.is_active else "⚪ Inactive"
        click.echo(
            f"  [{p.id}] {p.name}: {status} - {p.get_member_count()} participants, "
            f"{p.games.count()}/{p.total_games} games"
        )


# Game Commands
@cli.group()
def game():
    """Game management commands"""
    pass


@game.command()
@click.argument("pool_id", type=int)
@click.argument("away_team")
@click.argument("home_team")
@click.option("--round", "round_name", type=click.Choice(ROUNDS), default=ROUNDS[0])
@click.option(
    "--time",
    "game_time",
    type=click.DateTime(formats=DATETIME_FORMATS),
    required=True,
    help="Kickoff in UTC",
)
@click.option("--title", default=None, help="Game title")
@click.option("--tv", default=None, help="TV network")
@with_appcontext
def add(pool_id, away_team, home_team, round_name, game_time, title, tv):
    """Add a game to a pool"""
    try:
        target = _find_pool(pool_id)
        new_game = Game(
            pool_id=target.id,
            round=round_name,
            game_title=title,
            home_team=home_team,
            away_team=away_team,
            game_time=game_time,
            tv_network=tv,
        )
        db.session.add(new_game)
        db.session.commit()
        click.echo(f"✅ Added {away_team} @ {home_team} (game {new_game.id})")
    except IntegrityError as e:
        db.session.rollback()
        click.echo(f"❌ Invalid game: {str(e.orig)}")
    except SQLAlchemyError as e:
        db.session.rollback()
        click.echo(f"❌ Database error adding game: {str(e)}")
        logging.error(f"Game creation failed - SQL error: {e}")


@game.command()
@click.argument("game_id", type=int)
@click.option("--winner", default=None, help="Winning team")
@click.option("--reopen", is_flag=True, help="Clear the result instead")
@with_appcontext
def result(game_id, winner, reopen):
    """Record a game's winner (or reopen it)"""
    target = db.session.get(Game, game_id)
    if not target:
        raise click.ClickException(f"Game {game_id} not found")

    try:
        event = record_game_result(target, winner, is_complete=not reopen)
    except PoolError as e:
        click.echo(f"❌ {e.message}: {e.details}")
        return

    if event.is_complete:
        click.echo(f"✅ {event.winner} recorded as winner of game {game_id}")
    else:
        click.echo(f"✅ Game {game_id} reopened")


# Participant Commands
@cli.group()
def participant():
    """Participant management commands"""
    pass


@participant.command("create")
@click.argument("email")
@click.argument("display_name")
@click.option("--password", default=None, help="Password (random if omitted)")
@click.option("--pool-id", type=int, default=None, help="Add to this pool")
@with_appcontext
def create_participant(email, display_name, password, pool_id):
    """Create a participant"""
    if Participant.query.filter_by(email=email).first():
        click.echo(f"❌ {email} already registered")
        return

    password = password or secrets.token_urlsafe(9)
    new_participant = Participant(
        username=Participant.username_from_email(email), email=email
    )
    new_participant.set_display_name(display_name)
    new_participant.set_password(password)
    db.session.add(new_participant)
    db.session.flush()

    if pool_id:
        _find_pool(pool_id).add_member(new_participant)

    db.session.commit()
    click.echo(
        f"✅ Created {new_participant.username} (id {new_participant.id}), password: {password}"
    )


@participant.command("list")
@click.option("--pool-id", type=int, default=None, help="Only members of this pool")
@with_appcontext
def list_participants(pool_id):
    """List participants and their dependents"""
    if pool_id:
        participants = _find_pool(pool_id).get_participants()
    else:
        participants = Participant.query.order_by(Participant.id).all()

    if not participants:
        click.echo("No participants found.")
        return

    for p in participants:
        click.echo(f"  [{p.id}] {p.full_name} <{p.email or '-'}> ({p.username})")
        for d in p.dependents:
            click.echo(f"      └ [{d.id}] {d.display_name}")


# Pick Commands
@cli.group()
def picks():
    """Pick maintenance commands"""
    pass


@picks.command()
@click.option("--pool-id", type=int, default=None, help="Only this pool")
@with_appcontext
def rescore(pool_id):
    """Recompute pick correctness for every completed game"""
    try:
        count = rescore_pool(pool_id)
    except PoolError as e:
        click.echo(f"❌ {e.message}")
        return
    click.echo(f"✅ Rescored picks for {count} completed games")


# Database Commands
@cli.group()
def db_cmd():
    """Database commands"""
    pass


@db_cmd.command()
@with_appcontext
def init_db():
    """Initialize database tables"""
    try:
        db.create_all()
        click.echo("✅ Database tables created successfully!")
    except SQLAlchemyError as e:
        click.echo(f"❌ Error initializing database: {str(e)}")


@db_cmd.command()
@with_appcontext
def reset():
    """⚠️  DANGER: Drop and recreate all tables"""
    if not click.confirm("This will DELETE ALL DATA. Are you sure?"):
        click.echo("Cancelled.")
        return

    try:
        db.drop_all()
        db.create_all()
        click.echo("✅ Database reset successfully!")
    except SQLAlchemyError as e:
        click.echo(f"❌ Error resetting database: {str(e)}")


@db_cmd.command()
@click.option("--admin-email", default="admin@example.com", help="Seed admin email")
@click.option("--admin-password", default="changeme", help="Seed admin password")
@with_appcontext
def seed(admin_email, admin_password):
    """Create a demo pool with the wild card round"""
    admin = Participant.query.filter_by(email=admin_email).first()
    if not admin:
        admin = Participant(
            username=Participant.username_from_email(admin_email), email=admin_email
        )
        admin.set_display_name("Pool Admin")
        admin.set_password(admin_password)
        db.session.add(admin)
        db.session.flush()

    demo_pool = Pool.create_pool(
        "NFL Playoff Pool",
        admin,
        start_date=datetime(2026, 1, 10),
        end_date=datetime(2026, 2, 9),
        total_games=13,
    )

    for title, home, away, kickoff, tv in SEED_GAMES:
        db.session.add(
            Game(
                pool_id=demo_pool.id,
                round="Wild Card",
                game_title=title,
                home_team=home,
                away_team=away,
                game_time=datetime.strptime(kickoff, "%Y-%m-%d %H:%M"),
                tv_network=tv,
            )
        )

    db.session.commit()
    click.echo(
        f"✅ Seeded pool '{demo_pool.name}' (id {demo_pool.id}) with "
        f"{len(SEED_GAMES)} wild card games; admin login {admin_email}"
    )


@cli.command("env")
@click.option("--db-type", type=click.Choice(["sqlite", "postgresql"]), default="sqlite")
@click.option("--redis-url", default="redis://localhost:6379/0", help="Cache Redis URL")
def env_template(db_type, redis_url):
    """Print a .env block with freshly generated secrets"""
    click.echo("# Confidence pool settings - keep this file out of version control")
    click.echo(f"SECRET_KEY={secrets.token_urlsafe(32)}")
    click.echo(f"WTF_CSRF_SECRET_KEY={secrets.token_urlsafe(32)}")
    click.echo(f"DB_TYPE={db_type}")
    if db_type == "postgresql":
        click.echo("DB_HOST=localhost")
        click.echo("DB_NAME=confidence_pool_db")
        click.echo("DB_USER=pool_user")
        click.echo(f"DB_PASSWORD={secrets.token_urlsafe(16)}")
    click.echo(f"CACHE_REDIS_URL={redis_url}")


@cli.command()
@with_appcontext
def status():
    """Show application status"""
    click.echo("🏈 Confidence Pool Status")
    click.echo("=" * 40)

    try:
        db.session.execute(text("SELECT 1"))
        click.echo("✅ Database: Connected")
    except SQLAlchemyError as e:
        click.echo(f"❌ Database: Error - {str(e)}")
        return

    active = Pool.get_active()
    if active:
        click.echo(f"✅ Active Pool: {active.name} ({active.round})")
        total = active.games.count()
        final = active.games.filter_by(is_complete=True).count()
        click.echo(f"🏈 Games: {final}/{total} completed ({active.total_games} planned)")
        click.echo(f"👥 Participants: {active.get_member_count()}")
        click.echo(f"📝 Picks: {Pick.query.filter_by(pool_id=active.id).count()}")
    else:
        click.echo("⚠️  Active Pool: None")

    click.echo(f"👤 Participants (all pools): {Participant.query.count()}")

    cache_stats = CacheManager.get_cache_stats()
    click.echo(
        f"🗄️  Cache: {cache_stats['type']} "
        f"(standings cached {cache_stats['standings_timeout']}s)"
    )


if __name__ == "__main__":
    with app.app_context():
        cli()
