#!/usr/bin/env python3
"""
BetPool Management CLI

This script provides command-line management functionality for the BetPool application.
"""

import logging
from datetime import timedelta

import click
from flask import current_app
from flask.cli import with_appcontext
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from betpool import create_app, db
from betpool.models import Player
from betpool.services.prediction_service import current_round, get_leaderboard
from betpool.services.scheduler_service import scheduler_service
from betpool.services.settlement_service import SettlementService, latest_pending_kickoff
from betpool.utils.legacy_import import import_file
from betpool.utils.timezone_utils import format_kickoff

app = create_app()


@click.group()
def cli():
    """BetPool Management CLI"""
    pass


# Player Management Commands
@cli.group()
def player():
    """Player management commands"""
    pass


@player.command()
@click.argument("username")
@click.option("--position", type=int, help="Turn order position (default: last)")
@with_appcontext
def add(username, position):
    """Add a player to the roster"""
    try:
        if Player.get_by_username(username):
            click.echo(f"Player {username} already exists!")
            return

        Player.create_player(username, position=position)
        db.session.commit()
        click.echo(f"✅ Added player {username}")

    except IntegrityError as e:
        db.session.rollback()
        click.echo(f"❌ Player {username} already exists!")
        logging.error(f"Player creation failed - integrity error: {e}")
    except SQLAlchemyError as e:
        db.session.rollback()
        click.echo(f"❌ Database error adding player: {str(e)}")
        logging.error(f"Player creation failed - SQL error: {e}")


@player.command()
@with_appcontext
def seed():
    """Create any missing players from the configured roster"""
    created = 0
    for position, username in enumerate(current_app.config["ROSTER"]):
        if Player.get_by_username(username):
            continue
        Player.create_player(username, position=position)
        created += 1

    try:
        db.session.commit()
        click.echo(f"✅ Seeded {created} players")
    except SQLAlchemyError as e:
        db.session.rollback()
        click.echo(f"❌ Database error seeding roster: {str(e)}")


@player.command(name="list")
@with_appcontext
def list_players():
    """List players in turn order"""
    players = Player.get_roster()

    if not players:
        click.echo("No players found.")
        return

    click.echo("Players:")
    for p in players:
        pending = "⏳" if p.get_pending_result() else "  "
        click.echo(f"  {pending} {p.position}. {p.username} ({len(p.results)} rounds)")


# Settlement Commands
@cli.command()
@with_appcontext
def settle():
    """Settle pending predictions that have final scores"""
    report = SettlementService().settle()

    if report["success"]:
        click.echo(f"✅ {report['message']}")
        if report["rounds"]:
            click.echo(f"   Rounds: {', '.join(str(r) for r in report['rounds'])}")
    else:
        click.echo(f"❌ {report['message']}: {report.get('error')}")


@cli.command(name="recalc-emojis")
@with_appcontext
def recalc_emojis():
    """Recompute streak and fine emojis for every player"""
    try:
        count = SettlementService().recalculate_emojis()
        click.echo(f"✅ Recalculated emojis for {count} players")
    except SQLAlchemyError as e:
        click.echo(f"❌ Database error recalculating emojis: {str(e)}")


@cli.command()
@with_appcontext
def leaderboard():
    """Print the leaderboard"""
    rows = get_leaderboard()

    if not rows:
        click.echo("No players found.")
        return

    click.echo(f"{'Player':<18}{'P':>4}{'W':>4}{'L':>4}{'Win%':>7}  {'Form':<7}{'Fines':>7}")
    click.echo("-" * 55)
    for row in rows:
        click.echo(
            f"{row['user']:<18}{row['total']:>4}{row['wins']:>4}{row['losses']:>4}"
            f"{row['winPct']:>7}  {row['form']:<7}{'£' + str(row['fineTotal']):>7}"
        )


@cli.command(name="import-json")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option("--replace", is_flag=True, help="Overwrite existing players' history")
@with_appcontext
def import_json(path, replace):
    """Import players and results from a legacy picks.json file"""
    try:
        stats = import_file(path, replace=replace)
        click.echo(
            f"✅ Imported {stats['results']} results "
            f"({stats['created']} new players, {stats['updated']} replaced, "
            f"{stats['skipped']} skipped)"
        )
    except (ValueError, SQLAlchemyError) as e:
        click.echo(f"❌ Import failed: {str(e)}")
        logging.error(f"Legacy import failed: {e}")


# Scheduler Commands
@cli.group()
def scheduler():
    """Auto-settlement scheduler commands"""
    pass


@scheduler.command(name="status")
@with_appcontext
def scheduler_status():
    """Show when pending predictions will be auto-settled"""
    latest = latest_pending_kickoff(Player.get_roster())
    if latest is None:
        click.echo("No pending predictions; nothing scheduled")
    else:
        delay = timedelta(minutes=current_app.config["AUTO_SETTLE_DELAY_MINUTES"])
        click.echo(f"⏰ Latest kickoff: {format_kickoff(latest)}")
        click.echo(f"⏰ Auto-settle due: {format_kickoff(latest + delay)}")

    status = scheduler_service.get_status()
    click.echo(f"Scheduler running: {status['is_running']}")
    for job in status["jobs"]:
        click.echo(f"  {job['id']}: next run {job['next_run']}")


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
    except Exception as e:
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
    except Exception as e:
        click.echo(f"❌ Error resetting database: {str(e)}")


@cli.command()
@with_appcontext
def status():
    """Show application status"""
    click.echo("⚽ BetPool Application Status")
    click.echo("=" * 40)

    try:
        db.session.execute(text("SELECT 1"))
        click.echo("✅ Database: Connected")
    except Exception as e:
        click.echo(f"❌ Database: Error - {str(e)}")

    players = Player.get_roster()
    click.echo(f"👥 Players: {len(players)}")
    click.echo(f"📅 Current Round: {current_round(players)}")

    pending = [p.username for p in players if p.get_pending_result()]
    click.echo(f"⏳ Pending picks: {len(pending)}/{len(players)}")


if __name__ == "__main__":
    with app.app_context():
        cli()
