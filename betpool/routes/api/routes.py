import logging
from functools import wraps

from flask import current_app, jsonify, request, session

from betpool import limiter
from betpool.models import Player
from betpool.routes.api import bp
from betpool.services.errors import BetPoolError, NotFoundError, ValidationError
from betpool.services.prediction_service import (
    PredictionService,
    get_bet_status,
    get_leaderboard,
    record_bet_status,
)
from betpool.services.scheduler_service import scheduler_service
from betpool.services.settlement_service import RESULTS_UNAVAILABLE, SettlementService
from betpool.utils.data_sync import SportDataClient

logger = logging.getLogger(__name__)


def add_security_headers(f):
    """Add security headers to API responses"""

    @wraps(f)
    def decorated_function(*args, **kwargs):
        response = f(*args, **kwargs)
        if isinstance(response, tuple):
            response = current_app.make_response(response)
        if hasattr(response, "headers"):
            response.headers["Cache-Control"] = (
                "no-store, no-cache, must-revalidate, max-age=0"
            )
        return response

    return decorated_function


def handle_service_errors(f):
    """Turn service exceptions into JSON error responses"""

    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except BetPoolError as e:
            if e.status_code >= 500:
                logger.error(f"{request.method} {request.path}: {e.message}")
            else:
                logger.info(f"{request.method} {request.path} rejected: {e.message}")
            return jsonify(e.to_dict()), e.status_code

    return decorated_function


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Expected a JSON object")
    return data


def _refresh_auto_settlement():
    try:
        scheduler_service.schedule_auto_settlement()
    except Exception as e:
        logger.error(f"Could not reschedule auto-settle: {e}")


@bp.route("/fixtures")
def fixtures():
    """Upcoming fixtures across every configured competition"""
    fixture_list, statuses = SportDataClient.from_app().fetch_fixtures()

    # League status is only useful when nothing came back
    if not fixture_list:
        return jsonify({"fixtures": [], "leagueStatus": statuses})

    return jsonify(fixture_list)


@bp.route("/results")
def results():
    """Raw results, served from the results cache when warm"""
    records, _ = SportDataClient.from_app().fetch_results()
    return jsonify(records)


@bp.route("/results", methods=["POST"])
@limiter.limit("10 per minute")
@add_security_headers
def settle_results():
    """Settle pending predictions that have a final score"""
    report = SettlementService().settle()
    _refresh_auto_settlement()

    if report["success"]:
        return jsonify(report)

    status = 502 if report["message"] == RESULTS_UNAVAILABLE else 500
    return jsonify(report), status


@bp.route("/picks")
@add_security_headers
def picks():
    """Leaderboard rows"""
    return jsonify(get_leaderboard())


@bp.route("/picks/raw")
@add_security_headers
def picks_raw():
    """Every player with their full result history"""
    players = Player.get_roster()
    _refresh_auto_settlement()
    return jsonify([player.to_dict() for player in players])


@bp.route("/predictions", methods=["POST"])
@limiter.limit("30 per minute")
@add_security_headers
@handle_service_errors
def submit_prediction():
    data = _json_body()
    result = PredictionService().submit(data.get("username"), data.get("prediction"))
    _refresh_auto_settlement()

    return jsonify({"success": True, "result": result.to_dict()}), 201


@bp.route("/predictions", methods=["DELETE"])
@limiter.limit("30 per minute")
@add_security_headers
@handle_service_errors
def delete_prediction():
    data = _json_body()
    PredictionService().delete(data.get("username"), data.get("round"))
    _refresh_auto_settlement()

    return jsonify({"success": True})


@bp.route("/odds", methods=["POST"])
@limiter.limit("30 per minute")
@add_security_headers
@handle_service_errors
def update_odds():
    data = _json_body()
    result = PredictionService().set_odds(
        data.get("username"), data.get("round"), data.get("odds")
    )
    return jsonify({"success": True, "result": result.to_dict()})


@bp.route("/bet-status")
@add_security_headers
def bet_status():
    return jsonify(get_bet_status())


@bp.route("/bet-status", methods=["POST"])
@limiter.limit("30 per minute")
@add_security_headers
@handle_service_errors
def update_bet_status():
    data = _json_body()
    status = record_bet_status(data.get("username"), data.get("round"))
    return jsonify({"success": True, "status": status.to_dict()})


@bp.route("/player")
@add_security_headers
def selected_player():
    """The player this browser has chosen to act as"""
    return jsonify({"username": session.get("player")})


@bp.route("/player", methods=["POST"])
@add_security_headers
@handle_service_errors
def select_player():
    """Remember the chosen player in the session cookie"""
    data = _json_body()
    username = data.get("username")
    if not username:
        raise ValidationError("No username provided")

    if Player.get_by_username(username) is None:
        raise NotFoundError(f"Player {username} not found")

    session["player"] = username
    session.permanent = True

    return jsonify({"success": True, "username": username})
