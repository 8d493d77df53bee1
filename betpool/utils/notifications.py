"""
Telegram notifications for BetPool

Messages are HTML formatted for the Telegram Bot API. Delivery is fire and
forget: failures are logged and never propagate to the caller.
"""

import html
import logging
import random

import requests
from flask import current_app

from betpool.utils.scoring import LOSS, WIN, prediction_label

logger = logging.getLogger(__name__)

DELETION_TAUNTS = [
    "🤡 <b>{username}</b> can't even commit to being wrong.",
    "💀 <b>{username}</b> deleted their bet… coward move.",
    "🐔 <b>{username}</b> chickened out, again. Pathetic.",
    "🎭 <b>{username}</b> switched roles from gambler to spectator.",
    "🦥 <b>{username}</b> slow to bet, fast to bail.",
    "🐀 <b>{username}</b> squeaked and bolted.",
    "🩸 <b>{username}</b> aborted mission… tragic.",
]


class TelegramNotifier:
    """Sends messages to a single Telegram chat"""

    def __init__(self, bot_token=None, chat_id=None, api_base_url=None, timeout=10):
        self.bot_token = bot_token
        self.chat_id = chat_id
        self.api_base_url = (api_base_url or "https://api.telegram.org").rstrip("/")
        self.timeout = timeout

    @classmethod
    def from_app(cls, app=None):
        app = app or current_app
        return cls(
            bot_token=app.config.get("TELEGRAM_BOT_TOKEN"),
            chat_id=app.config.get("TELEGRAM_CHAT_ID"),
            api_base_url=app.config.get("TELEGRAM_API_BASE_URL"),
        )

    @property
    def is_configured(self):
        return bool(self.bot_token and self.chat_id)

    def send_message(self, text):
        """Send a message; returns True when Telegram accepted it"""
        if not self.is_configured:
            logger.info("Telegram not configured, skipping notification")
            return False

        url = f"{self.api_base_url}/bot{self.bot_token}/sendMessage"
        try:
            response = requests.post(
                url,
                json={"chat_id": self.chat_id, "text": text, "parse_mode": "HTML"},
                timeout=self.timeout,
            )
            if not response.ok:
                logger.error(f"Telegram notification failed: {response.text}")
                return False

            logger.info("Telegram notification sent")
            return True

        except requests.exceptions.RequestException as e:
            logger.error(f"Telegram notification error: {str(e)}")
            return False


def _escape(value):
    return html.escape(str(value)) if value is not None else ""


def _fixture(result):
    return f"{_escape(result.home_name)} vs {_escape(result.away_name)}"


def format_new_pick(username, result):
    return (
        "🎯 <b>New Pick!</b>\n\n"
        f"<b>{_escape(username)}</b> picked:\n"
        f"{prediction_label(result.prediction_type)}\n\n"
        f"<i>{_fixture(result)}</i>"
    )


def format_all_picks_in(players, fine_amount=5):
    """
    Everyone's pending pick, plus a streak alert for players on a losing run
    that a further loss would turn into a fine.
    """
    message = "🔥 <b>ALL PICKS ARE IN!</b> 🔥\n\n"

    alerts = []
    for player in players:
        pending = player.get_pending_result()
        if pending is not None and pending.has_prediction:
            message += f"<b>{_escape(player.username)}</b>: {prediction_label(pending.prediction_type)}\n"
            message += f"<i>{_fixture(pending)}</i>\n\n"

        completed = [r.outcome for r in player.results if r.is_settled]
        if not completed:
            continue

        last_outcome = completed[-1]
        run = 0
        for outcome in reversed(completed):
            if outcome != last_outcome:
                break
            run += 1

        if last_outcome == LOSS and run >= 2:
            risk = fine_amount if run == 2 else run * fine_amount
            alerts.append(
                f"⚠️ <b>{_escape(player.username)}</b> is on {run} losses in a row - "
                f"risk of £{risk} fine with another loss this week"
            )

    if alerts:
        message += "\n📊 <b>Streak Alert:</b>\n"
        message += "\n".join(alerts)
        message += "\n"

    message += "\nGood luck everyone! 🍀"
    return message


def format_round_summary(round_number, players):
    """Per-player pick, fixture, final score and outcome for a settled round"""
    message = f"📊 <b>Round {round_number} Results</b>\n\n"

    for player in players:
        result = player.get_result_for_round(round_number)
        if result is None or not result.has_prediction:
            continue

        score = ""
        if result.final_score:
            score = f" ({result.final_home_score}-{result.final_away_score})"
        outcome = "✅ Win" if result.outcome == WIN else "❌ Loss"

        message += (
            f"<b>{_escape(player.username)}</b>: {prediction_label(result.prediction_type)} - "
            f"<i>{_fixture(result)}{score}</i>\n{outcome}\n\n"
        )

    message += "Well played! 🏁"
    return message


def format_deletion(username, result=None, chooser=random.choice):
    """A random taunt for a player who withdrew their pick"""
    message = chooser(DELETION_TAUNTS).format(username=_escape(username))
    if result is not None and result.fixture_name:
        message += f"\n\n❌ <i>{_fixture(result)}</i>"
    return message
