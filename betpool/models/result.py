from datetime import datetime, timezone

from betpool import db
from betpool.utils.scoring import LOSS, PENDING, WIN


class Result(db.Model):
    __tablename__ = "results"

    id = db.Column(db.Integer, primary_key=True)
    player_id = db.Column(db.Integer, db.ForeignKey("players.id"), nullable=False)

    # 1-based round number, shared by every player's result for that round
    round = db.Column(db.Integer, nullable=False)

    outcome = db.Column(db.String(1), nullable=False, default=PENDING)
    emoji = db.Column(db.String(64))

    # Prediction details (empty for results imported without one)
    prediction_type = db.Column(db.String(10))
    home_name = db.Column(db.String(120))
    away_name = db.Column(db.String(120))
    start_time_utc = db.Column(db.DateTime(timezone=True))
    event_id = db.Column(db.String(64), index=True)

    # Filled in on settlement
    final_home_score = db.Column(db.Integer)
    final_away_score = db.Column(db.Integer)
    odds = db.Column(db.Float)

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        db.UniqueConstraint("player_id", "round", name="unique_player_round"),
        db.Index("idx_result_outcome", "outcome"),
        db.Index("idx_result_round", "round"),
        db.CheckConstraint("outcome IN ('W', 'L', 'P')", name="valid_outcome"),
    )

    def __repr__(self):
        return f"<Result player_id={self.player_id} round={self.round} outcome={self.outcome}>"

    @property
    def is_pending(self):
        return self.outcome == PENDING

    @property
    def is_settled(self):
        return self.outcome in (WIN, LOSS)

    @property
    def has_prediction(self):
        return bool(self.prediction_type)

    @property
    def kickoff(self):
        """Kickoff time as an aware UTC datetime"""
        if self.start_time_utc is None:
            return None
        # SQLite hands back naive datetimes; they were stored as UTC
        if self.start_time_utc.tzinfo is None:
            return self.start_time_utc.replace(tzinfo=timezone.utc)
        return self.start_time_utc.astimezone(timezone.utc)

    @property
    def is_settleable(self):
        """Pending with enough match data to be settled"""
        return self.is_pending and bool(self.event_id) and self.kickoff is not None

    @property
    def final_score(self):
        if self.final_home_score is None or self.final_away_score is None:
            return None
        return {"home": self.final_home_score, "away": self.final_away_score}

    @property
    def fixture_name(self):
        if not self.home_name and not self.away_name:
            return None
        return f"{self.home_name} vs {self.away_name}"

    def settle(self, outcome, home, away):
        """Record the outcome and final score of a pending prediction"""
        self.outcome = outcome
        self.final_home_score = home
        self.final_away_score = away

    @staticmethod
    def find_pending_for_event(event_id):
        """The pending result already claiming a fixture, if any"""
        if not event_id:
            return None
        return Result.query.filter_by(outcome=PENDING, event_id=str(event_id)).first()

    def prediction_dict(self):
        if not self.has_prediction:
            return None

        kickoff = self.kickoff
        return {
            "type": self.prediction_type,
            "match": {
                "homeName": self.home_name,
                "awayName": self.away_name,
                "startDateTimeUtc": (
                    kickoff.isoformat().replace("+00:00", "Z") if kickoff else None
                ),
                "eventId": self.event_id,
            },
            "finalScore": self.final_score,
            "odds": self.odds,
        }

    def to_dict(self):
        """Convert result to dictionary for API responses"""
        return {
            "round": self.round,
            "outcome": self.outcome,
            "emoji": self.emoji,
            "prediction": self.prediction_dict(),
        }
