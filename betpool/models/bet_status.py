from datetime import datetime, timezone

from betpool import db


class BetStatus(db.Model):
    """Who placed the real-money bet for a round"""

    __tablename__ = "bet_statuses"

    id = db.Column(db.Integer, primary_key=True)
    round = db.Column(db.Integer, unique=True, nullable=False, index=True)
    placed_by = db.Column(db.String(80), nullable=False)
    timestamp = db.Column(
        db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    def __repr__(self):
        return f"<BetStatus round={self.round} placed_by={self.placed_by}>"

    @staticmethod
    def get_for_round(round_number):
        return BetStatus.query.filter_by(round=round_number).first()

    @staticmethod
    def record(round_number, username):
        """Create or overwrite the status for a round"""
        status = BetStatus.get_for_round(round_number)
        if status is None:
            status = BetStatus(round=round_number)
            db.session.add(status)

        status.placed_by = username
        status.timestamp = datetime.now(timezone.utc)
        return status

    def to_dict(self):
        timestamp = self.timestamp
        if timestamp is not None and timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        return {
            "round": self.round,
            "placedBy": self.placed_by,
            "timestamp": timestamp.isoformat() if timestamp else None,
        }
