from datetime import datetime, timezone

from betpool import db


class Player(db.Model):
    __tablename__ = "players"

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False, index=True)

    # Position in the fixed roster, used for the bet-placing turn order
    position = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    results = db.relationship(
        "Result",
        backref="player",
        order_by="Result.round",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<Player {self.username}>"

    @staticmethod
    def get_roster():
        """All players in turn order"""
        return Player.query.order_by(Player.position, Player.id).all()

    @staticmethod
    def get_by_username(username):
        return Player.query.filter_by(username=username).first()

    @staticmethod
    def create_player(username, position=None):
        """Add a player to the end of the roster (or at a given position)"""
        if position is None:
            last = Player.query.order_by(Player.position.desc()).first()
            position = (last.position + 1) if last else 0

        player = Player(username=username, position=position)
        db.session.add(player)
        return player

    @property
    def next_round(self):
        """Round number the player's next prediction belongs to"""
        if not self.results:
            return 1
        return max(result.round for result in self.results) + 1

    @property
    def latest_round(self):
        if not self.results:
            return 0
        return max(result.round for result in self.results)

    def get_pending_result(self):
        """The player's pending result, if any"""
        for result in self.results:
            if result.is_pending:
                return result
        return None

    def get_result_for_round(self, round_number):
        for result in self.results:
            if result.round == round_number:
                return result
        return None

    def get_stats(self, fine_amount=None):
        """Leaderboard row for this player"""
        from betpool.utils.stats import DEFAULT_FINE_AMOUNT, calculate_player_stats

        return calculate_player_stats(
            self.username,
            self.results,
            fine_amount=DEFAULT_FINE_AMOUNT if fine_amount is None else fine_amount,
        )

    def to_dict(self):
        """Convert player to dictionary for API responses"""
        return {
            "username": self.username,
            "position": self.position,
            "results": [result.to_dict() for result in self.results],
        }
