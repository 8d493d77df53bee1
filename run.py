from betpool import create_app, db
from betpool.models import BetStatus, Player, Result

app = create_app()


@app.shell_context_processor
def make_shell_context():
    return {
        "db": db,
        "Player": Player,
        "Result": Result,
        "BetStatus": BetStatus,
    }


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5000, debug=app.config.get("DEBUG", False))
