"""Small helper script to populate some sample players and scores.

Run locally against the configured database (and mirror, if any):

    python sample_data.py
"""

from datetime import timedelta
import random

from scoreboard.database import db_session, Base, engine
from scoreboard.leaderboard import submit_score
from scoreboard.merge import utcnow
from scoreboard.mirror import get_mirror
from scoreboard.schemas import SubmitScoreRequest
from scoreboard.stores import LeaderboardStore

CATEGORIES = ["overall", "easy", "hard"]


def create_schema() -> None:
    Base.metadata.create_all(bind=engine)


def _random_counts() -> dict:
    elements = random.sample(range(1, 37), k=random.randint(1, 12))
    return {str(number): random.randint(0, 6) for number in elements}


def create_sample_players() -> None:
    names = ["Alice", "Bob", "Charlie", "Daisy", "Eve", "Frank", "Grace", "Heidi"]

    with db_session() as db:
        store = LeaderboardStore(db, get_mirror())
        for name in names:
            for category in random.sample(CATEGORIES, k=random.randint(1, len(CATEGORIES))):
                # A few runs each, oldest first, so best-score merging kicks in.
                for j in range(3):
                    payload = SubmitScoreRequest(
                        name=name,
                        score=random.randint(10, 2000),
                        category=category,
                        completedCounts=_random_counts(),
                        moleculesAvailable=random.randint(0, 40),
                        electronsGathered=random.randint(0, 500),
                        deaths=random.randint(0, 5),
                        longestStreak=random.randint(0, 30),
                        timeSeconds=random.randint(60, 1800),
                    )
                    when = utcnow() - timedelta(minutes=(3 - j))
                    submit_score(store, payload, now=when)


if __name__ == "__main__":
    create_schema()
    create_sample_players()
    print("Sample data created.")
