"""Snake-game leaderboard backed by SNAKE_SCORE activity rows."""

import logging
import math
import numbers

from tracker.core.exceptions import ValidationError
from tracker.models import db
from tracker.models.audit import RESOURCE_SNAKE_SCORE, UserLog, write_activity
from tracker.models.auth import User

logger = logging.getLogger(__name__)

LEADERBOARD_SIZE = 10


def record_score(user, score):
    # bool is an int subclass; True is not a score
    valid = not isinstance(score, bool) and isinstance(score, numbers.Real)
    if not valid or not math.isfinite(score) or score <= 0:
        raise ValidationError("Invalid score", details={"score": "positive number"})
    log = write_activity(
        user_id=user.id,
        action="SNAKE_SCORE",
        resource_type=RESOURCE_SNAKE_SCORE,
        resource_title=str(score),
        details={"score": score},
    )
    db.session.commit()
    logger.info("Snake score recorded: user=%s score=%s", user.id, score)
    return log


def best_scores() -> dict:
    best = {}
    for log in UserLog.query.filter_by(resource_type=RESOURCE_SNAKE_SCORE).all():
        score = log.details.get("score") or 0
        if not isinstance(score, numbers.Real):
            continue
        if score > best.get(log.user_id, 0):
            best[log.user_id] = score
    return best


def leaderboard(limit=LEADERBOARD_SIZE):
    """Every approved user with their best score (0 if none), highest first."""
    best = best_scores()
    users = User.query.filter_by(is_approved=True).order_by(User.id).all()
    board = [
        {
            "userId": u.id,
            "fullName": u.full_name,
            "profileImageUrl": u.profile_image_url,
            "score": best.get(u.id, 0),
        }
        for u in users
    ]
    board.sort(key=lambda row: row["score"], reverse=True)
    return board[:limit]
