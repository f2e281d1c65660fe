"""
Snake-game leaderboard tests.
"""
import pytest

from tracker.models.audit import RESOURCE_SNAKE_SCORE, UserLog


class TestSnakeScores:
    def test_record_and_rank(self, client, staff, other_staff, make_user, as_user):
        make_user("Not Yet Approved", approved=False)
        for user, score in ((staff, 40), (staff, 15), (other_staff, 90)):
            res = client.post("/api/snake-scores", json={"score": score}, headers=as_user(user))
            assert res.status_code == 200
            assert res.get_json() == {"ok": True}

        board = client.get("/api/snake-scores").get_json()
        assert [(row["userId"], row["score"]) for row in board] == [(other_staff.id, 90), (staff.id, 40)]
        assert board[0]["fullName"] == other_staff.full_name

    def test_users_without_scores_listed_with_zero(self, client, staff):
        board = client.get("/api/snake-scores").get_json()
        assert board == [{
            "userId": staff.id,
            "fullName": staff.full_name,
            "profileImageUrl": None,
            "score": 0,
        }]

    def test_top_ten_only(self, client, make_user, as_user):
        users = [make_user() for _ in range(12)]
        for n, user in enumerate(users, start=1):
            client.post("/api/snake-scores", json={"score": n}, headers=as_user(user))
        board = client.get("/api/snake-scores").get_json()
        assert len(board) == 10
        assert board[0]["score"] == 12

    @pytest.mark.parametrize("score", [0, -3, "50", True, None])
    def test_invalid_score_is_400(self, client, staff, as_user, score):
        res = client.post("/api/snake-scores", json={"score": score}, headers=as_user(staff))
        assert res.status_code == 400
        assert res.get_json()["error"] == "Invalid score"
        assert UserLog.query.filter_by(resource_type=RESOURCE_SNAKE_SCORE).count() == 0

    def test_requires_user(self, client):
        assert client.post("/api/snake-scores", json={"score": 10}).status_code == 401
