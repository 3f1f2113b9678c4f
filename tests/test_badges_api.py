"""Badge endpoints over the SQL repositories."""

from __future__ import annotations

import uuid

from httpx import AsyncClient

from synquest.badges.seed import BADGE_SEED_DATA


async def _learn(client: AsyncClient, headers: dict, word_id: str, game_type: str = "quiz") -> dict:
    response = await client.post(
        "/api/games/user/progress/update",
        json={"word_id": word_id, "game_type": game_type, "is_correct": True, "time_spent": 3},
        headers=headers,
    )
    assert response.status_code == 200, response.text
    return response.json()["data"]


class TestCatalog:
    async def test_lists_seeded_badges(self, client: AsyncClient, seeded_badges):
        response = await client.get("/api/badges")
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert len(body["data"]) == len(BADGE_SEED_DATA)

    async def test_filters_by_category_and_rarity(self, client: AsyncClient, seeded_badges):
        response = await client.get("/api/badges", params={"category": "learning", "rarity": "common"})
        names = {b["name"] for b in response.json()["data"]}
        assert names == {"First Steps", "Word Explorer"}

    async def test_get_single_badge(self, client: AsyncClient, seeded_badges):
        badge = (await client.get("/api/badges")).json()["data"][0]
        response = await client.get(f"/api/badges/{badge['id']}")
        assert response.status_code == 200
        assert response.json()["data"]["name"] == badge["name"]

    async def test_unknown_badge_is_404(self, client: AsyncClient, seeded_badges):
        for badge_id in (str(uuid.uuid4()), "not-a-uuid"):
            response = await client.get(f"/api/badges/{badge_id}")
            assert response.status_code == 404
            assert response.json() == {"success": False, "error": "Badge not found"}


class TestCheck:
    async def test_requires_auth(self, client: AsyncClient, seeded_badges):
        response = await client.post("/api/badges/check", json={"type": "word_learned"})
        assert response.status_code == 401

    async def test_missing_type_is_400(self, client: AsyncClient, seeded_badges, auth_headers):
        response = await client.post("/api/badges/check", json={"data": {}}, headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["error"] == "Event type is required"

    async def test_unknown_event_type_awards_nothing(self, client: AsyncClient, seeded_badges, auth_headers):
        response = await client.post(
            "/api/badges/check",
            json={"type": "totally_unknown", "data": {"foo": "bar"}},
            headers=auth_headers,
        )
        assert response.status_code == 200
        body = response.json()
        assert body["data"] == {"awarded_badges": [], "count": 0}
        assert body["message"] == "No new badges earned"

    async def test_streak_event_awards_once(self, client: AsyncClient, seeded_badges, auth_headers):
        event = {"type": "streak_updated", "data": {"streak": 3}}

        first = await client.post("/api/badges/check", json=event, headers=auth_headers)
        second = await client.post("/api/badges/check", json=event, headers=auth_headers)

        assert [b["name"] for b in first.json()["data"]["awarded_badges"]] == ["Three Day Streak"]
        assert first.json()["message"] == "Congratulations! You earned 1 badge(s)!"
        assert second.json()["data"]["count"] == 0

    async def test_null_data_is_treated_as_empty(self, client: AsyncClient, seeded_badges, auth_headers):
        response = await client.post(
            "/api/badges/check", json={"type": "word_learned", "data": None}, headers=auth_headers
        )
        assert response.status_code == 200
        assert response.json()["data"]["count"] == 0


class TestUserBadges:
    async def test_learning_a_word_awards_first_steps(
        self, client: AsyncClient, seeded_badges, auth_headers, make_word
    ):
        word = await make_word("brave", ["bold"])

        result = await _learn(client, auth_headers, word.id)
        assert [b["name"] for b in result["awarded_badges"]] == ["First Steps"]
        assert result["progress"]["mastery_level"] == 2

        again = await _learn(client, auth_headers, word.id)
        assert again["awarded_badges"] == []

        earned = (await client.get("/api/badges/user", headers=auth_headers)).json()["data"]
        assert len(earned) == 1
        assert earned[0]["badge"]["name"] == "First Steps"
        assert earned[0]["progress"] == 100
        assert earned[0]["metadata"]["eventType"] == "word_learned"

    async def test_progress_view(self, client: AsyncClient, seeded_badges, auth_headers, make_word):
        for text in ("able", "bold", "calm", "deft", "easy"):
            word = await make_word(text, [f"{text}-syn"])
            await _learn(client, auth_headers, word.id)

        response = await client.get("/api/badges/user/progress", headers=auth_headers)
        assert response.status_code == 200
        by_name = {p["badge"]["name"]: p for p in response.json()["data"]}

        assert by_name["First Steps"]["is_earned"] is True
        assert by_name["First Steps"]["progress"] == 100
        assert by_name["Word Explorer"]["is_earned"] is False
        assert by_name["Word Explorer"]["progress"] == 50
        assert by_name["Quiz Quest"]["progress"] == 50
        assert by_name["Three Day Streak"]["progress"] == 0

    async def test_wrong_answers_count_towards_game_mode_badges(
        self, client: AsyncClient, seeded_badges, auth_headers, make_word
    ):
        awarded = []
        for text in ("able", "bold", "calm", "deft", "easy"):
            word = await make_word(text, [f"{text}-syn"])
            response = await client.post(
                "/api/games/user/progress/update",
                json={"word_id": word.id, "game_type": "synonym-match", "is_correct": False},
                headers=auth_headers,
            )
            awarded += [b["name"] for b in response.json()["data"]["awarded_badges"]]

        assert awarded == ["Synonym Starter"]

    async def test_user_endpoints_require_auth(self, client: AsyncClient, seeded_badges):
        assert (await client.get("/api/badges/user")).status_code == 401
        assert (await client.get("/api/badges/user/progress")).status_code == 401
