"""Game endpoints: anonymous play and signed-in progress."""

from __future__ import annotations

import uuid

import pytest
from httpx import AsyncClient

from synquest.db.models import Word
from synquest.games.service import check_spelling, pick_distractors, spelling_difficulty


class TestHelpers:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [("cat", "easy"), ("planet", "medium"), ("extraordinary", "hard"), ("well-known", "hard")],
    )
    def test_spelling_difficulty(self, text, expected):
        assert spelling_difficulty(text) == expected

    def test_check_spelling_tiers(self):
        assert check_spelling("Brave", " brave ") == {
            "is_correct": True,
            "accuracy": 100.0,
            "feedback": "Perfect! You spelled it correctly!",
        }
        near = check_spelling("beautiful", "beautifol")
        assert near["is_correct"] is False
        assert near["accuracy"] == 88.89
        assert near["feedback"] == "Almost correct! Just a small mistake."
        assert check_spelling("cat", "dog")["feedback"] == "Not quite right. Keep practicing!"

    def test_distractors_skip_answers_and_pad(self):
        other = Word(word="other", synonyms=["glad", "distinct"])
        distractors = pick_distractors([other], ["glad"])
        assert distractors == ["distinct", "random2", "random3"]
        assert pick_distractors([], ["first"]) == ["random1", "random2", "random3"]


class TestLetters:
    async def test_letter_progress_covers_alphabet(self, client: AsyncClient, make_word):
        await make_word("apple", ["fruit"], correct_count=2)
        await make_word("avocado", ["fruit"])

        rows = (await client.get("/api/games/letters/progress")).json()["data"]

        assert len(rows) == 26
        a = rows[0]
        assert a == {"letter": "A", "total_words": 2, "learned_words": 1, "percentage": 50}
        assert rows[1]["total_words"] == 0

    async def test_new_and_old_words_for_letter(self, client: AsyncClient, make_word):
        await make_word("apple", ["fruit"], correct_count=1)
        await make_word("avocado", ["fruit"])
        await make_word("banana", ["fruit"])

        new = (await client.get("/api/games/letter/A/new")).json()["data"]
        old = (await client.get("/api/games/letter/a/old")).json()["data"]

        assert [w["word"] for w in new] == ["avocado"]
        assert [w["word"] for w in old] == ["apple"]

    async def test_invalid_letter_is_400(self, client: AsyncClient):
        response = await client.get("/api/games/letter/ab/new")
        assert response.status_code == 400
        assert response.json()["error"] == "Letter must be a single character a-z"

    async def test_random_pools(self, client: AsyncClient, make_word):
        await make_word("apple", ["fruit"], correct_count=1)
        await make_word("banana", ["fruit"])

        new = (await client.get("/api/games/random/new")).json()["data"]
        old = (await client.get("/api/games/random/old")).json()["data"]

        assert [w["word"] for w in new] == ["banana"]
        assert [w["word"] for w in old] == ["apple"]


class TestSynonymMatch:
    async def test_no_words_is_404(self, client: AsyncClient):
        response = await client.get("/api/games/synonym-match/question")
        assert response.status_code == 404
        assert response.json()["error"] == "No words found"

    async def test_question_shape(self, client: AsyncClient, make_word):
        await make_word("happy", [{"word": "glad", "type": "exact"}, {"word": "content", "type": "similar"}])
        await make_word("sad", ["down", "blue"])

        question = (await client.get("/api/games/synonym-match/question")).json()["data"]

        assert question["game_type"] == "synonym_match"
        assert question["correct_answer"] in question["options"]
        assert len(question["options"]) == 4
        assert len(set(question["options"])) == 4
        if question["question_word"]["word"] == "happy":
            assert question["correct_answer"] == "glad"
            assert "content" not in question["options"]

    async def test_answer_checks_exact_synonyms(self, client: AsyncClient, make_word):
        word = await make_word("happy", ["glad"])
        payload = {"question_id": f"synonym_{word.id}", "word_id": word.id}

        right = (await client.post("/api/games/synonym-match/answer", json={**payload, "answer": "Glad"})).json()
        wrong = (await client.post("/api/games/synonym-match/answer", json={**payload, "answer": "sad"})).json()

        assert right["data"]["is_correct"] is True
        assert wrong["data"] == {
            "is_correct": False,
            "correct_answer": "glad",
            "feedback": 'Incorrect. The right answer is "glad"',
        }
        word_data = (await client.get(f"/api/words/{word.id}")).json()["data"]
        assert word_data["correct_count"] == 1
        assert word_data["incorrect_count"] == 1

    async def test_answer_missing_fields_is_400(self, client: AsyncClient):
        response = await client.post("/api/games/synonym-match/answer", json={"answer": "glad"})
        assert response.status_code == 400
        assert response.json()["error"] == "Missing required fields"

    async def test_speed_round(self, client: AsyncClient, make_word):
        await make_word("happy", ["glad"])
        questions = (await client.get("/api/games/speed/questions", params={"count": 3})).json()["data"]
        assert len(questions) == 3


class TestSpellingAndLadder:
    async def test_spelling_round(self, client: AsyncClient, make_word):
        word = await make_word("planet", ["world"])

        challenge = (await client.get("/api/games/spelling/word")).json()["data"]
        assert challenge["difficulty"] == "medium"

        result = await client.post(
            "/api/games/spelling/check",
            json={"word": "planet", "user_answer": "planet", "word_id": word.id},
        )
        assert result.json()["data"]["is_correct"] is True

        missing = await client.post("/api/games/spelling/check", json={"word": "planet", "word_id": word.id})
        assert missing.status_code == 400

    async def test_word_ladder_needs_easy_word(self, client: AsyncClient, make_word):
        await make_word("obfuscate", ["obscure"], difficulty="hard")
        assert (await client.get("/api/games/word-ladder/start")).status_code == 404

        await make_word("big", ["large"], difficulty="easy")
        ladder = (await client.get("/api/games/word-ladder/start")).json()["data"]
        assert ladder["current_word"]["word"] == "big"
        assert ladder["ladder_position"] == 0
        assert ladder["target_position"] == 10


class TestDailyQuest:
    async def test_daily_quest_lifecycle(self, client: AsyncClient, make_word):
        await make_word("sunny", ["bright"])

        quest = (await client.get("/api/games/daily/word")).json()["data"]
        again = (await client.get("/api/games/daily/word")).json()["data"]
        assert quest["word"]["id"] == again["word"]["id"]
        assert quest["streak"] == 1
        assert quest["is_completed_today"] is False

        done = (await client.post("/api/games/daily/complete")).json()
        assert done["data"] == {"success": True, "new_streak": 1}
        repeat = (await client.post("/api/games/daily/complete")).json()
        assert repeat["data"]["success"] is False
        assert repeat["message"] == "Daily quest already completed today"

        stats = (await client.get("/api/games/statistics")).json()["data"]
        assert stats["daily_streak"] == 1
        assert stats["learned_words"] == 1
        assert stats["games_played"] == 1

    async def test_complete_without_quest_is_404(self, client: AsyncClient):
        assert (await client.post("/api/games/daily/complete")).status_code == 404


class TestUserGames:
    async def test_user_routes_require_auth(self, client: AsyncClient):
        assert (await client.get("/api/games/user/statistics")).status_code == 401
        response = await client.post(
            "/api/games/user/progress/update",
            json={"word_id": str(uuid.uuid4()), "game_type": "quiz", "is_correct": True},
        )
        assert response.status_code == 401

    async def test_progress_update_and_lists(self, client: AsyncClient, auth_headers: dict, make_word):
        apple = await make_word("apple", ["fruit"])
        avocado = await make_word("avocado", ["fruit"])
        await make_word("apricot", ["fruit"])

        for word, correct in ((apple, True), (avocado, False)):
            response = await client.post(
                "/api/games/user/progress/update",
                json={"word_id": word.id, "game_type": "new-letter", "is_correct": correct, "time_spent": 4},
                headers=auth_headers,
            )
            assert response.status_code == 200
            assert response.json()["message"] == "Game progress updated successfully"

        letters = (await client.get("/api/games/user/letters/progress", headers=auth_headers)).json()["data"]
        assert letters[0] == {"letter": "A", "total_words": 3, "learned_words": 1, "percentage": 33}

        new = (await client.get("/api/games/user/letter/a/new", headers=auth_headers)).json()["data"]
        ids = [p["id"] for p in new]
        assert {p["word"]["word"] for p in new} == {"avocado", "apricot"}
        assert f"temp-{apple.id}" not in ids
        assert any(i.startswith("temp-") for i in ids)

        old = (await client.get("/api/games/user/letter/a/old", headers=auth_headers)).json()["data"]
        assert [p["word"]["word"] for p in old] == ["apple"]

        stats = (await client.get("/api/games/user/statistics", headers=auth_headers)).json()["data"]
        assert stats["total_words_learned"] == 1
        assert stats["total_time_spent"] == 8

    async def test_progress_update_unknown_word(self, client: AsyncClient, auth_headers: dict):
        response = await client.post(
            "/api/games/user/progress/update",
            json={"word_id": str(uuid.uuid4()), "game_type": "quiz", "is_correct": True},
            headers=auth_headers,
        )
        assert response.status_code == 404

    async def test_random_new_pads_with_unplayed(self, client: AsyncClient, auth_headers: dict, make_word):
        played = await make_word("apple", ["fruit"])
        await make_word("banana", ["fruit"])
        await client.post(
            "/api/games/user/progress/update",
            json={"word_id": played.id, "game_type": "random-new", "is_correct": True},
            headers=auth_headers,
        )

        rows = (await client.get("/api/games/user/random/new", headers=auth_headers)).json()["data"]
        assert [p["word"]["word"] for p in rows] == ["banana"]
        assert rows[0]["game_type"] == "random-new"

        old = (await client.get("/api/games/user/random/old", headers=auth_headers)).json()["data"]
        assert [p["word"]["word"] for p in old] == ["apple"]

    async def test_review_words(self, client: AsyncClient, auth_headers: dict, make_word):
        word = await make_word("apple", ["fruit"])
        await client.post(
            "/api/games/user/progress/update",
            json={"word_id": word.id, "game_type": "quiz", "is_correct": True},
            headers=auth_headers,
        )
        rows = (await client.get("/api/games/user/review/quiz-review", headers=auth_headers)).json()["data"]
        assert [p["word_id"] for p in rows] == [word.id]
