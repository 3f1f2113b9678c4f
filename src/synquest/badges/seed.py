"""Badge catalog seed data: 24 badges across four categories."""

from __future__ import annotations

from typing import Any

import structlog

from synquest.badges.repositories import BadgeRepository

logger = structlog.get_logger()


def _badge(name: str, description: str, category: str, icon: str, criteria: dict[str, Any], rarity: str) -> dict:
    return {
        "name": name,
        "description": description,
        "category": category,
        "icon": icon,
        "criteria": criteria,
        "rarity": rarity,
    }


BADGE_SEED_DATA: list[dict] = [
    # Learning milestones
    _badge("First Steps", "Learn your first word", "learning", "\U0001f331", {"type": "word_count", "value": 1}, "common"),
    _badge("Word Explorer", "Learn 10 words", "learning", "\U0001f4da", {"type": "word_count", "value": 10}, "common"),
    _badge("Vocabulary Builder", "Learn 25 words", "learning", "\U0001f4d6", {"type": "word_count", "value": 25}, "rare"),
    _badge("Word Master", "Learn 50 words", "learning", "\U0001f393", {"type": "word_count", "value": 50}, "rare"),
    _badge("Lexicon Legend", "Learn 100 words", "learning", "\U0001f451", {"type": "word_count", "value": 100}, "rare"),
    _badge("Word Wizard", "Learn 250 words", "learning", "\U0001f9d9", {"type": "word_count", "value": 250}, "epic"),
    _badge(
        "Vocabulary Virtuoso", "Learn 500 words", "learning", "\U0001f31f",
        {"type": "word_count", "value": 500}, "legendary",
    ),
    # Game modes
    _badge(
        "Synonym Starter", "Complete 5 synonym match games", "game", "\U0001f3af",
        {"type": "game_mode", "value": 5, "gameType": "synonym-match"}, "common",
    ),
    _badge(
        "Synonym Champion", "Complete 25 synonym match games", "game", "\U0001f3c6",
        {"type": "game_mode", "value": 25, "gameType": "synonym-match"}, "rare",
    ),
    _badge(
        "Synonym Master", "Complete 50 synonym match games", "game", "⭐",
        {"type": "game_mode", "value": 50, "gameType": "synonym-match"}, "rare",
    ),
    _badge(
        "Letter Learner", "Complete 10 letter-wise learning games", "game", "\U0001f524",
        {"type": "game_mode", "value": 10, "gameType": "letter-wise"}, "common",
    ),
    _badge(
        "Alphabet Ace", "Complete 50 letter-wise learning games", "game", "\U0001f4dd",
        {"type": "game_mode", "value": 50, "gameType": "letter-wise"}, "rare",
    ),
    _badge(
        "Quiz Quest", "Complete 10 quiz games", "game", "❓",
        {"type": "game_mode", "value": 10, "gameType": "quiz"}, "common",
    ),
    _badge(
        "Quiz Master", "Complete 50 quiz games", "game", "\U0001f3af",
        {"type": "game_mode", "value": 50, "gameType": "quiz"}, "rare",
    ),
    # Performance
    _badge(
        "Three Day Streak", "Maintain a 3-day learning streak", "performance", "\U0001f525",
        {"type": "streak", "value": 3}, "common",
    ),
    _badge(
        "Week Warrior", "Maintain a 7-day learning streak", "performance", "\U0001f4aa",
        {"type": "streak", "value": 7}, "rare",
    ),
    _badge(
        "Fortnight Fighter", "Maintain a 14-day learning streak", "performance", "⚔️",
        {"type": "streak", "value": 14}, "rare",
    ),
    _badge(
        "Monthly Master", "Maintain a 30-day learning streak", "performance", "\U0001f3c5",
        {"type": "streak", "value": 30}, "epic",
    ),
    _badge(
        "Perfect Score", "Get 100% accuracy in a game", "performance", "\U0001f4af",
        {"type": "accuracy", "value": 100, "minAccuracy": 100}, "rare",
    ),
    # No gameType, so never met by the evaluator
    _badge(
        "Speed Demon", "Complete 10 games in one day", "performance", "⚡",
        {"type": "game_mode", "value": 10}, "rare",
    ),
    # Special
    _badge(
        "Early Bird", "Complete your first game before 8 AM", "special", "\U0001f305",
        {"type": "custom", "value": 1}, "rare",
    ),
    _badge(
        "Night Owl", "Complete a game after 10 PM", "special", "\U0001f989",
        {"type": "custom", "value": 1}, "rare",
    ),
    _badge(
        "Weekend Warrior", "Play games on both Saturday and Sunday", "special", "\U0001f3ae",
        {"type": "custom", "value": 2}, "rare",
    ),
    _badge(
        "Dedicated Learner", "Play every day for a week", "special", "\U0001f4c5",
        {"type": "streak", "value": 7}, "epic",
    ),
]


async def seed_badges(badges: BadgeRepository) -> int:
    """Insert the catalog when the badge table is empty. Returns number of badges inserted."""
    if await badges.count() > 0:
        logger.info("badge_seed_skipped")
        return 0
    for badge_data in BADGE_SEED_DATA:
        await badges.create(**badge_data)
    logger.info("badges_seeded", count=len(BADGE_SEED_DATA))
    return len(BADGE_SEED_DATA)
