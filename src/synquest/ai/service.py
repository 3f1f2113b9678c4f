"""OpenAI-backed vocabulary assistant with deterministic fallbacks.

Only `suggest_synonyms` and `validate_answer` surface failures (as
`AIServiceError`); callers of those decide how to degrade. Difficulty, hint
and meaning generation never fail: they return fixed fallback content when
the model is unavailable or misbehaves.
"""

from __future__ import annotations

import json
import re
from dataclasses import asdict, dataclass, field
from typing import Any

import structlog
from openai import AsyncOpenAI, OpenAIError

from synquest.config import Settings

logger = structlog.get_logger()

DEFAULT_HINT = "Try to think of words with similar meanings."
_VOCABULARY_EXPERT = "You are a vocabulary expert."
_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


class AIServiceError(Exception):
    """Raised when the model cannot produce a usable answer."""


class AIConfigurationError(AIServiceError):
    """Raised when no API key is configured."""


@dataclass
class AnswerValidation:
    is_valid: bool
    confidence: float
    feedback: str
    suggestions: list[str] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


def fallback_meaning(synonyms: list[str]) -> str:
    return f"A word that means something similar to {synonyms[0] if synonyms else 'other related words'}."


def parse_validation(content: str) -> AnswerValidation:
    """Read the model's JSON verdict; free text is scored by keyword at 50% confidence."""
    match = _JSON_OBJECT.search(content)
    if match:
        try:
            parsed = json.loads(match.group(0))
        except json.JSONDecodeError:
            return AnswerValidation(is_valid=False, confidence=0, feedback="Unable to validate answer")
        return AnswerValidation(
            is_valid=bool(parsed.get("isValid", False)),
            confidence=float(parsed.get("confidence", 0) or 0),
            feedback=str(parsed.get("feedback") or "Answer analyzed"),
            suggestions=[str(s) for s in parsed.get("suggestions") or []],
        )

    lowered = content.lower()
    return AnswerValidation(
        is_valid="correct" in lowered or "valid" in lowered,
        confidence=50,
        feedback=content,
    )


class AIService:
    """Thin async wrapper around chat completions."""

    def __init__(
        self,
        *,
        api_key: str = "",
        model: str = "gpt-4",
        timeout: int = 30,
        client: AsyncOpenAI | None = None,
    ) -> None:
        self.model = model
        self._client = client
        if self._client is None and api_key:
            self._client = AsyncOpenAI(api_key=api_key, timeout=timeout)

    @classmethod
    def from_settings(cls, settings: Settings) -> AIService:
        return cls(
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            timeout=settings.openai_timeout_seconds,
        )

    @property
    def enabled(self) -> bool:
        return self._client is not None

    async def _complete(self, system: str, prompt: str, *, max_tokens: int = 1000, temperature: float = 0.3) -> str:
        if self._client is None:
            msg = "OpenAI API key is not configured."
            raise AIConfigurationError(msg)
        try:
            response = await self._client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": prompt},
                ],
                max_tokens=max_tokens,
                temperature=temperature,
            )
        except OpenAIError as e:
            logger.warning("openai_request_failed", model=self.model, error=str(e))
            msg = "OpenAI request failed"
            raise AIServiceError(msg) from e

        content = response.choices[0].message.content if response.choices else None
        if not content:
            msg = "No response from OpenAI"
            raise AIServiceError(msg)
        return content.strip()

    # ------------------------------------------------------------------
    # Operations that raise
    # ------------------------------------------------------------------

    async def suggest_synonyms(self, word: str, context: str | None = None, max_synonyms: int = 10) -> list[str]:
        """Up to `max_synonyms` lowercase synonyms, never including the word itself."""
        prompt = f'Generate {max_synonyms} synonyms for the word "{word}".'
        if context:
            prompt += f" Context: {context}."
        prompt += " Return only the synonyms as a comma-separated list, no explanations."

        content = await self._complete(
            f"{_VOCABULARY_EXPERT} Provide accurate synonyms for words. "
            "Return only the synonyms as a comma-separated list, no explanations.",
            prompt,
        )
        synonyms = [s.strip().lower() for s in content.split(",")]
        return [s for s in synonyms if s and s != word.lower()][:max_synonyms]

    async def validate_answer(self, word: str, user_answer: str, correct_synonyms: list[str]) -> AnswerValidation:
        prompt = (
            f'Word: "{word}"\n'
            f"Correct synonyms: {', '.join(correct_synonyms)}\n"
            f"User answer: {user_answer}\n\n"
            "Analyze the user's answer and provide:\n"
            "1. Is it mostly correct? (true/false)\n"
            "2. Confidence score (0-100)\n"
            "3. Brief feedback message\n"
            "4. Suggestions for improvement\n\n"
            "Format your response as JSON:\n"
            '{"isValid": boolean, "confidence": number, "feedback": "string", "suggestions": ["string"]}'
        )
        content = await self._complete(
            f"{_VOCABULARY_EXPERT} Analyze user answers for synonym questions. "
            "Provide validation with confidence score and helpful feedback.",
            prompt,
            temperature=0.2,
        )
        return parse_validation(content)

    # ------------------------------------------------------------------
    # Operations with fallbacks
    # ------------------------------------------------------------------

    async def assess_difficulty(self, word: str) -> str:
        """'easy', 'medium' or 'hard'; 'medium' whenever the model is unavailable or unclear."""
        prompt = (
            f'Assess the difficulty level of the word "{word}" for vocabulary learning, considering '
            "how common it is and how complex its meaning is. "
            "Respond with only one word: easy, medium, or hard."
        )
        try:
            content = (await self._complete(_VOCABULARY_EXPERT, prompt, max_tokens=10, temperature=0.1)).lower()
        except AIServiceError:
            return "medium"
        return content if content in ("easy", "medium", "hard") else "medium"

    async def generate_hint(self, word: str, missing_synonyms: list[str]) -> str:
        prompt = (
            f'The user is trying to find synonyms for "{word}". '
            f"They have not yet found: {', '.join(missing_synonyms)}. "
            "Give a short, helpful hint without revealing the answers directly."
        )
        try:
            return await self._complete(_VOCABULARY_EXPERT, prompt, max_tokens=100, temperature=0.7)
        except AIServiceError:
            return DEFAULT_HINT

    async def generate_meaning(self, word: str, synonyms: list[str] | None = None) -> str:
        synonyms = synonyms or []
        prompt = f'Give a concise definition (max 30 words) of the word "{word}".'
        if synonyms:
            prompt += f" Related synonyms: {', '.join(synonyms[:5])}."
        try:
            meaning = await self._complete(_VOCABULARY_EXPERT, prompt, max_tokens=80, temperature=0.3)
        except AIServiceError:
            return fallback_meaning(synonyms)
        return meaning.strip().strip('"')[:500]
