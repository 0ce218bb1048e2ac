from __future__ import annotations

import json
import logging
from typing import Any, Dict, List

from openai import OpenAIError
from pydantic import ValidationError

from quizgate.core.config import settings
from quizgate.core.errors import GenerationError, InputValidationError
from quizgate.schemas.quiz import DEFAULT_POINTS, QuestionConfig, QuestionDraft
from quizgate.services.llm_service import chat_json, llm_available

logger = logging.getLogger(__name__)


TYPE_LABELS = {
    "multiple_choice": "multiple choice",
    "true_false": "true/false",
    "fill_in_the_blank": "fill in the blank",
    "theory": "short theory answer",
}


def build_generation_messages(topic: str, configs: List[QuestionConfig]) -> List[Dict[str, str]]:
    total = sum(int(c.count) for c in configs)
    distribution = [
        {"question_type": c.question_type, "difficulty": c.difficulty, "count": int(c.count)} for c in configs
    ]
    lines = [f"- {c.count} {TYPE_LABELS[c.question_type]} question(s), {c.difficulty}" for c in configs]

    system = (
        "You write quiz questions for teachers. Every question must be answerable on its own, "
        "have exactly one correct answer and be free of spelling mistakes."
    )
    user = "\n".join(
        [
            f"Generate {total} questions about: {topic.strip()}",
            "",
            "Distribution:",
            *lines,
            "",
            "Rules:",
            "- multiple_choice: exactly 4 options; correct_answer is the full text of one option.",
            "- true_false: correct_answer is \"True\" or \"False\"; no options.",
            "- fill_in_the_blank: mark the blank with ___ in question_text; correct_answer is the missing word(s).",
            "- theory: correct_answer is a short model answer.",
            f"- points by difficulty: easy={DEFAULT_POINTS['easy']}, medium={DEFAULT_POINTS['medium']}, hard={DEFAULT_POINTS['hard']}.",
            "",
            'Return JSON: {"questions": [{"question_text": str, "question_type": str, "difficulty": str, '
            '"correct_answer": str, "options": [str] | null, "points": int}]}',
            "",
            "Requested distribution as JSON: " + json.dumps(distribution),
        ]
    )
    return [{"role": "system", "content": system}, {"role": "user", "content": user}]


def _coerce_drafts(raw: Any) -> List[QuestionDraft]:
    items = raw.get("questions") if isinstance(raw, dict) else None
    if not isinstance(items, list):
        return []

    drafts: List[QuestionDraft] = []
    skipped = 0
    for item in items:
        if not isinstance(item, dict):
            skipped += 1
            continue
        try:
            drafts.append(QuestionDraft.model_validate(item))
        except ValidationError:
            skipped += 1
    if skipped:
        logger.info("dropped %s malformed generated question(s)", skipped)
    return drafts


def generate_questions(topic: str, configs: List[QuestionConfig]) -> List[QuestionDraft]:
    """Ask the LLM for question drafts. Nothing is persisted."""
    total = sum(int(c.count) for c in configs)
    if total > int(settings.QUIZ_GEN_MAX_QUESTIONS):
        raise InputValidationError(
            f"At most {settings.QUIZ_GEN_MAX_QUESTIONS} questions can be generated at once",
            details={"requested": total},
        )
    if not llm_available():
        raise GenerationError("Question generation is not configured")

    try:
        raw = chat_json(messages=build_generation_messages(topic, configs), temperature=0.7, max_tokens=4096)
    except (OpenAIError, RuntimeError, ValueError) as exc:
        logger.warning("question generation failed for topic %r: %s", topic, exc)
        raise GenerationError("Failed to generate questions. Please try again.") from exc

    drafts = _coerce_drafts(raw)[:total]
    if not drafts:
        raise GenerationError("Failed to generate questions. Please try again.")
    logger.info("generated %s/%s question drafts for topic %r", len(drafts), total, topic)
    return drafts
