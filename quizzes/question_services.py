"""Question bank: random sampling, stock counts and replenishment from Open Trivia DB."""

from __future__ import annotations

import hashlib
import html
import logging
import math
from dataclasses import dataclass
from typing import Any, Iterable

import requests
from django.conf import settings
from django.core.exceptions import ValidationError

from .errors import UpstreamUnavailable
from .models import Question
from .reference_data import list_categories, normalize_category, opentdb_category_id

logger = logging.getLogger(__name__)

UPSTREAM_DIFFICULTIES: tuple[tuple[str, int], ...] = (
    ("medium", 3),
    ("hard", 4),
)


@dataclass(frozen=True)
class UpstreamQuestion:
    text: str
    answer: str
    category: str
    difficulty: int
    hint: str


def _low_stock_margin() -> int:
    return max(0, int(getattr(settings, "TRIVIA_LOW_STOCK_MARGIN", 40)))


def _replenish_batch_size() -> int:
    return max(1, int(getattr(settings, "TRIVIA_REPLENISH_BATCH_SIZE", 50)))


def _max_sample_size() -> int:
    return max(1, int(getattr(settings, "TRIVIA_MAX_SAMPLE_SIZE", 50)))


def _upstream_timeout_seconds() -> int:
    return max(1, int(getattr(settings, "TRIVIA_UPSTREAM_TIMEOUT_SECONDS", 5)))


def require_category(value: object) -> str:
    category = normalize_category(value)
    if category is None:
        raise ValidationError(f"Unknown category: {value!r}.")
    return category


def normalize_text(value: object) -> str:
    return " ".join(html.unescape(str(value or "")).split())


def normalize_answer(value: object) -> str:
    return normalize_text(value).upper()


def answer_hint(answer: str) -> str:
    return f"This answer has {len(answer)} characters"


def question_fingerprint(*, category: str, text: str, answer: str) -> str:
    raw = "\x1f".join((category, normalize_text(text).lower(), normalize_answer(answer)))
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def count_for(category: str) -> int:
    return Question.objects.filter(category=require_category(category)).count()


def _parse_upstream_results(payload: Any, *, category: str, difficulty: int) -> list[UpstreamQuestion]:
    if not isinstance(payload, dict):
        raise UpstreamUnavailable("Open Trivia DB returned a non-object payload.")
    response_code = payload.get("response_code", 0)
    if response_code not in (0, "0"):
        logger.info("Open Trivia DB response_code=%s for category %s", response_code, category)
        return []
    results = payload.get("results")
    if not isinstance(results, list):
        raise UpstreamUnavailable("Open Trivia DB payload is missing results.")

    parsed: list[UpstreamQuestion] = []
    for item in results:
        if not isinstance(item, dict):
            continue
        text = normalize_text(item.get("question"))
        answer = normalize_answer(item.get("correct_answer"))
        if not text or not answer:
            continue
        parsed.append(
            UpstreamQuestion(
                text=text,
                answer=answer,
                category=category,
                difficulty=difficulty,
                hint=answer_hint(answer),
            )
        )
    return parsed


def fetch_upstream_questions(category: str, amount: int | None = None) -> list[UpstreamQuestion]:
    """Pull up to ``amount`` questions for ``category``, split across difficulty levels.

    Raises ``UpstreamUnavailable`` when the source cannot be reached or returns
    something that is not an Open Trivia DB payload.
    """
    total = max(1, int(amount or _replenish_batch_size()))
    per_difficulty = math.ceil(total / len(UPSTREAM_DIFFICULTIES))
    endpoint = str(getattr(settings, "TRIVIA_OPENTDB_API_URL", "https://opentdb.com/api.php"))
    timeout_seconds = _upstream_timeout_seconds()

    collected: list[UpstreamQuestion] = []
    for difficulty_label, difficulty in UPSTREAM_DIFFICULTIES:
        params = {
            "amount": per_difficulty,
            "category": opentdb_category_id(category),
            "difficulty": difficulty_label,
            "type": "multiple",
        }
        try:
            response = requests.get(endpoint, params=params, timeout=timeout_seconds)
        except requests.RequestException as exc:
            raise UpstreamUnavailable(f"Open Trivia DB request failed: {exc}") from exc

        if response.status_code >= 400:
            raise UpstreamUnavailable(f"Open Trivia DB status code: {response.status_code}")
        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamUnavailable("Open Trivia DB returned invalid JSON.") from exc
        collected.extend(_parse_upstream_results(payload, category=category, difficulty=difficulty))

    return collected[:total]


def _store_questions(items: Iterable[UpstreamQuestion], *, source: str) -> list[Question]:
    candidates: dict[str, Question] = {}
    for item in items:
        fingerprint = question_fingerprint(category=item.category, text=item.text, answer=item.answer)
        if fingerprint in candidates:
            continue
        candidates[fingerprint] = Question(
            text=item.text,
            answer=item.answer,
            category=item.category,
            difficulty=item.difficulty,
            hint=item.hint,
            source=source,
            fingerprint=fingerprint,
        )
    if not candidates:
        return []

    existing = set(
        Question.objects.filter(fingerprint__in=candidates.keys()).values_list("fingerprint", flat=True)
    )
    fresh = [question for fingerprint, question in candidates.items() if fingerprint not in existing]
    if not fresh:
        return []
    # A concurrent replenish may insert the same fingerprints first; those rows are skipped.
    Question.objects.bulk_create(fresh, ignore_conflicts=True)
    return list(
        Question.objects.filter(fingerprint__in=[question.fingerprint for question in fresh]).order_by("id")
    )


def add_question(*, category: str, text: str, answer: str, difficulty: int = 3, hint: str | None = None) -> Question:
    category_key = require_category(category)
    clean_text = normalize_text(text)
    clean_answer = normalize_answer(answer)
    if not clean_text or not clean_answer:
        raise ValidationError("Question text and answer are required.")
    if not 1 <= int(difficulty) <= 5:
        raise ValidationError("Difficulty must be between 1 and 5.")
    question, _ = Question.objects.get_or_create(
        fingerprint=question_fingerprint(category=category_key, text=clean_text, answer=clean_answer),
        defaults={
            "text": clean_text,
            "answer": clean_answer,
            "category": category_key,
            "difficulty": int(difficulty),
            "hint": hint if hint is not None else answer_hint(clean_answer),
            "source": Question.Source.MANUAL,
        },
    )
    return question


def replenish(category: str, amount: int | None = None) -> list[Question]:
    category_key = require_category(category)
    try:
        items = fetch_upstream_questions(category_key, amount)
    except UpstreamUnavailable:
        logger.warning("Question replenishment skipped for %s: upstream unavailable", category_key, exc_info=True)
        return []

    added = _store_questions(items, source=Question.Source.OPENTDB)
    logger.info("Replenished %s question(s) for %s (%s fetched)", len(added), category_key, len(items))
    return added


def sample(category: str, count: int) -> list[Question]:
    category_key = require_category(category)
    requested = max(0, min(int(count), _max_sample_size()))
    if requested == 0:
        return []

    # Advisory only: concurrent low-stock triggers may both fetch.
    if count_for(category_key) < requested + _low_stock_margin():
        replenish(category_key)

    return list(Question.objects.filter(category=category_key).order_by("?")[:requested])


def seed_question_bank(*, categories: list[str] | None = None, minimum: int = 10) -> dict[str, dict[str, int]]:
    selected = [require_category(item) for item in categories] if categories else [
        item.key for item in list_categories()
    ]
    summary: dict[str, dict[str, int]] = {}
    for category in selected:
        before = count_for(category)
        added = 0
        if before < minimum:
            added = len(replenish(category))
        summary[category] = {"before": before, "added": added, "after": before + added}
    return summary


def serialize_question(question: Question, *, include_answer: bool = False) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": question.pk,
        "text": question.text,
        "category": question.category,
        "difficulty": question.difficulty,
        "hint": question.hint,
        "answer_length": len(question.answer),
    }
    if include_answer:
        payload["answer"] = question.answer
    return payload
