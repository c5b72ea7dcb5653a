"""Services for daily leaderboard ranking, filtering and rank lookups."""

from __future__ import annotations

from datetime import date
from typing import Any

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from .models import LeaderboardEntry, LeaderboardPartition, QuizSession
from .question_services import require_category
from .reference_data import CONTINENT_COUNTRIES, list_countries


def _leaderboard_limit() -> int:
    return max(1, int(getattr(settings, "TRIVIA_LEADERBOARD_LIMIT", 100)))


def parse_leaderboard_date(value: object) -> date | None:
    if value is None or isinstance(value, date):
        return value
    raw = str(value).strip()
    if not raw:
        return None
    try:
        return date.fromisoformat(raw[:10])
    except ValueError as exc:
        raise ValidationError("date must be YYYY-MM-DD.") from exc


def _recompute_locked_partition(partition: LeaderboardPartition) -> int:
    entries = list(
        LeaderboardEntry.objects.filter(category=partition.category, date=partition.date).order_by("-score", "id")
    )
    changed: list[LeaderboardEntry] = []
    for index, entry in enumerate(entries, start=1):
        if entry.rank != index:
            entry.rank = index
            changed.append(entry)
    if changed:
        LeaderboardEntry.objects.bulk_update(changed, ["rank"])
    if partition.entry_count != len(entries):
        partition.entry_count = len(entries)
        partition.save(update_fields=["entry_count", "updated_at"])
    return len(entries)


def _lock_partition(category: str, day: date) -> LeaderboardPartition:
    partition, _ = LeaderboardPartition.objects.get_or_create(category=category, date=day)
    return LeaderboardPartition.objects.select_for_update().get(pk=partition.pk)


@transaction.atomic
def record_completion(
    *,
    user,
    category: str,
    score: int,
    session: QuizSession | None = None,
    completed_on: date | None = None,
) -> LeaderboardEntry:
    """Insert a leaderboard entry and re-rank its (category, date) partition.

    The partition row lock serializes concurrent completions on the same day
    and category; other partitions are unaffected.
    """
    category_key = require_category(category)
    day = completed_on or timezone.localdate()
    partition = _lock_partition(category_key, day)

    entry = LeaderboardEntry.objects.create(
        user=user,
        session=session,
        score=max(0, int(score)),
        category=category_key,
        date=day,
    )
    _recompute_locked_partition(partition)
    entry.refresh_from_db(fields=["rank"])
    return entry


@transaction.atomic
def recompute_partition_ranks(category: str, day: date) -> int:
    partition = _lock_partition(require_category(category), day)
    return _recompute_locked_partition(partition)


def recompute_all_ranks(*, category: str | None = None, day: date | None = None) -> int:
    pairs = LeaderboardEntry.objects.all()
    if category:
        pairs = pairs.filter(category=require_category(category))
    if day:
        pairs = pairs.filter(date=day)
    processed = 0
    for category_key, partition_day in pairs.values_list("category", "date").distinct().order_by("date", "category"):
        recompute_partition_ranks(category_key, partition_day)
        processed += 1
    return processed


def query_leaderboard(
    *,
    category: str | None = None,
    country: str | None = None,
    continent: str | None = None,
    day: date | None = None,
    limit: int | None = None,
) -> list[dict[str, Any]]:
    rows = LeaderboardEntry.objects.select_related("user", "user__player_profile")
    if category:
        rows = rows.filter(category=require_category(category))
    # Location filters read the owner's current profile, not a snapshot.
    if continent:
        if continent not in CONTINENT_COUNTRIES:
            raise ValidationError(f"Unknown continent: {continent!r}.")
        rows = rows.filter(user__player_profile__continent=continent)
    if country:
        if country not in list_countries():
            raise ValidationError(f"Unknown country: {country!r}.")
        rows = rows.filter(user__player_profile__country=country)
    if day:
        rows = rows.filter(date=day)

    rows = rows.order_by("rank", "-score", "-date", "category", "id")[: limit or _leaderboard_limit()]

    entries: list[dict[str, Any]] = []
    for row in rows:
        profile = getattr(row.user, "player_profile", None)
        entries.append(
            {
                "id": row.pk,
                "user_id": row.user_id,
                "score": row.score,
                "category": row.category,
                "date": row.date.isoformat(),
                "rank": row.rank,
                "user": {
                    "username": row.user.get_username(),
                    "country": (profile.country or None) if profile else None,
                    "continent": (profile.continent or None) if profile else None,
                },
            }
        )
    return entries


def rank_of(*, user, category: str, day: date | None = None) -> int:
    """Best rank of ``user`` in the (category, day) partition; 0 when unranked."""
    partition_day = day or timezone.localdate()
    best = (
        LeaderboardEntry.objects.filter(user=user, category=require_category(category), date=partition_day)
        .order_by("rank")
        .values_list("rank", flat=True)
        .first()
    )
    return int(best or 0)


def build_leaderboard_snapshot(
    *,
    category: str | None = None,
    country: str | None = None,
    continent: str | None = None,
    day: date | None = None,
    limit: int | None = None,
) -> dict[str, Any]:
    entries = query_leaderboard(
        category=category,
        country=country,
        continent=continent,
        day=day,
        limit=limit,
    )
    return {
        "filters": {
            "category": require_category(category) if category else None,
            "country": country or None,
            "continent": continent or None,
            "date": day.isoformat() if day else None,
        },
        "participant_count": len({entry["user_id"] for entry in entries}),
        "entries": entries,
    }
