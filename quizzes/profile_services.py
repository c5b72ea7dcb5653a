"""Player profile: signup, location updates and lifetime totals."""

from __future__ import annotations

from typing import Any

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import F

from .errors import NotFound
from .models import CoinTransaction, PlayerProfile
from .reference_data import CONTINENT_COUNTRIES, continent_for_country


def _signup_coin_grant() -> int:
    return max(0, int(getattr(settings, "TRIVIA_SIGNUP_COIN_GRANT", 10)))


def validate_location(*, continent: object, country: object) -> tuple[str, str]:
    continent_value = str(continent or "").strip()
    country_value = str(country or "").strip()
    if not continent_value and not country_value:
        return "", ""
    if not continent_value:
        continent_value = continent_for_country(country_value) or ""
        if not continent_value:
            raise ValidationError(f"Unknown country: {country_value!r}.")
    if continent_value not in CONTINENT_COUNTRIES:
        raise ValidationError(f"Unknown continent: {continent_value!r}.")
    if country_value and country_value not in CONTINENT_COUNTRIES[continent_value]:
        raise ValidationError(f"{country_value!r} is not a country of {continent_value}.")
    return continent_value, country_value


@transaction.atomic
def ensure_player_profile(user) -> PlayerProfile:
    """Return the user's profile, creating it (with the one-time coin grant) if missing."""
    grant = _signup_coin_grant()
    profile, created = PlayerProfile.objects.get_or_create(user=user, defaults={"coins": grant})
    if created and grant > 0:
        CoinTransaction.objects.create(
            user=user,
            kind=CoinTransaction.Kind.CREDIT,
            amount=grant,
            balance_after=grant,
            reason=CoinTransaction.Reason.SIGNUP_GRANT,
        )
    return profile


@transaction.atomic
def create_player(
    *,
    username: str,
    email: str,
    password: str,
    continent: str = "",
    country: str = "",
) -> PlayerProfile:
    continent_value, country_value = validate_location(continent=continent, country=country)
    user = get_user_model().objects.create_user(username=username, email=email, password=password)
    profile = ensure_player_profile(user)
    if continent_value or country_value:
        profile.continent = continent_value
        profile.country = country_value
        profile.save(update_fields=["continent", "country", "updated_at"])
    return profile


def get_player(user_id: object):
    try:
        pk = int(user_id)
    except (TypeError, ValueError) as exc:
        raise NotFound(f"Unknown user id: {user_id!r}.") from exc
    user = get_user_model().objects.filter(pk=pk).first()
    if user is None:
        raise NotFound(f"Unknown user id: {user_id!r}.")
    return user


@transaction.atomic
def update_location(*, user, continent: object, country: object) -> PlayerProfile:
    continent_value, country_value = validate_location(continent=continent, country=country)
    profile = ensure_player_profile(user)
    profile.continent = continent_value
    profile.country = country_value
    profile.save(update_fields=["continent", "country", "updated_at"])
    return profile


def record_quiz_totals(*, user, score: int) -> PlayerProfile:
    points = max(0, int(score))
    profile = ensure_player_profile(user)
    PlayerProfile.objects.filter(pk=profile.pk).update(
        total_score=F("total_score") + points,
        quizzes_completed=F("quizzes_completed") + 1,
    )
    profile.refresh_from_db()
    return profile


def profile_payload(user) -> dict[str, Any]:
    profile = ensure_player_profile(user)
    return {
        "id": user.pk,
        "username": user.get_username(),
        "email": user.email,
        "continent": profile.continent or None,
        "country": profile.country or None,
        "total_score": profile.total_score,
        "quizzes_completed": profile.quizzes_completed,
        "coins": profile.coins,
    }
