"""Coin ledger: credits after payment, debits for character reveals."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.db.models import F, IntegerField, Value
from django.db.models.functions import Greatest
from django.utils import timezone

from .errors import InsufficientFunds
from .models import CoinTransaction, PlayerProfile
from .profile_services import ensure_player_profile
from .reference_data import get_coin_package

UNLOCK_COST = 1


@dataclass(frozen=True)
class UnlockResult:
    character: str
    character_index: int
    remaining_coins: int


def _require_positive_amount(amount: object) -> int:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValidationError("Amount must be a positive integer.")
    if amount <= 0:
        raise ValidationError("Amount must be a positive integer.")
    return amount


def _current_balance(profile_id: int) -> int:
    return int(PlayerProfile.objects.values_list("coins", flat=True).get(pk=profile_id))


def balance(user) -> int:
    return _current_balance(ensure_player_profile(user).pk)


@transaction.atomic
def credit(
    *,
    user,
    amount: object,
    reason: str = CoinTransaction.Reason.PURCHASE,
    reference: str | None = None,
) -> int:
    """Add ``amount`` coins and return the new balance.

    A non-empty ``reference`` (the payment provider's confirmation id) is
    recorded once; replaying it leaves the balance untouched.
    """
    value = _require_positive_amount(amount)
    profile = ensure_player_profile(user)
    reference_value = str(reference or "").strip() or None

    try:
        with transaction.atomic():
            entry = CoinTransaction.objects.create(
                user=user,
                kind=CoinTransaction.Kind.CREDIT,
                amount=value,
                balance_after=0,
                reason=reason,
                reference=reference_value,
            )
    except IntegrityError:
        if reference_value is None:
            raise
        return _current_balance(profile.pk)

    PlayerProfile.objects.filter(pk=profile.pk).update(
        coins=F("coins") + value,
        updated_at=timezone.now(),
    )
    balance_after = _current_balance(profile.pk)
    entry.balance_after = balance_after
    entry.save(update_fields=["balance_after"])
    return balance_after


def credit_package(*, user, package_key: object, reference: str | None = None) -> int:
    package = get_coin_package(package_key)
    if package is None:
        raise ValidationError(f"Unknown coin package: {package_key!r}.")
    return credit(user=user, amount=package.total_coins, reference=reference)


@transaction.atomic
def debit(
    *,
    user,
    amount: object,
    reason: str = CoinTransaction.Reason.CHARACTER_UNLOCK,
) -> int:
    """Remove ``amount`` coins and return the new balance.

    The balance check and the decrement are a single conditional UPDATE, so two
    concurrent debits for one user cannot both pass against a stale balance.
    """
    value = _require_positive_amount(amount)
    profile = ensure_player_profile(user)

    updated = PlayerProfile.objects.filter(pk=profile.pk, coins__gte=value).update(
        coins=Greatest(F("coins") - value, Value(0), output_field=IntegerField()),
        updated_at=timezone.now(),
    )
    if not updated:
        raise InsufficientFunds(balance=_current_balance(profile.pk), requested=value)

    balance_after = _current_balance(profile.pk)
    CoinTransaction.objects.create(
        user=user,
        kind=CoinTransaction.Kind.DEBIT,
        amount=value,
        balance_after=balance_after,
        reason=reason,
    )
    return balance_after


def unlock_character(*, user, answer: str, character_index: object) -> UnlockResult:
    canonical = str(answer or "").upper()
    if isinstance(character_index, bool) or not isinstance(character_index, int):
        raise ValidationError("character_index must be an integer.")
    if not 0 <= character_index < len(canonical):
        raise ValidationError(f"character_index must be between 0 and {max(0, len(canonical) - 1)}.")

    remaining = debit(user=user, amount=UNLOCK_COST, reason=CoinTransaction.Reason.CHARACTER_UNLOCK)
    return UnlockResult(
        character=canonical[character_index],
        character_index=character_index,
        remaining_coins=remaining,
    )


def transaction_history(user, *, limit: int = 20) -> list[dict[str, Any]]:
    rows = CoinTransaction.objects.filter(user=user).order_by("-created_at", "-id")[: max(1, int(limit))]
    return [
        {
            "kind": row.kind,
            "amount": row.amount,
            "balance_after": row.balance_after,
            "reason": row.reason,
            "reference": row.reference,
            "created_at": row.created_at.isoformat() if row.created_at else None,
        }
        for row in rows
    ]
