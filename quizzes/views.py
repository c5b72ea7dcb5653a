"""JSON API views for profiles, questions, quiz sessions, coins and leaderboards."""

from __future__ import annotations

import hmac
import json
import logging
from functools import wraps

from django.conf import settings
from django.contrib.auth import authenticate, login, logout
from django.core.exceptions import PermissionDenied, ValidationError
from django.http import HttpRequest, HttpResponse, JsonResponse
from django.utils import timezone
from django.views.decorators.csrf import csrf_exempt, ensure_csrf_cookie
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from .errors import Conflict, InsufficientFunds, NotFound
from .forms import LocationForm, SignupForm
from .leaderboard_services import build_leaderboard_snapshot, parse_leaderboard_date, rank_of
from .ledger_services import (
    balance,
    credit,
    credit_package,
    transaction_history,
    unlock_character,
)
from .profile_services import create_player, get_player, profile_payload, update_location
from .question_services import require_category, sample, serialize_question
from .rate_limit import evaluate_rate_limit, rule_for
from .reference_data import (
    DEFAULT_CATEGORY_KEY,
    list_categories,
    list_coin_packages,
    list_continents,
    list_countries,
)
from .session_services import (
    complete_session,
    create_session,
    get_session,
    question_at,
    session_payload,
    submit_answer,
)

logger = logging.getLogger(__name__)
MAX_BODY_BYTES = 64_000
DEFAULT_SAMPLE_LIMIT = 10
PROTECTED_PROFILE_FIELDS = {
    "total_score",
    "quizzes_completed",
    "coins",
    "totalScore",
    "quizzesCompleted",
}


def _json_error(message: str, *, status: int, code: str, **extra) -> JsonResponse:
    return JsonResponse({"error": code, "message": message, **extra}, status=status)


def _validation_messages(exc: ValidationError) -> list[str]:
    return [str(message) for message in exc.messages]


def api_errors(view):
    """Translate service errors into JSON responses."""

    @wraps(view)
    def wrapper(request: HttpRequest, *args, **kwargs) -> HttpResponse:
        try:
            return view(request, *args, **kwargs)
        except ValidationError as exc:
            messages = _validation_messages(exc)
            return _json_error(" ".join(messages), status=400, code="validation_error", details=messages)
        except NotFound as exc:
            return _json_error(str(exc), status=404, code="not_found")
        except PermissionDenied as exc:
            return _json_error(str(exc) or "Forbidden.", status=403, code="forbidden")
        except InsufficientFunds as exc:
            return _json_error(
                str(exc),
                status=402,
                code="insufficient_funds",
                balance=exc.balance,
                requested=exc.requested,
            )
        except Conflict as exc:
            return _json_error(str(exc), status=409, code="conflict")

    return wrapper


def api_login_required(view):
    @wraps(view)
    def wrapper(request: HttpRequest, *args, **kwargs) -> HttpResponse:
        if not request.user.is_authenticated:
            return _json_error("Authentication required.", status=401, code="unauthenticated")
        return view(request, *args, **kwargs)

    return wrapper


def _read_json_body(request: HttpRequest) -> dict:
    if len(request.body) > MAX_BODY_BYTES:
        raise ValidationError("Request body is too large.")
    if not request.body:
        return {}
    try:
        payload = json.loads(request.body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ValidationError("Invalid JSON body.") from exc
    if not isinstance(payload, dict):
        raise ValidationError("JSON body must be an object.")
    return payload


def _form_errors(form) -> ValidationError:
    messages = []
    for field_name, errors in form.errors.items():
        prefix = "" if field_name == "__all__" else f"{field_name}: "
        messages.extend(f"{prefix}{error}" for error in errors)
    return ValidationError(messages)


def _rate_limited(request: HttpRequest, scope: str) -> JsonResponse | None:
    result = evaluate_rate_limit(request, rule_for(scope))
    if result.allowed:
        return None
    response = _json_error(
        f"Too many requests. Try again in {result.retry_after_seconds} seconds.",
        status=429,
        code="rate_limited",
    )
    response["Retry-After"] = str(result.retry_after_seconds)
    return response


def _require_self(request: HttpRequest, user) -> None:
    if request.user.pk != user.pk:
        raise PermissionDenied("You can only act on your own account.")


def _owned_session(request: HttpRequest, session_id: str):
    session = get_session(session_id)
    if session.user_id != request.user.pk:
        raise PermissionDenied("Quiz session belongs to another user.")
    return session


def _payment_token_valid(request: HttpRequest) -> bool:
    expected = str(getattr(settings, "TRIVIA_PAYMENT_WEBHOOK_TOKEN", "") or "")
    provided = request.headers.get("X-Payment-Token", "")
    if not expected or not provided:
        return False
    return hmac.compare_digest(expected.encode("utf-8"), provided.encode("utf-8"))


def _optional_int(value: object, *, name: str, default: int) -> int:
    if value in (None, ""):
        return default
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{name} must be an integer.") from exc


@ensure_csrf_cookie
@require_GET
def health_view(request: HttpRequest) -> HttpResponse:
    return JsonResponse({"status": "ok", "timestamp": timezone.now().isoformat()})


@require_POST
@api_errors
def login_view(request: HttpRequest) -> HttpResponse:
    blocked = _rate_limited(request, "login")
    if blocked is not None:
        return blocked

    payload = _read_json_body(request)
    user = authenticate(
        request,
        username=str(payload.get("username") or "").strip(),
        password=str(payload.get("password") or ""),
    )
    if user is None:
        return _json_error("Invalid username or password.", status=401, code="invalid_credentials")
    login(request, user)
    return JsonResponse(profile_payload(user))


@require_POST
def logout_view(request: HttpRequest) -> HttpResponse:
    logout(request)
    return JsonResponse({"ok": True})


@require_GET
def categories_view(request: HttpRequest) -> HttpResponse:
    return JsonResponse([item.key for item in list_categories()], safe=False)


@require_GET
def continents_view(request: HttpRequest) -> HttpResponse:
    return JsonResponse(list_continents(), safe=False)


@require_GET
def countries_view(request: HttpRequest) -> HttpResponse:
    continent = str(request.GET.get("continent") or "").strip() or None
    return JsonResponse(list_countries(continent), safe=False)


@require_GET
def coin_packages_view(request: HttpRequest) -> HttpResponse:
    return JsonResponse(
        [
            {
                "key": item.key,
                "label": item.label,
                "coins": item.coins,
                "bonus": item.bonus,
                "total_coins": item.total_coins,
                "price_eur": item.price_eur,
            }
            for item in list_coin_packages()
        ],
        safe=False,
    )


@require_POST
@api_errors
def users_view(request: HttpRequest) -> HttpResponse:
    blocked = _rate_limited(request, "signup")
    if blocked is not None:
        return blocked

    form = SignupForm(_read_json_body(request))
    if not form.is_valid():
        raise _form_errors(form)
    profile = create_player(
        username=form.cleaned_data["username"],
        email=form.cleaned_data["email"],
        password=form.cleaned_data["password"],
        continent=form.cleaned_data["continent"],
        country=form.cleaned_data["country"],
    )
    login(request, profile.user, backend="django.contrib.auth.backends.ModelBackend")
    return JsonResponse(profile_payload(profile.user), status=201)


@api_login_required
@require_http_methods(["GET", "POST"])
@api_errors
def user_detail_view(request: HttpRequest, user_id: str) -> HttpResponse:
    user = get_player(user_id)
    if request.method == "GET":
        payload = profile_payload(user)
        if request.user.pk != user.pk:
            payload.pop("email", None)
        return JsonResponse(payload)

    _require_self(request, user)
    data = _read_json_body(request)
    protected = sorted(PROTECTED_PROFILE_FIELDS.intersection(data))
    if protected:
        raise ValidationError(f"Read-only profile fields: {', '.join(protected)}.")
    form = LocationForm(data)
    if not form.is_valid():
        raise _form_errors(form)
    update_location(
        user=user,
        continent=form.cleaned_data["continent"],
        country=form.cleaned_data["country"],
    )
    return JsonResponse(profile_payload(user))


@require_GET
@api_errors
def user_rank_view(request: HttpRequest, user_id: str) -> HttpResponse:
    user = get_player(user_id)
    category = require_category(request.GET.get("category") or DEFAULT_CATEGORY_KEY)
    day = parse_leaderboard_date(request.GET.get("date"))
    day = day or timezone.localdate()
    return JsonResponse(
        {
            "user_id": user.pk,
            "category": category,
            "date": day.isoformat(),
            "rank": rank_of(user=user, category=category, day=day),
        }
    )


@csrf_exempt
@require_http_methods(["GET", "POST"])
@api_errors
def user_coins_view(request: HttpRequest, user_id: str) -> HttpResponse:
    if request.method == "GET":
        if not request.user.is_authenticated:
            return _json_error("Authentication required.", status=401, code="unauthenticated")
        user = get_player(user_id)
        _require_self(request, user)
        return JsonResponse(
            {
                "user_id": user.pk,
                "coins": balance(user),
                "transactions": transaction_history(user),
            }
        )

    if not _payment_token_valid(request):
        raise PermissionDenied("Missing or invalid payment token.")
    user = get_player(user_id)
    payload = _read_json_body(request)
    reference = str(payload.get("reference") or "").strip() or None
    if payload.get("package"):
        new_balance = credit_package(user=user, package_key=payload["package"], reference=reference)
    else:
        new_balance = credit(user=user, amount=payload.get("coins"), reference=reference)
    logger.info("Credited coins to user %s (reference=%s)", user.pk, reference or "-")
    return JsonResponse({"user_id": user.pk, "coins": new_balance})


@api_login_required
@require_POST
@api_errors
def unlock_character_view(request: HttpRequest, user_id: str) -> HttpResponse:
    user = get_player(user_id)
    _require_self(request, user)
    blocked = _rate_limited(request, "unlock")
    if blocked is not None:
        return blocked

    payload = _read_json_body(request)
    session = _owned_session(request, payload.get("session_id"))
    if session.is_completed:
        raise Conflict("Quiz session is already completed.")
    question = question_at(session, payload.get("question_index"))
    result = unlock_character(
        user=user,
        answer=question.answer,
        character_index=payload.get("character_index"),
    )
    return JsonResponse(
        {
            "character": result.character,
            "character_index": result.character_index,
            "remaining_coins": result.remaining_coins,
        }
    )


@require_GET
@api_errors
def random_questions_view(request: HttpRequest) -> HttpResponse:
    category = require_category(request.GET.get("category") or DEFAULT_CATEGORY_KEY)
    limit = _optional_int(request.GET.get("limit"), name="limit", default=DEFAULT_SAMPLE_LIMIT)
    questions = sample(category, limit)
    return JsonResponse([serialize_question(question) for question in questions], safe=False)


@api_login_required
@require_POST
@api_errors
def quiz_sessions_view(request: HttpRequest) -> HttpResponse:
    payload = _read_json_body(request)
    session = create_session(
        user=request.user,
        category=payload.get("category") or DEFAULT_CATEGORY_KEY,
        total_questions=payload.get("total_questions", DEFAULT_SAMPLE_LIMIT),
    )
    return JsonResponse(session_payload(session, include_questions=True), status=201)


@api_login_required
@require_GET
@api_errors
def quiz_session_detail_view(request: HttpRequest, session_id: str) -> HttpResponse:
    session = _owned_session(request, session_id)
    return JsonResponse(session_payload(session, include_questions=True))


@api_login_required
@require_POST
@api_errors
def quiz_session_answer_view(request: HttpRequest, session_id: str) -> HttpResponse:
    session = _owned_session(request, session_id)
    payload = _read_json_body(request)
    outcome = submit_answer(
        session_id=session.pk,
        provided_text=payload.get("answer"),
        question_index=payload.get("question_index"),
    )
    return JsonResponse(
        {
            "question_index": outcome.question_index,
            "is_correct": outcome.is_correct,
            "points": outcome.points,
            "next_index": outcome.next_index,
        }
    )


@api_login_required
@require_POST
@api_errors
def quiz_session_complete_view(request: HttpRequest, session_id: str) -> HttpResponse:
    session = _owned_session(request, session_id)
    payload = _read_json_body(request)
    result = complete_session(
        session_id=session.pk,
        final_score=payload.get("score"),
        final_correct_answers=payload.get("correct_answers"),
    )
    entry = result.leaderboard_entry
    return JsonResponse(
        {
            "session": session_payload(result.session),
            "leaderboard_entry": {
                "id": entry.pk,
                "rank": entry.rank,
                "date": entry.date.isoformat(),
                "category": entry.category,
                "score": entry.score,
            }
            if entry
            else None,
            "partial": result.is_partial,
            "failed_side_effects": result.failed_side_effects,
        }
    )


@require_GET
@api_errors
def leaderboard_view(request: HttpRequest) -> HttpResponse:
    limit = _optional_int(request.GET.get("limit"), name="limit", default=0) or None
    snapshot = build_leaderboard_snapshot(
        category=str(request.GET.get("category") or "").strip() or None,
        country=str(request.GET.get("country") or "").strip() or None,
        continent=str(request.GET.get("continent") or "").strip() or None,
        day=parse_leaderboard_date(request.GET.get("date")),
        limit=max(1, limit) if limit else None,
    )
    return JsonResponse(snapshot)
