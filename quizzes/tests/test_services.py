from __future__ import annotations

from datetime import date, timedelta
from unittest.mock import patch

import requests
from django.contrib.auth.models import User
from django.core.exceptions import ValidationError
from django.test import TestCase, override_settings
from django.utils import timezone

from quizzes.errors import Conflict, InsufficientFunds, NotFound
from quizzes.leaderboard_services import (
    build_leaderboard_snapshot,
    parse_leaderboard_date,
    query_leaderboard,
    rank_of,
    record_completion,
    recompute_all_ranks,
)
from quizzes.ledger_services import (
    balance,
    credit,
    credit_package,
    debit,
    transaction_history,
    unlock_character,
)
from quizzes.models import CoinTransaction, LeaderboardEntry, LeaderboardPartition, PlayerProfile, QuizSession
from quizzes.profile_services import (
    create_player,
    ensure_player_profile,
    get_player,
    update_location,
    validate_location,
)
from quizzes.question_services import add_question
from quizzes.session_services import (
    answers_match,
    complete_session,
    create_session,
    get_session,
    submit_answer,
)

TODAY = date(2026, 3, 14)


def _player(username: str, *, continent: str = "", country: str = "") -> User:
    profile = create_player(
        username=username,
        email=f"{username}@example.com",
        password="Trivia-Pass-2024!",
        continent=continent,
        country=country,
    )
    return profile.user


class LeaderboardServiceTests(TestCase):
    def setUp(self) -> None:
        self.alice = _player("alice", continent="Europe", country="France")
        self.bob = _player("bob", continent="Asia", country="Japan")
        self.cara = _player("cara", continent="Europe", country="Germany")

    def test_tied_scores_rank_by_completion_order(self) -> None:
        first = record_completion(user=self.alice, category="Geography", score=300, completed_on=TODAY)
        second = record_completion(user=self.bob, category="Geography", score=300, completed_on=TODAY)

        self.assertEqual(first.rank, 1)
        self.assertEqual(second.rank, 2)

    def test_ranks_stay_dense_after_each_insert(self) -> None:
        record_completion(user=self.alice, category="Geography", score=300, completed_on=TODAY)
        record_completion(user=self.bob, category="Geography", score=300, completed_on=TODAY)
        top = record_completion(user=self.cara, category="Geography", score=500, completed_on=TODAY)
        low = record_completion(user=self.alice, category="Geography", score=0, completed_on=TODAY)

        self.assertEqual(top.rank, 1)
        self.assertEqual(low.rank, 4)
        ranks = list(
            LeaderboardEntry.objects.filter(category="Geography", date=TODAY)
            .order_by("rank")
            .values_list("user__username", "rank")
        )
        self.assertEqual(ranks, [("cara", 1), ("alice", 2), ("bob", 3), ("alice", 4)])
        partition = LeaderboardPartition.objects.get(category="Geography", date=TODAY)
        self.assertEqual(partition.entry_count, 4)

    def test_partitions_rank_independently(self) -> None:
        record_completion(user=self.alice, category="Geography", score=100, completed_on=TODAY)
        history = record_completion(user=self.bob, category="History", score=50, completed_on=TODAY)
        yesterday = record_completion(
            user=self.cara,
            category="Geography",
            score=10,
            completed_on=TODAY - timedelta(days=1),
        )

        self.assertEqual(history.rank, 1)
        self.assertEqual(yesterday.rank, 1)

    def test_rank_of_returns_zero_when_unranked(self) -> None:
        record_completion(user=self.alice, category="Geography", score=200, completed_on=TODAY)
        record_completion(user=self.bob, category="Geography", score=400, completed_on=TODAY)

        self.assertEqual(rank_of(user=self.alice, category="Geography", day=TODAY), 2)
        self.assertEqual(rank_of(user=self.bob, category="Geography", day=TODAY), 1)
        self.assertEqual(rank_of(user=self.cara, category="Geography", day=TODAY), 0)
        self.assertEqual(rank_of(user=self.alice, category="History", day=TODAY), 0)

    def test_rank_of_defaults_to_today(self) -> None:
        record_completion(user=self.alice, category="Science", score=200)

        self.assertEqual(rank_of(user=self.alice, category="Science"), 1)
        self.assertEqual(
            rank_of(user=self.alice, category="Science", day=timezone.localdate() - timedelta(days=1)),
            0,
        )

    def test_location_filters_follow_current_profile(self) -> None:
        record_completion(user=self.alice, category="Geography", score=300, completed_on=TODAY)
        record_completion(user=self.bob, category="Geography", score=200, completed_on=TODAY)

        france = query_leaderboard(category="Geography", country="France", day=TODAY)
        self.assertEqual([entry["user"]["username"] for entry in france], ["alice"])

        update_location(user=self.alice, continent="Asia", country="Japan")

        self.assertEqual(query_leaderboard(category="Geography", country="France", day=TODAY), [])
        asia = query_leaderboard(continent="Asia", day=TODAY)
        self.assertEqual([entry["user"]["username"] for entry in asia], ["alice", "bob"])
        self.assertEqual(asia[0]["user"]["country"], "Japan")

    def test_query_orders_by_rank_and_respects_limit(self) -> None:
        record_completion(user=self.alice, category="Geography", score=100, completed_on=TODAY)
        record_completion(user=self.bob, category="Geography", score=300, completed_on=TODAY)
        record_completion(user=self.cara, category="Geography", score=200, completed_on=TODAY)

        entries = query_leaderboard(category="Geography", day=TODAY, limit=2)

        self.assertEqual([(entry["user"]["username"], entry["rank"]) for entry in entries], [("bob", 1), ("cara", 2)])
        self.assertEqual(entries[0]["date"], TODAY.isoformat())

    def test_unknown_location_filters_are_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            query_leaderboard(continent="Atlantis")
        with self.assertRaises(ValidationError):
            query_leaderboard(country="Narnia")

    def test_snapshot_reports_filters_and_participants(self) -> None:
        record_completion(user=self.alice, category="Geography", score=100, completed_on=TODAY)
        record_completion(user=self.alice, category="Geography", score=50, completed_on=TODAY)
        record_completion(user=self.cara, category="Geography", score=75, completed_on=TODAY)

        snapshot = build_leaderboard_snapshot(category="geography", continent="Europe", day=TODAY)

        self.assertEqual(snapshot["filters"]["category"], "Geography")
        self.assertEqual(snapshot["filters"]["date"], "2026-03-14")
        self.assertEqual(snapshot["participant_count"], 2)
        self.assertEqual(len(snapshot["entries"]), 3)

    def test_recompute_repairs_stale_ranks(self) -> None:
        record_completion(user=self.alice, category="Arts", score=100, completed_on=TODAY)
        record_completion(user=self.bob, category="Arts", score=200, completed_on=TODAY)
        LeaderboardEntry.objects.update(rank=7)

        processed = recompute_all_ranks(category="Arts")

        self.assertEqual(processed, 1)
        self.assertEqual(rank_of(user=self.bob, category="Arts", day=TODAY), 1)
        self.assertEqual(rank_of(user=self.alice, category="Arts", day=TODAY), 2)

    def test_parse_leaderboard_date(self) -> None:
        self.assertEqual(parse_leaderboard_date("2026-03-14"), TODAY)
        self.assertIsNone(parse_leaderboard_date(""))
        with self.assertRaises(ValidationError):
            parse_leaderboard_date("14/03/2026")


@override_settings(TRIVIA_SIGNUP_COIN_GRANT=10)
class CoinLedgerTests(TestCase):
    def setUp(self) -> None:
        self.user = _player("dana")

    def test_signup_grant_is_recorded(self) -> None:
        self.assertEqual(balance(self.user), 10)
        grant = CoinTransaction.objects.get(user=self.user)
        self.assertEqual(grant.reason, CoinTransaction.Reason.SIGNUP_GRANT)
        self.assertEqual(grant.balance_after, 10)

    def test_ten_unlocks_exhaust_balance_then_refuse(self) -> None:
        answer = "WASHINGTON"
        for index in range(10):
            result = unlock_character(user=self.user, answer=answer, character_index=index)
            self.assertEqual(result.character, answer[index])
            self.assertEqual(result.remaining_coins, 9 - index)

        with self.assertRaises(InsufficientFunds) as ctx:
            unlock_character(user=self.user, answer=answer, character_index=0)

        self.assertEqual(ctx.exception.balance, 0)
        self.assertEqual(ctx.exception.requested, 1)
        self.assertEqual(balance(self.user), 0)
        self.assertEqual(
            CoinTransaction.objects.filter(user=self.user, kind=CoinTransaction.Kind.DEBIT).count(),
            10,
        )

    def test_unlock_out_of_range_does_not_charge(self) -> None:
        with self.assertRaises(ValidationError):
            unlock_character(user=self.user, answer="ROME", character_index=4)
        with self.assertRaises(ValidationError):
            unlock_character(user=self.user, answer="ROME", character_index=-1)
        with self.assertRaises(ValidationError):
            unlock_character(user=self.user, answer="ROME", character_index="1")

        self.assertEqual(balance(self.user), 10)

    def test_unlock_reveals_upper_case_character(self) -> None:
        result = unlock_character(user=self.user, answer="paris", character_index=2)

        self.assertEqual(result.character, "R")
        self.assertEqual(result.remaining_coins, 9)

    def test_credit_then_debit_restores_balance(self) -> None:
        self.assertEqual(credit(user=self.user, amount=5), 15)
        self.assertEqual(debit(user=self.user, amount=5), 10)

    def test_debit_more_than_balance_leaves_balance_untouched(self) -> None:
        with self.assertRaises(InsufficientFunds):
            debit(user=self.user, amount=11)

        self.assertEqual(balance(self.user), 10)

    def test_credit_reference_is_applied_once(self) -> None:
        self.assertEqual(credit(user=self.user, amount=30, reference="pay_123"), 40)
        self.assertEqual(credit(user=self.user, amount=30, reference="pay_123"), 40)

        self.assertEqual(CoinTransaction.objects.filter(reference="pay_123").count(), 1)

    def test_amounts_must_be_positive_integers(self) -> None:
        for amount in (0, -3, True, "5", 2.5, None):
            with self.subTest(amount=amount):
                with self.assertRaises(ValidationError):
                    credit(user=self.user, amount=amount)
                with self.assertRaises(ValidationError):
                    debit(user=self.user, amount=amount)

        self.assertEqual(balance(self.user), 10)

    def test_credit_package_adds_bonus_coins(self) -> None:
        self.assertEqual(credit_package(user=self.user, package_key="medium", reference="pay_pkg"), 40)
        with self.assertRaises(ValidationError):
            credit_package(user=self.user, package_key="giant")

    def test_transaction_history_is_newest_first(self) -> None:
        credit(user=self.user, amount=3, reference="pay_a")
        debit(user=self.user, amount=2)

        history = transaction_history(self.user)

        self.assertEqual([item["kind"] for item in history], ["debit", "credit", "credit"])
        self.assertEqual(history[0]["balance_after"], 11)


class ProfileServiceTests(TestCase):
    def test_validate_location(self) -> None:
        self.assertEqual(validate_location(continent="", country=""), ("", ""))
        self.assertEqual(validate_location(continent="Oceania", country="Fiji"), ("Oceania", "Fiji"))
        with self.assertRaises(ValidationError):
            validate_location(continent="Europe", country="Japan")
        with self.assertRaises(ValidationError):
            validate_location(continent="", country="Narnia")

    def test_validate_location_infers_continent_from_country(self) -> None:
        self.assertEqual(validate_location(continent="", country="France"), ("Europe", "France"))
        self.assertEqual(validate_location(continent=None, country=" Kenya "), ("Africa", "Kenya"))

    def test_get_player_unknown_id(self) -> None:
        with self.assertRaises(NotFound):
            get_player(99999)
        with self.assertRaises(NotFound):
            get_player("abc")

    def test_ensure_profile_grants_once(self) -> None:
        user = User.objects.create_user(username="erin", password="Trivia-Pass-2024!")

        ensure_player_profile(user)
        ensure_player_profile(user)

        self.assertEqual(PlayerProfile.objects.get(user=user).coins, 10)
        self.assertEqual(CoinTransaction.objects.filter(user=user).count(), 1)


@override_settings(TRIVIA_LOW_STOCK_MARGIN=0, TRIVIA_POINTS_PER_CORRECT_ANSWER=100)
class QuizSessionTests(TestCase):
    def setUp(self) -> None:
        patcher = patch(
            "quizzes.question_services.requests.get",
            side_effect=requests.ConnectionError("offline"),
        )
        patcher.start()
        self.addCleanup(patcher.stop)

        self.user = _player("finn", continent="Oceania", country="Australia")
        self.questions = [
            add_question(category="Geography", text="Capital of Australia?", answer="Canberra"),
            add_question(category="Geography", text="Capital of Canada?", answer="Ottawa"),
            add_question(category="Geography", text="Capital of Kenya?", answer="Nairobi"),
        ]

    def test_answers_match_ignores_case_and_padding(self) -> None:
        self.assertTrue(answers_match(" canberra ", "CANBERRA"))
        self.assertFalse(answers_match("sydney", "CANBERRA"))
        self.assertFalse(answers_match(None, "CANBERRA"))

    def test_create_session_samples_questions(self) -> None:
        session = create_session(user=self.user, category="geography", total_questions=3)

        self.assertEqual(session.category, "Geography")
        self.assertEqual(session.total_questions, 3)
        self.assertEqual(sorted(session.question_ids), sorted(question.pk for question in self.questions))
        self.assertFalse(session.is_completed)

    def test_create_session_shrinks_to_available_stock(self) -> None:
        with self.assertLogs("quizzes.question_services", level="WARNING"):
            session = create_session(user=self.user, category="Geography", total_questions=10)

        self.assertEqual(session.total_questions, 3)

    def test_create_session_rejects_empty_question_bank(self) -> None:
        with self.assertLogs("quizzes.question_services", level="WARNING"):
            with self.assertRaises(ValidationError):
                create_session(user=self.user, category="Arts", total_questions=5)

        self.assertFalse(QuizSession.objects.filter(user=self.user).exists())

    def test_create_session_rejects_bad_counts(self) -> None:
        for total in (0, -1, "many"):
            with self.subTest(total=total):
                with self.assertRaises(ValidationError):
                    create_session(user=self.user, category="Geography", total_questions=total)

    def test_submit_answer_checks_and_advances(self) -> None:
        session = create_session(user=self.user, category="Geography", total_questions=3)
        question_index = session.question_ids.index(self.questions[0].pk)

        outcome = submit_answer(session_id=session.pk, provided_text=" canberra ", question_index=question_index)

        self.assertTrue(outcome.is_correct)
        self.assertEqual(outcome.points, 100)
        session.refresh_from_db()
        self.assertEqual(session.answers_json, {str(question_index): True})
        self.assertEqual(session.current_index, question_index + 1)
        self.assertEqual(session.score, 0)

    def test_complete_updates_totals_and_leaderboard_once(self) -> None:
        session = create_session(user=self.user, category="Geography", total_questions=3)

        result = complete_session(session_id=session.pk, final_score=200, final_correct_answers=2)

        self.assertFalse(result.is_partial)
        self.assertEqual(result.leaderboard_entry.rank, 1)
        self.assertEqual(result.leaderboard_entry.date, timezone.localdate(result.session.completed_at))
        with self.assertRaises(Conflict):
            complete_session(session_id=session.pk, final_score=300, final_correct_answers=3)

        profile = PlayerProfile.objects.get(user=self.user)
        self.assertEqual(profile.total_score, 200)
        self.assertEqual(profile.quizzes_completed, 1)
        self.assertEqual(LeaderboardEntry.objects.filter(user=self.user).count(), 1)
        self.assertEqual(get_session(session.pk).score, 200)

    def test_answers_are_rejected_after_completion(self) -> None:
        session = create_session(user=self.user, category="Geography", total_questions=3)
        complete_session(session_id=session.pk, final_score=0, final_correct_answers=0)

        with self.assertRaises(Conflict):
            submit_answer(session_id=session.pk, provided_text="OTTAWA", question_index=0)

    def test_complete_rejects_impossible_totals(self) -> None:
        session = create_session(user=self.user, category="Geography", total_questions=3)

        with self.assertRaises(ValidationError):
            complete_session(session_id=session.pk, final_score=100, final_correct_answers=4)
        with self.assertRaises(ValidationError):
            complete_session(session_id=session.pk, final_score=301, final_correct_answers=3)
        with self.assertRaises(ValidationError):
            complete_session(session_id=session.pk, final_score=-1, final_correct_answers=0)

        session.refresh_from_db()
        self.assertEqual(session.status, QuizSession.Status.IN_PROGRESS)

    def test_leaderboard_failure_leaves_session_completed(self) -> None:
        session = create_session(user=self.user, category="Geography", total_questions=3)

        with patch("quizzes.session_services.record_completion", side_effect=RuntimeError("boom")):
            with self.assertLogs("quizzes.session_services", level="WARNING"):
                result = complete_session(session_id=session.pk, final_score=100, final_correct_answers=1)

        self.assertTrue(result.is_partial)
        self.assertEqual(result.failed_side_effects, ["leaderboard_entry"])
        self.assertIsNone(result.leaderboard_entry)
        self.assertTrue(get_session(session.pk).is_completed)
        self.assertEqual(PlayerProfile.objects.get(user=self.user).total_score, 100)

    def test_unknown_session_id(self) -> None:
        with self.assertRaises(NotFound):
            get_session(424242)
        with self.assertRaises(NotFound):
            complete_session(session_id="nope", final_score=0, final_correct_answers=0)
