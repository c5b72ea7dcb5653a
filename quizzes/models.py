"""Data model for players, questions, quiz sessions, coins and leaderboards."""

from __future__ import annotations

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models


class Category(models.TextChoices):
    GEOGRAPHY = "Geography", "Geography"
    HISTORY = "History", "History"
    SCIENCE = "Science", "Science"
    ARTS = "Arts", "Arts"
    SPORTS = "Sports", "Sports"


class PlayerProfile(models.Model):
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="player_profile",
    )
    continent = models.CharField(max_length=32, blank=True)
    country = models.CharField(max_length=64, blank=True)
    total_score = models.PositiveIntegerField(default=0)
    quizzes_completed = models.PositiveIntegerField(default=0)
    coins = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=["continent", "country"], name="player_location_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.user_id}:coins={self.coins}:score={self.total_score}"


class Question(models.Model):
    class Source(models.TextChoices):
        OPENTDB = "opentdb", "Open Trivia DB"
        MANUAL = "manual", "Manual"

    text = models.TextField()
    answer = models.CharField(max_length=255)
    category = models.CharField(max_length=16, choices=Category.choices)
    difficulty = models.PositiveSmallIntegerField(
        default=3,
        validators=[MinValueValidator(1), MaxValueValidator(5)],
    )
    hint = models.CharField(max_length=255, blank=True, null=True)
    source = models.CharField(max_length=16, choices=Source.choices, default=Source.MANUAL)
    fingerprint = models.CharField(max_length=64, unique=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=["category"], name="question_category_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.category}:{self.pk}:{self.answer}"


class QuizSession(models.Model):
    class Status(models.TextChoices):
        IN_PROGRESS = "in_progress", "In progress"
        COMPLETED = "completed", "Completed"

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE)
    category = models.CharField(max_length=16, choices=Category.choices)
    total_questions = models.PositiveIntegerField(default=0)
    score = models.PositiveIntegerField(default=0)
    correct_answers = models.PositiveIntegerField(default=0)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.IN_PROGRESS)
    question_ids = models.JSONField(default=list)
    current_index = models.PositiveIntegerField(default=0)
    answers_json = models.JSONField(default=dict)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    completed_at = models.DateTimeField(blank=True, null=True)

    class Meta:
        indexes = [
            models.Index(fields=["user", "status"], name="session_user_status_idx"),
        ]

    @property
    def is_completed(self) -> bool:
        return self.status == self.Status.COMPLETED

    def __str__(self) -> str:
        return f"{self.user_id}:{self.category}:{self.status}"


class LeaderboardPartition(models.Model):
    category = models.CharField(max_length=16, choices=Category.choices)
    date = models.DateField()
    entry_count = models.PositiveIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["category", "date"], name="uq_leaderboard_partition"),
        ]

    def __str__(self) -> str:
        return f"{self.category}:{self.date}:{self.entry_count}"


class LeaderboardEntry(models.Model):
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE)
    session = models.OneToOneField(
        QuizSession,
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name="leaderboard_entry",
    )
    score = models.PositiveIntegerField()
    category = models.CharField(max_length=16, choices=Category.choices)
    date = models.DateField()
    rank = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=["category", "date", "rank"], name="leader_partition_rank_idx"),
            models.Index(fields=["user", "category", "date"], name="leader_user_partition_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.user_id}:{self.category}:{self.date}:#{self.rank}"


class CoinTransaction(models.Model):
    class Kind(models.TextChoices):
        CREDIT = "credit", "Credit"
        DEBIT = "debit", "Debit"

    class Reason(models.TextChoices):
        SIGNUP_GRANT = "signup_grant", "Signup grant"
        PURCHASE = "purchase", "Purchase"
        CHARACTER_UNLOCK = "character_unlock", "Character unlock"
        ADJUSTMENT = "adjustment", "Adjustment"

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE)
    kind = models.CharField(max_length=8, choices=Kind.choices)
    amount = models.PositiveIntegerField()
    balance_after = models.PositiveIntegerField()
    reason = models.CharField(max_length=32, choices=Reason.choices)
    reference = models.CharField(max_length=128, blank=True, null=True, unique=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=["user", "created_at"], name="coin_tx_user_created_idx"),
        ]

    def __str__(self) -> str:
        sign = "+" if self.kind == self.Kind.CREDIT else "-"
        return f"{self.user_id}:{sign}{self.amount}:{self.reason}"
