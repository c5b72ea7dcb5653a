from django.contrib import admin

from .models import (
    CoinTransaction,
    LeaderboardEntry,
    LeaderboardPartition,
    PlayerProfile,
    Question,
    QuizSession,
)


@admin.register(PlayerProfile)
class PlayerProfileAdmin(admin.ModelAdmin):
    list_display = ("id", "user", "continent", "country", "total_score", "quizzes_completed", "coins", "updated_at")
    search_fields = ("user__username", "user__email", "country")
    list_filter = ("continent", "updated_at")


@admin.register(Question)
class QuestionAdmin(admin.ModelAdmin):
    list_display = ("id", "category", "difficulty", "answer", "source", "created_at")
    search_fields = ("text", "answer", "fingerprint")
    list_filter = ("category", "difficulty", "source")


@admin.register(QuizSession)
class QuizSessionAdmin(admin.ModelAdmin):
    list_display = ("id", "user", "category", "status", "score", "correct_answers", "total_questions", "completed_at")
    search_fields = ("user__username", "user__email")
    list_filter = ("category", "status", "created_at")


@admin.register(LeaderboardPartition)
class LeaderboardPartitionAdmin(admin.ModelAdmin):
    list_display = ("id", "category", "date", "entry_count", "updated_at")
    list_filter = ("category", "date")


@admin.register(LeaderboardEntry)
class LeaderboardEntryAdmin(admin.ModelAdmin):
    list_display = ("id", "user", "category", "date", "score", "rank", "created_at")
    search_fields = ("user__username",)
    list_filter = ("category", "date")


@admin.register(CoinTransaction)
class CoinTransactionAdmin(admin.ModelAdmin):
    list_display = ("id", "user", "kind", "amount", "balance_after", "reason", "reference", "created_at")
    search_fields = ("user__username", "reference")
    list_filter = ("kind", "reason", "created_at")
