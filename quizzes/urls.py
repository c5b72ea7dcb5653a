"""URL routing for the trivia JSON API."""

from django.urls import re_path

from . import views

urlpatterns = [
    re_path(r"^api/health$", views.health_view, name="health"),
    re_path(r"^api/auth/login$", views.login_view, name="auth-login"),
    re_path(r"^api/auth/logout$", views.logout_view, name="auth-logout"),
    re_path(r"^api/users$", views.users_view, name="users"),
    re_path(r"^api/users/(?P<user_id>[0-9]+)$", views.user_detail_view, name="user-detail"),
    re_path(r"^api/users/(?P<user_id>[0-9]+)/rank$", views.user_rank_view, name="user-rank"),
    re_path(r"^api/users/(?P<user_id>[0-9]+)/coins$", views.user_coins_view, name="user-coins"),
    re_path(
        r"^api/users/(?P<user_id>[0-9]+)/unlock-character$",
        views.unlock_character_view,
        name="user-unlock-character",
    ),
    re_path(r"^api/questions/random$", views.random_questions_view, name="questions-random"),
    re_path(r"^api/questions/categories$", views.categories_view, name="questions-categories"),
    re_path(r"^api/continents$", views.continents_view, name="continents"),
    re_path(r"^api/countries$", views.countries_view, name="countries"),
    re_path(r"^api/coin-packages$", views.coin_packages_view, name="coin-packages"),
    re_path(r"^api/quiz-sessions$", views.quiz_sessions_view, name="quiz-sessions"),
    re_path(
        r"^api/quiz-sessions/(?P<session_id>[0-9]+)$",
        views.quiz_session_detail_view,
        name="quiz-session-detail",
    ),
    re_path(
        r"^api/quiz-sessions/(?P<session_id>[0-9]+)/answer$",
        views.quiz_session_answer_view,
        name="quiz-session-answer",
    ),
    re_path(
        r"^api/quiz-sessions/(?P<session_id>[0-9]+)/complete$",
        views.quiz_session_complete_view,
        name="quiz-session-complete",
    ),
    re_path(r"^api/leaderboard$", views.leaderboard_view, name="leaderboard"),
]
