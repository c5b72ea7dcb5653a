from __future__ import annotations

from django.core.exceptions import ValidationError
from django.core.management.base import BaseCommand, CommandError

from quizzes.leaderboard_services import parse_leaderboard_date, recompute_all_ranks


class Command(BaseCommand):
    help = "Recompute dense leaderboard ranks for every (category, date) partition."

    def add_arguments(self, parser) -> None:
        parser.add_argument("--category", default="", help="Only recompute this category.")
        parser.add_argument("--date", default="", help="Only recompute this date (YYYY-MM-DD).")

    def handle(self, *args, **options):
        try:
            day = parse_leaderboard_date(options.get("date"))
            processed = recompute_all_ranks(category=str(options.get("category") or "").strip() or None, day=day)
        except ValidationError as exc:
            raise CommandError(" ".join(exc.messages)) from exc

        self.stdout.write(self.style.SUCCESS(f"Recomputed ranks for {processed} partition(s)."))
