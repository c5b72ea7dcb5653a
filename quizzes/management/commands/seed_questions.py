from __future__ import annotations

from django.core.exceptions import ValidationError
from django.core.management.base import BaseCommand, CommandError

from quizzes.question_services import seed_question_bank


class Command(BaseCommand):
    help = "Top up the question bank from Open Trivia DB for each category."

    def add_arguments(self, parser) -> None:
        parser.add_argument(
            "--category",
            action="append",
            default=[],
            help="Category to seed. Can be provided multiple times. Defaults to all categories.",
        )
        parser.add_argument(
            "--minimum",
            type=int,
            default=10,
            help="Replenish a category when it holds fewer questions than this.",
        )

    def handle(self, *args, **options):
        categories = [str(item).strip() for item in options.get("category") or [] if str(item).strip()]
        minimum = int(options.get("minimum") or 0)
        if minimum < 0:
            raise CommandError("--minimum must be zero or positive")

        try:
            report = seed_question_bank(categories=categories or None, minimum=minimum)
        except ValidationError as exc:
            raise CommandError(" ".join(exc.messages)) from exc

        for category, counts in report.items():
            self.stdout.write(
                f"{category}: before={counts['before']} added={counts['added']} after={counts['after']}"
            )
        total_added = sum(counts["added"] for counts in report.values())
        self.stdout.write(self.style.SUCCESS(f"Seeded {total_added} question(s) across {len(report)} category(ies)."))
