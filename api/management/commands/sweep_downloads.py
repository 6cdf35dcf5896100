from django.conf import settings
from django.core.management.base import BaseCommand

from api import store


class Command(BaseCommand):
    help = "Remove expired download jobs and job directories older than the age threshold."

    def add_arguments(self, parser):
        parser.add_argument(
            "--max-age",
            type=int,
            default=None,
            help="Age threshold in minutes (defaults to SWEEP_MAX_AGE_MINUTES).",
        )

    def handle(self, *args, **options):
        max_age = options["max_age"]
        if max_age is None:
            max_age = settings.SWEEP_MAX_AGE_MINUTES
        result = store.sweep(max_age)
        self.stdout.write(
            f"expired={result.expired} removed={result.removed} errors={result.errors}"
        )
