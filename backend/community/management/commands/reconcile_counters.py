"""
Management command to repair drifted post counters.

Usage: python manage.py reconcile_counters [--post ID] [--dry-run]
"""

from django.core.management.base import BaseCommand
from django.db import transaction

from community.services import reconcile_post_counters


class Command(BaseCommand):
    help = 'Recompute likes_count and comments_count from likes and comments'

    def add_arguments(self, parser):
        parser.add_argument(
            '--post',
            type=int,
            default=None,
            help='Only reconcile this post'
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Report drift without writing the corrections'
        )

    def handle(self, *args, **options):
        with transaction.atomic():
            corrections = reconcile_post_counters(post_id=options['post'])
            if options['dry_run']:
                transaction.set_rollback(True)

        for correction in corrections:
            self.stdout.write(
                f"post {correction['post_id']}: {correction['field']} "
                f"{correction['stored']} -> {correction['actual']}"
            )

        verb = 'Found' if options['dry_run'] else 'Fixed'
        self.stdout.write(self.style.SUCCESS(f'{verb} {len(corrections)} drifted counter(s)'))
