"""
Django Management Command: CPD Status

Prints a user's CPD summary for their reporting period: counted points,
both status policies, partial limits and the suggested next step.

Usage:
    python manage.py cpd_status jkowalski              # Summary
    python manage.py cpd_status jkowalski --details    # Every activity with its warning
    python manage.py cpd_status jkowalski --no-cache   # Recalculate from the database
"""

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError

from cpd.calc import format_points
from cpd.errors import CPDError
from cpd.utils import build_cpd_summary


class Command(BaseCommand):
    help = "Show a user's CPD points, status and limits for their reporting period"

    def add_arguments(self, parser):
        """Define command-line arguments"""
        parser.add_argument(
            'username',
            help='Username of the user to report on',
        )
        parser.add_argument(
            '--details',
            action='store_true',
            help='List every completed activity with its counted points and warning',
        )
        parser.add_argument(
            '--no-cache',
            action='store_true',
            help='Ignore the cached summary and recalculate',
        )

    def handle(self, *args, **options):
        """Main command handler"""
        User = get_user_model()
        username = options['username']

        try:
            user = User.objects.get(**{User.USERNAME_FIELD: username})
        except User.DoesNotExist:
            raise CommandError(f"User '{username}' does not exist")

        try:
            summary = build_cpd_summary(user, use_cache=not options['no_cache'])
        except CPDError as e:
            raise CommandError(e.user_message)

        self.show_summary(user, summary)
        self.show_limits(summary)

        if options['details']:
            self.show_details(summary)

    def show_summary(self, user, summary):
        self.stdout.write(self.style.SUCCESS('\n' + '=' * 70))
        self.stdout.write(self.style.SUCCESS(f'CPD STATUS: {user}'))
        self.stdout.write(self.style.SUCCESS('=' * 70 + '\n'))

        self.stdout.write(f'Period:    {summary.period_label}')
        self.stdout.write(
            f'Points:    {format_points(summary.total_points)}/{summary.required_points}'
        )
        self.stdout.write(f'Missing:   {format_points(summary.missing_points)}')
        self.stdout.write(f'Progress:  {round(summary.progress_pct)}%')
        self.stdout.write(f'Completed: {summary.done_count}  Planned: {summary.planned_count}')

        style = {
            'ok': self.style.SUCCESS,
            'warn': self.style.WARNING,
        }.get(summary.status.tone, self.style.ERROR)
        self.stdout.write(style(f'Status:    {summary.status.title} - {summary.status.description}'))
        self.stdout.write(
            f'Dashboard: {summary.progress_status.label} ({summary.progress_status.reason})'
        )

        if summary.missing_evidence_count:
            self.stdout.write(self.style.WARNING(
                f'Evidence:  {summary.missing_evidence_count} entries without a certificate'
            ))

        if summary.next_step:
            self.stdout.write(f'\nNext step: {summary.next_step.title}')
            self.stdout.write(f'  {summary.next_step.description}')

        for recommendation in summary.recommendations:
            self.stdout.write(f'  - {recommendation}')

    def show_limits(self, summary):
        if not summary.top_limits:
            return

        self.stdout.write('\nLimits in this period:')
        for item in summary.top_limits:
            self.stdout.write(
                f'  {item.label}: {format_points(item.used)}/{format_points(item.cap)} pts '
                f'[{item.tone.badge}] remaining {format_points(item.remaining)}'
            )

        if summary.limit_warning:
            self.stdout.write(self.style.WARNING(f'  {summary.limit_warning}'))

    def show_details(self, summary):
        self.stdout.write('\nActivities:')
        for a in summary.applied:
            line = (
                f'  {a.year or "?"} {a.type}: {format_points(a.applied_points)}'
                f'/{format_points(a.raw_points)} pts'
            )
            if a.warning:
                self.stdout.write(self.style.WARNING(f'{line}  ! {a.warning}'))
            else:
                self.stdout.write(line)
