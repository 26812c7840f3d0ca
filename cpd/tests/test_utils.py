from datetime import date
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.test import TestCase

from cpd.errors import ImportPayloadError, ProfileNotFoundError
from cpd.models import Activity, ActivityDocument, Profile, Training
from cpd.professions import ActivityType, Profession
from cpd.utils import (
    add_training_to_plan, build_cpd_summary, clear_cpd_caches, get_profile,
    import_from_calculator, next_step_for, summary_cache_key,
)

User = get_user_model()


class CPDTestMixin:
    def setUp(self):
        cache.clear()
        self.user = User.objects.create_user(username='anna', password='secret')
        self.profile = Profile.objects.create(
            user=self.user,
            profession=Profession.PHYSICIAN,
            period_start=2023,
            period_end=2026,
            required_points=200,
        )

    def log(self, activity_type, points, year, **kwargs):
        return Activity.objects.create(
            user=self.user, type=activity_type, points=points, year=year, **kwargs
        )


class GetProfileTestCase(TestCase):
    def test_missing_profile(self):
        user = User.objects.create_user(username='new', password='secret')
        with self.assertRaises(ProfileNotFoundError) as ctx:
            get_profile(user)
        self.assertEqual(ctx.exception.error_code, 'PROFILE_NOT_FOUND')
        self.assertEqual(ctx.exception.context['user_id'], user.pk)


class BuildSummaryTestCase(CPDTestMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.log(ActivityType.SELF_STUDY, 15, 2024, certificate_path='certs/a.pdf')
        self.log(ActivityType.SELF_STUDY, 10, 2024)
        self.log(ActivityType.CONFERENCE, 20, 2025)
        self.log(ActivityType.ONLINE_COURSE, 10, 2020)
        self.log(ActivityType.CONFERENCE, 20, 2026, status=Activity.Status.PLANNED)

    def test_totals(self):
        summary = build_cpd_summary(self.user, use_cache=False, current_year=2025)

        self.assertEqual(summary.period_label, '2023–2026')
        self.assertEqual(summary.total_points, 40)
        self.assertEqual(summary.missing_points, 160)
        self.assertEqual(summary.progress_pct, 20)
        self.assertEqual(summary.status.tone, 'risk')
        self.assertEqual(summary.progress_status.tone, 'bad')

    def test_counts(self):
        summary = build_cpd_summary(self.user, use_cache=False)

        self.assertEqual(len(summary.applied), 4)
        self.assertEqual(summary.done_count, 3)
        self.assertEqual(summary.planned_count, 1)
        self.assertEqual(summary.missing_evidence_count, 2)

    def test_limits(self):
        summary = build_cpd_summary(self.user, use_cache=False)

        self.assertEqual(len(summary.top_limits), 1)
        limit = summary.top_limits[0]
        self.assertEqual(limit.key, ActivityType.SELF_STUDY)
        self.assertEqual(limit.used, 20)
        self.assertEqual(limit.cap, 80)
        self.assertEqual(limit.remaining, 60)
        self.assertEqual(limit.tone.badge, 'In progress')
        self.assertIn('excess of 5 points', summary.limit_warning)

    def test_plan_and_next_step(self):
        summary = build_cpd_summary(self.user, use_cache=False, current_year=2025)

        self.assertEqual(summary.plan.years_left, 2)
        self.assertEqual(summary.plan.per_year, 80)
        self.assertEqual(len(summary.recommendations), 3)
        self.assertEqual(summary.next_step.action, 'add_evidence')

    def test_summary_is_cached(self):
        first = build_cpd_summary(self.user)
        self.assertIsNotNone(cache.get(summary_cache_key(self.user.pk)))

        # queryset updates send no signals
        Activity.objects.filter(type=ActivityType.CONFERENCE).update(points=Decimal('40'))

        self.assertEqual(build_cpd_summary(self.user).total_points, first.total_points)
        self.assertEqual(build_cpd_summary(self.user, use_cache=False).total_points, 60)

    def test_explicit_year_bypasses_cache(self):
        cached = build_cpd_summary(self.user)

        planned_from_2023 = build_cpd_summary(self.user, current_year=2023)
        self.assertEqual(planned_from_2023.plan.years_left, 4)
        self.assertEqual(planned_from_2023.plan.per_year, 40)

        stored = cache.get(summary_cache_key(self.user.pk))
        self.assertEqual(stored.plan.years_left, cached.plan.years_left)
        self.assertEqual(build_cpd_summary(self.user).plan.years_left, cached.plan.years_left)

    def test_saving_activity_invalidates_cache(self):
        build_cpd_summary(self.user)
        self.log(ActivityType.PUBLICATION, 25, 2023)

        self.assertIsNone(cache.get(summary_cache_key(self.user.pk)))
        self.assertEqual(build_cpd_summary(self.user).total_points, 65)

    def test_document_and_profile_changes_invalidate_cache(self):
        build_cpd_summary(self.user)
        activity = Activity.objects.filter(certificate_path__isnull=True).first()
        ActivityDocument.objects.create(user=self.user, activity=activity, path='docs/b.pdf')
        self.assertIsNone(cache.get(summary_cache_key(self.user.pk)))

        build_cpd_summary(self.user)
        self.profile.required_points = 40
        self.profile.save()
        self.assertIsNone(cache.get(summary_cache_key(self.user.pk)))
        self.assertEqual(build_cpd_summary(self.user).status.tone, 'ok')

    def test_clear_without_user_is_noop(self):
        build_cpd_summary(self.user)
        clear_cpd_caches(None)
        self.assertIsNotNone(cache.get(summary_cache_key(self.user.pk)))


class NextStepTestCase(TestCase):
    def test_actions(self):
        self.assertEqual(next_step_for(Decimal('30'), 0, 0).action, 'add_activity')
        self.assertEqual(next_step_for(Decimal('30'), 2, 1).action, 'add_evidence')
        self.assertEqual(next_step_for(Decimal('30'), 2, 0).action, 'review_plan')
        self.assertEqual(next_step_for(Decimal('0'), 0, 0).action, 'portfolio')


class ImportFromCalculatorTestCase(CPDTestMixin, TestCase):
    def test_import(self):
        build_cpd_summary(self.user)

        created = import_from_calculator(self.user, {'activities': [
            {'type': 'Samokształcenie', 'points': '15', 'year': 2024, 'organizer': ' OIL '},
            {'type': 'bogus', 'points': 'abc', 'year': 2024},
            {'points': 0, 'organizer': 'CMKP', 'year': 2025},
        ]})

        self.assertEqual(created, 2)
        activities = Activity.objects.for_user(self.user).order_by('year')
        self.assertEqual(activities[0].organizer, 'OIL')
        self.assertEqual(activities[0].status, Activity.Status.DONE)
        self.assertEqual(activities[1].type, ActivityType.ONLINE_COURSE)
        self.assertIsNone(cache.get(summary_cache_key(self.user.pk)))

    def test_rows_outside_field_limits_are_rejected(self):
        with self.assertRaises(ImportPayloadError) as ctx:
            import_from_calculator(self.user, {'activities': [
                {'type': 'Samokształcenie', 'points': 10, 'year': 2024},
                {'type': 'Samokształcenie', 'points': 10 ** 6, 'year': 2024},
                {'points': 5, 'year': 2024, 'organizer': 'x' * 500},
            ]})

        row_errors = ctx.exception.context['errors']['rows']
        self.assertEqual(set(row_errors), {1, 2})
        self.assertIn('points', row_errors[1])
        self.assertIn('organizer', row_errors[2])

        self.assertFalse(Activity.objects.exists())
        self.assertEqual(build_cpd_summary(self.user, use_cache=False).total_points, 0)

    def test_empty_import(self):
        self.assertEqual(import_from_calculator(self.user, {'activities': []}), 0)
        self.assertFalse(Activity.objects.exists())

    def test_invalid_payload(self):
        with self.assertRaises(ImportPayloadError) as ctx:
            import_from_calculator(self.user, {'activities': {'type': 'x'}})
        self.assertEqual(ctx.exception.error_code, 'INVALID_IMPORT_PAYLOAD')
        self.assertIn('payload', ctx.exception.context['errors'])


class AddTrainingToPlanTestCase(CPDTestMixin, TestCase):
    def test_add_training(self):
        training = Training.objects.create(
            title='Emergency ultrasound', organizer='CMKP', points=Decimal('12.50'),
            type=Training.DeliveryType.STATIONARY, start_date=date(2025, 9, 15),
        )
        activity = add_training_to_plan(self.user, training)

        self.assertIsNotNone(activity.pk)
        self.assertEqual(activity.status, Activity.Status.PLANNED)
        self.assertEqual(activity.year, 2025)
        self.assertEqual(activity.training, training)
        self.assertEqual(build_cpd_summary(self.user).planned_count, 1)

    def test_training_without_dates_is_planned_this_year(self):
        training = Training.objects.create(title='Pharmacology webinar')
        activity = add_training_to_plan(self.user, training)

        self.assertEqual(activity.year, date.today().year)
        self.assertEqual(activity.type, ActivityType.ONLINE_COURSE)
