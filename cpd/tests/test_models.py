from datetime import date
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.test import TestCase

from cpd.models import Activity, ActivityDocument, Profile, Training
from cpd.professions import ActivityType, Profession

User = get_user_model()


class ProfileTestCase(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(username='anna', password='secret')

    def test_clean_orders_period(self):
        profile = Profile(user=self.user, profession=Profession.PHYSICIAN,
                          period_start=2026, period_end=2023)
        profile.full_clean()
        self.assertEqual((profile.period_start, profile.period_end), (2023, 2026))
        self.assertEqual(profile.period_label, '2023–2026')

    def test_profession_other(self):
        profile = Profile(user=self.user, profession=Profession.NURSE, profession_other='Doula')
        profile.clean()
        self.assertEqual(profile.profession_other, '')

        profile.profession = Profession.OTHER
        profile.profession_other = 'Doula'
        profile.clean()
        self.assertEqual(profile.profession_display, 'Doula')

    def test_rules(self):
        profile = Profile.objects.create(user=self.user, profession=Profession.MIDWIFE)
        self.assertIn(ActivityType.SELF_STUDY.value, profile.rules.yearly_max_by_type)

        profile.rules.yearly_max_by_type[ActivityType.SELF_STUDY.value] = 500
        self.assertEqual(profile.rules.yearly_max_by_type[ActivityType.SELF_STUDY.value], 20)


class TrainingTestCase(TestCase):
    def test_end_before_start(self):
        training = Training(title='ACLS', start_date=date(2025, 5, 2), end_date=date(2025, 5, 1))
        with self.assertRaises(ValidationError):
            training.clean()

    def test_guess_activity_type(self):
        self.assertEqual(
            Training(title='A', type=Training.DeliveryType.STATIONARY).guess_activity_type(),
            ActivityType.STATIONARY_COURSE,
        )
        self.assertEqual(
            Training(title='B', type=Training.DeliveryType.HYBRID).guess_activity_type(),
            ActivityType.ONLINE_COURSE,
        )


class ActivityTestCase(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(username='anna', password='secret')
        self.other = User.objects.create_user(username='piotr', password='secret')

    def create(self, **kwargs):
        values = {'user': self.user, 'type': ActivityType.CONFERENCE, 'points': 20, 'year': 2024}
        values.update(kwargs)
        return Activity.objects.create(**values)

    def test_defaults(self):
        activity = Activity.objects.create(user=self.user, year=2024)
        self.assertEqual(activity.status, Activity.Status.DONE)
        self.assertEqual(activity.type, ActivityType.ONLINE_COURSE)
        self.assertFalse(activity.has_certificate)

    def test_queryset_filters(self):
        done = self.create()
        planned = self.create(status=Activity.Status.PLANNED, year=2026)
        self.create(year=2019)
        self.create(user=self.other)

        mine = Activity.objects.for_user(self.user)
        self.assertEqual(mine.count(), 3)
        self.assertEqual(list(mine.planned()), [planned])
        self.assertEqual(set(mine.in_years(2026, 2023)), {done, planned})

    def test_ordered_for_rules(self):
        late = self.create(year=2025)
        b = self.create(type=ActivityType.SELF_STUDY)
        a = self.create(type=ActivityType.CONFERENCE)
        ordered = list(Activity.objects.for_user(self.user).ordered_for_rules())
        self.assertEqual(ordered, [a, b, late])

    def test_missing_evidence(self):
        bare = self.create()
        self.create(certificate_path='certs/1.pdf')
        with_doc = self.create()
        ActivityDocument.objects.create(user=self.user, activity=with_doc, path='docs/1.pdf')

        self.assertEqual(list(Activity.objects.missing_evidence()), [bare])

    def test_done_cannot_start_after_its_year(self):
        activity = Activity(user=self.user, year=2024, planned_start_date=date(2025, 1, 10))
        with self.assertRaises(ValidationError):
            activity.full_clean()

    def test_draft_from_training(self):
        training = Training.objects.create(
            title='USG workshop', organizer='CMKP', points=Decimal('12.50'),
            type=Training.DeliveryType.STATIONARY, start_date=date(2025, 6, 1),
        )
        draft = Activity.draft_from_training(self.user, training)

        self.assertIsNone(draft.pk)
        self.assertEqual(draft.status, Activity.Status.PLANNED)
        self.assertEqual(draft.year, 2025)
        self.assertEqual(draft.type, ActivityType.STATIONARY_COURSE)
        self.assertEqual(draft.points, Decimal('12.50'))
        self.assertEqual(draft.organizer, 'CMKP')


class ActivityDocumentTestCase(TestCase):
    def test_document_must_belong_to_activity_owner(self):
        owner = User.objects.create_user(username='anna', password='secret')
        stranger = User.objects.create_user(username='piotr', password='secret')
        activity = Activity.objects.create(user=owner, year=2024, points=10)

        document = ActivityDocument(user=stranger, activity=activity, path='docs/x.pdf')
        with self.assertRaises(ValidationError):
            document.clean()
