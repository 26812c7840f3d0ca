from django.db import models
from django.db.models import Q
from django.contrib.auth import get_user_model
from django.core.validators import MinValueValidator, MaxValueValidator
from django.core.exceptions import ValidationError
from django.utils.translation import gettext_lazy as _
from decimal import Decimal

from .calc import CPDRules, Period, normalize_period
from .professions import (
    ActivityType, Profession, FALLBACK_ACTIVITY_TYPE,
    rules_for_profession,
)


User = get_user_model()

MIN_YEAR = 1900
MAX_YEAR = 2100

DEFAULT_PERIOD_START = 2023
DEFAULT_PERIOD_END = 2026
DEFAULT_REQUIRED_POINTS = 200


# ============================================================================
# USER CONFIGURATION
# ============================================================================

class Profile(models.Model):
    """
    Per-user CPD settings: profession, reporting period and requirement.
    A user without a profile has not finished onboarding.
    """
    user = models.OneToOneField(
        User, on_delete=models.CASCADE,
        related_name='cpd_profile'
    )
    profession = models.CharField(
        max_length=50,
        choices=Profession.choices,
        blank=True
    )
    profession_other = models.CharField(
        max_length=200, blank=True,
        help_text="Free-text profession when 'Other' is selected"
    )

    # Right-to-practise licence
    pwz_number = models.CharField(max_length=20, blank=True)
    pwz_issue_date = models.DateField(null=True, blank=True)

    # Reporting period (years, inclusive)
    period_start = models.PositiveSmallIntegerField(
        default=DEFAULT_PERIOD_START,
        validators=[MinValueValidator(MIN_YEAR), MaxValueValidator(MAX_YEAR)]
    )
    period_end = models.PositiveSmallIntegerField(
        default=DEFAULT_PERIOD_END,
        validators=[MinValueValidator(MIN_YEAR), MaxValueValidator(MAX_YEAR)]
    )
    required_points = models.PositiveIntegerField(
        default=DEFAULT_REQUIRED_POINTS,
        help_text="Points required over the whole reporting period"
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['user__username']

    def __str__(self):
        return f"{self.user} - {self.profession_display} ({self.period_label})"

    def clean(self):
        """Keep the period ordered and drop the free-text profession when unused."""
        if self.period_start is not None and self.period_end is not None:
            period = normalize_period(self.period_start, self.period_end)
            self.period_start, self.period_end = period.start, period.end

        if self.profession != Profession.OTHER:
            self.profession_other = ''

    @property
    def period(self) -> Period:
        return normalize_period(self.period_start, self.period_end)

    @property
    def period_label(self):
        return self.period.label

    @property
    def rules(self) -> CPDRules:
        return rules_for_profession(self.profession)

    @property
    def profession_display(self):
        if self.profession == Profession.OTHER and self.profession_other:
            return self.profession_other
        return self.get_profession_display() or '-'


# ============================================================================
# TRAINING CATALOGUE
# ============================================================================

class Training(models.Model):
    """
    Catalogue of trainings users can add to their plan.
    """
    class DeliveryType(models.TextChoices):
        ONLINE = 'online', _('Online')
        STATIONARY = 'stacjonarne', _('Stationary')
        HYBRID = 'hybrydowe', _('Hybrid')

    title = models.CharField(max_length=300)
    organizer = models.CharField(max_length=200, blank=True)
    points = models.DecimalField(
        max_digits=7, decimal_places=2,
        null=True, blank=True,
        validators=[MinValueValidator(0)]
    )
    type = models.CharField(
        max_length=20,
        choices=DeliveryType.choices,
        blank=True
    )
    start_date = models.DateField(null=True, blank=True)
    end_date = models.DateField(null=True, blank=True)
    category = models.CharField(max_length=100, blank=True)
    profession = models.CharField(
        max_length=50,
        choices=Profession.choices,
        blank=True
    )
    voivodeship = models.CharField(max_length=50, blank=True)
    external_url = models.URLField(blank=True)
    is_partner = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['start_date', 'title']
        indexes = [
            models.Index(fields=['profession', 'start_date'], name='cpd_training_prof_start_idx'),
            models.Index(fields=['is_partner'], name='cpd_training_partner_idx'),
        ]

    def __str__(self):
        return self.title

    def clean(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValidationError("End date cannot be before start date.")

    def guess_activity_type(self):
        """Map the delivery type to the activity type it is logged as."""
        if self.type == self.DeliveryType.STATIONARY:
            return ActivityType.STATIONARY_COURSE
        return FALLBACK_ACTIVITY_TYPE


# ============================================================================
# ACTIVITIES
# ============================================================================

class ActivityQuerySet(models.QuerySet):

    def for_user(self, user):
        return self.filter(user=user)

    def done(self):
        return self.filter(status=Activity.Status.DONE)

    def planned(self):
        return self.filter(status=Activity.Status.PLANNED)

    def in_years(self, start, end):
        period = normalize_period(start, end)
        return self.filter(year__gte=period.start, year__lte=period.end)

    def ordered_for_rules(self):
        """Stable order for consuming yearly caps, independent of insertion order."""
        return self.order_by('year', 'type', 'created_at', 'points', 'pk')

    def missing_evidence(self):
        """Entries with neither a certificate nor an attached document."""
        return self.filter(
            Q(certificate_path__isnull=True) | Q(certificate_path=''),
            documents__isnull=True,
        )


class Activity(models.Model):
    """
    A single completed or planned CPD activity logged by a user.
    """
    user = models.ForeignKey(
        User, on_delete=models.CASCADE,
        related_name='cpd_activities'
    )
    type = models.CharField(
        max_length=50,
        choices=ActivityType.choices,
        default=FALLBACK_ACTIVITY_TYPE
    )
    points = models.DecimalField(
        max_digits=7, decimal_places=2,
        default=Decimal('0'),
        validators=[MinValueValidator(0)]
    )
    year = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(MIN_YEAR), MaxValueValidator(MAX_YEAR)]
    )
    organizer = models.CharField(max_length=200, null=True, blank=True)

    # Planning / completion
    class Status(models.TextChoices):
        PLANNED = 'planned', _('Planned')
        DONE = 'done', _('Done')

    status = models.CharField(
        max_length=10,
        choices=Status.choices,
        default=Status.DONE
    )
    planned_start_date = models.DateField(null=True, blank=True)
    training = models.ForeignKey(
        Training, on_delete=models.SET_NULL,
        null=True, blank=True,
        related_name='activities'
    )

    # Certificate metadata (the file itself lives in object storage)
    certificate_path = models.CharField(max_length=500, null=True, blank=True)
    certificate_name = models.CharField(max_length=255, null=True, blank=True)
    certificate_mime = models.CharField(max_length=100, null=True, blank=True)
    certificate_size = models.BigIntegerField(null=True, blank=True)
    certificate_uploaded_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ActivityQuerySet.as_manager()

    class Meta:
        ordering = ['-year', '-created_at']
        verbose_name_plural = "Activities"
        indexes = [
            models.Index(fields=['user', 'year'], name='cpd_activity_user_year_idx'),
            models.Index(fields=['user', 'status'], name='cpd_activity_user_status_idx'),
        ]

    def __str__(self):
        return f"{self.get_type_display()} {self.year} ({self.points} pts)"

    def clean(self):
        if self.status == self.Status.DONE and self.planned_start_date and self.year \
                and self.planned_start_date.year > self.year:
            raise ValidationError({
                'planned_start_date': "A completed activity cannot start after its year."
            })

    @property
    def has_certificate(self):
        return bool(self.certificate_path)

    @classmethod
    def draft_from_training(cls, user, training, year=None):
        """Unsaved planned activity prefilled from a catalogue entry."""
        if year is None:
            year = training.start_date.year if training.start_date else None
        return cls(
            user=user,
            type=training.guess_activity_type(),
            points=training.points or Decimal('0'),
            year=year,
            organizer=training.organizer or None,
            status=cls.Status.PLANNED,
            planned_start_date=training.start_date,
            training=training,
        )


class ActivityDocument(models.Model):
    """
    Additional files attached to an activity. Metadata only.
    """
    class Kind(models.TextChoices):
        CERTIFICATE = 'certificate', _('Certificate')
        DOCUMENT = 'document', _('Document')

    user = models.ForeignKey(
        User, on_delete=models.CASCADE,
        related_name='cpd_documents'
    )
    activity = models.ForeignKey(
        Activity, on_delete=models.CASCADE,
        related_name='documents'
    )
    kind = models.CharField(
        max_length=15,
        choices=Kind.choices,
        default=Kind.DOCUMENT
    )
    path = models.CharField(max_length=500)
    name = models.CharField(max_length=255, null=True, blank=True)
    mime = models.CharField(max_length=100, null=True, blank=True)
    size = models.BigIntegerField(null=True, blank=True)
    uploaded_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-uploaded_at']

    def __str__(self):
        return f"{self.get_kind_display()}: {self.name or self.path}"

    def clean(self):
        if self.activity_id and self.user_id and self.activity.user_id != self.user_id:
            raise ValidationError("Documents can only be attached to your own activities.")
