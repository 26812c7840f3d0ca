"""
CPD Tracking Forms

Validation boundary between user input and the CPD tables:
- activity entry (manual logging and calculator rows)
- profile / reporting-period settings
- calculator draft import

Loose input is normalized rather than rejected where the calculator has
always been forgiving (unknown type, non-numeric points, odd years).
"""

from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional

from django import forms
from django.core.exceptions import ValidationError

from .calc import to_decimal
from .models import Activity, Profile, MIN_YEAR, MAX_YEAR
from .professions import (
    FALLBACK_ACTIVITY_TYPE, is_activity_type, default_points_for,
    default_required_points_for,
)


# ============================================================================
# NORMALIZERS - shared by forms and the calculator import
# ============================================================================

def normalize_type(value: Any) -> str:
    """Known activity type, or the fallback type for anything else."""
    text = str(value if value is not None else '').strip()
    return text if is_activity_type(text) else FALLBACK_ACTIVITY_TYPE.value


def normalize_points(value: Any) -> int:
    """Whole, non-negative points; unreadable input counts as 0."""
    number = to_decimal(value)
    if number is None:
        return 0
    return max(0, int(number.quantize(Decimal('1'), rounding=ROUND_HALF_UP)))


def normalize_year(value: Any) -> int:
    """Whole year clamped to the supported range; unreadable input means this year."""
    number = to_decimal(value)
    if number is None:
        return date.today().year
    year = int(number.quantize(Decimal('1'), rounding=ROUND_HALF_UP))
    return min(MAX_YEAR, max(MIN_YEAR, year))


def normalize_organizer(value: Any) -> Optional[str]:
    text = str(value if value is not None else '').strip()
    return text or None


def normalize_activity_row(row: Any) -> Dict[str, Any]:
    if not isinstance(row, dict):
        row = {}
    return {
        'type': normalize_type(row.get('type')),
        'points': normalize_points(row.get('points')),
        'year': normalize_year(row.get('year')),
        'organizer': normalize_organizer(row.get('organizer')),
    }


# ============================================================================
# BASE FORM CLASSES
# ============================================================================

class BaseModelForm(forms.ModelForm):
    """Base form that knows which user it is acting for."""

    def __init__(self, *args, **kwargs):
        self.user = kwargs.pop('user', None)
        super().__init__(*args, **kwargs)

    def save(self, commit=True):
        instance = super().save(commit=False)
        if self.user is not None and hasattr(instance, 'user_id') and not instance.user_id:
            instance.user = self.user
        if commit:
            instance.save()
            self.save_m2m()
        return instance


# ============================================================================
# ACTIVITY FORMS
# ============================================================================

class ActivityForm(BaseModelForm):
    """Log or edit a single activity."""

    # Accept loose input; the clean_* methods normalize it.
    type = forms.CharField(required=False)
    points = forms.CharField(required=False)
    year = forms.CharField(required=False)
    organizer = forms.CharField(required=False, max_length=200)

    class Meta:
        model = Activity
        fields = [
            'type', 'points', 'year', 'organizer',
            'status', 'planned_start_date', 'training',
        ]
        widgets = {
            'planned_start_date': forms.DateInput(attrs={'type': 'date'}),
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['status'].required = False
        self.fields['training'].required = False

    def clean_type(self):
        return normalize_type(self.cleaned_data.get('type'))

    def clean_points(self):
        points = self.cleaned_data.get('points')
        if points in (None, ''):
            # blank points take the usual value for the activity type
            return default_points_for(self.cleaned_data.get('type') or FALLBACK_ACTIVITY_TYPE.value)
        return normalize_points(points)

    def clean_year(self):
        return normalize_year(self.cleaned_data.get('year'))

    def clean_organizer(self):
        return normalize_organizer(self.cleaned_data.get('organizer'))

    def clean_status(self):
        return self.cleaned_data.get('status') or Activity.Status.DONE

    def clean(self):
        cleaned_data = super().clean()
        status = cleaned_data.get('status')
        planned_start_date = cleaned_data.get('planned_start_date')

        if status == Activity.Status.PLANNED and planned_start_date \
                and planned_start_date.year != cleaned_data.get('year'):
            # a planned entry counts in the year it starts
            cleaned_data['year'] = planned_start_date.year

        return cleaned_data


# ============================================================================
# PROFILE FORMS
# ============================================================================

class ProfileForm(BaseModelForm):
    """Profession, licence and reporting period settings."""

    class Meta:
        model = Profile
        fields = [
            'profession', 'profession_other', 'pwz_number', 'pwz_issue_date',
            'period_start', 'period_end', 'required_points',
        ]
        widgets = {
            'pwz_issue_date': forms.DateInput(attrs={'type': 'date'}),
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['required_points'].required = False
        self.fields['required_points'].help_text = (
            "Leave empty to use the default for your profession"
        )

    def clean_pwz_number(self):
        pwz_number = (self.cleaned_data.get('pwz_number') or '').strip()
        if pwz_number and not pwz_number.isdigit():
            raise ValidationError("The licence number may contain digits only.")
        return pwz_number

    def keeps_previous_default(self, required_points):
        """True when the profession changed but the requirement was left at the old default."""
        if not self.instance.pk or 'profession' not in self.changed_data:
            return False
        previous = self.initial.get('profession') or ''
        return required_points == default_required_points_for(previous)

    def clean(self):
        cleaned_data = super().clean()
        required_points = cleaned_data.get('required_points')

        if required_points is None or self.keeps_previous_default(required_points):
            cleaned_data['required_points'] = default_required_points_for(
                cleaned_data.get('profession') or ''
            )

        return cleaned_data


# ============================================================================
# CALCULATOR IMPORT
# ============================================================================

class CalculatorImportForm(forms.Form):
    """
    Import of the guest calculator draft: ``{"activities": [...]}``.

    Each row is normalized; rows without points and without an organizer
    are dropped.
    """
    payload = forms.JSONField()

    def clean_payload(self):
        payload = self.cleaned_data.get('payload')
        if not isinstance(payload, dict):
            raise ValidationError("Expected an object with an 'activities' list.")

        activities = payload.get('activities', [])
        if activities is None:
            activities = []
        if not isinstance(activities, list):
            raise ValidationError("'activities' must be a list.")

        return {'activities': activities}

    def rows(self) -> List[Dict[str, Any]]:
        rows = [normalize_activity_row(a) for a in self.cleaned_data['payload']['activities']]
        return [r for r in rows if r['points'] > 0 or r['organizer']]
