"""
CPD Profession Catalogue

Single source of truth for the professions the tracker supports, the
activity types users can log, and the defaults attached to both:
- required points per reporting period for each profession
- default points suggested for each activity type
- partial (yearly) limits applied by the rules engine

Stored values are the Polish labels used by the registers; display labels
go through gettext.
"""

from typing import Any, Dict

from django.db import models
from django.utils.translation import gettext_lazy as _

from .calc import CPDRules


# ============================================================================
# PROFESSIONS
# ============================================================================

class Profession(models.TextChoices):
    PHYSICIAN = 'Lekarz', _('Physician')
    DENTIST = 'Lekarz dentysta', _('Dentist')
    NURSE = 'Pielęgniarka', _('Nurse')
    MIDWIFE = 'Położna', _('Midwife')
    PHYSIOTHERAPIST = 'Fizjoterapeuta', _('Physiotherapist')
    PARAMEDIC = 'Ratownik medyczny', _('Paramedic')
    PHARMACIST = 'Farmaceuta', _('Pharmacist')
    LAB_DIAGNOSTICIAN = 'Diagnosta laboratoryjny', _('Laboratory diagnostician')
    OTHER = 'Inne', _('Other')


# Required points per reporting period
DEFAULT_REQUIRED_POINTS_BY_PROFESSION: Dict[str, int] = {
    Profession.PHYSICIAN.value: 200,
    Profession.DENTIST.value: 200,
    Profession.NURSE.value: 120,
    Profession.MIDWIFE.value: 120,
    Profession.PHYSIOTHERAPIST.value: 100,
    Profession.PARAMEDIC.value: 100,
    Profession.PHARMACIST.value: 100,
    Profession.LAB_DIAGNOSTICIAN.value: 100,
    Profession.OTHER.value: 0,
}


# ============================================================================
# ACTIVITY TYPES
# ============================================================================

class ActivityType(models.TextChoices):
    STATIONARY_COURSE = 'Kurs stacjonarny', _('Stationary course')
    ONLINE_COURSE = 'Kurs online / webinar', _('Online course / webinar')
    CONFERENCE = 'Konferencja / kongres', _('Conference / congress')
    WORKSHOP = 'Warsztaty praktyczne', _('Practical workshop')
    PUBLICATION = 'Publikacja naukowa', _('Scientific publication')
    TEACHING = 'Prowadzenie szkolenia', _('Teaching a training')
    SELF_STUDY = 'Samokształcenie', _('Self-study')
    INTERNSHIP = 'Staż / praktyka', _('Internship / placement')


FALLBACK_ACTIVITY_TYPE = ActivityType.ONLINE_COURSE

DEFAULT_POINTS_BY_TYPE: Dict[str, int] = {
    ActivityType.STATIONARY_COURSE.value: 15,
    ActivityType.ONLINE_COURSE.value: 10,
    ActivityType.CONFERENCE.value: 20,
    ActivityType.WORKSHOP.value: 15,
    ActivityType.PUBLICATION.value: 25,
    ActivityType.TEACHING.value: 20,
    ActivityType.SELF_STUDY.value: 5,
    ActivityType.INTERNSHIP.value: 10,
}


# ============================================================================
# PARTIAL LIMITS
# ============================================================================

# Keys must match Activity.type exactly.
SELF_STUDY_YEARLY_CAP = 20

CPD_RULES_BY_PROFESSION: Dict[str, CPDRules] = {
    profession: CPDRules(yearly_max_by_type={ActivityType.SELF_STUDY.value: SELF_STUDY_YEARLY_CAP})
    for profession in Profession.values
    if profession != Profession.OTHER
}
CPD_RULES_BY_PROFESSION[Profession.OTHER.value] = CPDRules()


# ============================================================================
# HELPERS
# ============================================================================

def is_profession(value: Any) -> bool:
    return isinstance(value, str) and value in Profession.values


def is_activity_type(value: Any) -> bool:
    return isinstance(value, str) and value in ActivityType.values


def default_required_points_for(profession: str) -> int:
    """Default requirement for a profession; unknown professions need 0 points."""
    return DEFAULT_REQUIRED_POINTS_BY_PROFESSION.get(profession, 0)


def default_points_for(activity_type: str) -> int:
    return DEFAULT_POINTS_BY_TYPE.get(activity_type, DEFAULT_POINTS_BY_TYPE[FALLBACK_ACTIVITY_TYPE.value])


def rules_for_profession(profession: str) -> CPDRules:
    """
    Cap rules for a profession.

    Returns a fresh copy, or an empty rule set for blank or unknown
    professions, so callers can always hand the result to the engine.
    """
    rules = CPD_RULES_BY_PROFESSION.get(profession)
    if rules is None:
        return CPDRules()
    return CPDRules(yearly_max_by_type=dict(rules.yearly_max_by_type))
