"""
CPD Tracking System Utilities

Service functions between the database and the calculation engine:
- loading a user's profile and activities
- building the dashboard summary (cached)
- importing calculator drafts and planning catalogue trainings
- cache invalidation
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional

from django.conf import settings
from django.core.cache import cache
from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils.timezone import localdate

from .calc import (
    AppliedActivity, CatchUpPlan, CPDStatus, LimitSummary, LimitTone, Period,
    ProgressStatus, apply_rules, calc_missing, calc_progress, catch_up_plan,
    compliance_status, format_points, limit_tone, progress_status, quick_recommendations,
    summarize_limits, ZERO,
)
from .errors import ImportPayloadError, ProfileNotFoundError
from .forms import CalculatorImportForm
from .models import Activity, Profile

logger = logging.getLogger(__name__)


DEFAULT_CPD_SETTINGS = {
    'SUMMARY_CACHE_TIMEOUT': 300,
    'TOP_LIMITS_COUNT': 3,
}


def cpd_setting(name: str) -> Any:
    return getattr(settings, 'CPD_SETTINGS', {}).get(name, DEFAULT_CPD_SETTINGS[name])


def summary_cache_key(user_id) -> str:
    return f"cpd_summary_{user_id}"


# ============================================================================
# SUMMARY TYPES
# ============================================================================

@dataclass
class TopLimit:
    key: str
    label: str
    used: Decimal
    cap: Decimal
    remaining: Decimal
    used_pct: Decimal
    tone: LimitTone


@dataclass
class NextStep:
    title: str
    description: str
    action: Optional[str] = None


@dataclass
class CPDSummary:
    """Everything the CPD dashboard shows for one user."""
    period: Period
    period_label: str
    required_points: int
    total_points: Decimal
    missing_points: Decimal
    progress_pct: Decimal
    status: CPDStatus
    progress_status: ProgressStatus
    applied: List[AppliedActivity]
    limits: LimitSummary
    done_count: int
    planned_count: int
    missing_evidence_count: int
    top_limits: List[TopLimit] = field(default_factory=list)
    limit_warning: Optional[str] = None
    next_step: Optional[NextStep] = None
    recommendations: List[str] = field(default_factory=list)
    plan: Optional[CatchUpPlan] = None


# ============================================================================
# LOADING
# ============================================================================

def get_profile(user) -> Profile:
    """The user's CPD profile; raises ProfileNotFoundError before onboarding."""
    profile = Profile.objects.filter(user=user).first()
    if profile is None:
        logger.warning(f"No CPD profile found for user {user}")
        raise ProfileNotFoundError(user)
    return profile


def top_limits_from(limits: LimitSummary, count: Optional[int] = None) -> List[TopLimit]:
    """The fullest capped categories, as shown under the progress bar."""
    if count is None:
        count = cpd_setting('TOP_LIMITS_COUNT')

    items = []
    for row in limits.per_type:
        if not row.cap_in_period:
            continue
        used_pct = row.used_pct or ZERO
        items.append(TopLimit(
            key=row.type,
            label=row.type,
            used=row.applied,
            cap=row.cap_in_period,
            remaining=max(ZERO, row.cap_in_period - row.applied),
            used_pct=used_pct,
            tone=limit_tone(row.applied, used_pct),
        ))
    return items[:count]


def next_step_for(missing: Decimal, planned_count: int, missing_evidence_count: int) -> NextStep:
    if missing > 0 and planned_count == 0:
        return NextStep(
            title="Plan your next activity",
            description=f"You are {format_points(missing)} points short. Add a planned training to close the gap.",
            action='add_activity',
        )
    if missing_evidence_count > 0:
        return NextStep(
            title="Add missing certificates",
            description=f"{missing_evidence_count} completed entries have no certificate attached.",
            action='add_evidence',
        )
    if missing > 0:
        return NextStep(
            title="Complete your planned activities",
            description=f"{planned_count} planned entries will count once marked as done.",
            action='review_plan',
        )
    return NextStep(
        title="Export your portfolio",
        description="All points for this period are collected.",
        action='portfolio',
    )


# ============================================================================
# DASHBOARD SUMMARY
# ============================================================================

def build_cpd_summary(user, use_cache: bool = True, current_year: Optional[int] = None) -> CPDSummary:
    """
    Load the user's profile and completed activities and run the rules.

    Only completed activities count toward the total. Activities are fed to
    the engine in ordered_for_rules() order so yearly caps are consumed the
    same way on every call.

    The cache only holds summaries planned from the current year; passing
    ``current_year`` always recalculates.
    """
    if current_year is not None:
        use_cache = False

    cache_key = summary_cache_key(user.pk)
    if use_cache:
        cached = cache.get(cache_key)
        if cached is not None:
            return cached

    profile = get_profile(user)
    period = profile.period
    rules = profile.rules

    user_activities = Activity.objects.for_user(user)
    done = list(user_activities.done().ordered_for_rules())
    in_period = user_activities.in_years(period.start, period.end)

    applied = apply_rules(done, period, rules)
    total = sum((a.applied_points for a in applied), ZERO)
    required = profile.required_points

    missing = calc_missing(total, required)
    progress = calc_progress(total, required)
    limits = summarize_limits(done, period, rules)

    planned_count = in_period.planned().count()
    missing_evidence_count = in_period.done().missing_evidence().count()

    limit_warning = next(
        (a.warning for a in applied if a.in_period and a.over_points > 0),
        None
    )

    summary = CPDSummary(
        period=period,
        period_label=period.label,
        required_points=required,
        total_points=total,
        missing_points=missing,
        progress_pct=progress,
        status=compliance_status(total, required),
        progress_status=progress_status(progress, missing),
        applied=applied,
        limits=limits,
        done_count=sum(1 for a in applied if a.in_period),
        planned_count=planned_count,
        missing_evidence_count=missing_evidence_count,
        top_limits=top_limits_from(limits),
        limit_warning=limit_warning,
        next_step=next_step_for(missing, planned_count, missing_evidence_count),
        recommendations=quick_recommendations(missing),
        plan=catch_up_plan(missing, period.end, current_year or localdate().year),
    )

    logger.debug(
        f"CPD summary for {user}: {total}/{required} pts in {period.label} "
        f"({summary.status.tone})"
    )

    if use_cache:
        cache.set(cache_key, summary, cpd_setting('SUMMARY_CACHE_TIMEOUT'))

    return summary


def clear_cpd_caches(user_id=None) -> None:
    """Drop the cached summary for a user."""
    if user_id is None:
        return
    try:
        cache.delete(summary_cache_key(user_id))
        logger.debug(f"Cleared CPD summary cache for user={user_id}")
    except Exception as e:
        # a stale summary must not break the write that triggered this
        logger.error(f"Error clearing CPD caches for user={user_id}: {e}")


# ============================================================================
# WRITES
# ============================================================================

def import_from_calculator(user, payload: Dict[str, Any]) -> int:
    """
    Store the rows of a calculator draft as completed activities.

    Returns the number of activities created.
    """
    form = CalculatorImportForm(data={'payload': payload})
    if not form.is_valid():
        raise ImportPayloadError(form.errors.get_json_data())

    rows = form.rows()
    if not rows:
        return 0

    # bulk_create does not validate; rows must fit the model fields
    activities = []
    row_errors = {}
    for index, row in enumerate(rows):
        activity = Activity(user=user, **row)
        try:
            activity.full_clean(exclude=['user'])
        except ValidationError as e:
            row_errors[index] = e.message_dict
        else:
            activities.append(activity)

    if row_errors:
        logger.warning(f"Rejected calculator import for {user}: {len(row_errors)} invalid rows")
        raise ImportPayloadError({'rows': row_errors})

    with transaction.atomic():
        created = Activity.objects.bulk_create(activities)

    # bulk_create sends no post_save signals
    clear_cpd_caches(user.pk)

    logger.info(f"Imported {len(created)} calculator activities for {user}")
    return len(created)


def add_training_to_plan(user, training, year: Optional[int] = None) -> Activity:
    """Create a planned activity from a catalogue training."""
    activity = Activity.draft_from_training(user, training, year=year)
    if activity.year is None:
        activity.year = localdate().year

    activity.full_clean()
    activity.save()

    logger.info(f"Planned training '{training}' for {user} in {activity.year}")
    return activity
