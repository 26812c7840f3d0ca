"""
CPD Point Calculation Engine

Pure, synchronous rules for turning a list of logged activities into
counted points:
- period filtering (a multi-year reporting window)
- per-category yearly caps ("partial limits")
- totals, missing points and progress
- two status policies (missing-based and progress-based)

Nothing here touches the database. Activities may be dicts or any object
exposing ``points``, ``year`` and ``type`` (model instances included).
Invalid numbers never raise: they are coerced and annotated with a warning.
"""

import math
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from django.utils.translation import gettext as _


ZERO = Decimal('0')
HUNDRED = Decimal('100')

# Missing-based policy: at most this many points short counts as "almost".
WARN_MISSING_THRESHOLD = Decimal('20')

# Progress-based (dashboard) policy thresholds, in percent.
PROGRESS_OK_THRESHOLD = Decimal('70')
PROGRESS_WARN_THRESHOLD = Decimal('35')

# Limit card thresholds, in percent of the cap.
LIMIT_FULL_PCT = Decimal('100')
LIMIT_WATCH_PCT = Decimal('80')

WEBINAR_POINTS = 10
CONFERENCE_POINTS = 20


# ============================================================================
# TYPES
# ============================================================================

@dataclass(frozen=True)
class Period:
    """Inclusive range of reporting years."""
    start: int
    end: int

    @property
    def years(self) -> int:
        return max(1, self.end - self.start + 1)

    @property
    def label(self) -> str:
        return period_label(self)


@dataclass
class CPDRules:
    """Yearly cap per activity type. Keys are exact ``activity.type`` values."""
    yearly_max_by_type: Dict[str, Any] = field(default_factory=dict)


@dataclass
class AppliedActivity:
    """An activity after period and cap rules were applied."""
    source: Any
    type: str
    year: Optional[int]
    in_period: bool
    applied_points: Decimal
    raw_points: Decimal = ZERO
    over_points: Decimal = ZERO
    yearly_cap: Optional[Decimal] = None
    warning: Optional[str] = None

    @property
    def points(self):
        return _field(self.source, 'points')


@dataclass
class CPDStatus:
    tone: str
    title: str
    description: str


@dataclass
class ProgressStatus:
    tone: str
    label: str
    reason: str
    hint: str


@dataclass
class LimitTone:
    tone: str
    badge: str


@dataclass
class TypeYearLimit:
    type: str
    year: int
    raw: Decimal
    applied: Decimal
    over: Decimal
    yearly_cap: Optional[Decimal]
    used_pct: Optional[Decimal]


@dataclass
class TypeLimit:
    type: str
    raw: Decimal
    applied: Decimal
    over: Decimal
    yearly_cap: Optional[Decimal]
    cap_in_period: Optional[Decimal]
    used_pct: Optional[Decimal]


@dataclass
class LimitSummary:
    period: Optional[Period]
    years_in_period: int
    per_type: List[TypeLimit]
    per_type_year: List[TypeYearLimit]


@dataclass
class CatchUpPlan:
    years_left: int
    per_year: int
    per_quarter: int
    per_month: int


PeriodLike = Union[Period, Tuple[int, int], None]
RulesLike = Union[CPDRules, Mapping[str, Any], None]


# ============================================================================
# COERCION HELPERS
# ============================================================================

def _field(activity: Any, name: str) -> Any:
    if isinstance(activity, Mapping):
        return activity.get(name)
    return getattr(activity, name, None)


def to_decimal(value: Any) -> Optional[Decimal]:
    """
    Parse a number the way form input arrives: int, float, Decimal or text
    (a decimal comma is accepted). Returns None for anything non-finite.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        number = value
    else:
        try:
            number = Decimal(str(value).strip().replace(',', '.'))
        except (InvalidOperation, ValueError):
            return None
    return number if number.is_finite() else None


def _year_key(year: Decimal) -> Union[int, Decimal]:
    return int(year) if year == year.to_integral_value() else year


def format_points(number: Decimal) -> str:
    """Points without trailing decimal zeros: 20.00 -> "20", 2.50 -> "2.5"."""
    text = format(number, 'f')
    if '.' in text:
        text = text.rstrip('0').rstrip('.')
    return text


def _clamp(value: Decimal, low: Decimal, high: Decimal) -> Decimal:
    return max(low, min(high, value))


def _coerce_period(period: PeriodLike) -> Optional[Period]:
    if period is None:
        return None
    if isinstance(period, Period):
        return normalize_period(period.start, period.end)
    start, end = period
    return normalize_period(start, end)


def _caps(rules: RulesLike) -> Mapping[str, Any]:
    if rules is None:
        return {}
    if isinstance(rules, CPDRules):
        return rules.yearly_max_by_type or {}
    return rules


def _positive_cap(caps: Mapping[str, Any], activity_type: str) -> Optional[Decimal]:
    cap = to_decimal(caps.get(activity_type))
    return cap if cap is not None and cap > 0 else None


# ============================================================================
# PERIOD NORMALIZER
# ============================================================================

def normalize_period(start: int, end: int) -> Period:
    """Canonical period: swapped bounds are put back in order."""
    return Period(start=min(start, end), end=max(start, end))


def in_period(year: Any, period: PeriodLike) -> bool:
    """Inclusive membership; an unreadable year is never in a period."""
    value = to_decimal(year)
    if value is None:
        return False
    p = _coerce_period(period)
    if p is None:
        return True
    return p.start <= value <= p.end


def period_label(period: Period) -> str:
    return f"{period.start}–{period.end}"


# ============================================================================
# RULE-APPLICATION ENGINE
# ============================================================================

def apply_rules(
    activities: Iterable[Any],
    period: PeriodLike = None,
    rules: RulesLike = None,
) -> List[AppliedActivity]:
    """
    Apply the period window and yearly caps to each activity.

    Output order equals input order. Caps are consumed in input order, so
    when two entries compete for the same (type, year) cap the later one
    receives the reduced share.
    """
    p = _coerce_period(period)
    caps = _caps(rules)

    # points already counted per (type, year) within this call
    used_by_type_year: Dict[Tuple[str, Any], Decimal] = {}
    applied: List[AppliedActivity] = []

    for activity in activities:
        activity_type = str(_field(activity, 'type') or '')
        points = to_decimal(_field(activity, 'points'))
        year = to_decimal(_field(activity, 'year'))

        raw = points if points is not None and points > 0 else ZERO

        if year is None:
            applied.append(AppliedActivity(
                source=activity,
                type=activity_type,
                year=None,
                in_period=False,
                applied_points=ZERO,
                raw_points=raw,
                warning=_('Invalid year: this entry will not be counted.'),
            ))
            continue

        year_key = _year_key(year)
        counted = p is None or p.start <= year <= p.end

        if not counted:
            applied.append(AppliedActivity(
                source=activity,
                type=activity_type,
                year=year_key,
                in_period=False,
                applied_points=ZERO,
                raw_points=raw,
                warning=_('Outside the period %(period)s: points will not be counted.') % {
                    'period': period_label(p),
                },
            ))
            continue

        cap = _positive_cap(caps, activity_type)
        if cap is None:
            applied.append(AppliedActivity(
                source=activity,
                type=activity_type,
                year=year_key,
                in_period=True,
                applied_points=raw,
                raw_points=raw,
            ))
            continue

        key = (activity_type, year_key)
        used = used_by_type_year.get(key, ZERO)
        remaining = max(ZERO, cap - used)
        granted = min(raw, remaining)
        used_by_type_year[key] = used + granted

        over = max(ZERO, raw - granted)
        warning = None
        if over > 0:
            warning = _(
                'Yearly limit for "%(type)s": %(cap)s points. This entry counts %(applied)s points '
                '(the excess of %(over)s points does not increase the total).'
            ) % {
                'type': activity_type,
                'cap': format_points(cap),
                'applied': format_points(granted),
                'over': format_points(over),
            }

        applied.append(AppliedActivity(
            source=activity,
            type=activity_type,
            year=year_key,
            in_period=True,
            applied_points=granted,
            raw_points=raw,
            over_points=over,
            yearly_cap=cap,
            warning=warning,
        ))

    return applied


def sum_points_with_rules(
    activities: Iterable[Any],
    period: PeriodLike = None,
    rules: RulesLike = None,
) -> Decimal:
    """Total counted points after period and cap rules."""
    return sum((a.applied_points for a in apply_rules(activities, period, rules)), ZERO)


# ============================================================================
# AGGREGATOR
# ============================================================================

def sum_points(activities: Iterable[Any], period: PeriodLike = None) -> Decimal:
    """
    Legacy total: optional period filter, no category caps.

    Entries with non-finite or negative points, or a non-finite year, are
    skipped.
    """
    p = _coerce_period(period)
    total = ZERO
    for activity in activities:
        points = to_decimal(_field(activity, 'points'))
        year = to_decimal(_field(activity, 'year'))
        if points is None or points < 0 or year is None:
            continue
        if p is not None and not (p.start <= year <= p.end):
            continue
        total += points
    return total


def calc_missing(total: Any, required: Any) -> Decimal:
    req = to_decimal(required)
    tot = to_decimal(total)
    if req is None or req <= 0:
        return ZERO
    if tot is None or tot < 0:
        return req
    return max(ZERO, req - tot)


def calc_progress(total: Any, required: Any) -> Decimal:
    """Percent of the requirement covered, clamped to 0..100."""
    req = to_decimal(required)
    tot = to_decimal(total)
    if req is None or req <= 0:
        return ZERO
    if tot is None or tot <= 0:
        return ZERO
    return _clamp(tot / req * HUNDRED, ZERO, HUNDRED)


# ============================================================================
# STATUS CLASSIFIERS
# ============================================================================

def compliance_status(total: Any, required: Any) -> CPDStatus:
    """Missing-points policy used by the calculator."""
    req = to_decimal(required)
    if req is None or req <= 0:
        return CPDStatus(
            tone='neutral',
            title=_('Set the required points'),
            description=_('Enter the number of points required for the selected period.'),
        )

    missing = calc_missing(total, req)

    if missing <= 0:
        return CPDStatus(
            tone='ok',
            title=_('Looks good'),
            description=_('You have enough points for this period.'),
        )

    if missing <= WARN_MISSING_THRESHOLD:
        return CPDStatus(
            tone='warn',
            title=_('Almost there'),
            description=_('Only a little is missing: plan one or two more activities.'),
        )

    return CPDStatus(
        tone='risk',
        title=_('Catch-up needed'),
        description=_('Many points are missing: consider a catch-up plan for the coming months.'),
    )


def progress_status(progress_pct: Any, missing_points: Any) -> ProgressStatus:
    """
    Progress-percentage policy used by the dashboard panel.

    Independent of compliance_status(); zero missing points short-circuits
    to "safe" regardless of progress.
    """
    missing = to_decimal(missing_points)
    progress = _clamp(to_decimal(progress_pct) or ZERO, ZERO, HUNDRED)

    if missing is not None and missing <= 0:
        return ProgressStatus(
            tone='ok',
            label=_('Safe'),
            reason=_('all points collected'),
            hint=_('You have all the points for this period. The portfolio is ready to export.'),
        )
    if progress >= PROGRESS_OK_THRESHOLD:
        return ProgressStatus(
            tone='ok',
            label=_('On track'),
            reason=_('high progress'),
            hint=_('Keep the pace and you will close the period without stress.'),
        )
    if progress >= PROGRESS_WARN_THRESHOLD:
        return ProgressStatus(
            tone='warn',
            label=_('At risk'),
            reason=_('medium progress'),
            hint=_('Plan one or two activities and add the missing evidence.'),
        )
    return ProgressStatus(
        tone='bad',
        label=_('Alarm'),
        reason=_('low progress'),
        hint=_('There is a lot to catch up on: add a plan and evidence to be ready for an audit.'),
    )


def limit_tone(used: Any, used_pct: Any) -> LimitTone:
    used_value = to_decimal(used) or ZERO
    pct = _clamp(to_decimal(used_pct) or ZERO, ZERO, HUNDRED)

    # nothing used yet is flagged, not neutral
    if used_value <= 0:
        return LimitTone(tone='bad', badge=_('None'))
    if pct >= LIMIT_FULL_PCT:
        return LimitTone(tone='bad', badge=_('Limit'))
    if pct >= LIMIT_WATCH_PCT:
        return LimitTone(tone='warn', badge=_('Watch'))
    return LimitTone(tone='ok', badge=_('In progress'))


# ============================================================================
# LIMIT SUMMARY
# ============================================================================

def summarize_limits(
    activities: Iterable[Any],
    period: PeriodLike = None,
    rules: RulesLike = None,
) -> LimitSummary:
    """
    Per-category and per-(category, year) totals for the partial limits panel.

    Only in-period entries contribute. ``cap_in_period`` is the yearly cap
    multiplied by the number of years in the period.
    """
    p = _coerce_period(period)
    caps = _caps(rules)
    years_in_period = p.years if p is not None else 1

    by_type_year: Dict[Tuple[str, Any], Dict[str, Any]] = {}
    for a in apply_rules(activities, p, rules):
        if not a.in_period or a.year is None:
            continue
        row = by_type_year.setdefault(
            (a.type, a.year),
            {'raw': ZERO, 'applied': ZERO, 'over': ZERO},
        )
        row['raw'] += a.raw_points
        row['applied'] += a.applied_points
        row['over'] += a.over_points

    per_type_year = []
    for (activity_type, year) in sorted(by_type_year):
        row = by_type_year[(activity_type, year)]
        cap = _positive_cap(caps, activity_type)
        used_pct = _clamp(row['applied'] / cap * HUNDRED, ZERO, HUNDRED) if cap else None
        per_type_year.append(TypeYearLimit(
            type=activity_type,
            year=year,
            raw=row['raw'],
            applied=row['applied'],
            over=row['over'],
            yearly_cap=cap,
            used_pct=used_pct,
        ))

    by_type: Dict[str, Dict[str, Decimal]] = {}
    for r in per_type_year:
        row = by_type.setdefault(r.type, {'raw': ZERO, 'applied': ZERO, 'over': ZERO})
        row['raw'] += r.raw
        row['applied'] += r.applied
        row['over'] += r.over

    per_type = []
    for activity_type, row in by_type.items():
        cap = _positive_cap(caps, activity_type)
        cap_in_period = cap * years_in_period if cap else None
        used_pct = (
            _clamp(row['applied'] / cap_in_period * HUNDRED, ZERO, HUNDRED)
            if cap_in_period else None
        )
        per_type.append(TypeLimit(
            type=activity_type,
            raw=row['raw'],
            applied=row['applied'],
            over=row['over'],
            yearly_cap=cap,
            cap_in_period=cap_in_period,
            used_pct=used_pct,
        ))

    # capped categories first, then the fullest, then the largest
    per_type.sort(key=lambda r: (
        0 if r.cap_in_period else 1,
        -(r.used_pct if r.used_pct is not None else Decimal('-1')),
        -r.applied,
    ))

    return LimitSummary(
        period=p,
        years_in_period=years_in_period,
        per_type=per_type,
        per_type_year=per_type_year,
    )


# ============================================================================
# RECOMMENDATIONS AND PLANNING
# ============================================================================

def quick_recommendations(missing: Any) -> List[str]:
    """Up to three ways of closing the gap with typical activities."""
    m = max(ZERO, to_decimal(missing) or ZERO)
    if m <= 0:
        return []

    combos = []

    webinars = math.ceil(m / WEBINAR_POINTS)
    combos.append(_('%(n)s× webinar / online course (%(each)s pts each) ≈ %(total)s pts') % {
        'n': webinars, 'each': WEBINAR_POINTS, 'total': webinars * WEBINAR_POINTS,
    })

    conferences = math.ceil(m / CONFERENCE_POINTS)
    combos.append(_('%(n)s× conference (%(each)s pts each) ≈ %(total)s pts') % {
        'n': conferences, 'each': CONFERENCE_POINTS, 'total': conferences * CONFERENCE_POINTS,
    })

    mix = max(1, math.floor(m / CONFERENCE_POINTS))
    rest = max(ZERO, m - mix * CONFERENCE_POINTS)
    rest_webinars = math.ceil(rest / WEBINAR_POINTS)
    combos.append(
        _('%(conf)s× conference (%(conf_each)s pts) + %(web)s× webinar (%(web_each)s pts) ≈ %(total)s pts') % {
            'conf': mix,
            'conf_each': CONFERENCE_POINTS,
            'web': rest_webinars,
            'web_each': WEBINAR_POINTS,
            'total': mix * CONFERENCE_POINTS + rest_webinars * WEBINAR_POINTS,
        }
    )

    return list(dict.fromkeys(combos))[:3]


def catch_up_plan(missing: Any, period_end: int, current_year: Optional[int] = None) -> CatchUpPlan:
    """Spread the missing points over the years left in the period."""
    if current_year is None:
        current_year = date.today().year

    m = max(ZERO, to_decimal(missing) or ZERO)
    years_left = max(1, period_end - current_year + 1)

    if m <= 0:
        return CatchUpPlan(years_left=years_left, per_year=0, per_quarter=0, per_month=0)

    per_year = math.ceil(m / years_left)
    return CatchUpPlan(
        years_left=years_left,
        per_year=per_year,
        per_quarter=math.ceil(Decimal(per_year) / 4),
        per_month=math.ceil(Decimal(per_year) / 12),
    )
