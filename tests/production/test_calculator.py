"""
Tests for the stage scheduler (cascading plan recompute).
These tests have no Flask dependencies - they test pure functions.

Dates used throughout: 2024-01-01 is a Monday holiday, so the first business
day of 2024 is Tuesday 2024-01-02 and the first weekend is Jan 6th-7th.
"""
import pytest
from datetime import date, timedelta

from app.production.scheduling.calculator import StageScheduler, normalize_duration, recompute_plan
from app.production.scheduling.calendar import BusinessCalendar, HolidaySet
from app.production.scheduling.models import (
    PlanValidationError,
    ProductionPlan,
    ProductionStage,
    StageStatus,
)


@pytest.fixture
def calendar():
    return BusinessCalendar(HolidaySet.from_dates([date(2024, 1, 1)]))


@pytest.fixture
def scheduler(calendar):
    return StageScheduler(calendar)


def make_plan(*stages, start=date(2024, 1, 2)):
    """
    Build a plan from (name, duration, use_business_days) tuples, anchoring
    the first stage at ``start``.
    """
    built = []
    for index, (name, duration, business) in enumerate(stages):
        built.append(ProductionStage(
            name=name,
            duration_days=duration,
            use_business_days=business,
            start_date=start if index == 0 else None,
        ))
    return ProductionPlan.of(built)


def dates_of(plan):
    return [(s.start_date, s.completed_date) for s in plan]


# ==============================================================================
# DURATION NORMALIZATION
# ==============================================================================

class TestNormalizeDuration:
    """Tests for normalize_duration."""

    def test_regular_value_is_kept(self):
        assert normalize_duration(2.5) == 2.5

    def test_missing_defaults_to_one_day(self):
        assert normalize_duration(None) == 1.0

    def test_unparseable_defaults_to_one_day(self):
        assert normalize_duration("three") == 1.0
        assert normalize_duration(float("nan")) == 1.0
        assert normalize_duration(True) == 1.0

    def test_below_minimum_is_clamped(self):
        assert normalize_duration(0) == 0.125
        assert normalize_duration(0.1) == 0.125
        assert normalize_duration(-4) == 0.125

    def test_above_maximum_is_clamped(self):
        assert normalize_duration(5_000_000) == 3650.0
        assert normalize_duration(3650) == 3650.0

    def test_numeric_string(self):
        assert normalize_duration("0.75") == 0.75


# ==============================================================================
# WORKED SCENARIOS
# ==============================================================================

class TestWorkedScenarios:
    """The reference scenarios for the accumulation rule."""

    def test_sub_day_first_stage_finishes_same_day(self, scheduler):
        plan = scheduler.recompute(make_plan(("Cutting", 0.5, True)))

        assert plan[0].start_date == date(2024, 1, 2)
        assert plan[0].completed_date == date(2024, 1, 2)

    def test_second_stage_tips_carry_over_one_day(self, scheduler):
        """0.5 + 0.75 = 1.25 → two business-day steps from Wednesday."""
        plan = scheduler.recompute(make_plan(
            ("Cutting", 0.5, True),
            ("Welding", 0.75, True),
        ))

        assert plan[1].start_date == date(2024, 1, 3)
        assert plan[1].completed_date == date(2024, 1, 5)

    def test_remainder_rolls_into_next_stage(self, scheduler):
        """The 0.25 left after Welding plus 0.5 stays below a day."""
        plan = scheduler.recompute(make_plan(
            ("Cutting", 0.5, True),
            ("Welding", 0.75, True),
            ("Painting", 0.5, True),
        ))

        # Next business day after Friday Jan 5th is Monday Jan 8th
        assert plan[2].start_date == date(2024, 1, 8)
        assert plan[2].completed_date == date(2024, 1, 8)

    def test_zero_duration_calendar_stage_is_clamped(self, scheduler):
        plan = scheduler.recompute(make_plan(("Inspection", 0, False), start=date(2024, 1, 5)))

        assert plan[0].completed_date == date(2024, 1, 6)

    def test_plan_without_anchor_is_unscheduled(self, scheduler):
        plan = ProductionPlan.of([
            ProductionStage(name="Cutting", duration_days=1),
            ProductionStage(
                name="Welding",
                duration_days=2,
                start_date=date(2024, 1, 10),
                completed_date=date(2024, 1, 12),
            ),
        ])

        result = scheduler.recompute(plan)

        assert dates_of(result) == [(None, None), (None, None)]


# ==============================================================================
# ACCUMULATION
# ==============================================================================

class TestAccumulation:
    """Tests for the fractional carry between business-day stages."""

    def test_whole_day_stages(self, scheduler):
        plan = scheduler.recompute(make_plan(
            ("Cutting", 2, True),
            ("Welding", 1, True),
        ))

        assert dates_of(plan) == [
            (date(2024, 1, 2), date(2024, 1, 4)),
            (date(2024, 1, 5), date(2024, 1, 8)),
        ]

    def test_two_halves_make_one_day(self, scheduler):
        plan = scheduler.recompute(make_plan(
            ("Cutting", 0.5, True),
            ("Welding", 0.5, True),
        ))

        assert plan[1].start_date == date(2024, 1, 3)
        assert plan[1].completed_date == date(2024, 1, 4)

    def test_fractional_first_stage_over_one_day(self, scheduler):
        """1.5 rounds up to two steps and leaves 0.5 for the next stage."""
        plan = scheduler.recompute(make_plan(
            ("Cutting", 1.5, True),
            ("Welding", 0.5, True),
        ))

        assert plan[0].completed_date == date(2024, 1, 4)
        assert plan[1].start_date == date(2024, 1, 5)
        assert plan[1].completed_date == date(2024, 1, 8)

    def test_eighths_stack_on_the_same_day(self, scheduler):
        """Seven eighth-day stages never reach a full day."""
        plan = scheduler.recompute(make_plan(
            *[(f"Step {i}", 0.125, True) for i in range(7)]
        ))

        for stage in plan:
            assert stage.completed_date == stage.start_date

    def test_missing_duration_counts_as_one_day(self, scheduler):
        plan = scheduler.recompute(make_plan(("Cutting", None, True)))

        assert plan[0].completed_date == date(2024, 1, 3)

    def test_negative_duration_is_clamped(self, scheduler):
        plan = scheduler.recompute(make_plan(("Cutting", -3, True)))

        assert plan[0].completed_date == date(2024, 1, 2)

    def test_weekend_anchor_counts_from_monday(self, scheduler):
        plan = scheduler.recompute(make_plan(("Cutting", 1, True), start=date(2024, 1, 6)))

        assert plan[0].start_date == date(2024, 1, 6)
        assert plan[0].completed_date == date(2024, 1, 8)

    def test_first_stage_resets_carry(self, scheduler):
        """Recomputing twice gives the same answer: no carry leaks between passes."""
        plan = make_plan(("Cutting", 0.75, True), ("Welding", 0.75, True))

        assert dates_of(scheduler.recompute(plan)) == dates_of(scheduler.recompute(plan))


# ==============================================================================
# CALENDAR-DAY STAGES
# ==============================================================================

class TestCalendarDayStages:
    """Tests for stages that count every calendar day."""

    def test_completes_ceil_duration_calendar_days_later(self, scheduler):
        plan = scheduler.recompute(make_plan(("Curing", 2.5, False), start=date(2024, 1, 5)))

        assert plan[0].completed_date == date(2024, 1, 8)

    def test_starts_the_next_calendar_day(self, scheduler):
        """A calendar-day stage may start on a weekend."""
        plan = scheduler.recompute(make_plan(
            ("Cutting", 2, True),   # Jan 2 → Jan 4
            ("Welding", 1, True),   # Jan 5 → Jan 8
            ("Curing", 1, False),
        ))

        assert plan[2].start_date == date(2024, 1, 9)
        assert plan[2].completed_date == date(2024, 1, 10)

    def test_calendar_stage_after_friday_starts_saturday(self, scheduler):
        plan = scheduler.recompute(make_plan(
            ("Cutting", 3, True),   # Jan 2 → Jan 5
            ("Curing", 1, False),
        ))

        assert plan[1].start_date == date(2024, 1, 6)
        assert plan[1].completed_date == date(2024, 1, 7)

    def test_calendar_stage_ignores_and_resets_carry(self, scheduler):
        plan = scheduler.recompute(make_plan(
            ("Cutting", 0.5, True),   # carry 0.5, Jan 2
            ("Curing", 1, False),     # Jan 3 → Jan 4, carry reset
            ("Painting", 0.5, True),  # carry 0.5 only, same day
        ))

        assert dates_of(plan) == [
            (date(2024, 1, 2), date(2024, 1, 2)),
            (date(2024, 1, 3), date(2024, 1, 4)),
            (date(2024, 1, 5), date(2024, 1, 5)),
        ]

    def test_huge_duration_is_bounded(self, scheduler):
        plan = scheduler.recompute(make_plan(("Curing", 5_000_000, False)))

        assert plan[0].completed_date == date(2024, 1, 2) + timedelta(days=3650)


class TestDateRangeLimit:
    """Stages that would end past the last representable date are left unscheduled."""

    def test_calendar_day_stage_past_date_max(self, scheduler):
        plan = scheduler.recompute(make_plan(
            ("Curing", 60, False),
            ("Painting", 1, True),
            start=date(9999, 12, 1),
        ))

        assert plan[0].start_date == date(9999, 12, 1)
        assert plan[0].completed_date is None
        assert dates_of(plan)[1] == (None, None)

    def test_business_day_stage_past_date_max(self, scheduler):
        plan = scheduler.recompute(make_plan(
            ("Cutting", 1, True),
            ("Welding", 30, True),
            start=date(9999, 12, 1),
        ))

        assert plan[0].completed_date is not None
        assert dates_of(plan)[1] == (None, None)


# ==============================================================================
# PLAN PROPERTIES
# ==============================================================================

class TestPlanProperties:
    """Properties that hold for every recomputed plan."""

    @pytest.fixture
    def mixed_plan(self):
        return make_plan(
            ("Engineering", 0.25, True),
            ("Cutting", 0.875, True),
            ("Bending", 3, True),
            ("Curing", 1.5, False),
            ("Welding", 0.375, True),
            ("Blasting", 0.125, True),
            ("Painting", 2.25, True),
            ("Drying", 0.5, False),
            ("Packing", 1, True),
        start=date(2023, 12, 27))

    def test_deterministic(self, scheduler, mixed_plan):
        assert scheduler.recompute(mixed_plan) == scheduler.recompute(mixed_plan)

    def test_input_plan_is_not_modified(self, scheduler, mixed_plan):
        before = dates_of(mixed_plan)
        scheduler.recompute(mixed_plan)
        assert dates_of(mixed_plan) == before

    def test_business_day_stages_start_on_business_days(self, scheduler, calendar, mixed_plan):
        plan = scheduler.recompute(mixed_plan)
        for stage in list(plan)[1:]:
            if stage.use_business_days:
                assert calendar.is_business_day(stage.start_date), stage.name

    def test_monotonic(self, scheduler, mixed_plan):
        plan = scheduler.recompute(mixed_plan)
        previous = None
        for stage in plan:
            assert stage.completed_date >= stage.start_date
            if previous is not None:
                assert stage.start_date >= previous.completed_date
            previous = stage

    def test_downstream_start_dates_are_derived(self, scheduler):
        """A start date typed onto a later stage is overwritten by the cascade."""
        plan = ProductionPlan.of([
            ProductionStage(name="Cutting", duration_days=1, start_date=date(2024, 1, 2)),
            ProductionStage(name="Welding", duration_days=1, start_date=date(2024, 3, 1)),
        ])

        result = scheduler.recompute(plan)

        assert result[1].start_date == date(2024, 1, 4)

    def test_completed_stages_are_recomputed_like_pending(self, scheduler):
        pending = make_plan(("Cutting", 1, True), ("Welding", 2, True))
        completed = pending.replace_stage("Cutting", status=StageStatus.COMPLETED)

        assert dates_of(scheduler.recompute(pending)) == dates_of(scheduler.recompute(completed))

    def test_removed_stage_leaves_no_gap(self, scheduler):
        plan = make_plan(
            ("Cutting", 1, True),
            ("Welding", 5, True),
            ("Painting", 1, True),
        )

        result = scheduler.recompute(plan.without_stage("Welding"))

        assert [s.name for s in result] == ["Cutting", "Painting"]
        assert result[1].start_date == calendar_next(result[0].completed_date)

    def test_empty_plan(self, scheduler):
        assert len(scheduler.recompute(ProductionPlan())) == 0

    def test_recompute_plan_helper_uses_weekends_by_default(self):
        plan = recompute_plan(make_plan(("Cutting", 1, True), start=date(2024, 1, 5)))
        assert plan[0].completed_date == date(2024, 1, 8)


def calendar_next(d):
    """Next weekday after d (no holidays after Jan 1st in these tests)."""
    d += timedelta(days=1)
    while d.weekday() >= 5:
        d += timedelta(days=1)
    return d


# ==============================================================================
# PLAN VALUE OBJECT
# ==============================================================================

class TestProductionPlan:
    """Tests for ProductionPlan validation and edits."""

    def test_duplicate_names_rejected(self):
        with pytest.raises(PlanValidationError):
            ProductionPlan.of([ProductionStage(name="Cutting"), ProductionStage(name="Cutting")])

    def test_unnamed_stage_rejected(self):
        with pytest.raises(PlanValidationError):
            ProductionPlan.of([ProductionStage(name="")])

    def test_unknown_stage_lookup_raises(self):
        with pytest.raises(PlanValidationError):
            ProductionPlan.of([ProductionStage(name="Cutting")]).index_of("Welding")

    def test_with_stage_inserts_at_position(self):
        plan = ProductionPlan.of([ProductionStage(name="Cutting"), ProductionStage(name="Painting")])
        plan = plan.with_stage(ProductionStage(name="Welding"), 1)
        assert [s.name for s in plan] == ["Cutting", "Welding", "Painting"]
