from datetime import date, timedelta

import pytest

from riskshield.services.compliance import StatusCounts, compliance_rate, round_half_up, synthesize_history

TODAY = date(2026, 3, 15)


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(3.5) == 4
    assert round_half_up(2.49) == 2


def test_compliance_rate_counts_exceptions_as_covered():
    assert compliance_rate(6, 1, 10) == 70
    assert compliance_rate(1, 0, 3) == 33
    assert compliance_rate(0, 0, 0) == 0


def test_synthesized_history_covers_window_oldest_first():
    current = StatusCounts(total=10, compliant=6, non_compliant=2, pending=1, exception=1)
    points = synthesize_history(current, 30, TODAY)

    assert len(points) == 31
    assert points[0].snapshot_date == TODAY - timedelta(days=30)
    assert points[-1].snapshot_date == TODAY
    dates = [p.snapshot_date for p in points]
    assert dates == sorted(dates)


@pytest.mark.parametrize(
    "current",
    [
        StatusCounts(total=10, compliant=6, non_compliant=2, pending=1, exception=1),
        StatusCounts(total=4, compliant=4, non_compliant=0, pending=0, exception=0),
        StatusCounts(total=5, compliant=0, non_compliant=5, pending=0, exception=0),
        StatusCounts(total=3, compliant=0, non_compliant=0, pending=0, exception=3),
    ],
)
def test_synthesized_counts_stay_in_bounds(current):
    for point in synthesize_history(current, 60, TODAY):
        for count in (point.compliant, point.non_compliant, point.pending, point.exception):
            assert 0 <= count <= point.total
        assert 0 <= point.compliance_rate <= 100


def test_empty_company_uses_total_of_one():
    points = synthesize_history(StatusCounts(), 7, TODAY)
    assert {p.total for p in points} == {1}


def test_existing_dates_are_skipped():
    existing = {TODAY, TODAY - timedelta(days=1)}
    points = synthesize_history(StatusCounts(total=2, compliant=1, pending=1), 5, TODAY, existing)
    assert len(points) == 4
    assert not existing & {p.snapshot_date for p in points}


def test_synthesis_is_deterministic():
    current = StatusCounts(total=8, compliant=5, non_compliant=2, pending=1)
    assert synthesize_history(current, 14, TODAY) == synthesize_history(current, 14, TODAY)


def test_days_must_be_positive():
    with pytest.raises(ValueError):
        synthesize_history(StatusCounts(total=1), 0, TODAY)
