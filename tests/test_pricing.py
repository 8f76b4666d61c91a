"""
Tests del resolvedor de precios por tramos
"""
import pytest
from datetime import datetime, time
from decimal import Decimal

from app.exceptions import CourtNotFoundError, InvalidIntervalError, NoPricingRuleError
from app.models.pricing_rule import PricingRule
from app.services import pricing


def _rule(db, rule_id, start, end, price, priority=0, court_id=None, day=None):
    rule = PricingRule(
        id=rule_id,
        court_id=court_id,
        day_of_week=day,
        start_time=start,
        end_time=end,
        price_per_hour=Decimal(price),
        priority=priority,
        is_active=True,
    )
    db.add(rule)
    db.commit()
    return rule


def test_interval_crossing_rule_boundary_is_split(db, court, pricing_rules):
    """16:30-18:30 cruza el borde de las 17:00: 0.5 x 50.000 + 1.5 x 80.000"""
    quote = pricing.resolve_price(
        db, court.id, datetime(2030, 1, 7, 16, 30), datetime(2030, 1, 7, 18, 30)
    )

    assert quote.total == Decimal("145000")
    assert [(s.start.time(), s.end.time(), s.rule_id) for s in quote.slices] == [
        (time(16, 30), time(17, 0), 1),
        (time(17, 0), time(18, 30), 2),
    ]
    assert quote.slices[0].amount == Decimal("25000")
    assert quote.slices[1].amount == Decimal("120000")


def test_slices_cover_the_whole_interval(db, court, pricing_rules):
    start = datetime(2030, 1, 7, 9, 0)
    end = datetime(2030, 1, 7, 20, 15)
    quote = pricing.resolve_price(db, court.id, start, end)

    assert quote.slices[0].start == start
    assert quote.slices[-1].end == end
    for previous, current in zip(quote.slices, quote.slices[1:]):
        assert previous.end == current.start
    assert sum(s.minutes for s in quote.slices) == 11 * 60 + 15


def test_adjacent_slices_with_same_winner_are_merged(db, court):
    # La regla de las 10-12 es solo de los martes: el lunes sus bordes no cambian el ganador
    _rule(db, 1, time(0, 0), time(0, 0), "40000", priority=0)
    _rule(db, 2, time(10, 0), time(12, 0), "90000", priority=5, day=2)

    quote = pricing.resolve_price(
        db, court.id, datetime(2030, 1, 7, 9, 0), datetime(2030, 1, 7, 13, 0)
    )
    assert len(quote.slices) == 1
    assert quote.slices[0].rule_id == 1
    assert quote.total == Decimal("160000")


def test_interval_crossing_midnight(db, court, pricing_rules):
    quote = pricing.resolve_price(
        db, court.id, datetime(2030, 1, 7, 23, 0), datetime(2030, 1, 8, 1, 0)
    )
    assert [s.rule_id for s in quote.slices] == [2, 1]
    assert quote.slices[0].end == datetime(2030, 1, 8, 0, 0)
    assert quote.total == Decimal("130000")


def test_window_wrapping_past_midnight(db, court):
    _rule(db, 1, time(6, 0), time(22, 0), "50000")
    _rule(db, 2, time(22, 0), time(6, 0), "30000")

    quote = pricing.resolve_price(
        db, court.id, datetime(2030, 1, 7, 21, 0), datetime(2030, 1, 8, 7, 0)
    )
    assert [s.rule_id for s in quote.slices] == [1, 2, 1]
    assert quote.total == Decimal("50000") + Decimal("30000") * 8 + Decimal("50000")


def test_day_scoped_window_wrapping_midnight_keeps_opening_day(db, court):
    """La regla nocturna del lunes sigue valiendo el martes hasta las 02:00"""
    _rule(db, 1, time(0, 0), time(0, 0), "50000")
    _rule(db, 2, time(22, 0), time(2, 0), "30000", priority=5, day=1)  # Lunes

    quote = pricing.resolve_price(
        db, court.id, datetime(2030, 1, 7, 23, 0), datetime(2030, 1, 8, 3, 0)
    )
    assert [s.rule_id for s in quote.slices] == [2, 1]
    assert quote.slices[0].end == datetime(2030, 1, 8, 2, 0)
    assert quote.total == Decimal("30000") * 3 + Decimal("50000")

    # El lunes de madrugada corresponde a la noche del domingo
    sunday_night = pricing.resolve_price(
        db, court.id, datetime(2030, 1, 7, 0, 0), datetime(2030, 1, 7, 2, 0)
    )
    assert [s.rule_id for s in sunday_night.slices] == [1]


def test_highest_priority_wins(db, court):
    _rule(db, 1, time(0, 0), time(0, 0), "50000", priority=0)
    _rule(db, 2, time(0, 0), time(0, 0), "70000", priority=3, day=1)  # Lunes

    monday = pricing.resolve_price(
        db, court.id, datetime(2030, 1, 7, 10, 0), datetime(2030, 1, 7, 11, 0)
    )
    tuesday = pricing.resolve_price(
        db, court.id, datetime(2030, 1, 8, 10, 0), datetime(2030, 1, 8, 11, 0)
    )
    assert monday.total == Decimal("70000")
    assert tuesday.total == Decimal("50000")


def test_court_specific_rules_only_apply_to_their_court(db, court, second_court):
    _rule(db, 1, time(0, 0), time(0, 0), "50000")
    _rule(db, 2, time(0, 0), time(0, 0), "99000", priority=1, court_id=second_court.id)

    first = pricing.resolve_price(
        db, court.id, datetime(2030, 1, 7, 10, 0), datetime(2030, 1, 7, 11, 0)
    )
    second = pricing.resolve_price(
        db, second_court.id, datetime(2030, 1, 7, 10, 0), datetime(2030, 1, 7, 11, 0)
    )
    assert first.total == Decimal("50000")
    assert second.total == Decimal("99000")


def test_inactive_rules_are_ignored(db, court, pricing_rules):
    pricing_rules[1].is_active = False
    db.commit()

    with pytest.raises(NoPricingRuleError):
        pricing.resolve_price(
            db, court.id, datetime(2030, 1, 7, 16, 0), datetime(2030, 1, 7, 18, 0)
        )


def test_equal_priority_tie_break_lowest_id(db, court):
    _rule(db, 7, time(0, 0), time(0, 0), "60000", priority=1, court_id=court.id)
    _rule(db, 3, time(0, 0), time(0, 0), "40000", priority=1)

    quote = pricing.resolve_price(
        db,
        court.id,
        datetime(2030, 1, 7, 10, 0),
        datetime(2030, 1, 7, 11, 0),
        tie_break=pricing.TIE_BREAK_LOWEST_ID,
    )
    assert quote.slices[0].rule_id == 3


def test_equal_priority_tie_break_most_specific(db, court):
    _rule(db, 7, time(0, 0), time(0, 0), "60000", priority=1, court_id=court.id)
    _rule(db, 3, time(0, 0), time(0, 0), "40000", priority=1)

    quote = pricing.resolve_price(
        db,
        court.id,
        datetime(2030, 1, 7, 10, 0),
        datetime(2030, 1, 7, 11, 0),
        tie_break=pricing.TIE_BREAK_MOST_SPECIFIC,
    )
    assert quote.slices[0].rule_id == 7


def test_uncovered_interval_is_a_configuration_error(db, court):
    _rule(db, 1, time(6, 0), time(21, 0), "50000")

    with pytest.raises(NoPricingRuleError) as exc_info:
        pricing.resolve_price(
            db, court.id, datetime(2030, 1, 7, 20, 0), datetime(2030, 1, 7, 22, 0)
        )
    assert exc_info.value.status_code == 500
    assert exc_info.value.details["uncovered_from"] == "2030-01-07T21:00:00"


def test_invalid_intervals_are_rejected(db, court, pricing_rules):
    with pytest.raises(InvalidIntervalError):
        pricing.resolve_price(
            db, court.id, datetime(2030, 1, 7, 11, 0), datetime(2030, 1, 7, 10, 0)
        )
    with pytest.raises(InvalidIntervalError):
        pricing.resolve_price(
            db, court.id, datetime(2030, 1, 7, 10, 0, 30), datetime(2030, 1, 7, 11, 0)
        )


def test_unknown_court(db, pricing_rules):
    with pytest.raises(CourtNotFoundError):
        pricing.resolve_price(
            db, 99, datetime(2030, 1, 7, 10, 0), datetime(2030, 1, 7, 11, 0)
        )
