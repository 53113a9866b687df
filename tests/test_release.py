from datetime import date

from utils.allocations import (
    release_date, days_until_release, urgency_level, build_release_warning, release_warnings,
    release_recommendations, warnings_summary
)

TODAY = date(2030, 2, 27)


def allocation(**overrides):
    data = {
        'id': 1,
        'allocation_name': 'March block',
        'total_quantity': 20,
        'total_cost': 2000,
        'cost_per_unit': None,
        'currency': 'EUR',
        'valid_from': '2030-03-15',
        'valid_to': '2030-03-31',
        'release_days': 14,
    }
    data.update(overrides)
    return data


def test_release_date_is_valid_from_minus_release_days():
    assert release_date('2030-03-15', 14) == date(2030, 3, 1)
    assert release_date('2030-03-15', None) == date(2030, 3, 15)
    assert release_date(None, 14) is None


def test_days_until_release():
    assert days_until_release(date(2030, 3, 1), TODAY) == 2
    assert days_until_release(None, TODAY) is None


def test_urgency_levels():
    assert urgency_level(-1) == 'critical'
    assert urgency_level(3) == 'critical'
    assert urgency_level(4) == 'high'
    assert urgency_level(7) == 'high'
    assert urgency_level(8) == 'medium'


def test_warning_uses_inventory_lines():
    warning = build_release_warning(
        allocation(),
        [{'total_quantity': 20, 'available_quantity': 12, 'sold_quantity': 8, 'is_active': 1}],
        TODAY
    )
    assert warning['release_date'] == date(2030, 3, 1)
    assert warning['days_until_release'] == 2
    assert warning['urgency'] == 'critical'
    assert warning['cost_per_unit'] == 100.0
    assert warning['available_quantity'] == 12
    assert warning['potential_loss'] == 1200.0
    assert warning['utilization'] == 40.0


def test_warning_without_inventory_treats_everything_as_unsold():
    warning = build_release_warning(allocation(cost_per_unit=80), [], TODAY)
    assert warning['available_quantity'] == 20
    assert warning['sold_quantity'] == 0
    assert warning['potential_loss'] == 1600.0
    assert warning['utilization'] == 0.0


def test_inactive_inventory_lines_are_ignored():
    warning = build_release_warning(
        allocation(),
        [{'total_quantity': 50, 'available_quantity': 50, 'sold_quantity': 0, 'is_active': 0}],
        TODAY
    )
    assert warning['total_quantity'] == 20


def test_release_warnings_window_and_order():
    allocations = [
        allocation(id=1, valid_from='2030-03-20'),               # release 03-06, 7 days
        allocation(id=2, valid_from='2030-03-15'),               # release 03-01, 2 days
        allocation(id=3, valid_from='2030-06-01'),               # release 05-18, outside window
        allocation(id=4, valid_from='2030-03-12'),               # release 02-26, yesterday
        allocation(id=5, valid_from='2030-03-11'),               # release 02-25, too late
        allocation(id=6, valid_from='2030-03-15', release_days=None),
        allocation(id=7, valid_from='2030-03-15'),               # sold out
    ]
    inventories = {7: [{'total_quantity': 20, 'available_quantity': 0, 'sold_quantity': 20}]}

    warnings = release_warnings(allocations, inventories, TODAY, window_days=30)

    assert [w['id'] for w in warnings] == [4, 2, 1]
    assert [w['urgency'] for w in warnings] == ['critical', 'critical', 'high']


def test_release_window_upper_edge():
    allocations = [
        allocation(id=1, valid_from='2030-03-23'),               # release 03-09, 10 days
        allocation(id=2, valid_from='2030-03-24'),               # release 03-10, 11 days
    ]

    warnings = release_warnings(allocations, {}, TODAY, window_days=10)

    assert [w['id'] for w in warnings] == [1]
    assert warnings[0]['days_until_release'] == 10


def test_recommendations_by_urgency():
    critical = release_recommendations({'days_until_release': 2, 'sold_quantity': 5, 'total_quantity': 10})
    assert critical[0] == "URGENT: Contact supplier immediately"
    assert len(critical) == 3

    slow_week = release_recommendations({'days_until_release': 5, 'sold_quantity': 2, 'total_quantity': 10})
    assert "Reduce prices to accelerate sales" in slow_week

    good_week = release_recommendations({'days_until_release': 5, 'sold_quantity': 6, 'total_quantity': 10})
    assert "Reduce prices to accelerate sales" not in good_week

    fortnight = release_recommendations({'days_until_release': 10, 'sold_quantity': 2, 'total_quantity': 10})
    assert "Consider promotional pricing" in fortnight


def test_high_loss_is_flagged_at_any_distance():
    far = release_recommendations({'days_until_release': 20, 'sold_quantity': 0, 'total_quantity': 10,
                                   'potential_loss': 60000})
    assert far == ["High financial risk - prioritize resolution"]
    assert release_recommendations({'days_until_release': 20, 'potential_loss': 100}) == []


def test_warnings_summary():
    summary = warnings_summary([
        {'urgency': 'critical', 'potential_loss': 100.5},
        {'urgency': 'critical', 'potential_loss': 50},
        {'urgency': 'medium', 'potential_loss': 0},
    ])
    assert summary == {'count': 3, 'critical': 2, 'high': 0, 'medium': 1, 'potential_loss': 150.5}
