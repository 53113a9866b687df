from datetime import date

from utils.allocations import pool_utilization, utilization_color, commitment_shortfall
from utils.allocations.pool_rules import average_utilization, days_until_pool_release


def test_pool_utilization():
    usage = pool_utilization(20, 12, 4)
    assert usage['utilization_percentage'] == 80.0
    assert usage['available_units'] == 4
    assert not usage['is_overbooked']


def test_overbooked_pool_is_capped_at_100():
    usage = pool_utilization(10, 9, 3)
    assert usage['utilization_percentage'] == 100.0
    assert usage['available_units'] == 0
    assert usage['is_overbooked']


def test_zero_capacity_pool():
    usage = pool_utilization(0, 3, 0)
    assert usage['utilization_percentage'] == 0.0
    assert not usage['is_overbooked']


def test_utilization_color_thresholds():
    assert utilization_color(90) == 'red'
    assert utilization_color(75) == 'yellow'
    assert utilization_color(74.9) == 'green'


def test_commitment_shortfall():
    assert commitment_shortfall(10, 4) == 6
    assert commitment_shortfall(5, 8) == 0
    assert commitment_shortfall(None, 4) == 0


def test_average_utilization():
    assert average_utilization([{'utilization_percentage': 50}, {'utilization_percentage': 75}]) == 62.5
    assert average_utilization([]) == 0.0


def test_days_until_pool_release():
    assert days_until_pool_release({'release_date': '2030-03-10'}, date(2030, 3, 1)) == 9
    assert days_until_pool_release({'release_date': None}, date(2030, 3, 1)) is None
