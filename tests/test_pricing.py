from datetime import date

import pytest

from rentx.errors import InvalidDistance, ValidationFailed
from rentx.pricing import haversine_km, quote, rental_days


BLR = {"coordinates": {"lat": 12.9716, "lng": 77.5946}}
MYS = {"coordinates": {"lat": 12.2958, "lng": 76.6394}}


def test_rental_days_minimum_one():
    d = date(2030, 3, 1)
    assert rental_days(d, d) == 1
    assert rental_days(d, date(2030, 3, 2)) == 1
    assert rental_days(d, date(2030, 3, 4)) == 3


def test_rental_days_rejects_reversed_window():
    with pytest.raises(ValidationFailed):
        rental_days(date(2030, 3, 4), date(2030, 3, 1))


def test_haversine_zero_and_known_distance():
    assert haversine_km(12.9716, 77.5946, 12.9716, 77.5946) == 0
    # Bengaluru to Mysuru is roughly 128 km as the crow flies
    assert 125 <= haversine_km(12.9716, 77.5946, 12.2958, 76.6394) <= 131


def test_per_day_with_same_point_locations():
    q = quote(
        price_per_day=1000,
        price_per_km=10,
        start=date(2030, 1, 1),
        end=date(2030, 1, 4),
        pickup=BLR,
        dropoff=BLR,
    )
    assert q.total_days == 3
    assert q.total_distance == 0
    assert q.total_amount == 3000


def test_per_day_adds_distance_charges():
    q = quote(
        price_per_day=1000,
        price_per_km=10,
        start=date(2030, 1, 1),
        end=date(2030, 1, 2),
        pickup=BLR,
        dropoff=MYS,
    )
    assert q.total_distance == haversine_km(12.9716, 77.5946, 12.2958, 76.6394)
    assert q.total_amount == 1000 + 10 * q.total_distance


def test_missing_coordinates_mean_zero_distance():
    q = quote(
        price_per_day=800,
        price_per_km=10,
        start=date(2030, 1, 1),
        end=date(2030, 1, 3),
        pickup={"address": "MG Road"},
        dropoff=None,
    )
    assert q.total_distance == 0
    assert q.total_amount == 1600


def test_per_km_uses_estimated_distance_only():
    q = quote(
        price_per_day=1000,
        price_per_km=12,
        start=date(2030, 1, 1),
        end=date(2030, 1, 6),
        pickup=BLR,
        dropoff=MYS,
        pricing_type="perKm",
        estimated_distance=150,
    )
    assert q.total_distance == 150
    assert q.day_charges == 0
    assert q.total_amount == 1800


@pytest.mark.parametrize("distance", [None, 0, -5])
def test_per_km_requires_positive_distance(distance):
    with pytest.raises(InvalidDistance):
        quote(
            price_per_day=1000,
            price_per_km=12,
            start=date(2030, 1, 1),
            end=date(2030, 1, 2),
            pickup=None,
            dropoff=None,
            pricing_type="perKm",
            estimated_distance=distance,
        )


def test_driver_charge_advertised_but_not_billed_by_default():
    q = quote(
        price_per_day=1000,
        price_per_km=10,
        start=date(2030, 1, 1),
        end=date(2030, 1, 3),
        pickup=None,
        dropoff=None,
        driver_required=True,
        driver_charge_per_day=500,
    )
    assert q.driver_charge == 1000
    assert q.total_amount == 2000


def test_driver_charge_included_when_enabled():
    q = quote(
        price_per_day=1000,
        price_per_km=10,
        start=date(2030, 1, 1),
        end=date(2030, 1, 3),
        pickup=None,
        dropoff=None,
        driver_required=True,
        driver_charge_per_day=500,
        include_driver_charge=True,
    )
    assert q.total_amount == 3000
