import pytest

from app.core.totals import (
    PricingConfig,
    compute_totals,
    count_items,
    free_shipping_remaining,
    round_currency,
)


def test_free_shipping_at_threshold():
    totals = compute_totals([{"price": 500, "quantity": 2}])
    assert totals.subtotal == 1000
    assert totals.shipping == 0
    assert totals.tax == 50
    assert totals.discount == 0
    assert totals.total == 1050


def test_flat_fee_below_threshold():
    totals = compute_totals([{"price": 300, "quantity": 1}])
    assert totals.subtotal == 300
    assert totals.shipping == 60
    assert totals.tax == 15
    assert totals.total == 375


def test_exact_threshold_ships_free():
    totals = compute_totals([{"price": 999, "quantity": 1}])
    assert totals.shipping == 0


def test_empty_cart():
    totals = compute_totals([])
    assert totals.subtotal == 0
    assert totals.shipping == 60
    assert totals.tax == 0
    assert totals.total == 60
    assert compute_totals(None).subtotal == 0


def test_malformed_lines_count_as_zero():
    items = [
        {"price": "abc", "quantity": 2},
        {"price": 100},
        {"quantity": 3},
        {"price": -50, "quantity": 2},
        {"price": 100, "quantity": float("nan")},
        {"price": True, "quantity": 1},
        None,
        {"price": "200", "qty": "2"},
    ]
    totals = compute_totals(items)
    assert totals.subtotal == 400


def test_accepts_objects_with_unit_price():
    class Line:
        unit_price = 250
        quantity = 2

    assert compute_totals([Line()]).subtotal == 500


def test_tax_rounds_half_up():
    assert round_currency(12.5) == 13
    assert round_currency(12.49) == 12
    # 5% of 10 = 0.5
    assert compute_totals([{"price": 10, "quantity": 1}]).tax == 1


def test_discount_subtracts_from_total():
    totals = compute_totals([{"price": 500, "quantity": 2}], discount=100)
    assert totals.discount == 100
    assert totals.total == 950


def test_custom_config():
    config = PricingConfig(shipping_threshold=500, shipping_fee=40, tax_rate=0.18)
    totals = compute_totals([{"price": 400, "quantity": 1}], config)
    assert totals.shipping == 40
    assert totals.tax == 72
    assert totals.total == 512


@pytest.mark.parametrize(
    "lines",
    [
        [{"price": 0, "quantity": 1}],
        [{"price": 120.5, "quantity": 3}, {"price": 80, "quantity": 1}],
        [{"price": 998.99, "quantity": 1}],
        [{"price": 333.33, "quantity": 3}],
        [{"price": 49, "quantity": 25}, {"price": 1, "quantity": 99}],
    ],
)
def test_additivity_and_shipping_rule(lines):
    config = PricingConfig()
    totals = compute_totals(lines, config)
    assert totals.total == pytest.approx(
        totals.subtotal + totals.shipping + totals.tax - totals.discount
    )
    assert (totals.shipping == 0) == (totals.subtotal >= config.shipping_threshold)


@pytest.mark.parametrize("price", [1, 99.5, 250, 333, 999])
def test_monotonic_in_quantity(price):
    previous = compute_totals([{"price": price, "quantity": 1}])
    for quantity in range(2, 12):
        current = compute_totals([{"price": price, "quantity": quantity}])
        assert current.subtotal >= previous.subtotal
        assert current.total >= previous.total
        previous = current


def test_count_items_and_free_shipping_remaining():
    items = [{"price": 100, "quantity": 2}, {"price": 50, "qty": 3}, {"price": 1}]
    assert count_items(items) == 5
    assert free_shipping_remaining(300) == 699
    assert free_shipping_remaining(1500) == 0


def test_line_quantity_is_capped():
    config = PricingConfig(max_line_quantity=5)
    assert compute_totals([{"price": 10, "quantity": 50}], config).subtotal == 50
    assert count_items([{"quantity": 50}, {"qty": 2}], config) == 7
    assert compute_totals([{"price": 10, "quantity": 1000}]).subtotal == 990


def test_non_object_lines_contribute_nothing():
    totals = compute_totals([None, "junk", 3, 2.5, ["price"], {"price": 100, "quantity": 1}])
    assert totals.subtotal == 100
    assert count_items([None, "junk", 3, {"qty": 2}]) == 2
