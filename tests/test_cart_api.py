API = "/api/v1"


def test_totals_preview(client):
    resp = client.post(
        f"{API}/cart/totals",
        json={"items": [{"price": 300, "quantity": 1, "title": "Top"}]},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["subtotal"] == 300
    assert body["shipping"] == 60
    assert body["tax"] == 15
    assert body["total"] == 375
    assert body["item_count"] == 1
    assert body["free_shipping_remaining"] == 699


def test_totals_preview_tolerates_garbage(client):
    resp = client.post(
        f"{API}/cart/totals",
        json={"items": [{"price": "oops", "qty": 2}, {"price": 500, "qty": "2"}]},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["subtotal"] == 1000
    assert body["shipping"] == 0
    assert body["free_shipping_remaining"] == 0


def test_pricing_config(client):
    body = client.get(f"{API}/cart/config").json()
    assert body == {
        "shipping_threshold": 999,
        "shipping_fee": 60,
        "tax_rate": 0.05,
        "max_line_quantity": 99,
    }


def test_totals_preview_skips_non_object_lines(client):
    resp = client.post(
        f"{API}/cart/totals",
        json={"items": [None, "junk", 7, [1, 2], {"price": 500, "quantity": 2}]},
    )
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["subtotal"] == 1000
    assert body["item_count"] == 2


def test_totals_preview_caps_line_quantity(client):
    body = client.post(
        f"{API}/cart/totals", json={"items": [{"price": 10, "quantity": 1000}]}
    ).json()
    assert body["subtotal"] == 990
    assert body["shipping"] == 60
    assert body["item_count"] == 99
