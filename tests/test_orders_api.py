from datetime import datetime, timezone

from app.models.product import Product

API = "/api/v1"

CUSTOMER = {
    "name": "Asha Rao",
    "phone": "+91 98765 43210",
    "address": "12 MG Road",
    "city": "Bengaluru",
    "state": "Karnataka",
    "pincode": "560001",
}


def _checkout(client, headers, items, **extra):
    payload = {"customer": CUSTOMER, "items": items, **extra}
    return client.post(f"{API}/orders/checkout", json=payload, headers=headers)


def test_checkout_prices_from_catalog(client, session, customer, auth_headers, make_product):
    product = make_product(price=500, stock=10, sizes=["S", "M"])
    resp = _checkout(
        client,
        auth_headers(customer),
        [{"product_id": str(product.id), "quantity": 2, "size": "M"}],
    )
    assert resp.status_code == 201, resp.text
    order = resp.json()

    assert order["subtotal"] == 1000
    assert order["shipping"] == 0
    assert order["tax"] == 50
    assert order["total"] == 1050
    assert order["status"] == "confirmed"
    assert order["customer_phone"] == "9876543210"
    assert order["items"][0]["unit_price"] == 500
    assert order["items"][0]["line_total"] == 1000
    assert order["items"][0]["size"] == "M"

    session.expire_all()
    assert session.get(Product, product.id).stock == 8


def test_small_online_order_is_pending_with_shipping(client, customer, auth_headers, make_product):
    product = make_product(price=300)
    resp = _checkout(
        client,
        auth_headers(customer),
        [{"product_id": str(product.id), "quantity": 1}],
        payment_method="online",
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["status"] == "pending"
    assert body["shipping"] == 60
    assert body["tax"] == 15
    assert body["total"] == 375


def test_client_totals_and_prices_are_rejected(client, customer, auth_headers, make_product):
    product = make_product(price=500)
    headers = auth_headers(customer)

    resp = _checkout(client, headers, [{"product_id": str(product.id), "quantity": 1}], total=1)
    assert resp.status_code == 422

    resp = _checkout(
        client, headers, [{"product_id": str(product.id), "quantity": 1, "price": 1}]
    )
    assert resp.status_code == 422


def test_checkout_validates_lines(client, customer, auth_headers, make_product):
    low_stock = make_product(stock=1)
    draft = make_product(published=False)
    sized = make_product(sizes=["S"])

    resp = _checkout(
        client,
        auth_headers(customer),
        [
            {"product_id": str(low_stock.id), "quantity": 2},
            {"product_id": str(draft.id), "quantity": 1},
            {"product_id": str(sized.id), "quantity": 1, "size": "XL"},
        ],
    )
    assert resp.status_code == 400
    reasons = {item["product_id"]: item["reason"] for item in resp.json()["detail"]["items"]}
    assert "Insufficient stock" in reasons[str(low_stock.id)]
    assert reasons[str(draft.id)] == "Product is not available"
    assert "XL" in reasons[str(sized.id)]


def test_stock_check_sums_duplicate_lines(client, customer, auth_headers, make_product):
    product = make_product(stock=3, sizes=["S", "M"])
    resp = _checkout(
        client,
        auth_headers(customer),
        [
            {"product_id": str(product.id), "quantity": 2, "size": "S"},
            {"product_id": str(product.id), "quantity": 2, "size": "M"},
        ],
    )
    assert resp.status_code == 400


def test_checkout_rejects_bad_quantity_and_address(client, customer, auth_headers, make_product):
    product = make_product()
    headers = auth_headers(customer)
    assert _checkout(client, headers, [{"product_id": str(product.id), "quantity": 100}]).status_code == 422
    assert _checkout(client, headers, []).status_code == 422

    payload = {
        "customer": {**CUSTOMER, "pincode": "12345"},
        "items": [{"product_id": str(product.id), "quantity": 1}],
    }
    assert client.post(f"{API}/orders/checkout", json=payload, headers=headers).status_code == 422


def test_admin_cannot_checkout(client, admin, auth_headers, make_product):
    product = make_product()
    resp = _checkout(client, auth_headers(admin), [{"product_id": str(product.id), "quantity": 1}])
    assert resp.status_code == 403


def test_my_orders_are_private(client, customer, make_user, auth_headers, make_product):
    product = make_product()
    order = _checkout(
        client, auth_headers(customer), [{"product_id": str(product.id), "quantity": 1}]
    ).json()

    mine = client.get(f"{API}/orders/me", headers=auth_headers(customer)).json()
    assert [o["id"] for o in mine] == [order["id"]]

    other = make_user("9123456780")
    assert client.get(f"{API}/orders/me", headers=auth_headers(other)).json() == []
    resp = client.get(f"{API}/orders/me/{order['id']}", headers=auth_headers(other))
    assert resp.status_code == 404


def test_admin_status_transitions(client, customer, admin, auth_headers, make_product):
    product = make_product()
    order = _checkout(
        client, auth_headers(customer), [{"product_id": str(product.id), "quantity": 1}]
    ).json()
    headers = auth_headers(admin)
    url = f"{API}/orders/{order['id']}/status"

    assert client.patch(url, json={"status": "packed"}, headers=headers).json()["status"] == "packed"
    assert client.patch(url, json={"status": "canceled"}, headers=headers).status_code == 400
    assert client.patch(url, json={"status": "shipped"}, headers=headers).status_code == 200
    assert client.patch(url, json={"status": "delivered"}, headers=headers).status_code == 200
    assert client.patch(url, json={"status": "pending"}, headers=headers).status_code == 400

    full = client.get(f"{API}/orders/{order['id']}", headers=headers).json()
    assert full["status"] == "delivered"
    assert len(full["items"]) == 1


def test_admin_listing_date_filter(client, customer, admin, auth_headers, make_product):
    product = make_product()
    _checkout(client, auth_headers(customer), [{"product_id": str(product.id), "quantity": 1}])
    headers = auth_headers(admin)
    today = datetime.now(timezone.utc).date().isoformat()

    assert len(client.get(f"{API}/orders", headers=headers).json()) == 1
    assert len(client.get(f"{API}/orders", params={"from": today}, headers=headers).json()) == 1
    old = client.get(
        f"{API}/orders", params={"from": "2000-01-01", "to": "2000-01-31"}, headers=headers
    ).json()
    assert old == []


def test_order_admin_routes_need_admin(client, customer, auth_headers):
    assert client.get(f"{API}/orders", headers=auth_headers(customer)).status_code == 403


def test_size_and_color_match_ignores_case_and_spacing(client, customer, auth_headers, make_product):
    product = make_product(
        sizes=["S", "M"], colors=[{"name": "navy blue", "hex": "#000080"}]
    )
    resp = _checkout(
        client,
        auth_headers(customer),
        [{"product_id": str(product.id), "quantity": 1, "size": "m", "color": " Navy  Blue "}],
    )
    assert resp.status_code == 201, resp.text


def test_quantity_cap_applies_to_checkout_and_preview(
    client, customer, auth_headers, make_product
):
    product = make_product(price=10, stock=5000)
    resp = _checkout(
        client,
        auth_headers(customer),
        [{"product_id": str(product.id), "quantity": 1000}],
    )
    assert resp.status_code == 422

    preview = client.post(
        f"{API}/cart/totals", json={"items": [{"price": 10, "quantity": 1000}]}
    ).json()
    assert preview["subtotal"] == 990
    assert preview["item_count"] == 99
