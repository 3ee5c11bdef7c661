import re

import app.services.product_service as product_service_module
from app.routers.products import repo as product_repo

API = "/api/v1"


def _create(client, headers, **payload):
    payload.setdefault("title", "Red Top")
    payload.setdefault("price", 499)
    return client.post(f"{API}/products", json=payload, headers=headers)


def test_create_requires_admin(client, customer, auth_headers):
    assert _create(client, {}).status_code == 401
    assert _create(client, auth_headers(customer)).status_code == 403


def test_slug_is_unique_per_title(client, admin, auth_headers):
    headers = auth_headers(admin)
    slugs = [_create(client, headers).json()["slug"] for _ in range(3)]
    assert slugs == ["red-top", "red-top-1", "red-top-2"]


def test_slug_from_explicit_value_and_sku(client, admin, auth_headers):
    headers = auth_headers(admin)
    assert _create(client, headers, slug="Café Crème Léggings!!").json()["slug"] == (
        "cafe-creme-leggings"
    )
    assert _create(client, headers, title="!!!", sku="SKU 42").json()["slug"] == "sku-42"


def test_insert_conflict_retries_with_random_suffix(client, admin, auth_headers, monkeypatch):
    headers = auth_headers(admin)
    assert _create(client, headers).status_code == 201

    # simulate a concurrent writer that the pre-check could not see
    monkeypatch.setattr(product_repo, "slug_exists", lambda *args, **kwargs: False)
    resp = _create(client, headers)
    assert resp.status_code == 201
    assert re.fullmatch(r"red-top-[0-9a-f]{8}", resp.json()["slug"])


def test_second_conflict_returns_409(client, admin, auth_headers, monkeypatch):
    headers = auth_headers(admin)
    _create(client, headers)

    monkeypatch.setattr(product_repo, "slug_exists", lambda *args, **kwargs: False)
    monkeypatch.setattr(product_service_module, "random_slug_suffix", lambda text: "red-top")
    resp = _create(client, headers)
    assert resp.status_code == 409


def test_rename_keeps_slug_unless_asked(client, admin, auth_headers):
    headers = auth_headers(admin)
    product = _create(client, headers).json()

    renamed = client.patch(
        f"{API}/products/{product['id']}", json={"title": "Blue Top"}, headers=headers
    ).json()
    assert renamed["title"] == "Blue Top"
    assert renamed["slug"] == "red-top"

    reslugged = client.patch(
        f"{API}/products/{product['id']}", json={"reslug": True}, headers=headers
    ).json()
    assert reslugged["slug"] == "blue-top"


def test_reslug_does_not_collide_with_itself(client, admin, auth_headers):
    headers = auth_headers(admin)
    product = _create(client, headers).json()
    resp = client.patch(
        f"{API}/products/{product['id']}", json={"reslug": True}, headers=headers
    )
    assert resp.json()["slug"] == "red-top"


def test_boundary_normalizes_colors_sizes_images(client, admin, auth_headers):
    headers = auth_headers(admin)
    resp = _create(
        client,
        headers,
        colors=["Red", {"label": "Navy Blue", "value": "000080"}, "red"],
        sizes="S, M, L, M",
        images=["https://cdn.example.com/a.jpg", {"url": "https://cdn.example.com/b.jpg"}],
        published=True,
    )
    assert resp.status_code == 201, resp.text
    body = resp.json()
    assert body["colors"] == [
        {"name": "red", "hex": ""},
        {"name": "navy blue", "hex": "#000080"},
    ]
    assert body["sizes"] == ["S", "M", "L"]
    assert body["hero_image_url"] == "https://cdn.example.com/a.jpg"

    images = client.get(f"{API}/products/{body['id']}/images").json()
    assert [img["image_url"] for img in images] == [
        "https://cdn.example.com/a.jpg",
        "https://cdn.example.com/b.jpg",
    ]


def test_public_listing_hides_drafts_and_deleted(client, make_product):
    visible = make_product(title="Visible", category="Tops")
    make_product(title="Draft", published=False)
    make_product(title="Gone", deleted=True)

    listed = client.get(f"{API}/products").json()
    assert [p["id"] for p in listed] == [str(visible.id)]

    assert client.get(f"{API}/products", params={"category": "tops"}).json()[0]["title"] == "Visible"
    assert client.get(f"{API}/products", params={"category": "bottoms"}).json() == []


def test_get_by_slug_is_case_insensitive(client, make_product):
    product = make_product(slug="summer-dress")
    resp = client.get(f"{API}/products/slug/Summer-Dress")
    assert resp.status_code == 200
    assert resp.json()["id"] == str(product.id)


def test_unpublished_product_is_404_publicly(client, make_product, admin, auth_headers):
    draft = make_product(published=False)
    assert client.get(f"{API}/products/{draft.id}").status_code == 404
    admin_view = client.get(f"{API}/products/admin/{draft.id}", headers=auth_headers(admin))
    assert admin_view.status_code == 200


def test_admin_listing_counts(client, make_product, admin, auth_headers):
    make_product()
    make_product(published=False)
    make_product(deleted=True)
    headers = auth_headers(admin)

    page = client.get(f"{API}/products/admin", headers=headers).json()
    assert page["total"] == 2
    assert len(page["items"]) == 2

    page = client.get(
        f"{API}/products/admin", params={"include_deleted": True}, headers=headers
    ).json()
    assert page["total"] == 3


def test_soft_then_hard_delete(client, make_product, admin, auth_headers, session):
    product = make_product()
    headers = auth_headers(admin)

    assert client.delete(f"{API}/products/{product.id}", headers=headers).status_code == 204
    assert client.get(f"{API}/products/{product.id}").status_code == 404
    assert client.get(f"{API}/products/admin/{product.id}", headers=headers).json()["deleted"] is True

    resp = client.delete(
        f"{API}/products/{product.id}", params={"hard": True}, headers=headers
    )
    assert resp.status_code == 204
    assert client.get(f"{API}/products/admin/{product.id}", headers=headers).status_code == 404


def test_hero_upload_goes_through_storage(client, make_product, admin, auth_headers, monkeypatch):
    product = make_product()
    uploaded = []

    def fake_upload(path, data, content_type):
        uploaded.append((path, content_type))
        return f"https://storage.example.com/{path}"

    monkeypatch.setattr(product_service_module, "upload_to_storage", fake_upload)
    monkeypatch.setattr(product_service_module, "delete_public_url", lambda url: None)

    resp = client.post(
        f"{API}/products/{product.id}/hero-image",
        files={"file": ("hero.png", b"\x89PNG fake", "image/png")},
        headers=auth_headers(admin),
    )
    assert resp.status_code == 200, resp.text
    assert uploaded == [(f"products/{product.id}/hero.png", "image/png")]
    assert resp.json()["hero_image_url"].endswith("/hero.png")


def test_hero_upload_rejects_unsupported_type(client, make_product, admin, auth_headers):
    product = make_product()
    resp = client.post(
        f"{API}/products/{product.id}/hero-image",
        files={"file": ("notes.txt", b"hello", "text/plain")},
        headers=auth_headers(admin),
    )
    assert resp.status_code == 400


def test_long_slugs_fit_the_column(client, admin, auth_headers):
    headers = auth_headers(admin)
    assert _create(client, headers, slug="a" * 400).status_code == 422

    long_slug = "-".join(["abcd"] * 51)
    first = _create(client, headers, slug=long_slug)
    second = _create(client, headers, slug=long_slug)
    assert first.status_code == 201, first.text
    assert second.status_code == 201, second.text
    assert len(first.json()["slug"]) <= 255
    assert second.json()["slug"] == first.json()["slug"] + "-1"
