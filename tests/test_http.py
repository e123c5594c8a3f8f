import json
from uuid import uuid4

import pytest

from catalog_service.config.config import config
from factories import PNG_BYTES, make_category, make_product


def png(name="photo.png"):
    return ("files", (name, PNG_BYTES, "image/png"))


def create_category(client, name, slug, files=(), **extra):
    return client.post(
        "/categories",
        data={"payload": json.dumps({"name": name, "slug": slug, **extra})},
        files=list(files),
    )


def product_body(category_id, **overrides):
    body = {
        "name": "Desk Lamp",
        "origin": "Spain",
        "sku": "LAMP-001",
        "description": "A small desk lamp",
        "slug": "desk-lamp",
        "price": "1.250,00",
        "brand": "Acme",
        "category_id": str(category_id),
        "variants": [
            {
                "sku": "LAMP-001-RED",
                "available_quantity": 3,
                "price": "19,90",
                "color_name": "Red",
            }
        ],
    }
    body.update(overrides)
    return body


class TestCategories:
    def test_create_with_image(self, client):
        response = create_category(
            client, "Electronics", "electronics", files=[png("front.png")]
        )

        assert response.status_code == 201
        body = response.json()
        assert body["name"] == "Electronics"
        assert len(body["images"]) == 1
        assert body["images"][0].startswith("front-")

    def test_create_without_files(self, client):
        response = create_category(client, "Electronics", "electronics")

        assert response.status_code == 201
        assert response.json()["images"] == []

    def test_duplicate_name_is_409(self, client):
        create_category(client, "Electronics", "electronics")

        response = create_category(client, "Electronics", "gadgets")

        assert response.status_code == 409
        assert response.json()["detail"] == "A category with this name already exists"

    def test_missing_parent_is_404(self, client):
        response = create_category(
            client, "Phones", "phones", parent_id=str(uuid4())
        )

        assert response.status_code == 404
        assert response.json()["detail"] == "Parent category not found"

    def test_third_level_is_400(self, client, session):
        root = make_category(session, "Electronics")
        child = make_category(session, "Phones", parent_id=root.id)

        response = create_category(
            client, "Smartphones", "smartphones", parent_id=str(child.id)
        )

        assert response.status_code == 400

    @pytest.mark.parametrize(
        "payload",
        ["not json", json.dumps({"name": "Electronics"}), json.dumps({"name": " x", "slug": "xyz"})],
        ids=["malformed", "missing-slug", "untrimmed-name"],
    )
    def test_invalid_payload_is_422(self, client, payload):
        response = client.post("/categories", data={"payload": payload})

        assert response.status_code == 422

    def test_non_image_file_is_400(self, client):
        response = create_category(
            client,
            "Electronics",
            "electronics",
            files=[("files", ("notes.txt", b"hello", "text/plain"))],
        )

        assert response.status_code == 400
        assert "not a valid image" in response.json()["detail"]

    def test_list_pagination(self, client, session):
        for index in range(25):
            make_category(session, f"Category {index:02d}")

        response = client.get("/categories", params={"limit": 10, "offset": 20})

        assert response.status_code == 200
        body = response.json()
        assert body["count"] == 25
        assert body["pages"] == 3
        assert len(body["data"]) == 5

    def test_list_rejects_out_of_range_limit(self, client):
        assert client.get("/categories", params={"limit": 0}).status_code == 422

    def test_get_with_product_count(self, client, session):
        category = make_category(session, "Lighting")
        make_product(session, "Desk Lamp", category.id)

        response = client.get(
            f"/categories/{category.id}", params={"with_product_count": True}
        )

        assert response.status_code == 200
        assert response.json()["product_count"] == 1

    def test_get_missing_is_404(self, client):
        response = client.get(f"/categories/{uuid4()}")

        assert response.status_code == 404
        assert response.json()["detail"] == "Category not found"

    def test_update(self, client, session):
        category = make_category(session, "Electronics")

        response = client.patch(
            f"/categories/{category.id}",
            data={"payload": json.dumps({"description": "Gadgets and more"})},
        )

        assert response.status_code == 200
        assert response.json()["description"] == "Gadgets and more"

    def test_delete_returns_deleted_category(self, client, session):
        category = make_category(session, "Electronics")

        response = client.delete(f"/categories/{category.id}")

        assert response.status_code == 200
        assert response.json()["id"] == str(category.id)
        assert client.get(f"/categories/{category.id}").status_code == 404

    def test_delete_with_products_is_409(self, client, session):
        category = make_category(session, "Lighting")
        make_product(session, "Desk Lamp", category.id)

        response = client.delete(f"/categories/{category.id}")

        assert response.status_code == 409

    def test_delete_with_children_is_400(self, client, session):
        root = make_category(session, "Electronics")
        make_category(session, "Phones", parent_id=root.id)

        response = client.delete(f"/categories/{root.id}")

        assert response.status_code == 400


class TestProducts:
    @pytest.fixture
    def category(self, session):
        return make_category(session, "Lighting")

    def create(self, client, body, files=None):
        return client.post(
            "/products",
            data={"payload": json.dumps(body)},
            files=files if files is not None else [png("lamp.png")],
        )

    def test_create_normalizes_prices(self, client, category):
        response = self.create(client, product_body(category.id))

        assert response.status_code == 201
        body = response.json()
        assert body["price"] == "1250.00"
        assert body["variants"][0]["price"] == "19.90"
        assert body["variants"][0]["color"] == "Red"
        assert len(body["images"]) == 1

    def test_create_without_images_is_400(self, client, category):
        response = self.create(client, product_body(category.id), files=[])

        assert response.status_code == 400
        assert response.json()["detail"] == "A product requires at least one image"

    def test_too_many_files_is_400(self, client, category):
        files = [png(f"lamp-{index}.png") for index in range(5)]

        response = self.create(client, product_body(category.id), files=files)

        assert response.status_code == 400

    def test_price_beyond_column_range_is_400(self, client, category):
        response = self.create(client, product_body(category.id, price="1.000.000.000"))

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid numeric value: '1.000.000.000'"

    def test_unknown_category_is_404(self, client):
        response = self.create(client, product_body(uuid4()))

        assert response.status_code == 404

    def test_duplicate_sku_is_409(self, client, category):
        self.create(client, product_body(category.id))

        response = self.create(
            client,
            product_body(category.id, name="Other", slug="other-lamp"),
        )

        assert response.status_code == 409
        assert response.json()["detail"] == "A product with this sku already exists"

    def test_list_get_update_delete(self, client, category):
        created = self.create(client, product_body(category.id)).json()

        listed = client.get("/products", params={"q": "desk", "with_variants": False})
        assert listed.status_code == 200
        assert listed.json()["count"] == 1
        assert listed.json()["data"][0]["variants"] is None

        fetched = client.get(f"/products/{created['id']}")
        assert fetched.status_code == 200
        assert fetched.json()["sku"] == "LAMP-001"

        updated = client.patch(
            f"/products/{created['id']}",
            data={"payload": json.dumps({"price": "15"})},
        )
        assert updated.status_code == 200
        assert updated.json()["price"] == "15.00"

        deleted = client.delete(f"/products/{created['id']}")
        assert deleted.status_code == 200
        assert client.get(f"/products/{created['id']}").status_code == 404


class TestColors:
    def test_crud(self, client):
        created = client.post("/colors", json={"color_code": "#FF0000", "color_name": "Red"})
        assert created.status_code == 201
        color_id = created.json()["id"]

        assert client.get("/colors").json()[0]["color_name"] == "Red"

        updated = client.patch(f"/colors/{color_id}", json={"color_name": "Scarlet"})
        assert updated.json()["color_name"] == "Scarlet"

        assert client.delete(f"/colors/{color_id}").status_code == 200
        assert client.get(f"/colors/{color_id}").status_code == 404

    def test_duplicate_is_409(self, client):
        client.post("/colors", json={"color_code": "#FF0000", "color_name": "Red"})

        response = client.post(
            "/colors", json={"color_code": "#FF0000", "color_name": "Crimson"}
        )

        assert response.status_code == 409


class TestFiles:
    def test_requires_authentication(self, anonymous_client):
        response = anonymous_client.post("/files/upload-image", files={"file": png()[1]})

        assert response.status_code == 401

    def test_upload_single_image(self, client, storage):
        response = client.post("/files/upload-image", files={"file": png("logo.png")[1]})

        assert response.status_code == 201
        body = response.json()
        assert body["file_name"].startswith("logo-")
        assert body["url"].startswith(f"{storage.base_url}/uploads/")

    def test_upload_many_into_folder(self, client, storage):
        response = client.post(
            "/files/upload-images/banners", files=[png("a.png"), png("b.png")]
        )

        assert response.status_code == 201
        body = response.json()
        assert len(body["file_names"]) == 2
        assert len(storage.names_under("banners")) == 2

    def test_raised_upload_limit_is_honoured(self, client, storage, monkeypatch):
        monkeypatch.setattr(config, "MAX_UPLOAD_FILES", 6)

        response = client.post(
            "/files/upload-images/gallery",
            files=[png(f"g{index}.png") for index in range(5)],
        )

        assert response.status_code == 201
        assert len(storage.names_under("gallery")) == 5

    def test_rejects_non_image(self, client):
        response = client.post(
            "/files/upload-image",
            files={"file": ("notes.txt", b"hello", "text/plain")},
        )

        assert response.status_code == 400

    def test_storage_failure_is_500(self, client, storage):
        storage.fail_uploads = True

        response = client.post("/files/upload-image", files={"file": png()[1]})

        assert response.status_code == 500


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "database": "connected"}


def test_metrics_exposes_request_counters(client):
    client.get("/health")

    response = client.get("/metrics")

    assert response.status_code == 200
    assert "http_requests_total" in response.text
