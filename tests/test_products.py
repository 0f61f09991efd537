from decimal import Decimal
from unittest.mock import patch

from models.cart import Cart, CartItem
from models.product import Product

NEW_PRODUCT = {
    "name": "Oversized Hoodie",
    "price": 39.5,
    "available_sizes": ["Medium", "Large", "X-Large"],
    "available_colors": ["Grey", "Navy"],
    "style": "Oversized",
    "description": "Brushed fleece",
}


class TestCatalogReads:
    def test_list_is_public(self, client, product):
        response = client.get("/products/")
        assert response.status_code == 200
        assert [p["name"] for p in response.json()] == ["Classic Tee"]

    def test_get_product(self, client, product):
        response = client.get(f"/products/{product.id}")
        assert response.status_code == 200
        body = response.json()
        assert body["price"] == 24.99
        assert body["available_sizes"] == ["Small", "Medium", "Large"]
        assert body["style"] == "Regular"

    def test_get_unknown_product(self, client):
        assert client.get("/products/999").status_code == 404


class TestCatalogWrites:
    def test_admin_creates_product(self, client, admin_headers):
        response = client.post("/products/", json=NEW_PRODUCT, headers=admin_headers)
        assert response.status_code == 201
        assert response.json()["price"] == 39.5
        assert response.json()["style"] == "Oversized"

    def test_customer_cannot_create(self, client, auth_headers):
        response = client.post("/products/", json=NEW_PRODUCT, headers=auth_headers)
        assert response.status_code == 403

    def test_anonymous_cannot_create(self, client):
        assert client.post("/products/", json=NEW_PRODUCT).status_code == 401

    def test_unknown_size_rejected(self, client, admin_headers):
        response = client.post(
            "/products/", json={**NEW_PRODUCT, "available_sizes": ["XXS"]}, headers=admin_headers
        )
        assert response.status_code == 422

    def test_non_positive_price_rejected(self, client, admin_headers):
        response = client.post("/products/", json={**NEW_PRODUCT, "price": 0}, headers=admin_headers)
        assert response.status_code == 422

    def test_update_price_keeps_cart_prices(self, client, admin_headers, filled_cart, product):
        response = client.patch(f"/products/{product.id}", json={"price": 29.99}, headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["price"] == 29.99
        assert response.json()["name"] == "Classic Tee"
        assert Decimal(str(filled_cart.items[0].price_at_addition)) == Decimal("24.99")

    def test_delete_product_drops_it_from_carts(self, client, db_session_override, admin_headers,
                                                filled_cart, product):
        response = client.delete(f"/products/{product.id}", headers=admin_headers)

        assert response.status_code == 204
        assert db_session_override.get(Product, product.id) is None
        cart = db_session_override.query(Cart).filter(Cart.id == filled_cart.id).one()
        assert cart.items == []
        assert Decimal(str(cart.total)) == Decimal("0.00")
        assert db_session_override.query(CartItem).count() == 0


class TestProductImage:
    @patch("routes.products.cloudinary_service")
    def test_upload_image(self, mock_cloudinary, client, admin_headers, product):
        mock_cloudinary.upload_product_image.return_value = (
            True, "https://res.cloudinary.com/demo/tee.png", "tshirt-products/tee", None
        )

        response = client.post(
            f"/products/{product.id}/image",
            files={"file": ("tee.png", b"png-bytes", "image/png")},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["image_url"] == "https://res.cloudinary.com/demo/tee.png"
        mock_cloudinary.upload_product_image.assert_called_once_with(b"png-bytes")
        mock_cloudinary.delete.assert_not_called()

    @patch("routes.products.cloudinary_service")
    def test_replacing_image_deletes_the_old_one(self, mock_cloudinary, client, db_session_override,
                                                 admin_headers, product):
        product.image_url = "https://res.cloudinary.com/demo/old.png"
        product.cloudinary_id = "tshirt-products/old"
        db_session_override.commit()
        mock_cloudinary.upload_product_image.return_value = (
            True, "https://res.cloudinary.com/demo/new.png", "tshirt-products/new", None
        )

        client.post(
            f"/products/{product.id}/image",
            files={"file": ("new.png", b"png", "image/png")},
            headers=admin_headers,
        )

        mock_cloudinary.delete.assert_called_once_with("tshirt-products/old")

    @patch("routes.products.cloudinary_service")
    def test_upload_failure(self, mock_cloudinary, client, admin_headers, product):
        mock_cloudinary.upload_product_image.return_value = (False, None, None, "bad credentials")
        response = client.post(
            f"/products/{product.id}/image",
            files={"file": ("tee.png", b"png", "image/png")},
            headers=admin_headers,
        )
        assert response.status_code == 500
        assert "bad credentials" in response.json()["detail"]

    def test_rejects_non_image(self, client, admin_headers, product):
        response = client.post(
            f"/products/{product.id}/image",
            files={"file": ("notes.txt", b"hello", "text/plain")},
            headers=admin_headers,
        )
        assert response.status_code == 400

    @patch("routes.products.cloudinary_service")
    def test_delete_product_removes_image(self, mock_cloudinary, client, db_session_override,
                                          admin_headers, product):
        product.cloudinary_id = "tshirt-products/tee"
        db_session_override.commit()
        mock_cloudinary.delete.return_value = (True, None)

        client.delete(f"/products/{product.id}", headers=admin_headers)

        mock_cloudinary.delete.assert_called_once_with("tshirt-products/tee")
