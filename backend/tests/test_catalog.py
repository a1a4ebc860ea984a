"""
Catalog tests: suspended sellers can't list and disappear from the storefront.
"""

from decimal import Decimal

import pytest

from marketledger.extensions import db
from marketledger.services import catalog_service, subscription_service
from marketledger.services.catalog_service import CatalogError


def suspend(seller):
    sub = subscription_service.get_subscription(seller.id)
    sub.account_suspended = True
    db.session.commit()


class TestCreateProduct:
    def test_create(self, seller):
        product = catalog_service.create_product(seller.id, "  Silk Dupatta ", "1499.5", 10)
        assert product.title == "Silk Dupatta"
        assert product.price == Decimal("1499.50")
        assert product.stock_count == 10

    @pytest.mark.parametrize(
        "title,price,stock,message",
        [
            ("", "100", 1, "title is required"),
            ("Shawl", "0", 1, "price must be greater than zero"),
            ("Shawl", "abc", 1, "price must be a number"),
            ("Shawl", "100", -1, "stock_count cannot be negative"),
        ],
    )
    def test_validation(self, seller, title, price, stock, message):
        with pytest.raises(CatalogError, match=message):
            catalog_service.create_product(seller.id, title, price, stock)

    def test_suspended_seller_blocked(self, seller):
        suspend(seller)
        with pytest.raises(CatalogError, match="suspended"):
            catalog_service.create_product(seller.id, "Shawl", "100")


class TestStorefront:
    def test_hides_suspended_sellers(self, seller, other_seller, product):
        other = catalog_service.create_product(other_seller.id, "Kurta", "2500", 4)
        assert {p.id for p in catalog_service.list_storefront_products()} == {product.id, other.id}

        suspend(seller)
        assert [p.id for p in catalog_service.list_storefront_products()] == [other.id]

    def test_route_is_public(self, client, product):
        resp = client.get("/api/catalog/products")
        assert resp.status_code == 200
        assert resp.json["products"][0]["title"] == "Lawn Suit"

    def test_create_route(self, client, seller, seller_headers):
        resp = client.post("/api/catalog/products", json={"title": "Shawl", "price": "900"}, headers=seller_headers)
        assert resp.status_code == 201

        suspend(seller)
        resp = client.post("/api/catalog/products", json={"title": "Shawl", "price": "900"}, headers=seller_headers)
        assert resp.status_code == 400
        assert "suspended" in resp.json["error"]
