"""Tests for reviews and product rating aggregates."""

import pytest

API = "/api/v1"


@pytest.fixture
def product(make_product):
    return make_product(title="Headphones", price="80.00")


def post_review(client, headers, product_id, ratings, text="Nice"):
    return client.post(
        f"{API}/products/{product_id}/reviews",
        json={"ratings": ratings, "text": text},
        headers=headers,
    )


class TestRatingAggregates:
    def test_average_and_count(self, client, db, make_user, shopper, auth_headers, product):
        other = make_user(email="other@example.com", name="Other Shopper")
        assert post_review(client, auth_headers(shopper), product.id, 3).status_code == 201
        assert post_review(client, auth_headers(other), product.id, 5).status_code == 201

        db.refresh(product)
        assert product.ratings_average == pytest.approx(4.0)
        assert product.ratings_quantity == 2

    def test_update_recalculates(self, client, db, shopper, auth_headers, product):
        headers = auth_headers(shopper)
        review_id = post_review(client, headers, product.id, 2).json()["data"]["id"]

        response = client.put(f"{API}/reviews/{review_id}", json={"ratings": 4.5}, headers=headers)
        assert response.status_code == 200

        db.refresh(product)
        assert product.ratings_average == pytest.approx(4.5)
        assert product.ratings_quantity == 1

    def test_deleting_last_review_resets_to_zero(self, client, db, shopper, auth_headers, product):
        headers = auth_headers(shopper)
        review_id = post_review(client, headers, product.id, 5).json()["data"]["id"]

        assert client.delete(f"{API}/reviews/{review_id}", headers=headers).status_code == 204

        db.refresh(product)
        assert product.ratings_average == 0
        assert product.ratings_quantity == 0


class TestReviewRules:
    def test_one_review_per_product(self, client, shopper, auth_headers, product):
        headers = auth_headers(shopper)
        post_review(client, headers, product.id, 4)
        response = post_review(client, headers, product.id, 1)
        assert response.status_code == 400
        assert response.json()["message"] == "You already created a review before"

    def test_ratings_out_of_range(self, client, shopper, auth_headers, product):
        response = post_review(client, auth_headers(shopper), product.id, 6)
        assert response.status_code == 400

    def test_unknown_product(self, client, shopper, auth_headers):
        assert post_review(client, auth_headers(shopper), 321, 4).status_code == 404

    def test_only_owner_updates(self, client, make_user, shopper, auth_headers, product):
        review_id = post_review(client, auth_headers(shopper), product.id, 4).json()["data"]["id"]
        other = make_user(email="other@example.com")
        response = client.put(f"{API}/reviews/{review_id}", json={"text": "Mine now"}, headers=auth_headers(other))
        assert response.status_code == 403

    def test_staff_can_delete_any_review(self, client, db, admin, shopper, auth_headers, product):
        review_id = post_review(client, auth_headers(shopper), product.id, 4).json()["data"]["id"]
        assert client.delete(f"{API}/reviews/{review_id}", headers=auth_headers(admin)).status_code == 204
        db.refresh(product)
        assert product.ratings_quantity == 0

    def test_staff_cannot_write_reviews(self, client, admin, auth_headers, product):
        assert post_review(client, auth_headers(admin), product.id, 4).status_code == 403

    def test_nested_listing(self, client, make_user, shopper, auth_headers, product, make_product):
        other_product = make_product(title="Speaker")
        post_review(client, auth_headers(shopper), product.id, 4)
        post_review(client, auth_headers(shopper), other_product.id, 2)

        body = client.get(f"{API}/products/{product.id}/reviews").json()
        assert body["results"] == 1
        assert body["data"][0]["user"]["name"] == "Test Shopper"
        assert client.get(f"{API}/reviews").json()["results"] == 2
