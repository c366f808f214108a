import uuid

from app.core.config import settings

API = settings.API_V1_STR


def _create(client, headers, product_id, rating=4, body="Très bon outil", title=None):
    return client.post(
        f"{API}/reviews/",
        json={"product_id": str(product_id), "title": title, "body": body, "rating": rating},
        headers=headers,
    )


def test_product_without_reviews_has_null_average(client, product):
    response = client.get(f"{API}/products/{product.id}")

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["avg_rating"] is None
    assert data["total_reviews"] == 0


def test_create_review_and_read_stats(client, product, user, auth_headers):
    response = _create(client, auth_headers(user), product.id, rating=5)

    assert response.status_code == 201
    review = response.json()["data"]
    assert review["rating"] == 5
    assert review["status"] == "published"
    assert review["user_id"] == str(user.id)

    data = client.get(f"{API}/products/{product.id}").json()["data"]
    assert data["avg_rating"] == 5.0
    assert data["total_reviews"] == 1


def test_create_review_requires_authentication(client, product):
    response = client.post(
        f"{API}/reviews/",
        json={"product_id": str(product.id), "body": "Bien", "rating": 4},
    )
    assert response.status_code in (401, 403)


def test_error_status_mapping(client, product, user, other_user, auth_headers):
    headers = auth_headers(user)

    # Note hors bornes
    response = _create(client, headers, product.id, rating=6)
    assert response.status_code == 400
    assert response.json()["success"] is False
    assert response.json()["error"]["type"] == "invalid_rating"

    # Corps vide
    assert _create(client, headers, product.id, body="   ").status_code == 400

    # Identifiant mal formé
    assert _create(client, headers, "not-a-uuid").status_code == 400
    assert client.get(f"{API}/reviews/not-a-uuid").status_code == 400

    # Produit inexistant
    response = _create(client, headers, uuid.uuid4())
    assert response.status_code == 404
    assert response.json()["error"]["type"] == "not_found"

    # Doublon
    review_id = _create(client, headers, product.id).json()["data"]["id"]
    response = _create(client, headers, product.id)
    assert response.status_code == 409
    assert response.json()["error"]["type"] == "duplicate"

    # Modification par un tiers
    response = client.put(
        f"{API}/reviews/{review_id}",
        json={"body": "Piratage", "rating": 1},
        headers=auth_headers(other_user),
    )
    assert response.status_code == 403
    assert response.json()["error"]["type"] == "forbidden"


def test_edit_and_delete_review(client, product, user, auth_headers):
    headers = auth_headers(user)
    review_id = _create(client, headers, product.id, rating=2).json()["data"]["id"]

    response = client.put(
        f"{API}/reviews/{review_id}",
        json={"title": "Révisé", "body": "Finalement très bien", "rating": 4},
        headers=headers,
    )
    assert response.status_code == 200
    assert response.json()["data"]["edited"] is True
    assert client.get(f"{API}/products/{product.id}").json()["data"]["avg_rating"] == 4.0

    response = client.delete(f"{API}/reviews/{review_id}", headers=headers)
    assert response.status_code == 200
    assert client.get(f"{API}/reviews/{review_id}").status_code == 404

    data = client.get(f"{API}/products/{product.id}").json()["data"]
    assert data["avg_rating"] is None
    assert data["total_reviews"] == 0


def test_list_product_reviews_with_unknown_sort(client, product, user, other_user, auth_headers):
    _create(client, auth_headers(user), product.id, rating=2)
    _create(client, auth_headers(other_user), product.id, rating=5)

    response = client.get(f"{API}/reviews/product/{product.id}", params={"sort": "bogus", "limit": 1})
    assert response.status_code == 200
    body = response.json()
    assert body["sort"] == "recent"
    assert body["total"] == 2
    assert body["limit"] == 1
    assert len(body["data"]) == 1

    response = client.get(f"{API}/reviews/product/{product.id}", params={"sort": "rating_desc"})
    assert [r["rating"] for r in response.json()["data"]] == [5, 2]


def test_votes_and_flags(client, product, user, other_user, auth_headers):
    review_id = _create(client, auth_headers(user), product.id).json()["data"]["id"]
    headers = auth_headers(other_user)

    assert client.post(f"{API}/reviews/{review_id}/upvote", headers=headers).status_code == 200
    assert client.post(f"{API}/reviews/{review_id}/downvote", headers=headers).status_code == 200
    assert client.post(f"{API}/reviews/{review_id}/flag", headers=headers).status_code == 200
    assert client.post(f"{API}/reviews/{uuid.uuid4()}/upvote", headers=headers).status_code == 404

    review = client.get(f"{API}/reviews/{review_id}").json()["data"]
    assert (review["upvote_count"], review["downvote_count"], review["flag_count"]) == (1, 1, 1)


def test_moderation_requires_admin(client, product, user, admin, auth_headers, monkeypatch):
    monkeypatch.setattr(settings, "REVIEW_AUTO_PUBLISH", False)
    response = _create(client, auth_headers(user), product.id, rating=3)
    review = response.json()["data"]
    assert review["status"] == "pending"
    assert client.get(f"{API}/products/{product.id}").json()["data"]["total_reviews"] == 0

    url = f"{API}/reviews/{review['id']}/moderation"
    assert client.put(url, json={"status": "published"}, headers=auth_headers(user)).status_code == 403

    response = client.put(url, json={"status": "published"}, headers=auth_headers(admin))
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "published"

    data = client.get(f"{API}/products/{product.id}").json()["data"]
    assert (data["avg_rating"], data["total_reviews"]) == (3.0, 1)


def test_user_reviews_listing(client, make_product, user, auth_headers):
    headers = auth_headers(user)
    for product in (make_product(), make_product()):
        _create(client, headers, product.id)

    body = client.get(f"{API}/reviews/user/{user.id}").json()
    assert body["total"] == 2
    assert {r["user_id"] for r in body["data"]} == {str(user.id)}


def test_admin_recompute_endpoints(client, product, user, admin, auth_headers):
    _create(client, auth_headers(user), product.id, rating=4)

    url = f"{API}/products/{product.id}/stats/recompute"
    assert client.post(url, headers=auth_headers(user)).status_code == 403

    response = client.post(url, headers=auth_headers(admin))
    assert response.status_code == 200
    assert response.json()["data"] == {
        "product_id": str(product.id),
        "avg_rating": 4.0,
        "total_reviews": 1,
    }

    response = client.post(f"{API}/products/{uuid.uuid4()}/stats/recompute", headers=auth_headers(admin))
    assert response.status_code == 404

    response = client.post(f"{API}/products/stats/recompute", headers=auth_headers(admin))
    assert response.status_code == 200
    assert response.json()["products_recomputed"] == 1


def test_boolean_rating_is_rejected(client, product, user, auth_headers):
    headers = auth_headers(user)

    response = _create(client, headers, product.id, rating=True)
    assert response.status_code == 422
    data = client.get(f"{API}/products/{product.id}").json()["data"]
    assert (data["avg_rating"], data["total_reviews"]) == (None, 0)

    review_id = _create(client, headers, product.id, rating=3).json()["data"]["id"]
    response = client.put(
        f"{API}/reviews/{review_id}", json={"body": "Finalement", "rating": True}, headers=headers
    )
    assert response.status_code == 422
    assert client.get(f"{API}/reviews/{review_id}").json()["data"]["rating"] == 3
