"""
Ownership isolation.

Verifies:
- Unauthenticated requests return 401
- A path user that is not the caller returns 403
- Records under another user are invisible (404), even by direct id
"""

import pytest

from brokerbook.services import ownership_service
from brokerbook.validation import NotFoundError
from conftest import bearer_headers


class TestUnauthenticatedAccess:
    """All user-scoped endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/v1/users/u1"),
            ("GET", "/api/v1/users/u1/books"),
            ("POST", "/api/v1/users/u1/clients"),
            ("GET", "/api/v1/users/u1/sales"),
            ("GET", "/api/v1/users/u1/sales/s1/products"),
            ("GET", "/api/v1/users/u1/subscription"),
            ("GET", "/api/v1/users/u1/usage"),
            ("POST", "/api/v1/users/u1/payment-reminders/send"),
            ("GET", "/api/v1/auth/me"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_garbage_token(self, client, db_session, user):
        resp = client.get(f"/api/v1/users/{user.id}/books", headers={"Authorization": "Bearer nope"})
        assert resp.status_code == 401


class TestCrossUserAccess:
    def test_other_users_path_is_forbidden(self, client, db_session, user, other_user):
        resp = client.get(f"/api/v1/users/{user.id}/books", headers=bearer_headers(other_user))
        assert resp.status_code == 403
        assert resp.json["error"] == "Access denied"

    def test_foreign_sale_under_own_path_is_not_found(self, client, db_session, sale, other_user):
        headers = bearer_headers(other_user)
        resp = client.get(f"/api/v1/users/{other_user.id}/sales/{sale.id}", headers=headers)
        assert resp.status_code == 404
        assert resp.json["error"] == "Sale not found"

    def test_foreign_sale_cannot_take_products(self, client, db_session, sale, other_user):
        resp = client.post(
            f"/api/v1/users/{other_user.id}/sales/{sale.id}/products",
            json={"name": "Sneaky", "rate": 1, "quantity": 1},
            headers=bearer_headers(other_user),
        )
        assert resp.status_code == 404
        assert sale.invoice_net_amount == 0.0

    def test_scoped_lookups(self, db_session, user, other_user, book, sale):
        assert ownership_service.require_book(user.id, book.id) is book
        with pytest.raises(NotFoundError, match="Book not found"):
            ownership_service.require_book(other_user.id, book.id)
        with pytest.raises(NotFoundError, match="Sale not found"):
            ownership_service.require_sale(other_user.id, sale.id)

    def test_sale_under_wrong_book(self, db_session, user, sale):
        with pytest.raises(NotFoundError):
            ownership_service.require_sale(user.id, sale.id, book_id="not-a-book")


class TestProfile:
    def test_update_profile(self, client, db_session, user, headers):
        resp = client.put(f"/api/v1/users/{user.id}", json={"name": "Ravi K"}, headers=headers)
        assert resp.status_code == 200
        assert resp.json["user"]["name"] == "Ravi K"

    def test_email_not_editable(self, client, db_session, user, headers):
        resp = client.put(f"/api/v1/users/{user.id}", json={"email": "x@example.com"}, headers=headers)
        assert resp.status_code == 400
