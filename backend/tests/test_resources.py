"""
Books, clients and sales over HTTP.

Verifies:
- CRUD round trips for the three top-level resources
- Duplicate detection (409) for books, clients and invoice numbers
- Sale parties must be two distinct clients of the caller
- Clients referenced by sales cannot be deleted
"""

from brokerbook.models import Sale


class TestBooks:
    def test_create_list_update_delete(self, client, db_session, user, headers):
        base = f"/api/v1/users/{user.id}/books"
        created = client.post(
            base,
            json={"name": "FY 2026-27", "start_date": "2026-04-01", "end_date": "2027-03-31"},
            headers=headers,
        )
        assert created.status_code == 201
        book_id = created.json["book"]["id"]
        assert created.json["book"]["status"] == "OPEN"

        assert len(client.get(base, headers=headers).json["books"]) == 1

        updated = client.put(f"{base}/{book_id}", json={"opening_balance": 2500.5}, headers=headers)
        assert updated.status_code == 200
        assert updated.json["book"]["opening_balance"] == 2500.5

        assert client.delete(f"{base}/{book_id}", headers=headers).status_code == 200
        assert client.get(f"{base}/{book_id}", headers=headers).status_code == 404

    def test_missing_required_fields(self, client, db_session, user, headers):
        resp = client.post(f"/api/v1/users/{user.id}/books", json={"name": "No dates"}, headers=headers)
        assert resp.status_code == 400
        assert resp.json["error"] == "Missing required fields: end_date, start_date"

    def test_end_before_start(self, client, db_session, user, headers):
        resp = client.post(
            f"/api/v1/users/{user.id}/books",
            json={"name": "Backwards", "start_date": "2026-04-01", "end_date": "2025-03-31"},
            headers=headers,
        )
        assert resp.status_code == 400

    def test_duplicate_book_conflicts(self, client, db_session, user, headers, book):
        from conftest import activate_plan
        activate_plan(user, "Professional")
        resp = client.post(
            f"/api/v1/users/{user.id}/books",
            json={"name": book.name, "start_date": "2026-04-01", "end_date": "2027-03-31"},
            headers=headers,
        )
        assert resp.status_code == 409
        assert resp.json["error"] == "Book with same details already exists"


class TestClients:
    def test_duplicate_phone_and_pan(self, client, db_session, user, headers, seller):
        resp = client.post(
            f"/api/v1/users/{user.id}/clients",
            json={"name": "Copy", "phone": seller.phone, "pan": seller.pan},
            headers=headers,
        )
        assert resp.status_code == 409
        assert resp.json["error"] == "Client with same details already exists"

    def test_search(self, client, db_session, user, headers, seller, buyer):
        resp = client.get(f"/api/v1/users/{user.id}/clients?search=ganesh", headers=headers)
        assert [c["name"] for c in resp.json["clients"]] == ["Ganesh Traders"]

    def test_client_sales(self, client, db_session, user, headers, sale, seller):
        resp = client.get(f"/api/v1/users/{user.id}/clients/{seller.id}/sales", headers=headers)
        assert resp.status_code == 200
        assert [s["id"] for s in resp.json["sales"]] == [sale.id]

    def test_referenced_client_cannot_be_deleted(self, client, db_session, user, headers, sale, buyer):
        resp = client.delete(f"/api/v1/users/{user.id}/clients/{buyer.id}", headers=headers)
        assert resp.status_code == 409


class TestSales:
    def _url(self, user, book):
        return f"/api/v1/users/{user.id}/books/{book.id}/sales"

    def test_create_and_detail(self, client, db_session, user, headers, book, seller, buyer):
        resp = client.post(
            self._url(user, book),
            json={
                "seller_id": seller.id,
                "buyer_id": buyer.id,
                "invoice_number": "INV-100",
                "invoice_date": "2026-10-01",
                "lorry_receipt_number": "LR-77",
                "commission_rate": 1.5,
            },
            headers=headers,
        )
        assert resp.status_code == 201
        sale = resp.json["sale"]
        assert sale["invoice_due_days"] == 45
        assert sale["invoice_net_amount"] == 0.0
        assert sale["status"] == "PENDING"

        detail = client.get(f"/api/v1/users/{user.id}/sales/{sale['id']}", headers=headers)
        assert detail.json["sale"]["seller"]["name"] == "Shree Textiles"
        assert detail.json["sale"]["products"] == []

    def test_seller_and_buyer_must_differ(self, client, db_session, user, headers, book, seller):
        resp = client.post(
            self._url(user, book),
            json={"seller_id": seller.id, "buyer_id": seller.id},
            headers=headers,
        )
        assert resp.status_code == 400

    def test_party_must_belong_to_user(self, client, db_session, user, headers, book, seller, other_user):
        from brokerbook.models import Client
        stranger = Client(user_id=other_user.id, name="Stranger")
        db_session.add(stranger)
        db_session.commit()

        resp = client.post(
            self._url(user, book),
            json={"seller_id": seller.id, "buyer_id": stranger.id},
            headers=headers,
        )
        assert resp.status_code == 404
        assert resp.json["error"] == "Client not found"

    def test_duplicate_invoice_number(self, client, db_session, user, headers, book, seller, buyer, sale):
        resp = client.post(
            self._url(user, book),
            json={"seller_id": seller.id, "buyer_id": buyer.id, "invoice_number": sale.invoice_number},
            headers=headers,
        )
        assert resp.status_code == 409
        assert resp.json["error"] == "Sale with same invoice number already exists"

    def test_invalid_status(self, client, db_session, user, headers, sale):
        resp = client.put(f"/api/v1/users/{user.id}/sales/{sale.id}", json={"status": "LOST"}, headers=headers)
        assert resp.status_code == 400

    def test_list_filters_by_status(self, client, db_session, user, headers, sale):
        client.put(f"/api/v1/users/{user.id}/sales/{sale.id}", json={"status": "PAID"}, headers=headers)
        paid = client.get(f"/api/v1/users/{user.id}/sales?status=PAID", headers=headers)
        pending = client.get(f"/api/v1/users/{user.id}/sales?status=PENDING", headers=headers)
        assert len(paid.json["sales"]) == 1
        assert pending.json["sales"] == []

    def test_delete_removes_children(self, client, db_session, user, headers, sale):
        client.post(
            f"/api/v1/users/{user.id}/sales/{sale.id}/products",
            json={"name": "Bales", "rate": 10, "quantity": 1},
            headers=headers,
        )
        client.post(
            f"/api/v1/users/{user.id}/sales/{sale.id}/payments",
            json={"amount": 10, "payment_method": "CASH"},
            headers=headers,
        )
        assert client.delete(f"/api/v1/users/{user.id}/sales/{sale.id}", headers=headers).status_code == 200
        assert db_session.query(Sale).count() == 0


class TestPayments:
    def test_payment_and_commission(self, client, db_session, user, headers, sale):
        payment = client.post(
            f"/api/v1/users/{user.id}/sales/{sale.id}/payments",
            json={"amount": 5000, "payment_method": "BANK_TRANSFER", "reference_number": "UTR123"},
            headers=headers,
        )
        assert payment.status_code == 201
        payment_id = payment.json["payment"]["id"]

        commission = client.post(
            f"/api/v1/users/{user.id}/payments/{payment_id}/commissions",
            json={"amount": 100, "payment_method": "CASH"},
            headers=headers,
        )
        assert commission.status_code == 201

        listing = client.get(f"/api/v1/users/{user.id}/payments/{payment_id}/commissions", headers=headers)
        assert len(listing.json["commissions"]) == 1

    def test_unknown_method_rejected(self, client, db_session, user, headers, sale):
        resp = client.post(
            f"/api/v1/users/{user.id}/sales/{sale.id}/payments",
            json={"amount": 10, "payment_method": "BARTER"},
            headers=headers,
        )
        assert resp.status_code == 400
