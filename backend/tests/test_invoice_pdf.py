"""
Invoice PDF rendering and invoice email.

Verifies:
- The PDF endpoint serves a real PDF for the owner only
- Invoice mail is gated by bulk_email and attaches the rendered PDF
- Recipients default to buyer and seller; one bad address does not stop the rest
"""

from brokerbook.models import Client, Sale
from brokerbook.services import line_item_service
from brokerbook.services.invoice_pdf_service import render_invoice_pdf
from conftest import activate_plan, add_clients, bearer_headers


class TestInvoicePdf:
    def test_renders_pdf_bytes(self, db_session, user, sale):
        line_item_service.create_product(
            user.id, sale.id, {"name": "Cotton <bales> & yarn", "rate": 100, "quantity": 3, "gst_rate": 18},
        )
        pdf = render_invoice_pdf(sale)
        assert pdf.startswith(b"%PDF")

    def test_endpoint_serves_pdf(self, client, db_session, user, headers, sale):
        resp = client.get(f"/api/v1/users/{user.id}/sales/{sale.id}/invoice.pdf", headers=headers)
        assert resp.status_code == 200
        assert resp.mimetype == "application/pdf"
        assert 'filename="invoice-INV-001.pdf"' in resp.headers["Content-Disposition"]
        assert resp.data.startswith(b"%PDF")

    def test_foreign_sale_not_rendered(self, client, db_session, sale, other_user):
        resp = client.get(
            f"/api/v1/users/{other_user.id}/sales/{sale.id}/invoice.pdf",
            headers=bearer_headers(other_user),
        )
        assert resp.status_code == 404


class TestInvoiceMail:
    def _url(self, user, sale):
        return f"/api/v1/users/{user.id}/sales/{sale.id}/invoice-mail"

    def test_basic_plan_rejected(self, client, db_session, user, headers, sale, mailbox):
        resp = client.post(self._url(user, sale), headers=headers)
        assert resp.status_code == 403
        assert resp.json["details"]["feature"] == "bulk_email"
        assert mailbox.sent == []

    def test_sends_pdf_to_buyer_and_seller(self, client, db_session, user, headers, sale, mailbox):
        activate_plan(user, "Professional")
        resp = client.post(self._url(user, sale), headers=headers)

        assert resp.status_code == 200
        assert resp.json["result"]["recipients"] == {
            "ganesh@example.com": True,
            "accounts@shreetextiles.example": True,
        }
        assert [mail["to"] for mail in mailbox.sent] == ["ganesh@example.com", "accounts@shreetextiles.example"]

        mail = mailbox.sent[0]
        assert mail["subject"] == "Invoice #INV-001 from Ravi Broker"
        filename, data, mimetype = mail["attachments"][0]
        assert filename == "invoice-INV-001.pdf"
        assert mimetype == "application/pdf"
        assert data.startswith(b"%PDF")

    def test_custom_recipients_and_message(self, client, db_session, user, headers, sale, mailbox):
        activate_plan(user, "Professional")
        resp = client.post(
            self._url(user, sale),
            json={"recipients": ["accounts@mill.example", "owner@mill.example"], "message": "Payment by Friday please."},
            headers=headers,
        )
        assert resp.status_code == 200
        assert resp.json["result"]["delivered"] == 2
        assert "Payment by Friday please." in mailbox.sent[0]["body"]

    def test_invalid_address_rejected(self, client, db_session, user, headers, sale, mailbox):
        activate_plan(user, "Professional")
        resp = client.post(self._url(user, sale), json={"recipients": ["not-an-email"]}, headers=headers)
        assert resp.status_code == 400
        assert resp.json["error"] == "Invalid email format: not-an-email"
        assert mailbox.sent == []

    def test_one_failure_does_not_stop_the_other(self, client, db_session, user, headers, sale, mailbox):
        activate_plan(user, "Professional")
        mailbox.fail_for.add("ganesh@example.com")
        resp = client.post(self._url(user, sale), headers=headers)

        assert resp.status_code == 200
        assert resp.json["result"]["recipients"]["ganesh@example.com"] is False
        assert resp.json["result"]["delivered"] == 1

    def test_all_failed_is_bad_gateway(self, client, db_session, user, headers, sale, mailbox):
        activate_plan(user, "Professional")
        mailbox.fail_for.update({"ganesh@example.com", "accounts@shreetextiles.example"})
        resp = client.post(self._url(user, sale), headers=headers)
        assert resp.status_code == 502
        assert resp.json["error"] == "Failed to send invoice email"

    def test_parties_without_email(self, client, db_session, user, headers, book, mailbox):
        activate_plan(user, "Professional")
        add_clients(user, 2)
        seller, buyer = db_session.query(Client).filter_by(user_id=user.id).order_by(Client.name).all()
        sale = Sale(book_id=book.id, seller_id=seller.id, buyer_id=buyer.id)
        db_session.add(sale)
        db_session.commit()

        resp = client.post(self._url(user, sale), headers=headers)
        assert resp.status_code == 400
        assert resp.json["error"] == "No recipient email address for this sale"
