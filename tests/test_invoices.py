"""
Invoices: creation, lookup, the payment status state machine and overdue marking.
"""
import asyncio
import unittest
from datetime import datetime, timedelta, timezone

from svmms.database import AsyncSessionLocal
from svmms.models.invoice import InvoiceStatus
from svmms.services.invoices import mark_overdue
from tests.base import ADMIN, ALICE, CUSTOMER, MECHANIC, OTHER_CUSTOMER, APITestCase


class TestInvoiceStatusTransitions(unittest.TestCase):
    """The transition table itself, no HTTP involved."""

    def test_allowed_transitions(self):
        self.assertTrue(InvoiceStatus.UNPAID.can_transition_to(InvoiceStatus.PAID))
        self.assertTrue(InvoiceStatus.UNPAID.can_transition_to(InvoiceStatus.OVERDUE))
        self.assertTrue(InvoiceStatus.OVERDUE.can_transition_to(InvoiceStatus.PAID))
        self.assertTrue(InvoiceStatus.PAID.can_transition_to(InvoiceStatus.REFUNDED))

    def test_forbidden_transitions(self):
        self.assertFalse(InvoiceStatus.PAID.can_transition_to(InvoiceStatus.UNPAID))
        self.assertFalse(InvoiceStatus.UNPAID.can_transition_to(InvoiceStatus.REFUNDED))
        for target in InvoiceStatus:
            self.assertFalse(InvoiceStatus.REFUNDED.can_transition_to(target))


class TestCreateInvoice(APITestCase):

    def _open_jobcard(self) -> dict:
        response = self.get("/api/jobcards", ADMIN, params={"status": "in_progress"})
        self.assertEqual(response.status_code, 200)
        return response.json()["jobcards"][0]

    def test_create_invoice(self):
        jobcard = self._open_jobcard()
        response = self.post("/api/invoices", ADMIN, json={
            "jobcard_id": jobcard["id"],
            "customer_id": jobcard["customer_id"],
            "parts_total": 50.00,
            "labor_total": 75.00,
            "grand_total": 125.00,
        })
        self.assertEqual(response.status_code, 201, response.text)
        invoice = response.json()["invoice"]
        self.assertEqual(invoice["status"], "unpaid")
        self.assertEqual(invoice["grand_total"], 125.00)
        self.assertEqual(invoice["grand_total"], invoice["parts_total"] + invoice["labor_total"])
        self.assertIsNone(invoice["paid_at"])

    def test_grand_total_is_computed_when_omitted(self):
        jobcard = self._open_jobcard()
        response = self.post("/api/invoices", ADMIN, json={
            "jobcard_id": jobcard["id"],
            "customer_id": jobcard["customer_id"],
            "parts_total": 10.10,
            "labor_total": 20.20,
        })
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["invoice"]["grand_total"], 30.30)

    def test_mismatched_grand_total(self):
        jobcard = self._open_jobcard()
        response = self.post("/api/invoices", ADMIN, json={
            "jobcard_id": jobcard["id"],
            "customer_id": jobcard["customer_id"],
            "parts_total": 50.00,
            "labor_total": 75.00,
            "grand_total": 200.00,
        })
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["errors"][0]["field"], "grand_total")

    def test_second_invoice_for_same_jobcard(self):
        invoice = self.invoice_with_status("unpaid")
        response = self.post("/api/invoices", ADMIN, json={
            "jobcard_id": invoice["jobcard_id"],
            "customer_id": invoice["customer_id"],
            "parts_total": 1,
            "labor_total": 1,
        })
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Invoice already exists for this job card")

    def test_unknown_jobcard(self):
        response = self.post("/api/invoices", ADMIN, json={
            "jobcard_id": 99999, "customer_id": 1, "parts_total": 1, "labor_total": 1,
        })
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["message"], "Job card not found")

    def test_negative_total(self):
        response = self.post("/api/invoices", ADMIN, json={
            "jobcard_id": 1, "customer_id": 1, "parts_total": -5, "labor_total": 1,
        })
        self.assertEqual(response.status_code, 400)
        self.assertIn({"field": "parts_total", "message": "Valid parts total is required"},
                      response.json()["errors"])

    def test_customers_cannot_create_invoices(self):
        response = self.post("/api/invoices", CUSTOMER, json={
            "jobcard_id": 1, "customer_id": 1, "parts_total": 1, "labor_total": 1,
        })
        self.assertEqual(response.status_code, 403)


class TestReadInvoices(APITestCase):

    def test_list_invoices(self):
        invoices = self.invoices()
        self.assertEqual(len(invoices), 2)
        self.assertEqual({invoice["status"] for invoice in invoices}, {"unpaid", "paid"})
        self.assertTrue(all(invoice["customer_name"] for invoice in invoices))

    def test_filter_by_status(self):
        invoices = self.invoices(status="paid")
        self.assertEqual(len(invoices), 1)
        self.assertEqual(invoices[0]["grand_total"], 145.99)

    def test_get_invoice_document(self):
        invoice = self.invoice_with_status("unpaid")
        response = self.get(f"/api/invoices/{invoice['id']}", ADMIN)
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data["invoice"]["grand_total"], 100.98)
        self.assertEqual(data["invoice"]["customer_email"], "john@svmms.com")
        self.assertEqual(len(data["tasks"]), 2)
        self.assertEqual(data["parts"][0]["part_number"], "EOF-1234")
        self.assertEqual(data["parts"][0]["quantity"], 2)

    def test_missing_invoice(self):
        response = self.get("/api/invoices/99999", ADMIN)
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {"message": "Invoice not found"})

    def test_customer_sees_own_invoice_only(self):
        invoice = self.invoice_with_status("unpaid")
        self.assertEqual(self.get(f"/api/invoices/{invoice['id']}", OTHER_CUSTOMER).status_code, 200)
        self.assertEqual(self.get(f"/api/invoices/{invoice['id']}", ALICE).status_code, 403)

    def test_invoice_by_booking(self):
        invoice = self.invoice_with_status("unpaid")
        document = self.get(f"/api/invoices/{invoice['id']}", ADMIN).json()
        booking_id = document["invoice"]["booking_id"]

        response = self.get(f"/api/invoices/booking/{booking_id}", OTHER_CUSTOMER)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["invoice"]["id"], invoice["id"])

    def test_invoice_by_booking_without_invoice(self):
        booking_id = self.bookings_of(CUSTOMER)[0]["id"]
        response = self.get(f"/api/invoices/booking/{booking_id}", ADMIN)
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["message"], "Invoice not found for this booking")

    def test_customer_invoices(self):
        customer_id = self.user_id(ALICE)
        response = self.get(f"/api/invoices/customer/{customer_id}", ALICE)
        self.assertEqual(response.status_code, 200)
        invoices = response.json()["invoices"]
        self.assertEqual(len(invoices), 1)
        self.assertEqual(invoices[0]["status"], "paid")

        self.assertEqual(self.get(f"/api/invoices/customer/{customer_id}", CUSTOMER).status_code, 403)

    def test_mechanic_invoices(self):
        mechanic_id = self.user_id(MECHANIC)
        response = self.get(f"/api/invoices/mechanic/{mechanic_id}", MECHANIC)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["invoices"], [])

        admin_id = self.user_id(ADMIN)
        self.assertEqual(self.get(f"/api/invoices/mechanic/{admin_id}", MECHANIC).status_code, 403)


class TestPaymentStatus(APITestCase):

    def _update(self, invoice_id, **payload):
        return self.put(f"/api/invoices/{invoice_id}/payment", ADMIN, json=payload)

    def test_mark_paid(self):
        invoice = self.invoice_with_status("unpaid")
        response = self._update(invoice["id"], status="paid", payment_method="credit_card")
        self.assertEqual(response.status_code, 200, response.text)
        updated = response.json()["invoice"]
        self.assertEqual(updated["status"], "paid")
        self.assertEqual(updated["payment_method"], "credit_card")
        self.assertIsNotNone(updated["paid_at"])

    def test_mark_paid_requires_method(self):
        invoice = self.invoice_with_status("unpaid")
        response = self._update(invoice["id"], status="paid")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["errors"][0]["field"], "payment_method")

    def test_same_status_is_a_no_op(self):
        invoice = self.invoice_with_status("paid")
        response = self._update(invoice["id"], status="paid", payment_method="cash")
        self.assertEqual(response.status_code, 200)
        updated = response.json()["invoice"]
        self.assertEqual(updated["payment_method"], "card")
        self.assertEqual(updated["paid_at"], invoice["paid_at"])

    def test_invalid_transition(self):
        invoice = self.invoice_with_status("paid")
        response = self._update(invoice["id"], status="unpaid")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Cannot change invoice status from paid to unpaid")

    def test_overdue_then_paid(self):
        invoice = self.invoice_with_status("unpaid")
        self.assertEqual(self._update(invoice["id"], status="overdue").json()["invoice"]["status"], "overdue")
        response = self._update(invoice["id"], status="paid", payment_method="cash")
        self.assertEqual(response.json()["invoice"]["status"], "paid")

    def test_refunded_is_terminal(self):
        invoice = self.invoice_with_status("paid")
        self.assertEqual(self._update(invoice["id"], status="refunded").status_code, 200)
        response = self._update(invoice["id"], status="paid", payment_method="cash")
        self.assertEqual(response.status_code, 400)

    def test_unknown_status(self):
        invoice = self.invoice_with_status("unpaid")
        response = self._update(invoice["id"], status="lost")
        self.assertEqual(response.status_code, 400)
        self.assertIn({"field": "status", "message": "Valid status is required"}, response.json()["errors"])

    def test_missing_invoice(self):
        self.assertEqual(self._update(99999, status="paid", payment_method="cash").status_code, 404)


class TestMarkOverdue(APITestCase):

    def test_nothing_due_yet(self):
        response = self.post("/api/invoices/mark-overdue", ADMIN)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["message"], "0 invoice(s) marked overdue")

    def test_old_unpaid_invoices_become_overdue(self):
        async def run():
            async with AsyncSessionLocal() as db:
                later = datetime.now(timezone.utc) + timedelta(days=31)
                return [invoice.status for invoice in await mark_overdue(db, now=later)]

        self.assertEqual(asyncio.run(run()), [InvoiceStatus.OVERDUE])
        self.assertEqual(len(self.invoices(status="overdue")), 1)
        self.assertEqual(len(self.invoices(status="paid")), 1)

    def test_admin_only(self):
        self.assertEqual(self.post("/api/invoices/mark-overdue", MECHANIC).status_code, 403)
