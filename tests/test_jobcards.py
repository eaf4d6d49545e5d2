"""
Job cards: tasks, spare parts, status changes and invoicing on completion.
"""
from tests.base import ADMIN, CUSTOMER, MECHANIC, APITestCase

SARAH = ("sarah@svmms.com", "mechanic123")


class JobCardTestCase(APITestCase):

    def open_jobcard(self) -> dict:
        """Jane's in-progress job card, assigned to John Mechanic."""
        response = self.get("/api/jobcards", MECHANIC, params={"status": "in_progress"})
        self.assertEqual(response.status_code, 200)
        return response.json()["jobcards"][0]

    def part(self, part_number: str) -> dict:
        parts = self.get("/api/parts", ADMIN, params={"search": part_number}).json()["parts"]
        return parts[0]


class TestReadJobCards(JobCardTestCase):

    def test_admin_sees_all(self):
        self.assertEqual(len(self.get("/api/jobcards", ADMIN).json()["jobcards"]), 3)

    def test_mechanic_sees_own(self):
        jobcards = self.get("/api/jobcards", MECHANIC).json()["jobcards"]
        self.assertEqual(len(jobcards), 1)
        self.assertEqual(jobcards[0]["mechanic_name"], "John Mechanic")
        self.assertEqual(jobcards[0]["service_type"], "Oil Change")

    def test_customers_are_refused(self):
        self.assertEqual(self.get("/api/jobcards", CUSTOMER).status_code, 403)

    def test_completed(self):
        jobcards = self.get("/api/jobcards/completed", ADMIN).json()["jobcards"]
        self.assertEqual(len(jobcards), 2)

    def test_get_with_lines(self):
        jobcard = self.open_jobcard()
        response = self.get(f"/api/jobcards/{jobcard['id']}", MECHANIC)
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual([task["task_name"] for task in data["tasks"]], ["Diagnostic Scan"])
        self.assertEqual(data["parts"][0]["part_name"], "Brake Pad Set")

    def test_other_mechanic_is_refused(self):
        jobcard = self.open_jobcard()
        response = self.get(f"/api/jobcards/{jobcard['id']}", SARAH)
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()["message"], "Access denied. You can only access job cards assigned to you.")

    def test_mechanic_listing_for_someone_else(self):
        admin_id = self.user_id(ADMIN)
        self.assertEqual(self.get(f"/api/jobcards/mechanic/{admin_id}", MECHANIC).status_code, 403)

    def test_missing(self):
        response = self.get("/api/jobcards/99999", ADMIN)
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["message"], "Job card not found")


class TestCreateJobCard(JobCardTestCase):

    def test_mechanic_creates_and_is_assigned(self):
        vehicle = self.vehicle_of(CUSTOMER)
        response = self.post("/api/jobcards", MECHANIC, json={"vehicle_id": vehicle["id"], "priority": "high"})
        self.assertEqual(response.status_code, 201, response.text)
        jobcard = response.json()["jobcard"]
        self.assertEqual(jobcard["status"], "assigned")
        self.assertEqual(jobcard["mechanic_id"], self.user_id(MECHANIC))
        self.assertEqual(jobcard["customer_id"], vehicle["customer_id"])

    def test_admin_creates_unassigned(self):
        vehicle = self.vehicle_of(CUSTOMER)
        jobcard = self.post("/api/jobcards", ADMIN, json={"vehicle_id": vehicle["id"]}).json()["jobcard"]
        self.assertEqual(jobcard["status"], "pending")
        self.assertIsNone(jobcard["mechanic_id"])

        response = self.put(f"/api/jobcards/{jobcard['id']}/add-mechanic", ADMIN,
                            json={"mechanic_id": self.user_id(SARAH)})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["jobcard"]["status"], "assigned")

    def test_invalid_vehicle(self):
        response = self.post("/api/jobcards", ADMIN, json={"vehicle_id": 99999})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Invalid vehicle ID")

    def test_customer_id_must_be_a_customer(self):
        vehicle = self.vehicle_of(CUSTOMER)
        response = self.post("/api/jobcards", ADMIN,
                             json={"vehicle_id": vehicle["id"], "customer_id": self.user_id(MECHANIC)})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Invalid customer ID or user is not a customer")

    def test_booking_already_has_jobcard(self):
        jobcard = self.open_jobcard()
        response = self.post("/api/jobcards", ADMIN,
                             json={"vehicle_id": jobcard["vehicle_id"], "booking_id": jobcard["booking_id"]})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Job card already exists for this booking")

    def test_invalid_priority(self):
        vehicle = self.vehicle_of(CUSTOMER)
        response = self.post("/api/jobcards", ADMIN, json={"vehicle_id": vehicle["id"], "priority": "urgent"})
        self.assertEqual(response.status_code, 400)
        self.assertIn({"field": "priority", "message": "Priority must be one of: low, medium, high"},
                      response.json()["errors"])


class TestJobCardLines(JobCardTestCase):

    def test_add_task(self):
        jobcard = self.open_jobcard()
        response = self.put(f"/api/jobcards/{jobcard['id']}/add-task", MECHANIC,
                            json={"task_name": "Oil Drain", "task_cost": 30})
        self.assertEqual(response.status_code, 201, response.text)
        self.assertEqual(response.json()["task"]["task_name"], "Oil Drain")

        updated = self.get(f"/api/jobcards/{jobcard['id']}", MECHANIC).json()["jobcard"]
        self.assertEqual(updated["labor_cost"], jobcard["labor_cost"] + 30)

    def test_other_mechanic_cannot_add_task(self):
        jobcard = self.open_jobcard()
        response = self.put(f"/api/jobcards/{jobcard['id']}/add-task", SARAH,
                            json={"task_name": "Oil Drain", "task_cost": 30})
        self.assertEqual(response.status_code, 403)

    def test_add_sparepart_takes_stock(self):
        jobcard = self.open_jobcard()
        part = self.part("SP-3456")
        response = self.put(f"/api/jobcards/{jobcard['id']}/add-sparepart", MECHANIC,
                            json={"part_id": part["id"], "quantity": 4})
        self.assertEqual(response.status_code, 201, response.text)
        sparepart = response.json()["sparePart"]
        self.assertEqual(sparepart["unit_price"], part["price"])
        self.assertEqual(sparepart["total_price"], 35.0)
        self.assertEqual(self.part("SP-3456")["quantity"], part["quantity"] - 4)

    def test_insufficient_stock(self):
        jobcard = self.open_jobcard()
        part = self.part("CL-7890")
        response = self.put(f"/api/jobcards/{jobcard['id']}/add-sparepart", MECHANIC,
                            json={"part_id": part["id"], "quantity": part["quantity"] + 1})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Insufficient stock")
        self.assertEqual(self.part("CL-7890")["quantity"], part["quantity"])

    def test_unknown_part(self):
        jobcard = self.open_jobcard()
        response = self.put(f"/api/jobcards/{jobcard['id']}/add-sparepart", MECHANIC,
                            json={"part_id": 99999, "quantity": 1})
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["message"], "Part not found")


class TestJobCardStatus(JobCardTestCase):

    def test_completion_raises_invoice(self):
        jobcard = self.open_jobcard()
        response = self.put(f"/api/jobcards/{jobcard['id']}/update-status", MECHANIC, json={"status": "completed"})
        self.assertEqual(response.status_code, 200, response.text)
        updated = response.json()["jobcard"]
        self.assertEqual(updated["status"], "completed")
        self.assertEqual(updated["percent_complete"], 100)
        self.assertIsNotNone(updated["completed_at"])

        invoice = self.get(f"/api/invoices/booking/{jobcard['booking_id']}", CUSTOMER).json()["invoice"]
        self.assertEqual(invoice["status"], "unpaid")
        self.assertEqual(invoice["labor_total"], 25.0)
        self.assertEqual(invoice["parts_total"], 45.99)
        self.assertEqual(invoice["grand_total"], 70.99)

        booking = self.get(f"/api/bookings/{jobcard['booking_id']}", CUSTOMER).json()["booking"]
        self.assertEqual(booking["status"], "completed")

    def test_completing_twice_keeps_one_invoice(self):
        jobcard = self.open_jobcard()
        self.put(f"/api/jobcards/{jobcard['id']}/update-status", MECHANIC, json={"status": "completed"})
        response = self.put(f"/api/jobcards/{jobcard['id']}/update-status", MECHANIC, json={"status": "completed"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(self.invoices()), 3)

    def test_start_work(self):
        vehicle = self.vehicle_of(CUSTOMER)
        jobcard = self.post("/api/jobcards", MECHANIC, json={"vehicle_id": vehicle["id"]}).json()["jobcard"]
        response = self.put(f"/api/jobcards/{jobcard['id']}/update-status", MECHANIC, json={"status": "in_progress"})
        self.assertEqual(response.json()["jobcard"]["status"], "in_progress")
        self.assertIsNotNone(response.json()["jobcard"]["started_at"])

    def test_progress(self):
        jobcard = self.open_jobcard()
        response = self.put(f"/api/jobcards/{jobcard['id']}/update-progress", MECHANIC,
                            json={"percentComplete": 75, "notes": "Waiting on pads"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["jobcard"]["percent_complete"], 75)
        self.assertEqual(response.json()["jobcard"]["notes"], "Waiting on pads")

    def test_progress_out_of_range(self):
        jobcard = self.open_jobcard()
        response = self.put(f"/api/jobcards/{jobcard['id']}/update-progress", MECHANIC, json={"percentComplete": 120})
        self.assertEqual(response.status_code, 400)
        self.assertIn({"field": "percentComplete", "message": "Percent complete must be between 0 and 100"},
                      response.json()["errors"])

    def test_delete_is_admin_only(self):
        jobcard = self.open_jobcard()
        self.assertEqual(self.delete(f"/api/jobcards/{jobcard['id']}", MECHANIC).status_code, 403)
        response = self.delete(f"/api/jobcards/{jobcard['id']}", ADMIN)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.get(f"/api/jobcards/{jobcard['id']}", ADMIN).status_code, 404)


class TestCompletedJobCards(JobCardTestCase):

    def completed_jobcard(self) -> dict:
        return self.get("/api/jobcards/completed", ADMIN).json()["jobcards"][0]

    def test_no_new_lines_after_completion(self):
        jobcard = self.completed_jobcard()
        response = self.put(f"/api/jobcards/{jobcard['id']}/add-task", ADMIN,
                            json={"task_name": "Late Extra", "task_cost": 10})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Cannot modify a completed job card")

        part = self.part("SP-3456")
        response = self.put(f"/api/jobcards/{jobcard['id']}/add-sparepart", ADMIN,
                            json={"part_id": part["id"], "quantity": 1})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(self.part("SP-3456")["quantity"], part["quantity"])

        unchanged = self.get(f"/api/jobcards/{jobcard['id']}", ADMIN).json()["jobcard"]
        self.assertEqual(unchanged["total_cost"], jobcard["total_cost"])

    def test_invoiced_card_cannot_be_deleted(self):
        jobcard = self.completed_jobcard()
        invoice = self.get(f"/api/invoices/booking/{jobcard['booking_id']}", ADMIN).json()["invoice"]

        response = self.delete(f"/api/jobcards/{jobcard['id']}", ADMIN)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Cannot delete a job card with an invoice")
        self.assertEqual(self.get(f"/api/invoices/{invoice['id']}", ADMIN).status_code, 200)
