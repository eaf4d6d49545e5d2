"""
Bookings: creation, approval workflow and mechanic assignment.
"""
from datetime import date, timedelta

from tests.base import ADMIN, BOB, CUSTOMER, MECHANIC, OTHER_CUSTOMER, APITestCase


class BookingTestCase(APITestCase):

    def book(self, credentials=CUSTOMER, **overrides):
        payload = {
            "vehicle_id": self.vehicle_of(credentials)["id"],
            "service_type": "Tire Rotation",
            "booking_date": (date.today() + timedelta(days=7)).isoformat(),
            "booking_time": "11:00",
            **overrides,
        }
        return self.post("/api/bookings", credentials, json=payload)


class TestCreateBooking(BookingTestCase):

    def test_create_booking(self):
        response = self.book(notes="Front left looks low")
        self.assertEqual(response.status_code, 201, response.text)
        booking = response.json()["booking"]
        self.assertEqual(booking["status"], "pending")
        self.assertEqual(booking["customer_id"], self.user_id(CUSTOMER))

    def test_invalid_time(self):
        response = self.book(booking_time="25:99")
        self.assertEqual(response.status_code, 400)
        self.assertIn({"field": "booking_time", "message": "Valid time is required (HH:MM)"},
                      response.json()["errors"])

    def test_someone_elses_vehicle(self):
        vehicle = self.vehicle_of(OTHER_CUSTOMER)
        response = self.book(vehicle_id=vehicle["id"])
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()["message"],
                         "Access denied. You can only book services for your own vehicles.")

    def test_unknown_vehicle(self):
        self.assertEqual(self.book(vehicle_id=99999).status_code, 404)

    def test_only_customers_book(self):
        payload = {
            "vehicle_id": self.vehicle_of(CUSTOMER)["id"],
            "service_type": "Tire Rotation",
            "booking_date": date.today().isoformat(),
            "booking_time": "11:00",
        }
        self.assertEqual(self.post("/api/bookings", ADMIN, json=payload).status_code, 403)


class TestReadBookings(BookingTestCase):

    def test_list_all(self):
        data = self.get("/api/bookings", ADMIN).json()
        self.assertEqual(data["pagination"]["totalItems"], 4)
        self.assertTrue(all(booking["customer_name"] for booking in data["bookings"]))

    def test_filter_by_status(self):
        data = self.get("/api/bookings", ADMIN, params={"status": "completed"}).json()
        self.assertEqual(len(data["bookings"]), 2)

    def test_filter_by_date_range(self):
        today = date.today()
        data = self.get("/api/bookings", ADMIN, params={
            "from": (today + timedelta(days=1)).isoformat(),
            "to": (today + timedelta(days=10)).isoformat(),
        }).json()
        self.assertEqual([booking["service_type"] for booking in data["bookings"]], ["Engine Repair"])

    def test_pending(self):
        data = self.get("/api/bookings/pending", MECHANIC).json()
        self.assertEqual([booking["customer_email"] for booking in data["bookings"]], ["bob@svmms.com"])

    def test_customer_bookings(self):
        bookings = self.bookings_of(CUSTOMER)
        self.assertEqual(len(bookings), 1)
        self.assertEqual(bookings[0]["service_type"], "Oil Change")

        other_id = self.user_id(OTHER_CUSTOMER)
        self.assertEqual(self.get(f"/api/bookings/customer/{other_id}", CUSTOMER).status_code, 403)

    def test_get_booking(self):
        booking = self.bookings_of(CUSTOMER)[0]
        response = self.get(f"/api/bookings/{booking['id']}", CUSTOMER)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["booking"]["make"], "Toyota")
        self.assertEqual(self.get(f"/api/bookings/{booking['id']}", OTHER_CUSTOMER).status_code, 403)

    def test_missing_booking(self):
        response = self.get("/api/bookings/99999", ADMIN)
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["message"], "Booking not found")

    def test_staff_only_listing(self):
        self.assertEqual(self.get("/api/bookings", CUSTOMER).status_code, 403)


class TestBookingWorkflow(BookingTestCase):

    def test_approve_and_confirm(self):
        booking_id = self.book().json()["booking"]["id"]
        response = self.put(f"/api/bookings/{booking_id}/approve", ADMIN)
        self.assertEqual(response.json()["booking"]["status"], "approved")
        response = self.put(f"/api/bookings/{booking_id}/confirm", ADMIN)
        self.assertEqual(response.json()["booking"]["status"], "confirmed")

    def test_reject(self):
        booking_id = self.book().json()["booking"]["id"]
        response = self.put(f"/api/bookings/{booking_id}/reject", MECHANIC)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["booking"]["status"], "rejected")

    def test_customer_cancels_own_booking(self):
        booking_id = self.book().json()["booking"]["id"]
        response = self.put(f"/api/bookings/{booking_id}/cancel", CUSTOMER, json={"reason": "Plans changed"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["booking"]["status"], "cancelled")

    def test_customer_cannot_cancel_others(self):
        booking_id = self.book().json()["booking"]["id"]
        self.assertEqual(self.put(f"/api/bookings/{booking_id}/cancel", OTHER_CUSTOMER).status_code, 403)

    def test_reschedule_returns_to_pending(self):
        booking_id = self.book().json()["booking"]["id"]
        self.put(f"/api/bookings/{booking_id}/approve", ADMIN)
        new_date = (date.today() + timedelta(days=14)).isoformat()
        response = self.put(f"/api/bookings/{booking_id}/reschedule", CUSTOMER,
                            json={"newDateTime": {"date": new_date, "time": "08:30"}})
        self.assertEqual(response.status_code, 200, response.text)
        booking = response.json()["booking"]
        self.assertEqual(booking["status"], "pending")
        self.assertEqual(booking["booking_date"], new_date)
        self.assertEqual(booking["booking_time"], "08:30")

    def test_completed_booking_is_locked(self):
        booking = next(b for b in self.bookings_of(OTHER_CUSTOMER) if b["status"] == "completed")

        response = self.put(f"/api/bookings/{booking['id']}/cancel", OTHER_CUSTOMER)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Cannot cancel a completed booking")

        new_date = (date.today() + timedelta(days=14)).isoformat()
        response = self.put(f"/api/bookings/{booking['id']}/reschedule", OTHER_CUSTOMER,
                            json={"newDateTime": {"date": new_date, "time": "08:30"}})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Cannot reschedule a completed booking")
        self.assertEqual(self.get(f"/api/bookings/{booking['id']}", ADMIN).json()["booking"]["status"], "completed")

    def test_status_update(self):
        booking_id = self.book().json()["booking"]["id"]
        response = self.put(f"/api/bookings/{booking_id}/status", ADMIN, json={"status": "in_progress"})
        self.assertEqual(response.json()["booking"]["status"], "in_progress")

        response = self.put(f"/api/bookings/{booking_id}/status", ADMIN, json={"status": "teleported"})
        self.assertEqual(response.status_code, 400)


class TestAssignBooking(BookingTestCase):

    def test_assign_creates_jobcard(self):
        booking = self.bookings_of(BOB)[0]
        mechanic_id = self.user_id(MECHANIC)
        response = self.put(f"/api/bookings/{booking['id']}/assign", ADMIN, json={"mechanicId": mechanic_id})
        self.assertEqual(response.status_code, 200, response.text)
        data = response.json()
        self.assertEqual(data["booking"]["status"], "assigned")
        self.assertEqual(data["booking"]["mechanic_id"], mechanic_id)
        self.assertEqual(data["jobcard"]["booking_id"], booking["id"])
        self.assertEqual(data["jobcard"]["mechanic_id"], mechanic_id)
        self.assertEqual(data["jobcard"]["status"], "assigned")

        response = self.get(f"/api/jobcards/booking/{booking['id']}", MECHANIC)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["jobcard"]["id"], data["jobcard"]["id"])

    def test_assign_twice(self):
        booking = self.bookings_of(BOB)[0]
        mechanic_id = self.user_id(MECHANIC)
        self.put(f"/api/bookings/{booking['id']}/assign", ADMIN, json={"mechanicId": mechanic_id})
        response = self.put(f"/api/bookings/{booking['id']}/assign", ADMIN, json={"mechanicId": mechanic_id})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Job card already exists for this booking")

    def test_assign_non_mechanic(self):
        booking = self.bookings_of(BOB)[0]
        response = self.put(f"/api/bookings/{booking['id']}/assign", ADMIN,
                            json={"mechanicId": self.user_id(CUSTOMER)})
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["message"], "Mechanic not found")

    def test_mechanic_bookings(self):
        booking = self.bookings_of(BOB)[0]
        mechanic_id = self.user_id(MECHANIC)
        self.put(f"/api/bookings/{booking['id']}/assign", ADMIN, json={"mechanicId": mechanic_id})

        response = self.get(f"/api/bookings/mechanic/{mechanic_id}", MECHANIC)
        self.assertEqual(response.status_code, 200)
        self.assertIn(booking["id"], [item["id"] for item in response.json()["bookings"]])
