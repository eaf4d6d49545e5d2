"""
Shared fixtures for the API test suites.
"""
import unittest

from fastapi.testclient import TestClient

from svmms.main import app

ADMIN = ("admin@svmms.com", "admin123")
MECHANIC = ("mechanic@svmms.com", "mechanic123")
CUSTOMER = ("customer@svmms.com", "customer123")
OTHER_CUSTOMER = ("john@svmms.com", "customer123")
ALICE = ("alice@svmms.com", "customer123")
BOB = ("bob@svmms.com", "customer123")


class APITestCase(unittest.TestCase):
    """
    Starts the app in-process against a freshly seeded database.
    """

    def setUp(self):
        self.client = TestClient(app)
        self.client.__enter__()
        self.addCleanup(self.client.__exit__, None, None, None)

        response = self.client.post("/api/seed")
        self.assertEqual(response.status_code, 200, response.text)
        self._sessions = {}

    def login(self, credentials) -> dict:
        """Log in and return the full login response body."""
        email, password = credentials
        if email not in self._sessions:
            response = self.client.post("/api/auth/login", json={"email": email, "password": password})
            self.assertEqual(response.status_code, 200, response.text)
            self._sessions[email] = response.json()
        return self._sessions[email]

    def headers(self, credentials) -> dict:
        return {"Authorization": f"Bearer {self.login(credentials)['accessToken']}"}

    def user_id(self, credentials) -> int:
        return self.login(credentials)["user"]["id"]

    # Convenience wrappers that authenticate as ``credentials``

    def get(self, path, credentials=None, **kwargs):
        return self.client.get(path, headers=self.headers(credentials) if credentials else None, **kwargs)

    def post(self, path, credentials=None, **kwargs):
        return self.client.post(path, headers=self.headers(credentials) if credentials else None, **kwargs)

    def put(self, path, credentials=None, **kwargs):
        return self.client.put(path, headers=self.headers(credentials) if credentials else None, **kwargs)

    def delete(self, path, credentials=None, **kwargs):
        return self.client.delete(path, headers=self.headers(credentials) if credentials else None, **kwargs)

    # Lookups against the seeded data

    def invoices(self, credentials=ADMIN, **params) -> list:
        response = self.get("/api/invoices", ADMIN if credentials is None else credentials,
                            params={"limit": 100, **params})
        self.assertEqual(response.status_code, 200, response.text)
        return response.json()["invoices"]

    def invoice_with_status(self, status: str) -> dict:
        return next(invoice for invoice in self.invoices() if invoice["status"] == status)

    def vehicle_of(self, credentials) -> dict:
        response = self.get(f"/api/vehicles/user/{self.user_id(credentials)}", credentials)
        self.assertEqual(response.status_code, 200, response.text)
        return response.json()["vehicles"][0]

    def bookings_of(self, credentials) -> list:
        response = self.get(f"/api/bookings/customer/{self.user_id(credentials)}", credentials)
        self.assertEqual(response.status_code, 200, response.text)
        return response.json()["bookings"]
