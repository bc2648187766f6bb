from tests.crm.base import *  # noqa: F401,F403


class CustomerRoutesTests(CrmApiBase):
    def test_routes_require_bearer_token(self):
        response = self.client.get("/api/customers")
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json(), {"success": False, "message": "Missing authorization token"})

        bad = self.client.get("/api/customers", headers={"Authorization": "Bearer not-a-token"})
        self.assertEqual(bad.status_code, 401)
        self.assertEqual(bad.json()["message"], "Invalid token")

    def test_reset_token_is_not_accepted_as_access_token(self):
        token = create_jwt({"sub": "agent@example.com", "purpose": "password_reset"}, settings.JWT_SECRET, timedelta(minutes=5))
        response = self.client.get("/api/customers", headers={"Authorization": f"Bearer {token}"})
        self.assertEqual(response.status_code, 401)

    def test_create_customer_assigns_cust_id_and_normalizes_property_types(self):
        headers = self._auth_headers()
        response = self.client.post(
            "/api/customers",
            headers=headers,
            json={
                "name": "  Ravi Kumar ",
                "phone": "9811111111",
                "dealType": "Rent",
                "propertyTypes": "Apartment, Villa,Apartment",
                "budget": 45000,
            },
        )
        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertTrue(body["success"])
        data = body["data"]
        self.assertEqual(data["name"], "Ravi Kumar")
        self.assertRegex(data["custId"], r"^\d{4}$")
        self.assertEqual(body["custId"], data["custId"])
        self.assertEqual(data["propertyTypes"], ["Apartment", "Villa"])
        self.assertEqual(data["dealType"], "Rent")
        self.assertEqual(data["status"], "New")
        UUID(data["id"])

    def test_create_customer_requires_name_and_phone(self):
        response = self.client.post("/api/customers", headers=self._auth_headers(), json={"name": "No Phone"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Name and phone are required")

    def test_duplicate_phone_names_existing_customer(self):
        self._create_customer(cust_id="4321", phone="9822222222")
        response = self.client.post(
            "/api/customers",
            headers=self._auth_headers(),
            json={"name": "Other", "phone": "9822222222"},
        )
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["message"], "Customer already exists with ID 4321")

    def test_list_is_newest_first(self):
        now = datetime.now(timezone.utc)
        self._create_customer(cust_id="1001", phone="1", name="Older", created_at=now - timedelta(days=2))
        self._create_customer(cust_id="1002", phone="2", name="Newer", created_at=now)
        response = self.client.get("/api/customers", headers=self._auth_headers())
        self.assertEqual(response.status_code, 200)
        self.assertEqual([row["name"] for row in response.json()["data"]], ["Newer", "Older"])

    def test_get_update_and_delete_by_cust_id(self):
        self._create_customer(cust_id="2001", phone="9833333333")
        self._create_customer(cust_id="2002", phone="9844444444", name="Taken")
        headers = self._auth_headers()

        got = self.client.get("/api/customers/2001", headers=headers)
        self.assertEqual(got.status_code, 200)
        self.assertEqual(got.json()["data"]["custId"], "2001")

        conflict = self.client.put("/api/customers/2001", headers=headers, json={"phone": "9844444444"})
        self.assertEqual(conflict.status_code, 409)

        updated = self.client.put(
            "/api/customers/2001",
            headers=headers,
            json={"status": "Interested", "propertyTypes": ["Villa"], "custId": "9999"},
        )
        self.assertEqual(updated.status_code, 200)
        self.assertEqual(updated.json()["data"]["status"], "Interested")
        self.assertEqual(updated.json()["data"]["propertyTypes"], ["Villa"])
        self.assertEqual(updated.json()["data"]["custId"], "2001")

        deleted = self.client.delete("/api/customers/2001", headers=headers)
        self.assertEqual(deleted.status_code, 200)
        missing = self.client.get("/api/customers/2001", headers=headers)
        self.assertEqual(missing.status_code, 404)
        self.assertEqual(missing.json(), {"success": False, "message": "Customer not found"})

    def test_notes_and_upcoming_followups(self):
        self._create_customer(cust_id="3001", phone="1", name="First")
        self._create_customer(cust_id="3002", phone="2", name="Second")
        headers = self._auth_headers()
        now = datetime.now(timezone.utc)

        empty = self.client.post("/api/customers/3001/notes", headers=headers, json={"text": "   "})
        self.assertEqual(empty.status_code, 400)
        self.assertEqual(empty.json()["message"], "Note text required")

        later = self.client.post(
            "/api/customers/3001/notes",
            headers=headers,
            json={"type": "call", "text": "Call back", "followUpDate": (now + timedelta(days=3)).isoformat()},
        )
        self.assertEqual(later.status_code, 201)
        self.client.post(
            "/api/customers/3002/notes",
            headers=headers,
            json={"type": "meeting", "text": "Site visit", "followUpDate": (now + timedelta(days=1)).isoformat()},
        )
        self.client.post(
            "/api/customers/3002/notes",
            headers=headers,
            json={"text": "Already happened", "followUpDate": (now - timedelta(days=1)).isoformat()},
        )
        self.client.post("/api/customers/3002/notes", headers=headers, json={"text": "No follow-up"})

        notes = self.client.get("/api/customers/3002/notes", headers=headers)
        self.assertEqual(notes.status_code, 200)
        self.assertEqual(len(notes.json()["data"]), 3)
        self.assertEqual(notes.json()["data"][2]["type"], "general")

        upcoming = self.client.get("/api/customers/followups/upcoming", headers=headers)
        self.assertEqual(upcoming.status_code, 200)
        items = upcoming.json()["data"]
        self.assertEqual([item["customerCustId"] for item in items], ["3002", "3001"])
        self.assertEqual(items[0]["customerName"], "Second")
        self.assertEqual(items[1]["text"], "Call back")

    def test_notes_for_unknown_customer_return_404(self):
        response = self.client.post("/api/customers/0000/notes", headers=self._auth_headers(), json={"text": "hi"})
        self.assertEqual(response.status_code, 404)

    def test_delete_removes_notes(self):
        customer = self._create_customer(cust_id="5001", phone="5")
        headers = self._auth_headers()
        self.client.post("/api/customers/5001/notes", headers=headers, json={"text": "note"})
        self.client.delete("/api/customers/5001", headers=headers)
        with self.SessionLocal() as db:
            remaining = db.query(CustomerNote).filter(CustomerNote.customer_id == customer.id).count()
        self.assertEqual(remaining, 0)


class LeadAliasTests(CrmApiBase):
    def test_leads_alias_returns_bare_list_and_creates_customers(self):
        headers = self._auth_headers()
        created = self.client.post(
            "/api/leads",
            headers=headers,
            json={"name": "Lead One", "phone": "9700000000", "req": "2BHK near metro", "budget": 5000000},
        )
        self.assertEqual(created.status_code, 201)
        self.assertEqual(created.json()["req"], "2BHK near metro")

        listed = self.client.get("/api/leads", headers=headers)
        self.assertEqual(listed.status_code, 200)
        self.assertIsInstance(listed.json(), list)
        self.assertEqual(listed.json()[0]["phone"], "9700000000")

        again = self.client.get("/api/customers", headers=headers)
        self.assertEqual(len(again.json()["data"]), 1)
