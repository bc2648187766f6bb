from tests.crm.base import *  # noqa: F401,F403

from app.core.security import decode_jwt


class AuthRoutesTests(CrmApiBase):
    def _register(self, **overrides):
        payload = {
            "firmName": "Skyline Realty",
            "fullName": "Meera Shah",
            "email": "Meera@Example.com",
            "password": "s3cret-pass",
        }
        payload.update(overrides)
        return self.client.post("/api/auth/register", json=payload)

    def test_register_and_login(self):
        created = self._register()
        self.assertEqual(created.status_code, 201)
        self.assertEqual(created.json()["user"]["email"], "meera@example.com")
        with self.SessionLocal() as db:
            user = db.query(User).filter(User.email == "meera@example.com").one()
            self.assertNotEqual(user.password_hash, "s3cret-pass")
            self.assertTrue(verify_password("s3cret-pass", user.password_hash))

        login = self.client.post("/api/auth/login", json={"email": "meera@example.com", "password": "s3cret-pass"})
        self.assertEqual(login.status_code, 200)
        token = login.json()["access_token"]
        claims = decode_jwt(token, settings.JWT_SECRET)
        self.assertEqual(claims["purpose"], "access")
        self.assertEqual(claims["firm_name"], "Skyline Realty")

        listed = self.client.get("/api/customers", headers={"Authorization": f"Bearer {token}"})
        self.assertEqual(listed.status_code, 200)

    def test_register_validation(self):
        missing = self._register(fullName="")
        self.assertEqual(missing.status_code, 400)
        self.assertEqual(missing.json()["message"], "All fields required")

        self._register()
        duplicate = self._register(email="meera@example.com")
        self.assertEqual(duplicate.status_code, 400)
        self.assertEqual(duplicate.json()["message"], "Email already registered")

    def test_login_rejects_bad_credentials(self):
        self._register()
        wrong = self.client.post("/api/auth/login", json={"email": "meera@example.com", "password": "nope"})
        self.assertEqual(wrong.status_code, 401)
        self.assertEqual(wrong.json(), {"success": False, "message": "Invalid credentials"})
        unknown = self.client.post("/api/auth/login", json={"email": "ghost@example.com", "password": "nope"})
        self.assertEqual(unknown.status_code, 401)

    def test_forgot_and_reset_password(self):
        self._register()
        unknown = self.client.post("/api/auth/forgot", json={"email": "ghost@example.com"})
        self.assertEqual(unknown.status_code, 404)
        self.assertEqual(unknown.json()["message"], "Email not found in database")

        previous = settings.EMAIL_PROVIDER
        settings.EMAIL_PROVIDER = "dummy"
        try:
            forgot = self.client.post("/api/auth/forgot", json={"email": "meera@example.com"})
        finally:
            settings.EMAIL_PROVIDER = previous
        self.assertEqual(forgot.status_code, 200)
        reset_token = forgot.json()["debug_token"]

        wrong_token = self.client.post(
            "/api/auth/reset",
            json={"email": "meera@example.com", "password": "new-pass", "token": "garbage"},
        )
        self.assertEqual(wrong_token.status_code, 400)

        access_token = create_access_token(user_id=str(uuid4()), email="meera@example.com", firm_name="x")
        wrong_purpose = self.client.post(
            "/api/auth/reset",
            json={"email": "meera@example.com", "password": "new-pass", "token": access_token},
        )
        self.assertEqual(wrong_purpose.status_code, 400)

        reset = self.client.post(
            "/api/auth/reset",
            json={"email": "meera@example.com", "password": "new-pass", "token": reset_token},
        )
        self.assertEqual(reset.status_code, 200)
        login = self.client.post("/api/auth/login", json={"email": "meera@example.com", "password": "new-pass"})
        self.assertEqual(login.status_code, 200)

        reused = self.client.post(
            "/api/auth/reset",
            json={"email": "meera@example.com", "password": "third-pass", "token": reset_token},
        )
        self.assertEqual(reused.status_code, 400)
        self.assertEqual(reused.json()["message"], "Invalid or expired reset token")
        stale_login = self.client.post("/api/auth/login", json={"email": "meera@example.com", "password": "third-pass"})
        self.assertEqual(stale_login.status_code, 401)

    def test_forgot_reports_delivery_failure(self):
        from app.services.email_service import EmailDeliveryError

        self._register()
        with patch("app.api.public.auth.send_email_message", side_effect=EmailDeliveryError("down")):
            response = self.client.post("/api/auth/forgot", json={"email": "meera@example.com"})
        self.assertEqual(response.status_code, 500)
        self.assertFalse(response.json()["success"])
