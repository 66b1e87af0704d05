"""Enrollment over HTTP: enroll, checkout, widget callbacks."""

from conftest import make_token, sign


class TestEnrollEndpoint:
    """POST /skills/{slug}/enroll"""

    async def test_requires_session(self, client, free_skill):
        response = await client.post(f"/skills/{free_skill.slug}/enroll")
        assert response.status_code == 401

    async def test_free_skill(self, client, auth_headers, free_skill, store):
        first = await client.post(f"/skills/{free_skill.slug}/enroll", headers=auth_headers)
        second = await client.post(f"/skills/{free_skill.slug}/enroll", headers=auth_headers)

        assert first.status_code == 200
        assert first.json()["state"] == "Enrolled"
        assert first.json()["already_enrolled"] is False
        assert second.json()["message"] == "Already enrolled in this skill"
        assert await store.count("user_skills") == 1

    async def test_unknown_skill(self, client, auth_headers):
        response = await client.post("/skills/nope/enroll", headers=auth_headers)
        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "not_found"

    async def test_paid_skill_returns_checkout(self, client, auth_headers, paid_skill, store):
        response = await client.post(f"/skills/{paid_skill.slug}/enroll", headers=auth_headers)
        assert response.status_code == 200

        data = response.json()
        assert data["state"] == "AwaitingPayment"
        checkout = data["checkout"]
        assert checkout["order"]["amount"] == 50000
        assert checkout["order"]["currency"] == "INR"
        assert checkout["order"]["key"] == "rzp_test_key"
        assert checkout["skill_name"] == paid_skill.name

        purchase = await store.select_one("purchases", {"purchase_id": checkout["purchase_id"]})
        assert purchase["status"] == "pending"
        assert purchase["razorpay_order_id"] == checkout["order"]["id"]


class TestPurchaseCallbacks:
    """Widget outcomes posted back for a pending purchase."""

    async def checkout(self, client, auth_headers, skill):
        response = await client.post(f"/skills/{skill.slug}/enroll", headers=auth_headers)
        return response.json()["checkout"]

    async def test_complete_enrolls(self, client, auth_headers, paid_skill, gateway):
        checkout = await self.checkout(client, auth_headers, paid_skill)
        order_id = checkout["order"]["id"]
        gateway.add_payment("pay_1", order_id, 50000)

        response = await client.post(
            f"/purchases/{checkout['purchase_id']}/complete",
            json={"razorpay_payment_id": "pay_1", "razorpay_signature": sign(order_id, "pay_1")},
            headers=auth_headers
        )
        assert response.status_code == 200
        assert response.json()["success"] is True
        assert response.json()["state"] == "Enrolled"

        access = await client.get(f"/skills/{paid_skill.slug}/access", headers=auth_headers)
        assert access.json()["is_enrolled"] is True

        again = await client.post(f"/skills/{paid_skill.slug}/enroll", headers=auth_headers)
        assert again.json()["already_enrolled"] is True

    async def test_dismiss_then_complete_conflicts(self, client, auth_headers, paid_skill, gateway):
        checkout = await self.checkout(client, auth_headers, paid_skill)
        order_id = checkout["order"]["id"]

        dismissed = await client.post(f"/purchases/{checkout['purchase_id']}/dismiss", headers=auth_headers)
        assert dismissed.status_code == 200
        assert dismissed.json()["success"] is False
        assert dismissed.json()["state"] == "PaymentCancelled"

        gateway.add_payment("pay_1", order_id, 50000)
        late = await client.post(
            f"/purchases/{checkout['purchase_id']}/complete",
            json={"razorpay_payment_id": "pay_1", "razorpay_signature": sign(order_id, "pay_1")},
            headers=auth_headers
        )
        assert late.status_code == 409

    async def test_fail_records_reason(self, client, auth_headers, paid_skill, store):
        checkout = await self.checkout(client, auth_headers, paid_skill)

        response = await client.post(
            f"/purchases/{checkout['purchase_id']}/fail",
            json={"description": "Bank declined", "code": "BAD_REQUEST_ERROR"},
            headers=auth_headers
        )
        assert response.json()["state"] == "PaymentFailed"

        purchase = await store.select_one("purchases", {"purchase_id": checkout["purchase_id"]})
        assert purchase["failure_reason"] == "Bank declined"

    async def test_tampered_signature(self, client, auth_headers, paid_skill, gateway, store):
        checkout = await self.checkout(client, auth_headers, paid_skill)
        gateway.add_payment("pay_1", checkout["order"]["id"], 50000)

        response = await client.post(
            f"/purchases/{checkout['purchase_id']}/complete",
            json={"razorpay_payment_id": "pay_1", "razorpay_signature": "f" * 64},
            headers=auth_headers
        )
        data = response.json()
        assert data["success"] is False
        assert data["state"] == "VerificationFailed"
        assert data["error_code"] == "invalid_signature"
        assert await store.count("user_skills") == 0

    async def test_other_users_purchase_is_hidden(self, client, auth_headers, paid_skill):
        checkout = await self.checkout(client, auth_headers, paid_skill)
        other = {"Authorization": f"Bearer {make_token(user_id='user-2')}"}

        response = await client.post(f"/purchases/{checkout['purchase_id']}/dismiss", headers=other)
        assert response.status_code == 404


class TestAccessEndpoint:
    """GET /skills/{slug}/access"""

    async def test_not_enrolled(self, client, auth_headers, paid_skill):
        response = await client.get(f"/skills/{paid_skill.slug}/access", headers=auth_headers)
        data = response.json()
        assert data["state"] == "NotEnrolled"
        assert data["is_free"] is False
        assert data["is_enrolled"] is False

    async def test_heals_verified_purchase(self, client, auth_headers, paid_skill, store):
        await store.insert("purchases", {
            "user_id": "user-1", "skill_id": paid_skill.skill_id, "amount": 50000, "currency": "INR",
            "razorpay_order_id": "order_old", "razorpay_payment_id": "pay_old",
            "status": "success", "verified": True
        })
        response = await client.get(f"/skills/{paid_skill.slug}/access", headers=auth_headers)
        data = response.json()
        assert data["is_enrolled"] is True
        assert data["reconciled"] is True
