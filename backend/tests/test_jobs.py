from datetime import datetime, timedelta, timezone

from conftest import JOB, register


def _valid_until(days=7):
    return (datetime.now(timezone.utc) + timedelta(days=days)).isoformat()


class TestJobsCRUD:
    def test_create_job(self, client):
        h, user_id = register(client)
        r = client.post("/api/v1/jobs", json=JOB, headers=h)
        assert r.status_code == 201
        data = r.json()
        assert data["status"] == "draft"
        assert data["client_id"] == user_id
        assert data["allowed_events"] == ["publish", "cancel"]

    def test_invalid_budget_is_422(self, client):
        h, _ = register(client)
        r = client.post("/api/v1/jobs", json={**JOB, "budget_min": 500, "budget_max": 100}, headers=h)
        assert r.status_code == 422

    def test_list_and_filter(self, client):
        h, _ = register(client)
        client.post("/api/v1/jobs", json=JOB, headers=h)
        job_id = client.post("/api/v1/jobs", json=JOB, headers=h).json()["id"]
        client.post(f"/api/v1/jobs/{job_id}/publish", headers=h)

        assert client.get("/api/v1/jobs", headers=h).json()["total"] == 2
        assert client.get("/api/v1/jobs?status=pending", headers=h).json()["total"] == 1

    def test_update_and_delete_draft(self, client):
        h, _ = register(client)
        job_id = client.post("/api/v1/jobs", json=JOB, headers=h).json()["id"]

        r = client.put(f"/api/v1/jobs/{job_id}", json={"title": "Fix bathroom sink"}, headers=h)
        assert r.status_code == 200
        assert r.json()["title"] == "Fix bathroom sink"

        assert client.delete(f"/api/v1/jobs/{job_id}", headers=h).status_code == 200
        assert client.get(f"/api/v1/jobs/{job_id}", headers=h).status_code == 404

    def test_other_clients_cannot_see_job(self, client):
        h, _ = register(client)
        other, _ = register(client)
        job_id = client.post("/api/v1/jobs", json=JOB, headers=h).json()["id"]
        r = client.get(f"/api/v1/jobs/{job_id}", headers=other)
        assert r.status_code == 403
        assert r.json()["code"] == "FORBIDDEN"

    def test_open_jobs_for_professionals(self, client):
        h, _ = register(client)
        pro, _ = register(client, "professional")
        draft_id = client.post("/api/v1/jobs", json=JOB, headers=h).json()["id"]
        open_id = client.post("/api/v1/jobs", json=JOB, headers=h).json()["id"]
        client.post(f"/api/v1/jobs/{open_id}/publish", headers=h)

        r = client.get("/api/v1/jobs?scope=open", headers=pro)
        ids = [j["id"] for j in r.json()["jobs"]]
        assert ids == [open_id]
        assert client.get(f"/api/v1/jobs/{open_id}", headers=pro).status_code == 200
        assert client.get(f"/api/v1/jobs/{draft_id}", headers=pro).status_code == 403


class TestJobLifecycle:
    def _assigned(self, client):
        h, _ = register(client)
        pro, pro_id = register(client, "professional")
        job_id = client.post("/api/v1/jobs", json=JOB, headers=h).json()["id"]
        client.post(f"/api/v1/jobs/{job_id}/publish", headers=h)
        q = client.post(f"/api/v1/jobs/{job_id}/quotations", json={
            "total_price": 15000, "description": "Replace trap and clean drain.",
            "valid_until": _valid_until(),
        }, headers=pro).json()
        r = client.post(f"/api/v1/quotations/{q['id']}/accept", headers=h)
        assert r.status_code == 200
        return h, pro, pro_id, job_id

    def test_start_work_on_draft_is_409(self, client):
        h, _ = register(client)
        job_id = client.post("/api/v1/jobs", json=JOB, headers=h).json()["id"]
        r = client.post(f"/api/v1/jobs/{job_id}/transitions", json={"event": "start_work"}, headers=h)
        assert r.status_code == 409
        body = r.json()
        assert body["code"] == "INVALID_TRANSITION"
        assert body["current_state"] == "draft"
        assert body["event"] == "start_work"

    def test_full_lifecycle(self, client):
        h, pro, pro_id, job_id = self._assigned(client)
        for event in ("confirm", "start_work", "complete_work"):
            r = client.post(f"/api/v1/jobs/{job_id}/transitions", json={"event": event}, headers=pro)
            assert r.status_code == 200, r.text
        r = client.post(
            f"/api/v1/jobs/{job_id}/transitions",
            json={"event": "deliver", "payment_method": "transferencia"},
            headers=h,
        )
        assert r.status_code == 200
        assert r.json()["status"] == "delivered"
        assert r.json()["allowed_events"] == ["dispute"]

        payments = client.get(f"/api/v1/payments?job_id={job_id}", headers=pro).json()
        assert len(payments) == 1
        assert payments[0]["status"] == "held"
        assert payments[0]["payment_method"] == "transferencia"
        assert payments[0]["platform_fee"] == 1200

        events = client.get(f"/api/v1/jobs/{job_id}/events", headers=h).json()
        assert [e["to_status"] for e in events][-1] == "delivered"

    def test_unsupported_payment_method(self, client):
        h, pro, _, job_id = self._assigned(client)
        for event in ("confirm", "start_work", "complete_work"):
            client.post(f"/api/v1/jobs/{job_id}/transitions", json={"event": event}, headers=pro)
        r = client.post(
            f"/api/v1/jobs/{job_id}/transitions", json={"event": "deliver", "payment_method": "bitcoin"}, headers=h,
        )
        assert r.status_code == 400
        assert r.json()["field"] == "payment_method"
        assert client.get(f"/api/v1/jobs/{job_id}", headers=h).json()["status"] == "completed"

    def test_cancel_requires_reason(self, client):
        h, _, _, job_id = self._assigned(client)
        assert client.post(f"/api/v1/jobs/{job_id}/cancel", json={"reason": ""}, headers=h).status_code == 422
        r = client.post(f"/api/v1/jobs/{job_id}/cancel", json={"reason": "Found someone else"}, headers=h)
        assert r.status_code == 200
        assert r.json()["status"] == "cancelled"
        assert r.json()["professional_id"] is None

    def test_dispute(self, client):
        h, pro, pro_id, job_id = self._assigned(client)
        client.post(f"/api/v1/jobs/{job_id}/transitions", json={"event": "confirm"}, headers=pro)
        client.post(f"/api/v1/jobs/{job_id}/transitions", json={"event": "start_work"}, headers=pro)
        r = client.post(f"/api/v1/jobs/{job_id}/dispute", json={"reason": "Left halfway"}, headers=h)
        assert r.status_code == 200
        assert r.json()["status"] == "disputed"
        assert r.json()["professional_id"] == pro_id
