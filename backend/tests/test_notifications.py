from conftest import JOB, quotation_body as _quote, register


class TestNotifications:
    def test_quotation_notifies_client(self, client):
        h, _ = register(client)
        pro, _ = register(client, "professional")
        job_id = client.post("/api/v1/jobs", json=JOB, headers=h).json()["id"]
        client.post(f"/api/v1/jobs/{job_id}/publish", headers=h)
        q = client.post(f"/api/v1/jobs/{job_id}/quotations", json=_quote(), headers=pro).json()

        notes = client.get("/api/v1/notifications", headers=h).json()
        assert [n["type"] for n in notes] == ["quotation.received"]
        assert notes[0]["quotation_id"] == q["id"]
        assert notes[0]["is_read"] is False

        r = client.post(f"/api/v1/notifications/{notes[0]['id']}/read", headers=h)
        assert r.status_code == 200
        assert r.json()["is_read"] is True
        assert client.get("/api/v1/notifications?unread_only=true", headers=h).json() == []

    def test_cannot_read_others_notifications(self, client):
        h, _ = register(client)
        pro, _ = register(client, "professional")
        job_id = client.post("/api/v1/jobs", json=JOB, headers=h).json()["id"]
        client.post(f"/api/v1/jobs/{job_id}/publish", headers=h)
        client.post(f"/api/v1/jobs/{job_id}/quotations", json=_quote(), headers=pro)
        note_id = client.get("/api/v1/notifications", headers=h).json()[0]["id"]

        assert client.post(f"/api/v1/notifications/{note_id}/read", headers=pro).status_code == 403
        assert client.post("/api/v1/notifications/missing/read", headers=pro).status_code == 404
