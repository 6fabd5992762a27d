from conftest import JOB, quotation_body as _quote, register


class TestQuotations:
    def _open_job(self, client):
        h, _ = register(client)
        job_id = client.post("/api/v1/jobs", json=JOB, headers=h).json()["id"]
        client.post(f"/api/v1/jobs/{job_id}/publish", headers=h)
        return h, job_id

    def test_submit_moves_job_to_quoted(self, client):
        h, job_id = self._open_job(client)
        pro, pro_id = register(client, "professional")
        r = client.post(f"/api/v1/jobs/{job_id}/quotations", json=_quote(), headers=pro)
        assert r.status_code == 201
        assert r.json()["professional_id"] == pro_id
        job = client.get(f"/api/v1/jobs/{job_id}", headers=h).json()
        assert job["status"] == "quoted"
        assert job["quotation_count"] == 1

    def test_clients_cannot_quote(self, client):
        _, job_id = self._open_job(client)
        other, _ = register(client)
        r = client.post(f"/api/v1/jobs/{job_id}/quotations", json=_quote(), headers=other)
        assert r.status_code == 403

    def test_past_valid_until_is_400(self, client):
        _, job_id = self._open_job(client)
        pro, _ = register(client, "professional")
        r = client.post(f"/api/v1/jobs/{job_id}/quotations", json=_quote(days=-1), headers=pro)
        assert r.status_code == 400
        assert r.json()["field"] == "valid_until"

    def test_accept_one_rejects_others(self, client):
        h, job_id = self._open_job(client)
        pro1, pro1_id = register(client, "professional")
        pro2, _ = register(client, "professional")
        q1 = client.post(f"/api/v1/jobs/{job_id}/quotations", json=_quote(100), headers=pro1).json()
        q2 = client.post(f"/api/v1/jobs/{job_id}/quotations", json=_quote(150), headers=pro2).json()

        r = client.post(f"/api/v1/quotations/{q1['id']}/respond", json={"decision": "accept"}, headers=h)
        assert r.status_code == 200
        assert r.json()["job_status"] == "assigned"
        assert r.json()["quotation"]["status"] == "accepted"

        assert client.get(f"/api/v1/quotations/{q2['id']}", headers=pro2).json()["status"] == "rejected"
        job = client.get(f"/api/v1/jobs/{job_id}", headers=h).json()
        assert job["professional_id"] == pro1_id
        assert job["final_price"] == 100

        r = client.post(f"/api/v1/quotations/{q2['id']}/accept", headers=h)
        assert r.status_code == 409
        assert r.json()["code"] == "INVALID_QUOTATION_STATE"

    def test_reject_with_feedback(self, client):
        h, job_id = self._open_job(client)
        pro, _ = register(client, "professional")
        q = client.post(f"/api/v1/jobs/{job_id}/quotations", json=_quote(), headers=pro).json()
        r = client.post(f"/api/v1/quotations/{q['id']}/reject", json={"reason": "Over budget"}, headers=h)
        assert r.status_code == 200
        assert r.json()["quotation"]["client_feedback"] == "Over budget"
        assert r.json()["job_status"] == "quoted"

    def test_withdraw_and_listing(self, client):
        h, job_id = self._open_job(client)
        pro, _ = register(client, "professional")
        q = client.post(f"/api/v1/jobs/{job_id}/quotations", json=_quote(), headers=pro).json()

        r = client.post(f"/api/v1/quotations/{q['id']}/withdraw", headers=pro)
        assert r.status_code == 200
        assert r.json()["status"] == "withdrawn"
        listed = client.get(f"/api/v1/jobs/{job_id}/quotations", headers=h).json()
        assert [x["status"] for x in listed] == ["withdrawn"]

    def test_quotation_pdf(self, client):
        h, job_id = self._open_job(client)
        pro, _ = register(client, "professional")
        q = client.post(f"/api/v1/jobs/{job_id}/quotations", json=_quote(), headers=pro).json()
        r = client.get(f"/api/v1/quotations/{q['id']}/pdf", headers=h)
        assert r.status_code == 200
        assert r.headers["content-type"] == "application/pdf"
        assert r.content.startswith(b"%PDF")

    def test_unknown_quotation_is_404(self, client):
        h, _ = register(client)
        r = client.get("/api/v1/quotations/does-not-exist", headers=h)
        assert r.status_code == 404
        assert r.json()["entity"] == "Quotation"
