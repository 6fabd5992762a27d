from datetime import datetime, timedelta, timezone

from icalendar import Calendar

from conftest import JOB, register


class TestCalendar:
    def _assigned_job(self, client, **overrides):
        h, _ = register(client)
        pro, _ = register(client, "professional", first_name="Jorge", last_name="Sosa")
        job_id = client.post("/api/v1/jobs", json={**JOB, **overrides}, headers=h).json()["id"]
        client.post(f"/api/v1/jobs/{job_id}/publish", headers=h)
        q = client.post(f"/api/v1/jobs/{job_id}/quotations", json={
            "total_price": 15000,
            "description": "Replace trap and clean drain.",
            "valid_until": (datetime.now(timezone.utc) + timedelta(days=3)).isoformat(),
        }, headers=pro).json()
        client.post(f"/api/v1/quotations/{q['id']}/accept", headers=h)
        return h, job_id

    def test_visit_ics(self, client):
        h, job_id = self._assigned_job(client)
        r = client.get(f"/api/v1/jobs/{job_id}/calendar", headers=h)
        assert r.status_code == 200
        assert r.headers["content-type"].startswith("text/calendar")

        cal = Calendar.from_ical(r.content)
        events = [c for c in cal.walk() if c.name == "VEVENT"]
        assert len(events) == 1
        event = events[0]
        assert "Fix kitchen sink" in str(event["summary"])
        assert event.decoded("dtstart") == datetime(2025, 3, 20, 9, 30)
        assert "Jorge Sosa" in str(event["description"])
        assert len([c for c in event.walk() if c.name == "VALARM"]) == 2

    def test_unassigned_job_is_400(self, client):
        h, _ = register(client)
        job_id = client.post("/api/v1/jobs", json=JOB, headers=h).json()["id"]
        r = client.get(f"/api/v1/jobs/{job_id}/calendar", headers=h)
        assert r.status_code == 400

    def test_job_without_date_is_400(self, client):
        h, job_id = self._assigned_job(client, preferred_date=None)
        r = client.get(f"/api/v1/jobs/{job_id}/calendar", headers=h)
        assert r.status_code == 400
        assert r.json()["field"] == "preferred_date"
