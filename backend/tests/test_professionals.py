from conftest import register


class TestProfile:
    def test_update_profile(self, client):
        pro, _ = register(client, "professional")
        r = client.put("/api/v1/professionals/me/profile", json={
            "bio": "Plumber with 10 years in Rosario",
            "experience_years": 10,
            "work_radius_km": 15,
            "work_schedule": {"mon": ["08:00", "18:00"], "sat": ["09:00", "13:00"]},
        }, headers=pro)
        assert r.status_code == 200
        data = r.json()
        assert data["experience_years"] == 10
        assert data["work_schedule"]["sat"] == ["09:00", "13:00"]

    def test_out_of_range_values_are_422(self, client):
        pro, _ = register(client, "professional")
        assert client.put("/api/v1/professionals/me/profile", json={"experience_years": 51}, headers=pro).status_code == 422
        assert client.put("/api/v1/professionals/me/profile", json={"work_radius_km": 0}, headers=pro).status_code == 422

    def test_bad_schedule_is_400(self, client):
        pro, _ = register(client, "professional")
        r = client.put("/api/v1/professionals/me/profile", json={
            "work_schedule": {"monday": ["08:00", "18:00"]},
        }, headers=pro)
        assert r.status_code == 400
        r = client.put("/api/v1/professionals/me/profile", json={
            "work_schedule": {"mon": ["18:00", "08:00"]},
        }, headers=pro)
        assert r.status_code == 400

    def test_empty_update_is_400(self, client):
        pro, _ = register(client, "professional")
        assert client.put("/api/v1/professionals/me/profile", json={}, headers=pro).status_code == 400

    def test_clients_have_no_profile(self, client):
        h, _ = register(client)
        assert client.get("/api/v1/professionals/me/profile", headers=h).status_code == 403

    def test_availability_hides_from_search(self, client):
        pro, _ = register(client, "professional")
        h, _ = register(client)
        search = "/api/v1/professionals/search?latitude=-32.9442&longitude=-60.6505"
        assert client.get(search, headers=h).json()["total_count"] == 1

        r = client.put("/api/v1/professionals/me/availability", json={"is_available": False}, headers=pro)
        assert r.json()["is_available"] is False
        assert client.get(search, headers=h).json()["total_count"] == 0


class TestOfferedServices:
    def test_add_duplicate_and_remove(self, client, factory):
        service = factory.service(factory.category())
        pro, _ = register(client, "professional")

        r = client.post("/api/v1/professionals/me/services", json={
            "service_id": service.id, "custom_price": 8000, "price_unit": "hora",
        }, headers=pro)
        assert r.status_code == 201
        offered_id = r.json()["id"]
        assert r.json()["service_name"] == "Destapación"

        r = client.post("/api/v1/professionals/me/services", json={
            "service_id": service.id, "custom_price": 9000,
        }, headers=pro)
        assert r.status_code == 409

        assert client.delete(f"/api/v1/professionals/me/services/{offered_id}", headers=pro).status_code == 200
        assert client.get("/api/v1/professionals/me/services", headers=pro).json() == []

        r = client.post("/api/v1/professionals/me/services", json={
            "service_id": service.id, "custom_price": 9000,
        }, headers=pro)
        assert r.status_code == 201
        assert r.json()["custom_price"] == 9000

    def test_unknown_service(self, client):
        pro, _ = register(client, "professional")
        r = client.post("/api/v1/professionals/me/services", json={
            "service_id": "nope", "custom_price": 100,
        }, headers=pro)
        assert r.status_code == 404


class TestPortfolio:
    def test_at_most_three_featured(self, client):
        pro, _ = register(client, "professional")
        for i in range(3):
            r = client.post("/api/v1/professionals/me/portfolio", json={
                "title": f"Bathroom remodel {i}", "is_featured": True,
            }, headers=pro)
            assert r.status_code == 201
        r = client.post("/api/v1/professionals/me/portfolio", json={
            "title": "Bathroom remodel 4", "is_featured": True,
        }, headers=pro)
        assert r.status_code == 400
        assert r.json()["field"] == "is_featured"
        r = client.post("/api/v1/professionals/me/portfolio", json={
            "title": "Bathroom remodel 4", "is_featured": False,
        }, headers=pro)
        assert r.status_code == 201


class TestSearchEndpoint:
    def test_radius_out_of_range_is_400(self, client):
        h, _ = register(client)
        r = client.get("/api/v1/professionals/search?latitude=-32.9&longitude=-60.6&radius_km=80", headers=h)
        assert r.status_code == 400
        assert r.json()["field"] == "radius_km"

    def test_missing_location_is_422(self, client):
        h, _ = register(client)
        assert client.get("/api/v1/professionals/search", headers=h).status_code == 422


class TestStats:
    def test_stats_for_new_professional(self, client):
        pro, _ = register(client, "professional")
        r = client.get("/api/v1/professionals/me/stats", headers=pro)
        assert r.status_code == 200
        data = r.json()
        assert data["total_jobs"] == 0
        assert data["success_rate"] == 0
        assert data["recent_jobs"] == []
