"""Tests for the admin customer API."""

from datetime import datetime, timedelta

import pytest

from inkstudio.models import Customer, Note


@pytest.fixture
def create(client, admin_headers):
    def _create(**payload):
        payload.setdefault("name", "Jordan Blake")
        payload.setdefault("email", "jordan@example.com")
        return client.post("/customers", json=payload, headers=admin_headers)

    return _create


class TestAuth:
    def test_requires_admin_key(self, client):
        assert client.get("/customers").status_code == 403
        assert client.post("/customers", json={"name": "X", "email": "x@example.com"}).status_code == 403


class TestCreate:
    def test_create_splits_name(self, create, db):
        response = create(name="Jordan Lee Blake", phone="555-0101", notes="Prefers mornings")

        assert response.status_code == 201
        body = response.json()
        assert body["first_name"] == "Jordan"
        assert body["last_name"] == "Lee Blake"
        assert body["full_name"] == "Jordan Lee Blake"
        assert body["personal_notes"] == "Prefers mornings"
        assert db.query(Customer).count() == 1

    def test_single_word_name(self, create):
        body = create(name="Cher").json()

        assert body["first_name"] == "Cher"
        assert body["last_name"] is None

    def test_tattoo_style_becomes_note(self, create, db):
        customer_id = create(tattoo_style="Neo-traditional").json()["id"]

        note = db.query(Note).filter(Note.customer_id == customer_id).one()
        assert note.content == "Tattoo style preference: Neo-traditional"
        assert note.appointment_id is None

    def test_duplicate_email_is_conflict(self, create, customer):
        response = create(email="ALEX@example.com")

        assert response.status_code == 409

    @pytest.mark.parametrize(
        "payload",
        [{"name": "   "}, {"email": "not-an-email"}, {"name": ""}],
        ids=["blank-name", "bad-email", "empty-name"],
    )
    def test_invalid_payload(self, create, payload):
        assert create(**payload).status_code == 422


class TestRead:
    def test_get(self, client, admin_headers, customer, make_appointment):
        make_appointment(datetime(2030, 1, 5, 10, 0))
        latest = datetime(2030, 2, 1, 14, 0)
        make_appointment(latest, status="cancelled")

        response = client.get(f"/customers/{customer.id}", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["email"] == "alex@example.com"
        assert response.json()["last_appointment_at"] == latest.isoformat()

    def test_get_unknown(self, client, admin_headers):
        assert client.get("/customers/nobody", headers=admin_headers).status_code == 404

    def test_search_matches_name_email_and_phone(self, client, admin_headers, create, customer):
        create(name="Jordan Blake", email="jordan@example.com", phone="555-0199")

        def search(term):
            return client.get("/customers", params={"search": term}, headers=admin_headers).json()

        assert [c["email"] for c in search("rivera")["customers"]] == ["alex@example.com"]
        assert [c["email"] for c in search("JORDAN@")["customers"]] == ["jordan@example.com"]
        assert [c["email"] for c in search("0199")["customers"]] == ["jordan@example.com"]
        assert search("nobody-matches")["total"] == 0

    def test_pagination(self, client, admin_headers, create):
        for i in range(5):
            create(name=f"Client {i}", email=f"client{i}@example.com")

        body = client.get("/customers", params={"page": 2, "limit": 2}, headers=admin_headers).json()

        assert body["total"] == 5
        assert body["page"] == 2
        assert body["pageCount"] == 3
        assert len(body["customers"]) == 2


class TestAppointmentBooking:
    def test_created_customer_can_be_booked(self, client, admin_headers, create):
        customer_id = create().json()["id"]
        start = datetime(2030, 6, 1, 12, 0)

        response = client.post(
            "/appointments",
            json={
                "artist_id": "artist-1",
                "customer_id": customer_id,
                "title": "Flash",
                "start_date": start.isoformat(),
                "end_date": (start + timedelta(hours=1)).isoformat(),
            },
            headers=admin_headers,
        )

        assert response.status_code == 201
        assert response.json()["customer"]["id"] == customer_id
