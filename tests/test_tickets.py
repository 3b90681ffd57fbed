# tests/test_tickets.py
import uuid

from fastapi.testclient import TestClient

from najm.main import app

client = TestClient(app)


def _new_id():
    return f"T-{uuid.uuid4().hex[:12]}"


def test_health():
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"


def test_api_index_lists_endpoints():
    r = client.get("/api")
    assert r.status_code == 200
    assert r.json()["endpoints"]["tickets"]["create"] == "POST /api/tickets"


def test_create_and_get_ticket(ticket_id, admin_headers):
    transcript = [
        {"role": "user", "content": "I had an accident"},
        {"role": "assistant", "content": "Sorry to hear that"},
    ]
    r = client.post(
        "/api/tickets",
        json={
            "ticket_id": ticket_id,
            "transcript": transcript,
            "extracted_data": {"location": "Riyadh", "injuries": False},
            "description": "Rear-end collision",
        },
    )
    assert r.status_code == 201
    assert r.json()["ticket_id"] == ticket_id

    r2 = client.get(f"/api/tickets/{ticket_id}", headers=admin_headers)
    assert r2.status_code == 200
    data = r2.json()
    assert data["transcript"] == transcript
    assert data["extracted_data"] == {"location": "Riyadh", "injuries": False}
    assert data["description"] == "Rear-end collision"
    assert data["status"] == "open"
    assert data["vehicles"] == 1
    assert data["created_at"] is not None


def test_create_duplicate_returns_409(ticket_id):
    assert client.post("/api/tickets", json={"ticket_id": ticket_id}).status_code == 201

    r = client.post("/api/tickets", json={"ticket_id": ticket_id})
    assert r.status_code == 409
    assert r.json()["detail"] == "Ticket ID already exists"


def test_list_requires_token():
    r = client.get("/api/tickets")
    assert r.status_code == 401
    assert r.json()["detail"] == "No token provided"


def test_invalid_token_rejected():
    r = client.get("/api/tickets", headers={"Authorization": "Bearer not-a-token"})
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid token"


def test_list_returns_count_and_newest_first(admin_headers):
    first, second = _new_id(), _new_id()
    client.post("/api/tickets", json={"ticket_id": first})
    client.post("/api/tickets", json={"ticket_id": second})

    r = client.get("/api/tickets", headers=admin_headers)
    assert r.status_code == 200
    body = r.json()
    assert body["count"] == len(body["tickets"])
    ids = [t["ticket_id"] for t in body["tickets"]]
    assert ids.index(second) < ids.index(first)


def test_attachments_are_returned_with_ticket(ticket_id, admin_headers):
    r = client.post(
        "/api/tickets",
        json={
            "ticket_id": ticket_id,
            "attachments": [
                {"filename": "a.jpg", "url": "/uploads/accident_photos/a.jpg", "type": "accident_photos", "size": 10},
                {"filename": "id.png", "url": "/uploads/id_cards/id.png", "type": "id_card", "size": 20},
            ],
        },
    )
    assert r.status_code == 201
    assert len(r.json()["attachments"]) == 2

    listed = client.get("/api/tickets", headers=admin_headers).json()["tickets"]
    mine = next(t for t in listed if t["ticket_id"] == ticket_id)
    assert mine["attachments_count"] == 2
    assert {a["type"] for a in mine["attachments"]} == {"accident_photos", "id_card"}


def test_update_ticket_fields_and_status(ticket_id, user_headers):
    client.post("/api/tickets", json={"ticket_id": ticket_id, "plate": "ABC1234"})

    r = client.put(
        f"/api/tickets/{ticket_id}",
        json={"damage": "Side mirror broken", "status": "closed"},
        headers=user_headers,
    )
    assert r.status_code == 200
    data = r.json()
    assert data["damage"] == "Side mirror broken"
    assert data["status"] == "closed"
    assert data["plate"] == "ABC1234"


def test_update_ignores_null_fields(ticket_id, admin_headers):
    client.post("/api/tickets", json={"ticket_id": ticket_id, "plate": "ABC1234"})

    r = client.put(f"/api/tickets/{ticket_id}", json={"plate": None}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["plate"] == "ABC1234"


def test_update_missing_ticket_404(admin_headers):
    r = client.put("/api/tickets/T-missing", json={"status": "closed"}, headers=admin_headers)
    assert r.status_code == 404
    assert r.json()["detail"] == "Ticket not found"


def test_delete_requires_admin(ticket_id, user_headers):
    client.post("/api/tickets", json={"ticket_id": ticket_id})

    r = client.delete(f"/api/tickets/{ticket_id}", headers=user_headers)
    assert r.status_code == 403
    assert r.json()["detail"] == "Admin access required"


def test_delete_ticket_then_404(ticket_id, admin_headers):
    client.post(
        "/api/tickets",
        json={"ticket_id": ticket_id, "attachments": [{"filename": "a.jpg"}]},
    )
    client.post(f"/api/tickets/{ticket_id}/findings", json={"field_name": "plate"})

    r = client.delete(f"/api/tickets/{ticket_id}", headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["ticket_id"] == ticket_id

    r2 = client.get(f"/api/tickets/{ticket_id}", headers=admin_headers)
    assert r2.status_code == 404
    assert r2.json()["detail"] == "Ticket not found"


def test_get_not_found_returns_404(admin_headers):
    r = client.get("/api/tickets/T-does-not-exist", headers=admin_headers)
    assert r.status_code == 404
    assert r.json()["detail"] == "Ticket not found"


def test_create_validation_errors():
    # missing ticket id
    assert client.post("/api/tickets", json={"description": "no id"}).status_code == 422
    # empty ticket id
    assert client.post("/api/tickets", json={"ticket_id": ""}).status_code == 422
    # negative vehicle count
    r = client.post("/api/tickets", json={"ticket_id": _new_id(), "vehicles": -1})
    assert r.status_code == 422


def test_filter_by_status(admin_headers):
    a, b = _new_id(), _new_id()
    client.post("/api/tickets", json={"ticket_id": a})
    client.post("/api/tickets", json={"ticket_id": b})
    client.put(f"/api/tickets/{b}", json={"status": "closed"}, headers=admin_headers)

    r = client.get("/api/tickets?status=open", headers=admin_headers)
    assert r.status_code == 200
    ids = {t["ticket_id"] for t in r.json()["tickets"]}
    assert a in ids
    assert b not in ids


def test_add_conversation_and_finding(ticket_id, admin_headers):
    client.post("/api/tickets", json={"ticket_id": ticket_id})

    r = client.post(
        f"/api/tickets/{ticket_id}/conversations",
        json={"role": "user", "content": "The other car hit me", "audio_path": "a.webm"},
    )
    assert r.status_code == 201
    assert r.json()["role"] == "user"

    r = client.post(
        f"/api/tickets/{ticket_id}/findings",
        json={"field_name": "plate", "field_value": "ABC 1234", "confidence": 0.8, "source": "ocr"},
    )
    assert r.status_code == 201
    assert r.json()["source"] == "ocr"

    data = client.get(f"/api/tickets/{ticket_id}", headers=admin_headers).json()
    assert [c["content"] for c in data["conversations"]] == ["The other car hit me"]
    assert data["findings"][0]["field_value"] == "ABC 1234"


def test_child_records_need_existing_ticket():
    r = client.post("/api/tickets/T-ghost/conversations", json={"role": "user", "content": "hi"})
    assert r.status_code == 404
    r = client.post("/api/tickets/T-ghost/findings", json={"field_name": "plate"})
    assert r.status_code == 404


def test_conversation_requires_role_and_content(ticket_id):
    client.post("/api/tickets", json={"ticket_id": ticket_id})
    r = client.post(f"/api/tickets/{ticket_id}/conversations", json={"role": "user"})
    assert r.status_code == 422


def test_transcript_drops_system_prompt_and_state_blocks(ticket_id, admin_headers):
    transcript = [
        {"role": "system", "content": "You are Najm Assistant"},
        {"role": "assistant", "content": 'Please describe what happened.\n```json\n{"phase": "description"}\n```'},
        {"role": "user", "content": "  A car hit me  "},
    ]
    client.post("/api/tickets", json={"ticket_id": ticket_id, "transcript": transcript})

    r = client.get(f"/api/tickets/{ticket_id}/transcript", headers=admin_headers)
    assert r.status_code == 200
    assert r.json() == [
        {"role": "assistant", "content": "Please describe what happened."},
        {"role": "user", "content": "A car hit me"},
    ]
