# tests for clients router - quick actions from a caseload card
# practitioner-only endpoints

import pytest

from tests.factories import OTHER_PRACTITIONER_ID, PRACTITIONER_ID, client_doc


@pytest.fixture
def alice(mock_db):
    doc = client_doc(PRACTITIONER_ID, "Alice")
    mock_db.clients._data.append(doc)
    return doc


@pytest.fixture
def alice_id(alice):
    return str(alice["_id"])


class TestSendMessage:

    async def test_send_message(self, practitioner_client, mock_db, alice_id):
        resp = await practitioner_client.post(f"/clients/{alice_id}/messages", json={"body": "How was your week?"})
        assert resp.status_code == 201
        data = resp.json()
        assert data["clientId"] == alice_id
        assert data["action"] == "send_message"
        assert mock_db.messages.inserted[0]["body"] == "How was your week?"

    async def test_empty_body_rejected(self, practitioner_client, alice_id):
        resp = await practitioner_client.post(f"/clients/{alice_id}/messages", json={"body": ""})
        assert resp.status_code == 422

    async def test_unknown_client(self, practitioner_client):
        resp = await practitioner_client.post("/clients/507f1f77bcf86cd799439011/messages", json={"body": "Hi"})
        assert resp.status_code == 404

    async def test_invalid_client_id(self, practitioner_client):
        resp = await practitioner_client.post("/clients/not-an-id/messages", json={"body": "Hi"})
        assert resp.status_code == 404

    async def test_other_practitioners_client(self, practitioner_client, mock_db):
        doc = client_doc(OTHER_PRACTITIONER_ID, "Eve")
        mock_db.clients._data.append(doc)
        resp = await practitioner_client.post(f"/clients/{doc['_id']}/messages", json={"body": "Hi"})
        assert resp.status_code == 404

    async def test_clients_cannot_send(self, client_user_client, alice_id):
        resp = await client_user_client.post(f"/clients/{alice_id}/messages", json={"body": "Hi"})
        assert resp.status_code == 403


class TestSaveObservation:

    async def test_save_observation(self, practitioner_client, mock_db, alice_id):
        resp = await practitioner_client.post(f"/clients/{alice_id}/notes", json={"content": "Stressful month at work"})
        assert resp.status_code == 201
        assert resp.json()["action"] == "note_observation"
        assert mock_db.practitioner_notes._data[0]["content"] == "Stressful month at work"


class TestSnooze:

    async def test_vacation_preset(self, practitioner_client, alice, alice_id):
        resp = await practitioner_client.post(f"/clients/{alice_id}/snooze", json={"reason": "vacation"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["action"] == "snooze"
        assert data["snoozeUntil"].startswith("2025-06-29T09:00:00")
        assert alice["is_snoozed"] is True

    async def test_custom_date(self, practitioner_client, alice, alice_id):
        resp = await practitioner_client.post(
            f"/clients/{alice_id}/snooze",
            json={"reason": "other", "until": "2025-07-01T08:00:00Z"},
        )
        assert resp.status_code == 200
        assert alice["snooze_reason"] == "other"

    async def test_custom_date_required(self, practitioner_client, alice_id):
        resp = await practitioner_client.post(f"/clients/{alice_id}/snooze", json={"reason": "other"})
        assert resp.status_code == 422

    async def test_custom_date_in_the_past(self, practitioner_client, alice_id):
        resp = await practitioner_client.post(
            f"/clients/{alice_id}/snooze",
            json={"reason": "other", "until": "2025-06-01T08:00:00Z"},
        )
        assert resp.status_code == 422

    async def test_unknown_reason(self, practitioner_client, alice_id):
        resp = await practitioner_client.post(f"/clients/{alice_id}/snooze", json={"reason": "bored"})
        assert resp.status_code == 422

    async def test_resume(self, practitioner_client, alice, alice_id):
        await practitioner_client.post(f"/clients/{alice_id}/snooze", json={"reason": "vacation"})
        resp = await practitioner_client.delete(f"/clients/{alice_id}/snooze")
        assert resp.status_code == 200
        assert alice["is_snoozed"] is False
