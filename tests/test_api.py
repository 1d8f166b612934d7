from decimal import Decimal

from httpx import AsyncClient

from .conftest import STUDENT_ID, YEAR_KEY


async def _open_session(client: AsyncClient) -> str:
    response = await client.post(f"/api/v1/students/{STUDENT_ID}/sessions", json={"actor": "registrar"})
    assert response.status_code == 201
    data = response.json()
    assert data["can_undo"] is False
    return data["id"]


async def test_health(client: AsyncClient) -> None:
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


async def test_section_edit_and_undo_round_trip(client: AsyncClient) -> None:
    session_id = await _open_session(client)

    response = await client.put(
        f"/api/v1/students/{STUDENT_ID}/sections/PersonalData",
        json={"session_id": session_id, "value": {"full_name": "Omar Hassan", "nationality": "EG"}},
    )
    assert response.status_code == 200
    assert response.json()["sequence"] == 1

    response = await client.get(f"/api/v1/students/{STUDENT_ID}/sections/PersonalData")
    assert response.status_code == 200
    assert response.json()["value"]["full_name"] == "Omar Hassan"

    response = await client.get(f"/api/v1/students/{STUDENT_ID}/sessions/{session_id}/history")
    assert [e["section_name"] for e in response.json()] == ["PersonalData"]

    response = await client.post(f"/api/v1/students/{STUDENT_ID}/sessions/{session_id}/undo")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "reverted"
    assert body["reverted"]["section_name"] == "PersonalData"
    assert body["can_undo"] is False

    response = await client.post(f"/api/v1/students/{STUDENT_ID}/sessions/{session_id}/undo")
    assert response.status_code == 200
    assert response.json() == {"status": "UndoStackEmpty", "reverted": None, "can_undo": False}


async def test_invalid_section_value_is_400(client: AsyncClient) -> None:
    session_id = await _open_session(client)
    response = await client.put(
        f"/api/v1/students/{STUDENT_ID}/sections/EnrollmentData",
        json={"session_id": session_id, "value": {"stage": "primary"}},
    )
    assert response.status_code == 400
    assert response.json()["detail"]["kind"] == "InvalidInput"


async def test_unknown_section_name_is_rejected(client: AsyncClient) -> None:
    response = await client.get(f"/api/v1/students/{STUDENT_ID}/sections/BehaviourData")
    assert response.status_code == 422


async def test_unknown_session_is_404(client: AsyncClient) -> None:
    response = await client.get(f"/api/v1/students/{STUDENT_ID}/sessions/00000000-0000-0000-0000-000000000000")
    assert response.status_code == 404
    assert response.json()["detail"]["kind"] == "NotFound"


async def test_ledger_round_trip(client: AsyncClient) -> None:
    session_id = await _open_session(client)
    base = f"/api/v1/ledger/{STUDENT_ID}/years/{YEAR_KEY}"

    response = await client.get(f"{base}/base-fees")
    assert response.status_code == 404

    setup = {"total_amount": "10000", "installment_count": 2, "first_due_date": "2025-09-01"}
    response = await client.post(f"{base}/base-fees", json=setup)
    assert response.status_code == 201
    assert len(response.json()["installments"]) == 2

    response = await client.post(f"{base}/base-fees", json=setup)
    assert response.status_code == 409
    assert response.json()["detail"]["kind"] == "DuplicateBaseFeesSetup"

    response = await client.post(
        f"/api/v1/ledger/{STUDENT_ID}/transactions",
        json={
            "session_id": session_id,
            "year_key": YEAR_KEY,
            "transaction_type": "payment",
            "amount": "4000",
            "payer_name": "Hassan Ali",
        },
    )
    assert response.status_code == 201
    committed = response.json()
    assert Decimal(committed["summary"]["net_due"]) == Decimal("6000")

    response = await client.post(
        f"{base}/installments/1/status", json={"session_id": session_id, "paid": True}
    )
    assert response.status_code == 200
    # the installment flag and the payment describe the same money
    assert Decimal(response.json()["summary"]["total_paid"]) == Decimal("5000")

    response = await client.get(f"{base}/summary")
    summary = response.json()
    assert Decimal(summary["net_due"]) == Decimal("5000")
    assert summary["balance_status"] == "due"

    response = await client.get(f"{base}/transactions")
    assert [t["id"] for t in response.json()] == [committed["transaction_id"]]


async def test_negative_amount_is_rejected_by_validation(client: AsyncClient) -> None:
    session_id = await _open_session(client)
    response = await client.post(
        f"/api/v1/ledger/{STUDENT_ID}/transactions",
        json={"session_id": session_id, "year_key": YEAR_KEY, "transaction_type": "payment", "amount": "-1"},
    )
    assert response.status_code == 422
