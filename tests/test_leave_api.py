import pytest
from datetime import date
from decimal import Decimal

from workforce.models.leave_request import LeaveStatus

REVIEWER = {"X-User-Id": "42"}

# Mon 2025-12-22 .. Wed 2025-12-24; the test clock sits on Mon 2025-12-15
DEC_START = "2025-12-22"
DEC_END = "2025-12-24"


@pytest.fixture
def agent(client, make_employee):
    """Agent hired 2025-01-01 with Jan-Nov credits backfilled through the API."""
    employee = make_employee(hired_date=date(2025, 1, 1))
    response = client.post(f"/api/leave-credits/{employee.id}/backfill")
    assert response.status_code == 200
    assert response.json()["created"] == 11
    return employee


def _submit(client, employee, leave_type="VL", start=DEC_START, end=DEC_END):
    return client.post("/api/leave/requests", json={
        "employee_id": employee.id,
        "leave_type": leave_type,
        "start_date": start,
        "end_date": end,
        "reason": "Holidays",
    })


def _balance(client, employee, year=2025):
    response = client.get(f"/api/leave-credits/{employee.id}/balance", params={"year": year})
    assert response.status_code == 200
    return Decimal(response.json()["balance"])


def test_credit_summary(client, agent):
    response = client.get(f"/api/leave-credits/{agent.id}")

    assert response.status_code == 200
    data = response.json()
    assert data["year"] == 2025
    assert data["is_eligible"] is True
    assert data["eligibility_date"] == "2025-07-01"
    assert Decimal(data["monthly_rate"]) == Decimal("1.25")
    assert Decimal(data["balance"]) == Decimal("13.75")
    assert [m["month"] for m in data["credits_by_month"]] == list(range(1, 12))


def test_submit_approve_cancel_round_trip(client, agent):
    submitted = _submit(client, agent)
    assert submitted.status_code == 201
    leave = submitted.json()
    assert leave["status"] == LeaveStatus.PENDING.value
    assert Decimal(leave["days_requested"]) == Decimal("3")

    approved = client.post(f"/api/leave/requests/{leave['id']}/approve", json={"notes": "OK"}, headers=REVIEWER)
    assert approved.status_code == 200
    assert approved.json()["status"] == LeaveStatus.APPROVED.value
    assert approved.json()["reviewed_by"] == 42
    assert Decimal(approved.json()["credits_deducted"]) == Decimal("3")
    assert _balance(client, agent) == Decimal("10.75")

    cancelled = client.post(f"/api/leave/requests/{leave['id']}/cancel", headers={"X-User-Id": str(agent.id)})
    assert cancelled.status_code == 200
    assert cancelled.json()["status"] == LeaveStatus.CANCELLED.value
    assert _balance(client, agent) == Decimal("13.75")


def test_approve_twice_is_a_state_conflict(client, agent):
    leave_id = _submit(client, agent).json()["id"]
    client.post(f"/api/leave/requests/{leave_id}/approve", headers=REVIEWER)

    response = client.post(f"/api/leave/requests/{leave_id}/approve", headers=REVIEWER)

    assert response.status_code == 409
    body = response.json()
    assert body["success"] is False
    assert body["errors"][0]["code"] == "STATE_CONFLICT"


def test_reviewer_header_is_required(client, agent):
    leave_id = _submit(client, agent).json()["id"]

    response = client.post(f"/api/leave/requests/{leave_id}/approve")

    assert response.status_code == 401
    assert response.json()["success"] is False


def test_deny_with_short_notes_is_rejected(client, agent):
    leave_id = _submit(client, agent).json()["id"]

    response = client.post(f"/api/leave/requests/{leave_id}/deny", json={"notes": "nope"}, headers=REVIEWER)

    assert response.status_code == 422
    assert response.json()["errors"][0]["code"] == "VALIDATION_ERROR"


def test_deny(client, agent):
    leave_id = _submit(client, agent).json()["id"]

    response = client.post(
        f"/api/leave/requests/{leave_id}/deny",
        json={"notes": "Year-end freeze on VL"},
        headers=REVIEWER,
    )

    assert response.status_code == 200
    assert response.json()["status"] == LeaveStatus.DENIED.value
    assert _balance(client, agent) == Decimal("13.75")


def test_credited_leave_before_eligibility_is_forbidden(client, make_employee):
    newcomer = make_employee(first_name="Bea", last_name="Lim", hired_date=date(2025, 10, 1))

    response = _submit(client, newcomer)

    assert response.status_code == 403
    assert response.json()["errors"][0]["code"] == "NOT_ELIGIBLE"
    assert _submit(client, newcomer, leave_type="SPL").status_code == 201


def test_end_before_start_is_a_validation_error(client, agent):
    response = _submit(client, agent, start=DEC_END, end=DEC_START)

    assert response.status_code == 422
    assert response.json()["success"] is False
    assert response.json()["errors"][0]["code"] == "VALIDATION_ERROR"


def test_unknown_request_is_not_found(client):
    response = client.get("/api/leave/requests/999")
    assert response.status_code == 404
    assert response.json()["errors"][0]["code"] == "NOT_FOUND"


def test_deny_unknown_request_with_short_notes_is_not_found(client):
    response = client.post("/api/leave/requests/999/deny", json={"notes": "nope"}, headers=REVIEWER)
    assert response.status_code == 404


def test_list_requests_filters_by_status(client, agent):
    first = _submit(client, agent).json()["id"]
    _submit(client, agent, leave_type="SPL")
    client.post(f"/api/leave/requests/{first}/approve", headers=REVIEWER)

    response = client.get("/api/leave/requests", params={"employee_id": agent.id, "status": "approved"})

    assert response.status_code == 200
    assert [r["id"] for r in response.json()] == [first]


def test_monthly_accrual_batch(client, make_employee):
    make_employee(first_name="Ana", last_name="Reyes")
    make_employee(first_name="Carlo", last_name="Tan", role="Team Lead")

    response = client.post("/api/leave-credits/accrue", json={}, headers=REVIEWER)

    assert response.status_code == 200
    data = response.json()
    assert (data["year"], data["month"]) == (2025, 11)
    assert data["accrued"] == 2
    assert data["errors"] == []


def test_credits_for_unknown_employee(client):
    response = client.get("/api/leave-credits/999/balance")
    assert response.status_code == 404
