from datetime import time

HEADER = "No\tDevNo\tUserId\tName\tMode\tDateTime"

EXPORT = "\n".join([
    HEADER,
    "1\t1\t10\tRosel\tFP\t2025-11-05 06:58:00",
    "2\t1\t10\tRosel\tFP\t2025-11-05 15:01:00",
    "3\t1\t10\tRosel\tFP\t2025-11-05 16:30:00",
    "4\t1\t11\tUnknown Z\tFP\t2025-11-05 08:00:00",
]).encode("utf-8")


def _upload(client, payload, **form):
    return client.post(
        "/api/attendance/uploads",
        files={"file": ("site2.txt", payload, "text/plain")},
        data=form,
    )


def test_upload_and_query_attendance(client, make_employee, make_schedule):
    rosel = make_employee(first_name="Maria", last_name="Rosel")
    make_schedule(rosel, time_in=time(7, 0), time_out=time(15, 0))

    response = _upload(client, EXPORT, date_from="2025-11-05", date_to="2025-11-05", site_id="2")

    assert response.status_code == 201
    upload = response.json()
    assert upload["status"] == "completed"
    assert upload["original_filename"] == "site2.txt"
    assert upload["matched_employees"] == 1
    assert upload["unmatched_names_list"] == ["Unknown Z"]
    assert upload["first_scan_at"] == "2025-11-05T06:58:00"

    fetched = client.get(f"/api/attendance/uploads/{upload['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["total_records"] == 4

    days = client.get("/api/attendance", params={"employee_id": rosel.id}).json()
    assert len(days) == 1
    assert days[0]["shift_date"] == "2025-11-05"
    assert days[0]["actual_time_out"] == "2025-11-05T15:01:00"
    assert days[0]["status"] == "on_time"
    assert days[0]["bio_in_site_id"] == 2


def test_invalid_file_is_reported_on_the_upload(client):
    response = _upload(client, b"PK\x03\x04 zipped spreadsheet")

    assert response.status_code == 201
    assert response.json()["status"] == "failed"
    assert response.json()["error_message"]


def test_inverted_date_range_is_rejected(client):
    response = _upload(client, EXPORT, date_from="2025-11-06", date_to="2025-11-05")

    assert response.status_code == 422
    assert response.json()["errors"][0]["code"] == "VALIDATION_ERROR"


def test_unknown_upload_is_not_found(client):
    assert client.get("/api/attendance/uploads/999").status_code == 404
