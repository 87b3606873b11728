"""
HTTP tests for the booking engine API.

Requests run against the real clock, so booked times sit in 2030.
"""

from datetime import timedelta

from tests.helpers.scheduling import MONDAY, MONDAY_DOW, TUESDAY, TUESDAY_DOW, at, new_id

API = "/api/v1"


def _book(client, tutor_id, parent_id, start, **extra):
    payload = {
        "tutor_id": tutor_id,
        "parent_id": parent_id,
        "student_name": "Sam",
        "scheduled_at": start,
        "duration": 60,
        **extra,
    }
    return client.post(f"{API}/sessions", json=payload)


class TestSessions:
    def test_book_returns_201(self, client, add_window, tutor_id, parent_id):
        add_window(tutor_id, MONDAY_DOW, "09:00", "11:00")

        response = _book(client, tutor_id, parent_id, at(MONDAY, 9))

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "scheduled"
        assert body["ends_at"] == at(MONDAY, 10)

        fetched = client.get(f"{API}/sessions/{body['id']}")
        assert fetched.status_code == 200
        assert fetched.json()["scheduled_at"] == at(MONDAY, 9)

    def test_overlap_returns_409_with_code(self, client, add_window, add_session, tutor_id, parent_id):
        add_window(tutor_id, MONDAY_DOW, "09:00", "11:00")
        add_session(tutor_id, at(MONDAY, 9, 30))

        response = _book(client, tutor_id, parent_id, at(MONDAY, 9))

        assert response.status_code == 409
        detail = response.json()["detail"]
        assert detail["code"] == "SLOT_UNAVAILABLE"
        assert detail["message"] == "This time slot is no longer available"

    def test_request_validation(self, client, tutor_id, parent_id):
        response = _book(client, tutor_id, parent_id, at(MONDAY, 9), duration=5)
        assert response.status_code == 422

    def test_booking_into_another_tutors_subscription_is_422(
        self, client, add_window, add_subscription, tutor_id, parent_id
    ):
        add_window(tutor_id, MONDAY_DOW, "09:00", "11:00")
        subscription = add_subscription(new_id(), parent_id)

        response = _book(
            client, tutor_id, parent_id, at(MONDAY, 9), subscription_id=subscription.id
        )

        assert response.status_code == 422
        assert response.json()["detail"]["code"] == "SUBSCRIPTION_MISMATCH"

    def test_unknown_session_is_404(self, client):
        response = client.get(f"{API}/sessions/{new_id()}")
        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "SESSION_NOT_FOUND"

    def test_reschedule_cancel_and_close(self, client, add_window, add_session, tutor_id):
        add_window(tutor_id, MONDAY_DOW, "09:00", "11:00")
        moving = add_session(tutor_id, at(MONDAY, 9))
        cancelled = add_session(tutor_id, at(TUESDAY, 9))
        held = add_session(tutor_id, at(TUESDAY, 11))

        moved = client.post(
            f"{API}/sessions/{moving.id}/reschedule", json={"new_scheduled_at": at(MONDAY, 10)}
        )
        assert moved.status_code == 200
        assert moved.json()["scheduled_at"] == at(MONDAY, 10)

        response = client.post(f"{API}/sessions/{cancelled.id}/cancel", json={"reason": "ill"})
        assert response.json()["status"] == "cancelled"
        assert response.json()["cancellation_reason"] == "ill"

        assert client.post(f"{API}/sessions/{held.id}/complete").json()["status"] == "completed"
        again = client.post(f"{API}/sessions/{held.id}/no-show")
        assert again.status_code == 422
        assert again.json()["detail"]["code"] == "INVALID_STATUS_TRANSITION"

    def test_cancel_without_body(self, client, add_session, tutor_id):
        session = add_session(tutor_id, at(MONDAY, 9))
        response = client.post(f"{API}/sessions/{session.id}/cancel")
        assert response.status_code == 200
        assert response.json()["cancellation_reason"] is None


class TestTrials:
    def test_eligibility_counts_down(self, client, add_window, tutor_id, parent_id):
        add_window(tutor_id, MONDAY_DOW, "09:00", "11:00")
        url = f"{API}/parents/{parent_id}/trial-eligibility"

        assert client.get(url).json() == {
            "parent_id": parent_id,
            "course_id": None,
            "eligible": True,
            "trials_used": 0,
            "trials_remaining": 2,
            "trial_cap": 2,
        }

        assert _book(client, tutor_id, parent_id, at(MONDAY, 9), is_trial=True).status_code == 201
        assert _book(client, tutor_id, parent_id, at(MONDAY, 10), is_trial=True).status_code == 201

        body = client.get(url, params={"course_id": new_id()}).json()
        assert body["eligible"] is False
        assert body["trials_remaining"] == 0

        third = _book(client, tutor_id, parent_id, at(MONDAY + timedelta(days=7), 9), is_trial=True)
        assert third.status_code == 422
        assert third.json()["detail"]["code"] == "TRIAL_LIMIT_REACHED"


class TestAvailability:
    def test_window_crud(self, client, tutor_id):
        url = f"{API}/tutors/{tutor_id}/availability/windows"
        created = client.post(
            url, json={"day_of_week": TUESDAY_DOW, "start_time": "14:00", "end_time": "16:00"}
        )
        assert created.status_code == 201
        window_id = created.json()["id"]

        bad = client.patch(f"{API}/availability/windows/{window_id}", json={"end_time": "13:00"})
        assert bad.status_code == 400
        assert bad.json()["detail"]["code"] == "INVALID_WINDOW"

        assert [w["id"] for w in client.get(url).json()] == [window_id]
        assert client.delete(f"{API}/availability/windows/{window_id}").status_code == 204
        assert client.get(url).json() == []

    def test_reversed_window_fails_request_validation(self, client, tutor_id):
        response = client.post(
            f"{API}/tutors/{tutor_id}/availability/windows",
            json={"day_of_week": 1, "start_time": "16:00", "end_time": "14:00"},
        )
        assert response.status_code == 422

    def test_slot_preview(self, client, add_window, tutor_id):
        for dow in range(7):
            add_window(tutor_id, dow, "09:00", "10:00")

        response = client.get(f"{API}/tutors/{tutor_id}/slots", params={"days": 2, "duration": 30})

        assert response.status_code == 200
        body = response.json()
        assert body["slot_duration"] == 30
        assert body["slots"]
        assert all(slot["end"] - slot["start"] == 30 * 60 * 1000 for slot in body["slots"])

    def test_tutor_without_windows_has_no_slots(self, client, tutor_id):
        assert client.get(f"{API}/tutors/{tutor_id}/slots").json()["slots"] == []

    def test_time_block_crud_and_booking(self, client, add_window, tutor_id, parent_id):
        add_window(tutor_id, MONDAY_DOW, "09:00", "11:00")
        url = f"{API}/tutors/{tutor_id}/availability/blocks"

        created = client.post(
            url, json={"starts_at": at(MONDAY, 9), "ends_at": at(MONDAY, 10), "reason": "dentist"}
        )
        assert created.status_code == 201
        block_id = created.json()["id"]

        reversed_block = client.post(url, json={"starts_at": at(MONDAY, 10), "ends_at": at(MONDAY, 9)})
        assert reversed_block.status_code == 400
        assert reversed_block.json()["detail"]["code"] == "INVALID_TIME_BLOCK"

        overlapping = client.post(
            url, json={"starts_at": at(MONDAY, 9, 30), "ends_at": at(MONDAY, 10, 30)}
        )
        assert overlapping.status_code == 409

        blocked = _book(client, tutor_id, parent_id, at(MONDAY, 9))
        assert blocked.status_code == 409
        assert blocked.json()["detail"]["details"]["reason"] == "blocked"

        shortened = client.patch(
            f"{API}/availability/blocks/{block_id}", json={"ends_at": at(MONDAY, 9, 30)}
        )
        assert shortened.status_code == 200
        assert [b["ends_at"] for b in client.get(url).json()] == [at(MONDAY, 9, 30)]

        assert client.delete(f"{API}/availability/blocks/{block_id}").status_code == 204
        assert client.get(url).json() == []
        assert _book(client, tutor_id, parent_id, at(MONDAY, 9)).status_code == 201


class TestSubscriptions:
    def test_series_lifecycle(self, client, add_window, add_subscription, add_session, tutor_id, parent_id):
        add_window(tutor_id, TUESDAY_DOW, "14:00", "16:00")
        subscription = add_subscription(tutor_id, parent_id, total_sessions=2)
        for week in range(2):
            add_session(
                tutor_id,
                at(TUESDAY + timedelta(days=7 * week), 14),
                parent_id=parent_id,
                subscription_id=subscription.id,
            )
        base = f"{API}/subscriptions/{subscription.id}"

        moved = client.post(
            f"{base}/reschedule",
            json={"new_anchor_date": "2030-01-15", "frequency": "biweekly"},
        )
        assert moved.status_code == 200
        assert [s["scheduled_at"] for s in moved.json()["sessions"]] == [
            at(TUESDAY + timedelta(days=7), 14),
            at(TUESDAY + timedelta(days=21), 14),
        ]

        clash = client.post(f"{base}/reschedule", json={"new_anchor_date": "2030-01-16"})
        assert clash.status_code == 409
        assert clash.json()["detail"]["code"] == "SERIES_CONFLICT"
        assert clash.json()["detail"]["details"]["occurrence_index"] == 0

        cancelled = client.post(f"{base}/cancel", json={"reason": "done"})
        assert all(s["status"] == "cancelled" for s in cancelled.json()["sessions"])
        assert client.get(f"{base}/sessions").json()["sessions"] == []

    def test_book_series(self, client, add_window, add_subscription, add_session, tutor_id, parent_id):
        add_window(tutor_id, TUESDAY_DOW, "14:00", "16:00")
        subscription = add_subscription(tutor_id, parent_id, total_sessions=3)
        url = f"{API}/subscriptions/{subscription.id}/sessions"
        starts = [at(TUESDAY + timedelta(days=7 * week), 14) for week in range(3)]
        add_session(tutor_id, starts[2])

        clash = client.post(url, json={"student_name": "Sam", "duration": 60, "scheduled_at": starts})
        assert clash.status_code == 409
        assert clash.json()["detail"]["code"] == "SERIES_CONFLICT"
        assert clash.json()["detail"]["details"]["occurrence_index"] == 2
        assert client.get(url).json()["sessions"] == []

        booked = client.post(
            url, json={"student_name": "Sam", "duration": 60, "scheduled_at": starts[:2]}
        )
        assert booked.status_code == 201
        assert [s["scheduled_at"] for s in booked.json()["sessions"]] == starts[:2]
        assert all(s["parent_id"] == parent_id for s in booked.json()["sessions"])

        empty = client.post(url, json={"student_name": "Sam", "duration": 60, "scheduled_at": []})
        assert empty.status_code == 422

    def test_unknown_subscription_is_404(self, client):
        response = client.get(f"{API}/subscriptions/{new_id()}/sessions")
        assert response.status_code == 404


def test_metrics_endpoint(client, tutor_id, parent_id):
    _book(client, tutor_id, parent_id, at(MONDAY, 9))

    response = client.get(f"{API}/metrics")

    assert response.status_code == 200
    assert "tutorbook_booking_rejections_total" in response.text
    assert response.headers["cache-control"].startswith("no-cache")


def test_health(client):
    assert client.get("/health").json()["status"] == "ok"
