import json

import pytest
from starlette.websockets import WebSocketDisconnect

from nexusjob.auth import create_access_token
from nexusjob.models.user import UserRole


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_requests_require_a_token(client):
    assert client.get("/api/jobs").status_code == 401
    assert client.get("/api/jobs", headers={"Authorization": "Bearer nope"}).status_code == 401


def test_profile_update(client, seeker, auth_headers):
    response = client.patch(
        "/api/profiles/me",
        json={"bio": "Backend developer", "skills": ["python", "fastapi"], "name": None},
        headers=auth_headers(seeker),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["bio"] == "Backend developer"
    assert body["skills"] == ["python", "fastapi"]
    assert body["name"] == seeker.name


def test_role_checks_on_job_and_application_routes(client, seeker, employer, job, auth_headers):
    assert client.post("/api/jobs", json={"title": "Anything"}, headers=auth_headers(seeker)).status_code == 403
    assert client.post("/api/applications", json={"job_id": job.id}, headers=auth_headers(employer)).status_code == 403
    assert client.get("/api/profiles/candidates", headers=auth_headers(seeker)).status_code == 403


def test_apply_to_unknown_job_is_a_validation_error(client, seeker, auth_headers):
    response = client.post("/api/applications", json={"job_id": 777}, headers=auth_headers(seeker))

    assert response.status_code == 422
    assert "777" in response.json()["detail"]


def test_only_job_owner_can_change_status(client, application, seeker, auth_headers):
    assert client.patch(
        f"/api/applications/{application.id}/status", json={"status": "Accepted"}, headers=auth_headers(seeker)
    ).status_code == 403
    assert client.patch(
        "/api/applications/9999/status", json={"status": "Accepted"}, headers=auth_headers(seeker)
    ).status_code == 404


def test_application_stats_for_employer(client, application, employer, auth_headers):
    client.patch(f"/api/applications/{application.id}/status", json={"status": "Reviewing"}, headers=auth_headers(employer))

    stats = client.get("/api/applications/stats", headers=auth_headers(employer)).json()

    assert stats == {"pending": 0, "reviewing": 1, "accepted": 0, "rejected": 0, "total": 1}


def test_hiring_conversation_end_to_end(client, employer, seeker, auth_headers):
    employer_headers = auth_headers(employer)
    seeker_headers = auth_headers(seeker)

    job = client.post(
        "/api/jobs",
        json={"title": "Platform Engineer", "description": "Run the platform", "tags": ["python"]},
        headers=employer_headers,
    ).json()
    application = client.post(
        "/api/applications", json={"job_id": job["id"], "cover_letter": "Hi!"}, headers=seeker_headers
    ).json()
    assert application["status"] == "Pending"

    missing = client.get(f"/api/chats/by-application/{application['id']}", headers=seeker_headers)
    assert missing.status_code == 200
    assert missing.json() is None

    accepted = client.patch(
        f"/api/applications/{application['id']}/status", json={"status": "Accepted"}, headers=employer_headers
    ).json()
    chat = accepted["chat"]
    assert accepted["application"]["status"] == "Accepted"
    assert chat["application_id"] == application["id"]
    assert chat["job_title"] == "Platform Engineer"

    found = client.get(f"/api/chats/by-application/{application['id']}", headers=seeker_headers).json()
    assert found["id"] == chat["id"]

    with client.websocket_connect(f"/api/chats/{chat['id']}/ws?token={create_access_token(seeker.id)}") as socket:
        assert socket.receive_json() == {"type": "history", "messages": []}

        sent = client.post(f"/api/chats/{chat['id']}/messages", json={"content": "Hello"}, headers=employer_headers)
        assert sent.status_code == 201

        frame = socket.receive_json()
        assert frame["type"] == "message"
        assert frame["message"]["sender_id"] == employer.id
        assert frame["message"]["content"] == "Hello"
        assert frame["message"]["read"] is False

    messages = client.get(f"/api/chats/{chat['id']}/messages", headers=seeker_headers).json()
    assert [(message["content"], message["read"]) for message in messages] == [("Hello", True)]

    chats = client.get("/api/chats", headers=employer_headers).json()
    assert chats[0]["id"] == chat["id"]
    assert chats[0]["unread_count"] == 0
    assert chats[0]["last_message"] == "Hello"


def test_chat_socket_sends_and_echoes(client, application, employer, seeker, auth_headers):
    chat = client.patch(
        f"/api/applications/{application.id}/status", json={"status": "Accepted"}, headers=auth_headers(employer)
    ).json()["chat"]

    with client.websocket_connect(f"/api/chats/{chat['id']}/ws?token={create_access_token(seeker.id)}") as socket:
        socket.receive_json()
        socket.send_text(json.dumps({"content": "Thanks for accepting!"}))
        echoed = socket.receive_json()
        socket.send_text("not json")
        error = socket.receive_json()

    assert echoed["message"]["sender_id"] == seeker.id
    assert echoed["message"]["content"] == "Thanks for accepting!"
    assert error["type"] == "error"
    history = client.get(f"/api/chats/{chat['id']}/messages", headers=auth_headers(employer)).json()
    assert [message["content"] for message in history] == ["Thanks for accepting!"]


def test_chat_socket_rejects_outsiders(client, application, employer, make_user, auth_headers):
    chat = client.patch(
        f"/api/applications/{application.id}/status", json={"status": "Accepted"}, headers=auth_headers(employer)
    ).json()["chat"]
    outsider = make_user("Nosy Neighbour")

    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect(f"/api/chats/{chat['id']}/ws?token={create_access_token(outsider.id)}"):
            pass
    assert client.get(f"/api/chats/{chat['id']}/messages", headers=auth_headers(outsider)).status_code == 403


def test_message_pagination_over_http(client, application, employer, auth_headers):
    headers = auth_headers(employer)
    chat = client.patch(
        f"/api/applications/{application.id}/status", json={"status": "Accepted"}, headers=headers
    ).json()["chat"]
    for index in range(3):
        client.post(f"/api/chats/{chat['id']}/messages", json={"content": f"m{index}"}, headers=headers)

    first = client.get(f"/api/chats/{chat['id']}/messages?limit=2", headers=headers).json()
    rest = client.get(f"/api/chats/{chat['id']}/messages?after_id={first[-1]['id']}", headers=headers).json()

    assert [message["content"] for message in first] == ["m0", "m1"]
    assert [message["content"] for message in rest] == ["m2"]


def test_live_session_streams_workflow(client, employer, seeker, job, auth_headers):
    with client.websocket_connect(f"/api/live?token={create_access_token(employer.id)}") as socket:
        snapshot = socket.receive_json()
        assert snapshot == {"type": "snapshot", "applications": [], "chats": []}

        application = client.post(
            "/api/applications", json={"job_id": job.id}, headers=auth_headers(seeker)
        ).json()
        frame = socket.receive_json()
        assert frame["type"] == "application"
        assert frame["application"]["id"] == application["id"]

        socket.send_text(json.dumps({"action": "update_status", "application_id": application["id"], "status": "Accepted"}))
        chat_frame = None
        for _ in range(5):
            frame = socket.receive_json()
            if frame["type"] == "chat":
                chat_frame = frame
                break

    assert chat_frame is not None
    assert chat_frame["chat"]["application_id"] == application["id"]
    chats = client.get("/api/chats", headers=auth_headers(seeker)).json()
    assert len(chats) == 1


def test_live_session_requires_token(client):
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/api/live?token=bad"):
            pass


def test_recommended_jobs_degrade_to_empty_list(client, fake_model, seeker, job, auth_headers):
    fake_model.reply("I cannot answer that in JSON")

    response = client.get("/api/assistant/recommended-jobs", headers=auth_headers(seeker))

    assert response.status_code == 200
    assert response.json() == []


def test_recommended_jobs_over_http(client, fake_model, seeker, job, auth_headers):
    fake_model.reply(json.dumps([{"jobId": job.id, "reason": "Python match"}]))

    response = client.get("/api/assistant/recommended-jobs", headers=auth_headers(seeker))

    assert response.json() == [{"jobId": job.id, "reason": "Python match"}]


def test_candidate_ranking_is_owner_only(client, fake_model, job, seeker, employer, make_user, auth_headers):
    rival = make_user("Rival Recruiter", UserRole.EMPLOYER)
    fake_model.reply(json.dumps([{"userId": seeker.id, "matchScore": 88, "reason": "Great"}]))

    assert client.get(f"/api/assistant/jobs/{job.id}/candidates", headers=auth_headers(rival)).status_code == 403
    ranked = client.get(f"/api/assistant/jobs/{job.id}/candidates", headers=auth_headers(employer)).json()
    assert ranked == [{"userId": seeker.id, "matchScore": 88.0, "reason": "Great"}]


def test_cover_letter_enhancement_keeps_draft_on_failure(client, seeker, auth_headers):
    response = client.post(
        "/api/assistant/cover-letter",
        json={"text": "I like code", "job_title": "Engineer"},
        headers=auth_headers(seeker),
    )

    assert response.json() == {"cover_letter": "I like code"}
