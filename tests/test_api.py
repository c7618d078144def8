from hackhub.models.enums import JudgeStatus

from tests.conftest import PASSWORD, auth_headers


def submission_form(event, team, **overrides):
    data = {
        "event_id": str(event.id),
        "team_id": str(team.id),
        "title": "Smart Campus",
        "description": "IoT sensors for the campus",
    }
    data.update(overrides)
    return data


async def test_healthz(client):
    response = await client.get("/healthz")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


async def test_register_login_me(client):
    response = await client.post("/auth/register", json={
        "email": "ada@example.com",
        "password": PASSWORD,
        "full_name": "Ada Lovelace"
    })
    assert response.status_code == 201
    assert response.json()["roles"] == ["participant"]

    duplicate = await client.post("/auth/register", json={
        "email": "ada@example.com",
        "password": PASSWORD,
        "full_name": "Ada Again"
    })
    assert duplicate.status_code == 409
    assert duplicate.json()["error"] == "conflict"

    bad_login = await client.post("/auth/login", json={"email": "ada@example.com", "password": "wrong-password"})
    assert bad_login.status_code == 401

    login = await client.post("/auth/login", json={"email": "ada@example.com", "password": PASSWORD})
    assert login.status_code == 200
    token = login.json()["access_token"]

    me = await client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["email"] == "ada@example.com"


async def test_protected_routes_need_a_token(client, factory):
    event = await factory.event()
    team = await factory.team(event)

    response = await client.post("/submissions", data=submission_form(event, team))

    assert response.status_code == 401


async def test_submit_with_file_then_conflict(client, factory):
    event = await factory.event()
    leader = await factory.user()
    member = await factory.user()
    team = await factory.team(event, leader=leader, members=[member])

    response = await client.post(
        "/submissions",
        data=submission_form(event, team),
        files={"file": ("slides.pdf", b"%PDF-1.4 demo", "application/pdf")},
        headers=auth_headers(leader)
    )
    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "submitted"
    assert body["file_type"] == "application/pdf"
    assert body["average_score"] is None

    again = await client.post(
        "/submissions", data=submission_form(event, team, title="Second"), headers=auth_headers(member)
    )
    assert again.status_code == 409
    assert again.json() == {
        "success": False,
        "error": "conflict",
        "message": "The team has already submitted a project for this event"
    }

    notifications = await client.get("/notifications", headers=auth_headers(member))
    assert notifications.status_code == 200
    [notification] = notifications.json()
    assert notification["type"] == "submission_created"
    assert notification["reference_id"] == body["id"]

    read = await client.post(f"/notifications/{notification['id']}/read", headers=auth_headers(member))
    assert read.json()["is_read"] is True
    unread = await client.get("/notifications", params={"unread_only": True}, headers=auth_headers(member))
    assert unread.json() == []


async def test_rejected_upload_is_reported(client, factory):
    event = await factory.event()
    leader = await factory.user()
    team = await factory.team(event, leader=leader)

    response = await client.post(
        "/submissions",
        data=submission_form(event, team),
        files={"file": ("big.zip", b"0" * 4096, "application/zip")},
        headers=auth_headers(leader)
    )

    assert response.status_code == 413
    assert response.json()["error"] == "upload_error"


async def test_evaluate_then_update(client, factory):
    event = await factory.event()
    team = await factory.team(event)
    submission = await factory.submission(event, team)
    judge = await factory.judge(event)
    url = f"/submissions/{submission.id}/evaluations"

    first = await client.post(url, json={"score": 70, "feedback": "solid"}, headers=auth_headers(judge))
    assert first.status_code == 201

    second = await client.post(url, json={"score": 90}, headers=auth_headers(judge))
    assert second.status_code == 200
    assert second.json()["id"] == first.json()["id"]
    assert second.json()["score"] == 90

    stored = await client.get(f"/submissions/{submission.id}", headers=auth_headers(judge))
    assert stored.json()["average_score"] == 90
    assert stored.json()["total_evaluations"] == 1


async def test_criterion_error_body(client, factory):
    event = await factory.event(judging_criteria=[{"id": "c1", "name": "Innovation", "max_score": 10}])
    team = await factory.team(event)
    submission = await factory.submission(event, team)
    judge = await factory.judge(event)

    response = await client.post(
        f"/submissions/{submission.id}/evaluations",
        json={"criteria_scores": {"c1": 11}},
        headers=auth_headers(judge)
    )

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "validation_error"
    assert body["details"] == {"criterion": "c1"}


async def test_pending_judge_is_forbidden(client, factory):
    event = await factory.event()
    team = await factory.team(event)
    submission = await factory.submission(event, team)
    judge = await factory.judge(event, status=JudgeStatus.PENDING)

    response = await client.post(
        f"/submissions/{submission.id}/evaluations", json={"score": 50}, headers=auth_headers(judge)
    )

    assert response.status_code == 403
    assert response.json()["error"] == "forbidden"


async def test_leaderboard_access(client, factory):
    private_event = await factory.event()
    public_event = await factory.event(is_leaderboard_public=True)
    await factory.submission(public_event, await factory.team(public_event), average_score=88.888,
                             total_evaluations=2, title="Scored")
    await factory.submission(public_event, await factory.team(public_event), title="Unscored")
    organizer = await factory.reload_user(private_event.organizer_id)

    anonymous = await client.get(f"/events/{private_event.id}/leaderboard")
    assert anonymous.status_code == 403
    assert anonymous.json()["error"] == "forbidden"

    as_organizer = await client.get(f"/events/{private_event.id}/leaderboard", headers=auth_headers(organizer))
    assert as_organizer.status_code == 200
    assert as_organizer.json()["entries"] == []

    public = await client.get(f"/events/{public_event.id}/leaderboard", params={"limit": 1, "offset": 1})
    assert public.status_code == 200
    body = public.json()
    assert body["total"] == 2
    assert [(entry["rank"], entry["title"]) for entry in body["entries"]] == [(2, "Unscored")]

    top = await client.get(f"/events/{public_event.id}/leaderboard")
    assert top.json()["entries"][0]["average_score"] == 88.89


async def test_unknown_event_leaderboard(client):
    response = await client.get("/events/00000000-0000-0000-0000-000000000000/leaderboard")

    assert response.status_code == 404
    assert response.json()["error"] == "not_found"
