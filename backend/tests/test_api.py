from __future__ import annotations
import uuid
import pytest

from fwb_gallery.config import settings, DEFAULT_CALLBACK_TOKEN

VISITOR = {"X-Visitor-Token": "browser-123"}
CALLBACK = {"X-Callback-Token": settings.thumbnail_callback_token}


@pytest.mark.asyncio
async def test_submit_review_publish_vote(client, make_user, auth_headers, thumbnails):
    reviewer = await make_user("Alice")

    r = await client.post("/submissions", headers=VISITOR, json={
        "file_path": "uploads/2025/11/a.jpg", "original_filename": "a.jpg", "photographer_name": "Ada",
    })
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["remaining_slots"] == 2
    sub = body["submission"]
    assert sub["status"] == "new" and sub["public_id"].startswith("FWB-")
    assert "file_path" not in sub

    # not in the gallery until approved and thumbnailed
    assert (await client.get("/gallery/photos")).json()["photos"] == []

    r = await client.post(f"/reviews/{sub['id']}/approve", headers=auth_headers(reviewer))
    assert r.status_code == 200, r.text
    review = r.json()
    assert review["submission"]["status"] == "approved"
    assert review["audit_entry"]["description"] == "Changed from new to approved"
    assert review["audit_entry"]["actor_name"] == "Alice"
    assert len(thumbnails.dispatched) == 2  # intake and approval

    r = await client.post(f"/submissions/{sub['id']}/thumbnail", headers=CALLBACK,
                          json={"thumbnail_path": "thumbnails/a.jpg"})
    assert r.status_code == 200 and r.json()["has_thumbnail"] is True

    page = (await client.get("/gallery/photos")).json()
    assert [p["id"] for p in page["photos"]] == [sub["id"]]
    assert page["next_cursor"] is None

    entry = (await client.get("/gallery/entry", headers=VISITOR)).json()
    assert entry["photo"]["id"] == sub["id"]

    r = await client.post(f"/gallery/photos/{sub['id']}/vote", headers=VISITOR, json={"vote_type": "up"})
    assert r.status_code == 200
    assert r.json() == {"rate": 1, "vote_type": "up"}

    detail = (await client.get(f"/gallery/photos/{sub['id']}", headers=VISITOR)).json()
    assert detail["user_vote"] == "up"
    assert detail["progress"] == {"rated": 1, "total": 1}
    assert detail["next_photo"] is None and detail["previous_photo"] is None

    history = (await client.get(f"/reviews/{sub['id']}/audit", headers=auth_headers(reviewer))).json()
    assert [h["action_type"] for h in history] == ["approved"]


@pytest.mark.asyncio
async def test_my_submissions_and_slot_limit(client):
    for n in range(3):
        r = await client.post("/submissions", headers=VISITOR, json={"file_path": f"uploads/{n}.jpg"})
        assert r.status_code == 201
    r = await client.post("/submissions", headers=VISITOR, json={"file_path": "uploads/4.jpg"})
    assert r.status_code == 409
    assert r.json()["error"] == "slots_exhausted"

    mine = (await client.get("/submissions/mine", headers=VISITOR)).json()
    assert len(mine["submissions"]) == 3 and mine["remaining_slots"] == 0


@pytest.mark.asyncio
async def test_anonymous_submission_needs_identity(client):
    r = await client.post("/submissions", json={"file_path": "uploads/a.jpg"})
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_vote_errors(client, make_submission):
    pending = await make_submission(status="new")
    pending_id = str(pending.id)

    r = await client.post(f"/gallery/photos/{pending_id}/vote", headers=VISITOR, json={"vote_type": "up"})
    assert r.status_code == 409 and r.json()["error"] == "not_votable"

    r = await client.post(f"/gallery/photos/{uuid.uuid4()}/vote", headers=VISITOR, json={"vote_type": "up"})
    assert r.status_code == 404 and r.json()["error"] == "not_found"

    r = await client.post(f"/gallery/photos/{pending_id}/vote", json={"vote_type": "up"})
    assert r.status_code == 400

    r = await client.post(f"/gallery/photos/{pending_id}/vote", headers=VISITOR, json={"vote_type": "meh"})
    assert r.status_code == 422

    r = await client.get(f"/gallery/photos/{pending_id}")
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_invalid_cursor_is_bad_request(client):
    r = await client.get("/gallery/photos", params={"cursor": "%%%"})
    assert r.status_code == 400
    assert r.json()["error"] == "invalid_cursor"


@pytest.mark.asyncio
async def test_review_endpoints_require_reviewer(client, make_user, make_submission, auth_headers):
    member = await make_user("Member", role="user")
    sub = await make_submission(status="new")

    assert (await client.post(f"/reviews/{sub.id}/approve")).status_code in (401, 403)
    r = await client.post(f"/reviews/{sub.id}/approve", headers=auth_headers(member))
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_review_dashboard(client, make_user, make_submission, auth_headers):
    reviewer = await make_user()
    await make_submission(status="new")
    await make_submission(status="approved")

    stats = (await client.get("/reviews/stats", headers=auth_headers(reviewer))).json()
    assert stats == {"all": 2, "new": 1, "approved": 1, "declined": 0}
    rows = (await client.get("/reviews", params={"status": "new"}, headers=auth_headers(reviewer))).json()
    assert [row["status"] for row in rows] == ["new"]

    r = await client.post(f"/reviews/{uuid.uuid4()}/decline", headers=auth_headers(reviewer))
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_thumbnail_callback_checks_token(client, make_submission):
    sub = await make_submission(status="new", visible=False)
    r = await client.post(f"/submissions/{sub.id}/thumbnail", headers={"X-Callback-Token": "nope"},
                          json={"thumbnail_path": "thumbnails/x.jpg"})
    assert r.status_code == 403


@pytest.mark.asyncio
@pytest.mark.parametrize("file_path", [
    "/etc/passwd",
    "../x.jpg",
    "uploads/../../etc/passwd",
    "uploads\\..\\x.jpg",
    "photos/x.jpg",
    "uploads/",
])
async def test_submission_rejects_paths_outside_uploads(client, thumbnails, file_path):
    r = await client.post("/submissions", headers=VISITOR, json={"file_path": file_path})
    assert r.status_code == 422
    assert thumbnails.dispatched == []
    mine = (await client.get("/submissions/mine", headers=VISITOR)).json()
    assert mine["submissions"] == []


@pytest.mark.asyncio
async def test_builtin_callback_token_only_works_in_dev(client, make_submission, monkeypatch):
    sub = await make_submission(status="new", visible=False)
    monkeypatch.setattr(settings, "thumbnail_callback_token", DEFAULT_CALLBACK_TOKEN)
    headers = {"X-Callback-Token": DEFAULT_CALLBACK_TOKEN}
    body = {"thumbnail_path": "thumbnails/x.jpg"}

    monkeypatch.setattr(settings, "environment", "production")
    r = await client.post(f"/submissions/{sub.id}/thumbnail", headers=headers, json=body)
    assert r.status_code == 403

    monkeypatch.setattr(settings, "environment", "dev")
    r = await client.post(f"/submissions/{sub.id}/thumbnail", headers=headers, json=body)
    assert r.status_code == 200
