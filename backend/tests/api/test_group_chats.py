import pytest

CREATOR = {"X-User-Id": "user-creator"}
FRIEND = {"X-User-Id": "user-friend"}
STRANGER = {"X-User-Id": "user-stranger"}


@pytest.mark.asyncio
async def test_evening_prayer_promotes_on_second_member(api_client):
    create_response = await api_client.post(
        "/api/group-chat-queues",
        json={
            "title": "Evening Prayer",
            "description": "Closing the day together",
            "intention": "prayer",
            "minPeople": 2,
            "maxPeople": 4,
        },
        headers=CREATOR,
    )
    assert create_response.status_code == 201
    queue = create_response.json()
    assert queue["currentCount"] == 1
    assert queue["minPeople"] == 2
    assert queue["status"] == "open"
    assert queue["isMember"] is True
    queue_id = queue["id"]

    list_response = await api_client.get("/api/group-chat-queues", headers=FRIEND)
    assert list_response.status_code == 200
    assert [item["id"] for item in list_response.json()] == [queue_id]

    join_response = await api_client.post(f"/api/group-chat-queues/{queue_id}/join", headers=FRIEND)
    assert join_response.status_code == 200
    joined = join_response.json()
    assert joined["status"] == "promoted"
    chat_id = joined["chatId"]
    assert chat_id

    list_after = await api_client.get("/api/group-chat-queues", headers=FRIEND)
    assert list_after.json() == []

    active = await api_client.get("/api/group-chats/active", headers=CREATOR)
    assert active.status_code == 200
    chats = active.json()
    assert len(chats) == 1
    assert chats[0]["id"] == chat_id
    assert chats[0]["queueId"] == queue_id
    assert chats[0]["members"] == ["user-creator", "user-friend"]
    assert chats[0]["memberCount"] == 2

    members = await api_client.get(f"/api/group-chats/{chat_id}/members", headers=FRIEND)
    assert members.status_code == 200
    assert members.json() == [
        {"id": "user-creator", "isCreator": True},
        {"id": "user-friend", "isCreator": False},
    ]

    post = await api_client.post(
        f"/api/group-chats/{chat_id}/messages",
        json={"message": "Thank you for joining", "type": "message"},
        headers=CREATOR,
    )
    assert post.status_code == 201
    assert post.json()["userId"] == "user-creator"

    history = await api_client.get(f"/api/group-chats/{chat_id}/messages", headers=FRIEND)
    assert history.status_code == 200
    assert [m["type"] for m in history.json()] == ["system", "message"]

    mine = await api_client.get("/api/group-chats/active", params={"mine": "true"}, headers=STRANGER)
    assert mine.json() == []


@pytest.mark.asyncio
async def test_join_unknown_queue_returns_error_envelope(api_client):
    response = await api_client.post("/api/group-chat-queues/missing/join", headers=FRIEND)
    assert response.status_code == 404
    body = response.json()
    assert body["code"] == "queue_not_found"
    assert body["message"] == "This queue is no longer available"
    assert body["request_id"]
    assert response.headers["X-Request-Id"] == body["request_id"]


@pytest.mark.asyncio
async def test_cancel_by_non_creator_is_forbidden(api_client):
    created = await api_client.post(
        "/api/group-chat-queues",
        json={"title": "Street Outreach", "intention": "evangelizing", "minPeople": 4, "maxPeople": 8},
        headers=CREATOR,
    )
    queue_id = created.json()["id"]

    denied = await api_client.delete(f"/api/group-chat-queues/{queue_id}", headers=FRIEND)
    assert denied.status_code == 403
    assert denied.json()["code"] == "forbidden"

    still_there = await api_client.get(f"/api/group-chat-queues/{queue_id}", headers=FRIEND)
    assert still_there.status_code == 200

    cancelled = await api_client.delete(f"/api/group-chat-queues/{queue_id}", headers=CREATOR)
    assert cancelled.status_code == 200
    assert cancelled.json() == {"ok": True}

    gone = await api_client.get(f"/api/group-chat-queues/{queue_id}", headers=CREATOR)
    assert gone.status_code == 404


@pytest.mark.asyncio
async def test_leave_and_last_leave_cancels(api_client):
    created = await api_client.post(
        "/api/group-chat-queues",
        json={"title": "Worship Jam", "intention": "worship", "minPeople": 3, "maxPeople": 6},
        headers=CREATOR,
    )
    queue_id = created.json()["id"]
    await api_client.post(f"/api/group-chat-queues/{queue_id}/join", headers=FRIEND)

    left = await api_client.post(f"/api/group-chat-queues/{queue_id}/leave", headers=FRIEND)
    assert left.status_code == 200
    assert left.json()["currentCount"] == 1

    last = await api_client.post(f"/api/group-chat-queues/{queue_id}/leave", headers=CREATOR)
    assert last.status_code == 200
    assert last.json()["status"] == "cancelled"

    listed = await api_client.get("/api/group-chat-queues", headers=CREATOR)
    assert listed.json() == []


@pytest.mark.asyncio
async def test_invalid_bounds_return_validation_error(api_client):
    response = await api_client.post(
        "/api/group-chat-queues",
        json={"title": "Study", "intention": "bible_study", "minPeople": 5, "maxPeople": 4},
        headers=CREATOR,
    )
    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "validation_error"
    assert body["message"] == "Minimum people cannot exceed maximum people"


@pytest.mark.asyncio
async def test_malformed_body_returns_422(api_client):
    response = await api_client.post(
        "/api/group-chat-queues",
        json={"title": "Study", "intention": "karaoke", "minPeople": 2, "maxPeople": 4},
        headers=CREATOR,
    )
    assert response.status_code == 422
    body = response.json()
    assert body["code"] == "validation_error"
    assert body["message"].startswith("intention")


@pytest.mark.asyncio
async def test_missing_identity_is_unauthorised(api_client):
    response = await api_client.get("/api/group-chat-queues")
    assert response.status_code == 401
    assert response.json()["code"] == "invalid_token"


@pytest.mark.asyncio
async def test_outsider_cannot_read_chat_messages(api_client):
    created = await api_client.post(
        "/api/group-chat-queues",
        json={"title": "Evening Prayer", "intention": "prayer", "minPeople": 2, "maxPeople": 4},
        headers=CREATOR,
    )
    joined = await api_client.post(f"/api/group-chat-queues/{created.json()['id']}/join", headers=FRIEND)
    chat_id = joined.json()["chatId"]

    response = await api_client.get(f"/api/group-chats/{chat_id}/messages", headers=STRANGER)
    assert response.status_code == 403
    assert response.json()["code"] == "not_member"
