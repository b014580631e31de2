import logging

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

pytestmark = pytest.mark.anyio


async def test_me_includes_account_id(client, user_factory, set_auth_cookie):
    a = await user_factory(11)
    set_auth_cookie(client, a["token"])

    r = await client.get("/me")
    assert r.status_code == 200
    assert r.json()["account_id"] == 11
    assert r.json()["id"] == a["id"]


async def test_routes_require_auth(client, set_auth_cookie):
    set_auth_cookie(client, None)
    r = await client.get("/friends")
    assert r.status_code == 401

    set_auth_cookie(client, "garbage")
    r = await client.post("/friends/request", json={"account_id": 2})
    assert r.status_code == 401


async def test_friend_request_accept_flow(client, user_factory, set_auth_cookie):
    a = await user_factory(11)
    b = await user_factory(12)

    set_auth_cookie(client, a["token"])
    r = await client.post("/friends/request", json={"account_id": 12})
    assert r.status_code == 200
    assert r.json() == {"ok": True}

    r = await client.get("/friends/requests/sent")
    assert [item["account_id"] for item in r.json()] == [12]
    assert r.json()[0]["username"] == b["username"]

    r = await client.get("/friends/relationship/12")
    assert r.json() == {"account_id": 12, "status": "request_sent"}

    set_auth_cookie(client, b["token"])
    r = await client.get("/friends/requests")
    assert r.status_code == 200
    received = r.json()
    assert [item["account_id"] for item in received] == [11]
    assert "requested_at" in received[0]["metadata"]

    r = await client.post("/friends/accept", json={"account_id": 11})
    assert r.status_code == 200

    r = await client.get("/friends")
    assert [f["account_id"] for f in r.json()] == [11]
    assert r.json()[0]["username"] == a["username"]

    r = await client.get("/friends/count")
    assert r.json() == {"account_id": 12, "count": 1}

    set_auth_cookie(client, a["token"])
    r = await client.get("/friends/relationship/12")
    assert r.json()["status"] == "friends"

    r = await client.get("/friends/accounts/12")
    assert [f["account_id"] for f in r.json()] == [11]


async def test_unknown_accounts_are_listed_without_profile(client, user_factory, set_auth_cookie):
    a = await user_factory(11)
    set_auth_cookie(client, a["token"])

    r = await client.post("/friends/request", json={"account_id": 999})
    assert r.status_code == 200

    r = await client.get("/friends/requests/sent")
    assert r.json() == [
        {"account_id": 999, "user_id": None, "username": None, "display_name": None, "avatar_url": None}
    ]


async def test_precondition_failures_are_conflicts(client, user_factory, set_auth_cookie):
    a = await user_factory(11)
    await user_factory(12)
    set_auth_cookie(client, a["token"])

    r = await client.post("/friends/accept", json={"account_id": 12})
    assert r.status_code == 409

    r = await client.post("/friends/ignore", json={"account_id": 12})
    assert r.status_code == 409

    assert (await client.post("/friends/request", json={"account_id": 12})).status_code == 200
    r = await client.post("/friends/request", json={"account_id": 12})
    assert r.status_code == 409
    assert r.json()["detail"] == "Relationship does not allow this action"


async def test_remove_and_ignore(client, user_factory, set_auth_cookie):
    a = await user_factory(11)
    b = await user_factory(12)

    set_auth_cookie(client, a["token"])
    await client.post("/friends/request", json={"account_id": 12})

    set_auth_cookie(client, b["token"])
    assert (await client.post("/friends/ignore", json={"account_id": 11})).status_code == 200
    assert (await client.get("/friends/requests")).json() == []

    set_auth_cookie(client, a["token"])
    await client.post("/friends/request", json={"account_id": 12})
    set_auth_cookie(client, b["token"])
    await client.post("/friends/accept", json={"account_id": 11})

    r = await client.post("/friends/remove", json={"account_id": 11})
    assert r.status_code == 200
    assert (await client.get("/friends")).json() == []
    r = await client.get("/friends/relationship/11")
    assert r.json()["status"] == "strangers"


async def test_self_and_invalid_ids_are_rejected(client, user_factory, set_auth_cookie):
    a = await user_factory(11)
    set_auth_cookie(client, a["token"])

    r = await client.post("/friends/request", json={"account_id": 11})
    assert r.status_code == 400
    assert r.json()["detail"] == "You cannot friend yourself"

    r = await client.post("/friends/request", json={"account_id": 0})
    assert r.status_code == 422

    r = await client.get("/friends/relationship/11")
    assert r.status_code == 400

    r = await client.get("/friends/relationship/-4")
    assert r.status_code == 400
    assert r.json()["detail"] == "Invalid account id"

    r = await client.get("/friends/accounts/0")
    assert r.status_code == 400


async def test_queue_outage_returns_503(client, user_factory, set_auth_cookie, fake_redis, monkeypatch, caplog):
    a = await user_factory(11)
    set_auth_cookie(client, a["token"])

    async def broken_rpush(*args, **kwargs):
        raise RedisConnectionError("queue down")

    monkeypatch.setattr(fake_redis, "rpush", broken_rpush)

    with caplog.at_level(logging.WARNING, logger="app.api.http_errors"):
        r = await client.post("/friends/request", json={"account_id": 12})
    assert r.status_code == 503
    assert "friend change was not queued" in caplog.text
    assert "queue down" in caplog.text

    r = await client.get("/friends/requests/sent")
    assert r.json() == []
