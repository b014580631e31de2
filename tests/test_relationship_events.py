import logging

from app.services.relationship_events import RelationshipEvents


def test_hooks_run_in_registration_order():
    events = RelationshipEvents()
    calls = []
    events.register_hook("friend_removed", lambda a, b: calls.append(("first", a, b)))
    events.register_hook("friend_removed", lambda a, b: calls.append(("second", a, b)))

    events.run_hook("friend_removed", 1, 2)

    assert calls == [("first", 1, 2), ("second", 1, 2)]


def test_unknown_hook_is_a_noop():
    RelationshipEvents().run_hook("nobody_listens", 1, 2)


def test_failing_hook_does_not_stop_the_others(caplog):
    events = RelationshipEvents()
    calls = []

    def broken(*args):
        raise RuntimeError("boom")

    events.register_hook("friend_request_sent", broken)
    events.register_hook("friend_request_sent", lambda a, b: calls.append((a, b)))

    with caplog.at_level(logging.ERROR):
        events.run_hook("friend_request_sent", 3, 4)

    assert calls == [(3, 4)]
    assert "hook failed" in caplog.text


def test_default_notify_logs(caplog):
    with caplog.at_level(logging.INFO, logger="app.services.relationship_events"):
        RelationshipEvents().notify("friendship-request", 1, 2, {"target_account_id": 2})

    assert "type=friendship-request" in caplog.text
