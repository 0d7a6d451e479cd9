import threading
from unittest.mock import MagicMock

import pytest

from tests.fixtures.auth_fixtures import (
    FakeAuthStateSource,
    FakeProfileSource,
    make_profile,
    make_user,
)
from uploads_api.auth.firebase import AuthTokenError
from uploads_api.auth.models import AuthUser, UserProfile
from uploads_api.auth.session import AuthSession
from uploads_api.auth.sources import FirestoreProfileSource, IdTokenAuthSource


@pytest.fixture
def auth_source():
    return FakeAuthStateSource()


@pytest.fixture
def profile_source():
    return FakeProfileSource()


@pytest.fixture
def session(auth_source, profile_source):
    auth_session = AuthSession(auth_source, profile_source)
    yield auth_session
    auth_session.close()


def test_initial_state_is_loading(session):
    state = session.state

    assert state.loading is True
    assert state.user is None
    assert state.user_profile is None
    assert state.user_id is None


def test_start_without_user_stops_loading(session, profile_source):
    session.start()

    assert session.loading is False
    assert session.user is None
    assert profile_source.subscriptions == []


def test_sign_in_subscribes_to_profile(session, auth_source, profile_source):
    session.start()
    auth_source.emit(make_user("alice"))

    assert session.user_id == "alice"
    assert session.loading is True
    assert session.user_profile is None
    assert [s.uid for s in profile_source.active] == ["alice"]

    profile_source.latest().push(make_profile("alice", displayName="Alice"))

    assert session.loading is False
    assert session.user_profile.display_name == "Alice"


def test_missing_profile_document(session, auth_source, profile_source):
    session.start()
    auth_source.emit(make_user("alice"))

    profile_source.latest().push(None)

    assert session.user_profile is None
    assert session.loading is False
    assert session.user_id == "alice"


def test_profile_error_clears_profile(session, auth_source, profile_source):
    session.start()
    auth_source.emit(make_user("alice"))
    profile_source.latest().push(make_profile("alice"))

    profile_source.latest().fail(RuntimeError("permission denied"))

    assert session.user_profile is None
    assert session.loading is False


def test_user_switch_detaches_previous_listener_first(session, auth_source, profile_source):
    session.start()
    auth_source.emit(make_user("alice"))
    profile_source.latest().push(make_profile("alice"))

    auth_source.emit(make_user("bob"))

    assert profile_source.events == [
        ("subscribe", "alice"),
        ("unsubscribe", "alice"),
        ("subscribe", "bob"),
    ]
    assert [s.uid for s in profile_source.active] == ["bob"]
    assert session.user_id == "bob"
    assert session.user_profile is None
    assert session.loading is True


def test_late_snapshot_from_detached_listener_is_ignored(session, auth_source, profile_source):
    session.start()
    auth_source.emit(make_user("alice"))
    alice_subscription = profile_source.latest()
    auth_source.emit(make_user("bob"))

    alice_subscription.push(make_profile("alice", displayName="Alice"))
    alice_subscription.fail(RuntimeError("late error"))

    assert session.user_id == "bob"
    assert session.user_profile is None
    assert session.loading is True


def test_sign_out_clears_state(session, auth_source, profile_source):
    session.start()
    auth_source.emit(make_user("alice"))
    profile_source.latest().push(make_profile("alice"))

    auth_source.emit(None)

    assert session.user is None
    assert session.user_id is None
    assert session.user_profile is None
    assert session.loading is False
    assert profile_source.active == []


def test_subscribe_failure_stops_loading(session, auth_source, profile_source):
    profile_source.subscribe_error = RuntimeError("firestore unavailable")
    session.start()

    auth_source.emit(make_user("alice"))

    assert session.user_id == "alice"
    assert session.loading is False
    assert session.user_profile is None


def test_listeners_receive_every_state(session, auth_source, profile_source):
    states = []
    remove = session.add_listener(states.append)
    session.start()
    auth_source.emit(make_user("alice"))
    profile_source.latest().push(make_profile("alice"))

    assert [(s.user_id, s.loading, s.user_profile is not None) for s in states] == [
        (None, False, False),
        ("alice", True, False),
        ("alice", False, True),
    ]

    remove()
    auth_source.emit(None)
    assert len(states) == 3


def test_failing_listener_does_not_break_others(session, auth_source):
    received = []
    session.add_listener(MagicMock(side_effect=RuntimeError("boom")))
    session.add_listener(received.append)
    session.start()

    auth_source.emit(make_user("alice"))

    assert received[-1].user_id == "alice"


def test_refresh_user_profile_is_a_no_op(session, auth_source, profile_source):
    session.start()
    auth_source.emit(make_user("alice"))
    before = session.state

    session.refresh_user_profile()

    assert session.state == before
    assert len(profile_source.subscriptions) == 1


def test_close_detaches_everything(auth_source, profile_source):
    session = AuthSession(auth_source, profile_source)
    session.start()
    auth_source.emit(make_user("alice"))

    session.close()

    assert auth_source.unsubscribed is True
    assert profile_source.active == []


def test_start_twice_subscribes_once(session, auth_source):
    session.start()
    session.start()

    assert len(auth_source.callbacks) == 1


##########################
# --- Source adapters --- #
##########################

def test_id_token_source_sign_in_and_out(monkeypatch):
    import uploads_api.auth.sources as sources_module

    monkeypatch.setattr(
        sources_module, "verify_id_token",
        lambda token, app=None, check_revoked=False: AuthUser(uid="alice"),
    )
    source = IdTokenAuthSource()
    seen = []
    source.on_auth_state_changed(seen.append)

    source.sign_in("token")
    source.sign_out()

    assert [user.uid if user else None for user in seen] == [None, "alice", None]


def test_id_token_source_rejects_bad_token(monkeypatch):
    import uploads_api.auth.sources as sources_module

    def reject(token, app=None, check_revoked=False):
        raise AuthTokenError("expired")

    monkeypatch.setattr(sources_module, "verify_id_token", reject)
    source = IdTokenAuthSource()

    with pytest.raises(AuthTokenError):
        source.sign_in("token")
    assert source.current_user is None


def _snapshot(exists, data=None):
    snapshot = MagicMock()
    snapshot.exists = exists
    snapshot.to_dict.return_value = data
    return snapshot


def test_firestore_source_maps_snapshots():
    client = MagicMock()
    doc_ref = client.collection.return_value.document.return_value
    profiles, errors = [], []

    unsubscribe = FirestoreProfileSource(client=client).subscribe("alice", profiles.append, errors.append)

    client.collection.assert_called_once_with("users")
    client.collection.return_value.document.assert_called_once_with("alice")
    on_snapshot = doc_ref.on_snapshot.call_args.args[0]
    on_snapshot([_snapshot(True, {"displayName": "Alice", "plan": "pro"})], [], None)
    on_snapshot([_snapshot(False)], [], None)

    assert isinstance(profiles[0], UserProfile)
    assert profiles[0].uid == "alice"
    assert profiles[0].display_name == "Alice"
    assert profiles[0].model_extra["plan"] == "pro"
    assert profiles[1] is None
    assert errors == []

    unsubscribe()
    doc_ref.on_snapshot.return_value.unsubscribe.assert_called_once()


def test_profile_unsubscribe_runs_outside_session_lock(session, auth_source, profile_source):
    drained = []

    def join_snapshot_thread():
        # A snapshot thread that needs the session lock must be able to finish.
        worker = threading.Thread(target=lambda: drained.append(session.state))
        worker.start()
        worker.join(timeout=1)

    profile_source.unsubscribe_hook = join_snapshot_thread
    session.start()
    auth_source.emit(make_user("alice"))

    auth_source.emit(make_user("bob"))
    assert len(drained) == 1
    assert [s.uid for s in profile_source.active] == ["bob"]

    session.close()
    assert len(drained) == 2
    assert profile_source.active == []
