"""Tests for the API client state machine and its endpoints."""

import copy
import threading
import unittest
from datetime import UTC, datetime

import pytest
from fakes import BASE_URL, FakeClock, FakeTransport, make_dispatcher, make_response
from test_models import SESSION_INFO_PAYLOAD, SESSION_PAYLOAD, USER_STATUS_PAYLOAD

from neos import (
    AnyClient,
    AuthenticatedClient,
    ClientStateError,
    DeserializationError,
    LoginCredentials,
    LoginIdentifier,
    Message,
    OtherRequestError,
    RequestDispatcher,
    ResponseCodeError,
    StateTransitionError,
    UnauthenticatedClient,
    UserId,
    UserSession,
)
from neos._rate_limit import RequestSpacing

CREDENTIALS = LoginCredentials(LoginIdentifier.username("Neos"), "hunter2")
AUTH_HEADER = "neos u-neos:super-secret-token"


def _session() -> UserSession:
    return UserSession.from_api(SESSION_PAYLOAD)


class ClientTestCase(unittest.TestCase):
    """Base test case with a fake transport and clock."""

    def setUp(self):
        self.clock = FakeClock()
        self.transport = FakeTransport()
        self.dispatcher = make_dispatcher(self.transport, self.clock)
        self.unauthenticated = UnauthenticatedClient(dispatcher=self.dispatcher)


# =============================================================================
# State machine
# =============================================================================


class TestLogin(ClientTestCase):
    """Tests for UnauthenticatedClient.login()."""

    def test_login_posts_credentials_and_returns_authenticated_client(self):
        self.transport.queue(make_response(200, json_body=SESSION_PAYLOAD))

        client = self.unauthenticated.login(CREDENTIALS)

        self.assertIsInstance(client, AuthenticatedClient)
        self.assertEqual(client.user_id, "u-neos")
        self.assertIs(client.dispatcher, self.dispatcher)
        request = self.transport.last_request
        self.assertEqual(request.method, "POST")
        self.assertEqual(request.url, BASE_URL + "userSessions")
        self.assertNotIn("Authorization", request.headers)
        self.assertEqual(self.transport.last_json_body()["username"], "Neos")
        self.assertEqual(self.transport.last_json_body()["password"], "hunter2")

    def test_failed_login_returns_original_client_with_error(self):
        self.transport.queue(make_response(401, body=b"Invalid credentials"))

        with self.assertRaises(StateTransitionError) as ctx:
            self.unauthenticated.login(CREDENTIALS)

        self.assertIs(ctx.exception.client, self.unauthenticated)
        self.assertIsInstance(ctx.exception.error, ResponseCodeError)
        self.assertEqual(ctx.exception.error.status, 401)
        self.assertEqual(ctx.exception.error.body, "Invalid credentials")

    def test_client_is_reusable_after_failed_login(self):
        self.transport.queue(make_response(401), make_response(200, json_body=SESSION_PAYLOAD))

        try:
            self.unauthenticated.login(CREDENTIALS)
        except StateTransitionError as e:
            client = e.client.login(CREDENTIALS)

        self.assertEqual(client.user_id, "u-neos")

    def test_malformed_session_is_deserialization_error(self):
        self.transport.queue(make_response(200, json_body={"userId": "U-Neos"}))

        with self.assertRaises(StateTransitionError) as ctx:
            self.unauthenticated.login(CREDENTIALS)

        self.assertIsInstance(ctx.exception.error, DeserializationError)

    def test_session_with_empty_token_is_deserialization_error(self):
        self.transport.queue(make_response(200, json_body={**SESSION_PAYLOAD, "token": ""}))

        with self.assertRaises(StateTransitionError) as ctx:
            self.unauthenticated.login(CREDENTIALS)

        self.assertIsInstance(ctx.exception.error, DeserializationError)

    def test_transport_failure_during_login(self):
        self.transport.queue(OtherRequestError("connection refused"))

        with self.assertRaises(StateTransitionError) as ctx:
            self.unauthenticated.login(CREDENTIALS)

        self.assertIsInstance(ctx.exception.error, OtherRequestError)


class TestUpgradeDowngrade(ClientTestCase):
    """Tests for the pure state transitions."""

    def test_upgrade_does_not_contact_api(self):
        client = self.unauthenticated.upgrade(_session())

        self.assertIsInstance(client, AuthenticatedClient)
        self.assertEqual(self.transport.requests, [])

    def test_round_trip_keeps_shared_dispatcher(self):
        downgraded = self.unauthenticated.upgrade(_session()).downgrade()

        self.assertIsInstance(downgraded, UnauthenticatedClient)
        self.assertIs(downgraded.dispatcher, self.unauthenticated.dispatcher)
        self.assertIs(downgraded.dispatcher.tracker, self.dispatcher.tracker)

    def test_downgraded_client_never_sends_authorization(self):
        authenticated = self.unauthenticated.upgrade(_session())

        downgraded = authenticated.downgrade()
        downgraded.ping()

        self.assertNotIn("Authorization", self.transport.last_request.headers)

    def test_downgrade_discards_credentials(self):
        authenticated = self.unauthenticated.upgrade(_session())

        authenticated.downgrade()

        self.assertFalse(authenticated.is_active())
        with self.assertRaises(ClientStateError):
            authenticated.ping()
        with self.assertRaises(ClientStateError):
            _ = authenticated.user_id
        self.assertNotIn("super-secret-token", repr(authenticated))

    def test_downgrade_twice_is_harmless(self):
        authenticated = self.unauthenticated.upgrade(_session())

        first = authenticated.downgrade()
        second = authenticated.downgrade()

        self.assertIs(first.dispatcher, second.dispatcher)

    def test_rate_limit_state_survives_transitions(self):
        authenticated = self.unauthenticated.upgrade(_session())
        self.transport.queue(make_response(429, headers={"Retry-After": "5"}))

        with self.assertRaises(ResponseCodeError):
            authenticated.ping()
        downgraded = authenticated.downgrade()
        downgraded.ping()

        self.assertIn(5, self.clock.sleeps)


class TestLogout(ClientTestCase):
    """Tests for AuthenticatedClient.logout() and extend_session()."""

    def setUp(self):
        super().setUp()
        self.authenticated = self.unauthenticated.upgrade(_session())

    def test_logout_deletes_session_then_downgrades(self):
        client = self.authenticated.logout()

        self.assertIsInstance(client, UnauthenticatedClient)
        request = self.transport.last_request
        self.assertEqual(request.method, "DELETE")
        self.assertEqual(request.url, BASE_URL + "userSessions/u-neos")
        self.assertEqual(request.headers["Authorization"], AUTH_HEADER)
        self.assertFalse(self.authenticated.is_active())

    def test_failed_logout_returns_authenticated_client(self):
        self.transport.queue(make_response(500, body=b"oops"))

        with self.assertRaises(StateTransitionError) as ctx:
            self.authenticated.logout()

        self.assertIs(ctx.exception.client, self.authenticated)
        self.assertEqual(ctx.exception.error.status, 500)
        self.assertTrue(self.authenticated.is_active())

    def test_extend_session(self):
        self.authenticated.extend_session()

        self.assertEqual(self.transport.last_request.method, "PATCH")
        self.assertEqual(self.transport.last_request.url, BASE_URL + "userSessions")


class TestFromSession(unittest.TestCase):
    """Tests for AuthenticatedClient.from_session()."""

    def test_creates_root_client_with_own_dispatcher(self):
        transport = FakeTransport()

        client = AuthenticatedClient.from_session(_session(), "bot/1.0", transport=transport)

        self.assertIsInstance(client.dispatcher, RequestDispatcher)
        self.assertEqual(client.user_agent, "bot/1.0")
        self.assertIs(client.dispatcher.transport, transport)


# =============================================================================
# Authorization header
# =============================================================================


class TestAuthorizationHeader(ClientTestCase):
    """Tests for credential decoration of requests."""

    def test_authenticated_requests_carry_header(self):
        client = self.unauthenticated.upgrade(_session())

        client.dispatch("GET", "sessions")

        self.assertEqual(self.transport.last_request.headers["Authorization"], AUTH_HEADER)

    def test_caller_customizer_runs_after_header(self):
        client = self.unauthenticated.upgrade(_session())
        seen: dict[str, str] = {}

        client.dispatch("GET", "sessions", lambda req: seen.update(req.headers))

        self.assertEqual(seen["Authorization"], AUTH_HEADER)

    def test_unauthenticated_requests_never_carry_header(self):
        self.unauthenticated.dispatch("GET", "sessions")

        self.assertNotIn("Authorization", self.transport.last_request.headers)


# =============================================================================
# Clones
# =============================================================================


class TestClones(ClientTestCase):
    """Tests for copies of clients."""

    def test_copies_share_dispatcher(self):
        client = self.unauthenticated.upgrade(_session())

        clone = copy.copy(client)
        deep_clone = copy.deepcopy(client)

        self.assertIsNot(clone, client)
        self.assertIs(clone.dispatcher, client.dispatcher)
        self.assertIs(deep_clone.dispatcher, client.dispatcher)

    def test_downgrading_a_clone_keeps_the_original_usable(self):
        client = self.unauthenticated.upgrade(_session())
        clone = copy.copy(client)

        clone.downgrade()

        self.assertTrue(client.is_active())
        client.ping()

    def test_concurrent_clones_respect_spacing(self):
        """Two clones dispatching from separate threads never break the spacing floor."""
        dispatcher = make_dispatcher(self.transport, min_interval=0.05)
        dispatcher.spacing = RequestSpacing(min_interval=0.05)
        client = UnauthenticatedClient(dispatcher=dispatcher).upgrade(_session())
        clones = [client, copy.copy(client)]
        slots: list[float] = []
        lock = threading.Lock()
        original = dispatcher.spacing.wait_for_turn

        def recording_wait() -> float:
            slot = original()
            with lock:
                slots.append(slot)
            return slot

        dispatcher.spacing.wait_for_turn = recording_wait

        def worker(c: AuthenticatedClient) -> None:
            for _ in range(3):
                c.ping()

        threads = [threading.Thread(target=worker, args=(c,)) for c in clones]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        slots.sort()
        self.assertEqual(len(slots), 6)
        self.assertTrue(all(b - a >= 0.05 - 1e-9 for a, b in zip(slots, slots[1:])), slots)


# =============================================================================
# AnyClient
# =============================================================================


class TestAnyClient(ClientTestCase):
    """Tests for AnyClient."""

    def test_wraps_unauthenticated(self):
        any_client = AnyClient.from_client(self.unauthenticated)

        self.assertTrue(any_client.is_unauthenticated())
        self.assertFalse(any_client.is_authenticated())
        self.assertIs(any_client.unauthenticated, self.unauthenticated)
        self.assertIsNone(any_client.authenticated)

    def test_wraps_authenticated_and_delegates_dispatch(self):
        authenticated = self.unauthenticated.upgrade(_session())
        any_client = AnyClient.from_client(authenticated)

        any_client.ping()

        self.assertTrue(any_client.is_authenticated())
        self.assertIs(any_client.authenticated, authenticated)
        self.assertIsNone(any_client.unauthenticated)
        self.assertEqual(self.transport.last_request.headers["Authorization"], AUTH_HEADER)

    def test_from_any_client_returns_it(self):
        any_client = AnyClient(self.unauthenticated)

        self.assertIs(AnyClient.from_client(any_client), any_client)

    def test_shares_dispatcher(self):
        self.assertIs(AnyClient(self.unauthenticated).dispatcher, self.dispatcher)


# =============================================================================
# Endpoints
# =============================================================================


class TestPublicEndpoints(ClientTestCase):
    """Tests for endpoints available without authentication."""

    def test_ping(self):
        self.unauthenticated.ping()

        self.assertEqual(self.transport.last_request.url, BASE_URL + "testing/ping")

    def test_online_counts_are_decoded_from_strings(self):
        self.transport.queue(make_response(200, json_body="1234"), make_response(200, json_body="56"))

        self.assertEqual(self.unauthenticated.online_user_count(), 1234)
        self.assertEqual(self.transport.last_request.url, BASE_URL + "stats/onlineUsers")
        self.assertEqual(self.unauthenticated.online_instance_count(), 56)
        self.assertEqual(self.transport.last_request.url, BASE_URL + "stats/onlineInstances")

    def test_invalid_count_is_deserialization_error(self):
        self.transport.queue(make_response(200, json_body="lots"))

        with self.assertRaises(DeserializationError):
            self.unauthenticated.online_user_count()

    def test_get_sessions(self):
        self.transport.queue(make_response(200, json_body=[SESSION_INFO_PAYLOAD]))

        sessions = self.unauthenticated.get_sessions()

        self.assertEqual([s.id for s in sessions], ["s-abc"])

    def test_get_sessions_rejects_non_list(self):
        self.transport.queue(make_response(200, json_body={"not": "a list"}))

        with self.assertRaises(DeserializationError):
            self.unauthenticated.get_sessions()

    def test_get_session(self):
        self.transport.queue(make_response(200, json_body=SESSION_INFO_PAYLOAD))

        session = self.unauthenticated.get_session("S-abc")

        self.assertEqual(session.stripped_name(), "Cool World")
        self.assertEqual(self.transport.last_request.url, BASE_URL + "sessions/s-abc")

    def test_get_user_by_id(self):
        self.transport.queue(make_response(200, json_body={"id": "U-Neos", "username": "Neos"}))

        user = self.unauthenticated.get_user("U-Neos")

        self.assertEqual(user.username, "Neos")
        self.assertEqual(self.transport.last_request.url, BASE_URL + "users/u-neos")
        self.assertEqual(self.transport.last_request.params, {"byUsername": "false"})

    def test_get_user_by_username(self):
        self.transport.queue(make_response(200, json_body={"id": "U-Neos", "username": "Neos"}))

        self.unauthenticated.get_user("Neos")

        self.assertEqual(self.transport.last_request.url, BASE_URL + "users/Neos")
        self.assertEqual(self.transport.last_request.params, {"byUsername": "true"})

    def test_get_missing_user_raises_response_code_error(self):
        self.transport.queue(make_response(404, body=b"User not found"))

        with self.assertRaises(ResponseCodeError) as ctx:
            self.unauthenticated.get_user("Nobody")

        self.assertEqual(ctx.exception.status, 404)

    def test_search_users(self):
        self.transport.queue(make_response(200, json_body=[{"id": "U-Neos", "username": "Neos"}]))

        users = self.unauthenticated.search_users("neo")

        self.assertEqual(len(users), 1)
        self.assertEqual(self.transport.last_request.params, {"name": "neo"})

    def test_get_user_status(self):
        self.transport.queue(make_response(200, json_body=USER_STATUS_PAYLOAD))

        status = self.unauthenticated.get_user_status("U-Neos")

        self.assertTrue(status.current_hosting)
        self.assertEqual(self.transport.last_request.url, BASE_URL + "users/u-neos/status")

    def test_get_group(self):
        self.transport.queue(
            make_response(200, json_body={"id": "G-Neos", "adminUserId": "U-Admin", "name": "Neos"})
        )

        group = self.unauthenticated.get_group("G-Neos")

        self.assertEqual(group.name, "Neos")
        self.assertEqual(self.transport.last_request.url, BASE_URL + "groups/g-neos")


class TestAuthenticatedEndpoints(ClientTestCase):
    """Tests for endpoints that need authentication."""

    def setUp(self):
        super().setUp()
        self.client = self.unauthenticated.upgrade(_session())

    def _friend_payload(self) -> dict:
        return {
            "id": "U-Friend",
            "friendUsername": "Friend",
            "friendStatus": "Accepted",
            "isAccepted": True,
            "userStatus": USER_STATUS_PAYLOAD,
            "ownerId": "U-Neos",
        }

    def test_get_friends(self):
        self.transport.queue(make_response(200, json_body=[self._friend_payload()]))

        friends = self.client.get_friends()

        self.assertEqual([f.username for f in friends], ["Friend"])
        self.assertEqual(self.transport.last_request.url, BASE_URL + "users/u-neos/friends")
        self.assertEqual(self.transport.last_request.params, {})

    def test_get_friends_since(self):
        self.transport.queue(make_response(200, json_body=[]))

        self.client.get_friends_for("U-Other", datetime(2021, 5, 1, tzinfo=UTC))

        self.assertEqual(self.transport.last_request.url, BASE_URL + "users/u-other/friends")
        self.assertEqual(
            self.transport.last_request.params, {"lastStatusUpdate": "2021-05-01T00:00:00Z"}
        )

    def test_add_friend(self):
        self.client.add_friend("U-Friend")

        request = self.transport.last_request
        self.assertEqual(request.method, "PUT")
        self.assertEqual(request.url, BASE_URL + "users/u-neos/friends/u-friend")
        self.assertEqual(self.transport.last_json_body(), {"ownerId": "u-neos", "friendStatus": "Accepted"})

    def test_remove_friend(self):
        self.client.remove_friend("U-Friend")

        self.assertEqual(self.transport.last_request.method, "DELETE")
        self.assertEqual(self.transport.last_json_body()["friendStatus"], "Ignored")

    def test_send_message(self):
        message = Message.new_text(self.client.user_id, UserId("U-Friend"), "Hi!")

        self.client.send_message(message)

        request = self.transport.last_request
        self.assertEqual(request.method, "POST")
        self.assertEqual(request.url, BASE_URL + "users/u-friend/messages")
        self.assertEqual(self.transport.last_json_body()["content"], "Hi!")

    def test_get_messages_defaults(self):
        self.transport.queue(make_response(200, json_body=[]))

        self.assertEqual(self.client.get_messages(), [])

        self.assertEqual(self.transport.last_request.url, BASE_URL + "users/u-neos/messages")
        self.assertEqual(self.transport.last_request.params, {"maxItems": "100"})

    def test_get_messages_with_invalid_id_is_deserialization_error(self):
        self.transport.queue(
            make_response(
                200,
                json_body=[
                    {
                        "id": "not-a-msg-id",
                        "ownerId": "U-Neos",
                        "senderId": "U-Friend",
                        "recipientId": "U-Neos",
                        "messageType": "Text",
                        "content": "Hello",
                        "sendTime": "2021-05-01T12:00:00Z",
                        "lastUpdateTime": "2021-05-01T12:00:00Z",
                    }
                ],
            )
        )

        with self.assertRaises(DeserializationError):
            self.client.get_messages()

    def test_get_messages_filters(self):
        self.transport.queue(make_response(200, json_body=[]))

        self.client.get_messages(
            max_amount=10,
            unread_only=True,
            from_time=datetime(2021, 5, 1, tzinfo=UTC),
            with_user="U-Friend",
        )

        self.assertEqual(
            self.transport.last_request.params,
            {
                "maxItems": "10",
                "unread": "true",
                "fromTime": "2021-05-01T00:00:00Z",
                "user": "u-friend",
            },
        )


@pytest.mark.parametrize("status", [401, 403])
def test_authenticated_endpoint_auth_failures_surface_status(status):
    transport = FakeTransport(make_response(status, body=b"Unauthorized"))
    client = UnauthenticatedClient(dispatcher=make_dispatcher(transport)).upgrade(_session())

    with pytest.raises(ResponseCodeError) as exc_info:
        client.get_friends()

    assert exc_info.value.status == status
