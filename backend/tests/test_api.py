"""End-to-end tests for the HTTP API."""

from unittest.mock import AsyncMock, patch

import pytest

from dailyquest.dependencies import get_identity_client
from dailyquest.exceptions import ExternalServiceError
from dailyquest.main import app
from tests.test_utils import FakeIdentityClient, make_wallet, sign, tamper


def sign_in(client, wallet=None):
    """Run the nonce/sign/confirm flow. Returns (address, token)."""
    key, address = wallet or make_wallet()
    response = client.get("/auth/challenge", params={"wallet": address})
    assert response.status_code == 200
    message = response.json()["message"]

    response = client.post(
        "/auth/confirm",
        json={"wallet": address, "signature": sign(key, message)},
    )
    assert response.status_code == 200
    return address, response.json()["sessionToken"]


class TestChallenges:
    def test_fresh_day_returns_three(self, client):
        response = client.get("/challenges")

        assert response.status_code == 200
        data = response.json()
        assert len(data) == 3
        assert set(data[0]) == {"id", "verb", "target", "amount", "reward", "badgeIndex"}
        assert [c["badgeIndex"] for c in data] == [0, 1, 2]

    def test_same_day_returns_identical_set(self, client, clock):
        first = client.get("/challenges").json()
        clock.advance(hours=3)
        second = client.get("/challenges").json()

        assert first == second

    def test_next_day_returns_new_set(self, client, clock):
        first = client.get("/challenges").json()
        clock.advance(days=1)
        second = client.get("/challenges").json()

        assert {c["id"] for c in first}.isdisjoint({c["id"] for c in second})


class TestAuth:
    def test_happy_path_links_session(self, client):
        address, token = sign_in(client)

        response = client.get("/check-session", params={"token": token})

        assert response.status_code == 200
        data = response.json()
        assert data["walletAddress"] == address
        assert "verifiedAt" in data
        assert "accessToken" not in data
        assert "error" not in data

    def test_tampered_signature_is_401(self, client):
        key, address = make_wallet()
        message = client.get("/auth/challenge", params={"wallet": address}).json()["message"]

        response = client.post(
            "/auth/confirm",
            json={"wallet": address, "signature": tamper(sign(key, message))},
        )

        assert response.status_code == 401
        assert response.json() == {"error": "Invalid signature"}
        assert client.get("/health").json()["sessionCount"] == 0

    def test_guessed_token_not_linked(self, client):
        response = client.get("/check-session", params={"token": "a" * 64})
        assert response.status_code == 200
        assert response.json() == {"error": "Not linked"}

    def test_missing_token_not_linked(self, client):
        response = client.get("/check-session")
        assert response.json() == {"error": "Not linked"}

    def test_invalid_wallet_rejected(self, client):
        response = client.get("/auth/challenge", params={"wallet": "not-a-wallet"})
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid wallet address"}

    def test_missing_wallet_rejected(self, client):
        response = client.get("/auth/challenge")
        assert response.status_code == 400
        assert "wallet" in response.json()["error"]

    def test_confirm_without_challenge_is_401(self, client):
        key, address = make_wallet()
        response = client.post(
            "/auth/confirm",
            json={"wallet": address, "signature": sign(key, "whatever")},
        )
        assert response.status_code == 401

    def test_confirm_missing_fields_is_400(self, client):
        response = client.post("/auth/confirm", json={"wallet": "abc"})
        assert response.status_code == 400
        assert "error" in response.json()

    def test_session_gone_after_rotation(self, client, clock):
        _, token = sign_in(client)
        clock.advance(days=1)

        response = client.get("/check-session", params={"token": token})

        assert response.json() == {"error": "Not linked"}

    def test_access_token_requires_identity_service(self, client):
        _, token = sign_in(client)

        with patch("dailyquest.main.send_error_alert", new_callable=AsyncMock) as alert:
            response = client.post("/auth/access-token", json={"sessionToken": token})

        assert response.status_code == 404
        assert response.json() == {"error": "Identity service not configured"}
        alert.assert_not_awaited()


class TestProgress:
    def test_progress_by_wallet(self, client):
        address, _ = sign_in(client)
        challenge = client.get("/challenges").json()[0]

        response = client.post(
            "/progress",
            json={"walletAddress": address, "challengeId": challenge["id"], "progress": 1},
        )

        assert response.status_code == 200
        assert response.json() == {"progress": {"completed": 1, "claimed": False}}

    def test_progress_by_session_token(self, client):
        _, token = sign_in(client)
        challenge = client.get("/challenges").json()[0]

        response = client.post(
            "/progress",
            json={"sessionToken": token, "challengeId": challenge["id"], "progress": 2},
        )

        assert response.status_code == 200
        assert response.json()["progress"]["completed"] == 2

    def test_progress_is_clamped(self, client):
        address, _ = sign_in(client)
        challenge = client.get("/challenges").json()[0]

        response = client.post(
            "/progress",
            json={
                "walletAddress": address,
                "challengeId": challenge["id"],
                "progress": challenge["amount"] + 10,
            },
        )

        assert response.json()["progress"]["completed"] == challenge["amount"]

    def test_unknown_challenge(self, client):
        address, _ = sign_in(client)

        response = client.post(
            "/progress",
            json={"walletAddress": address, "challengeId": "daily_0_9", "progress": 1},
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Challenge not found"}
        connect = client.post("/connect", json={"walletAddress": address}).json()
        assert connect["progress"] == {}

    def test_negative_progress_rejected(self, client):
        address, _ = sign_in(client)
        challenge = client.get("/challenges").json()[0]

        response = client.post(
            "/progress",
            json={"walletAddress": address, "challengeId": challenge["id"], "progress": -1},
        )

        assert response.status_code == 400

    def test_requires_wallet_or_token(self, client):
        challenge = client.get("/challenges").json()[0]
        response = client.post("/progress", json={"challengeId": challenge["id"], "progress": 1})
        assert response.status_code == 400
        assert response.json() == {"error": "sessionToken or walletAddress is required"}

    def test_malformed_wallet_names_the_field(self, client):
        response = client.post("/connect", json={"walletAddress": "0xdeadbeef"})
        assert response.status_code == 400
        assert response.json() == {"error": "walletAddress: Invalid wallet address"}

    def test_token_wallet_mismatch_is_401(self, client):
        _, token = sign_in(client)
        _, other = make_wallet()
        challenge = client.get("/challenges").json()[0]

        response = client.post(
            "/progress",
            json={
                "sessionToken": token,
                "walletAddress": other,
                "challengeId": challenge["id"],
                "progress": 1,
            },
        )

        assert response.status_code == 401
        assert response.json() == {"error": "Invalid session"}

    def test_connect_shows_challenges_and_progress(self, client):
        address, _ = sign_in(client)
        challenge = client.get("/challenges").json()[1]
        client.post(
            "/progress",
            json={"walletAddress": address, "challengeId": challenge["id"], "progress": 2},
        )

        response = client.post("/connect", json={"walletAddress": address})

        assert response.status_code == 200
        data = response.json()
        assert data["wallet"] == address
        assert len(data["challenges"]) == 3
        assert data["progress"] == {challenge["id"]: {"completed": 2, "claimed": False}}

    def test_connect_invalid_wallet(self, client):
        response = client.post("/connect", json={"walletAddress": "nope"})
        assert response.status_code == 400


class TestClaim:
    def test_happy_path_claim_once(self, client, rewards):
        address, token = sign_in(client)
        challenge = client.get("/challenges").json()[0]

        response = client.post(
            "/progress",
            json={
                "walletAddress": address,
                "challengeId": challenge["id"],
                "progress": challenge["amount"],
            },
        )
        assert response.json() == {
            "progress": {"completed": challenge["amount"], "claimed": False}
        }

        response = client.post("/claim", json={"walletAddress": address})
        assert response.status_code == 200
        assert response.json() == {"success": True, "reward": challenge["reward"]}
        assert rewards.calls == [(address, challenge["reward"])]

        response = client.post("/claim", json={"walletAddress": address})
        assert response.status_code == 400
        assert response.json() == {"error": "No rewards to claim"}
        assert len(rewards.calls) == 1

    def test_claim_with_no_progress(self, client, rewards):
        _, address = make_wallet()
        response = client.post("/claim", json={"walletAddress": address})

        assert response.status_code == 400
        assert response.json() == {"error": "No rewards to claim"}
        assert rewards.calls == []

    def test_payout_failure_is_502_and_retryable(self, client, rewards):
        address, _ = sign_in(client)
        challenge = client.get("/challenges").json()[0]
        client.post(
            "/progress",
            json={
                "walletAddress": address,
                "challengeId": challenge["id"],
                "progress": challenge["amount"],
            },
        )

        rewards.error = ExternalServiceError("Reward service", "HTTP 503")
        response = client.post("/claim", json={"walletAddress": address})
        assert response.status_code == 502
        assert "Reward service" in response.json()["error"]

        rewards.error = None
        response = client.post("/claim", json={"walletAddress": address})
        assert response.status_code == 200
        assert response.json()["reward"] == challenge["reward"]

    def test_claim_missing_wallet(self, client):
        response = client.post("/claim", json={})
        assert response.status_code == 400


class TestHealth:
    def test_health(self, client, clock):
        sign_in(client)
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "OK"
        assert data["sessionCount"] == 1
        assert data["lastChallengeReset"] == clock.now.isoformat()
        assert data["projectInitialized"] is False

    def test_unknown_route_uses_error_shape(self, client):
        response = client.get("/does-not-exist")
        assert response.status_code == 404
        assert response.json() == {"error": "Not Found"}


class TestIdentityIntegration:
    @pytest.fixture
    def identity(self, client):
        fake = FakeIdentityClient()
        app.dependency_overrides[get_identity_client] = lambda: fake
        return fake

    def test_access_token_attached_to_session(self, client, identity):
        address, token = sign_in(client)

        response = client.post("/auth/access-token", json={"sessionToken": token})

        assert response.status_code == 200
        assert response.json() == {"accessToken": f"access-{address[:6]}", "expiresIn": 3600}
        session = client.get("/check-session", params={"token": token}).json()
        assert session["accessToken"] == f"access-{address[:6]}"

    def test_access_token_unknown_session(self, client, identity):
        response = client.post("/auth/access-token", json={"sessionToken": "f" * 64})
        assert response.status_code == 404
        assert response.json() == {"error": "Session not found"}

    def test_progress_awards_xp(self, client, identity):
        address, _ = sign_in(client)
        challenge = client.get("/challenges").json()[0]

        client.post(
            "/progress",
            json={"walletAddress": address, "challengeId": challenge["id"], "progress": 2},
        )

        assert identity.xp == [(address, 20)]

    def test_claim_awards_badges(self, client, identity):
        address, _ = sign_in(client)
        challenge = client.get("/challenges").json()[2]
        client.post(
            "/progress",
            json={
                "walletAddress": address,
                "challengeId": challenge["id"],
                "progress": challenge["amount"],
            },
        )

        client.post("/claim", json={"walletAddress": address})

        assert identity.achievements == [(address, 2)]

    def test_health_reports_project(self, client, identity):
        assert client.get("/health").json()["projectInitialized"] is True
