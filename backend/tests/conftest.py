import os

# Settings are read at import time
os.environ.setdefault("REWARD_API_URL", "http://rewards.test")
os.environ.pop("IDENTITY_API_URL", None)
os.environ.pop("DISCORD_ALERTS_WEBHOOK_URL", None)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from dailyquest.dependencies import get_identity_client, get_reward_client  # noqa: E402
from dailyquest.main import app  # noqa: E402
from dailyquest.middleware.rate_limit import limiter  # noqa: E402
from dailyquest.state import GameState, get_state  # noqa: E402
from tests.test_utils import FakeClock, FakeRewardClient  # noqa: E402


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def state(clock):
    """A fresh game state per test, driven by the fake clock."""
    return GameState(clock=clock)


@pytest.fixture
def rewards():
    return FakeRewardClient()


@pytest.fixture
def client(state, rewards):
    """Create a test client with isolated state, a fake reward service and no rate limits."""
    app.dependency_overrides[get_state] = lambda: state
    app.dependency_overrides[get_reward_client] = lambda: rewards
    app.dependency_overrides[get_identity_client] = lambda: None

    # Disable rate limiting for tests
    limiter.enabled = False

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    limiter.enabled = True
