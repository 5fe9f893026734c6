#!/usr/bin/env python3
"""
Smoke test for Daily Quest deployments.

Walks the player flow against a running server with a throwaway wallet:

1. Health check
2. Today's challenges
3. Sign-in nonce, signed with an ephemeral Ed25519 key
4. Session confirm + check-session
5. Progress to completion on one challenge
6. Claim (optional via --skip-claim, since it pays out for real)
7. Second claim must report "No rewards to claim"

Usage:
    ./scripts/smoke-test.py https://staging.example.com
    ./scripts/smoke-test.py https://staging.example.com --health-only
"""

import argparse
import sys
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import base58
import httpx
from nacl.signing import SigningKey

DEFAULT_TIMEOUT_SECONDS = 30.0
BODY_PREVIEW_CHARS = 200


def log(msg: str) -> None:
    """Print timestamped log message."""
    print(f"[{datetime.now().strftime('%H:%M:%S')}] {msg}", flush=True)


class StepError(RuntimeError):
    pass


@dataclass
class SmokeContext:
    client: httpx.Client
    signing_key: SigningKey = field(default_factory=SigningKey.generate)
    session_token: str | None = None
    challenge: dict[str, Any] | None = None

    @property
    def wallet(self) -> str:
        return base58.b58encode(bytes(self.signing_key.verify_key)).decode()

    def sign(self, message: str) -> str:
        return base58.b58encode(self.signing_key.sign(message.encode()).signature).decode()


def expect(response: httpx.Response, status_code: int = 200) -> Any:
    if response.status_code != status_code:
        preview = response.text[:BODY_PREVIEW_CHARS]
        raise StepError(
            f"{response.request.method} {response.request.url.path} "
            f"returned {response.status_code} (expected {status_code}): {preview}"
        )
    return response.json()


def step_health(ctx: SmokeContext) -> None:
    data = expect(ctx.client.get("/health"))
    if data.get("status") != "OK":
        raise StepError(f"Unexpected health status: {data}")


def step_challenges(ctx: SmokeContext) -> None:
    first = expect(ctx.client.get("/challenges"))
    second = expect(ctx.client.get("/challenges"))
    if len(first) != 3:
        raise StepError(f"Expected 3 challenges, got {len(first)}")
    if [c["id"] for c in first] != [c["id"] for c in second]:
        raise StepError("Challenge set changed between two calls on the same day")
    ctx.challenge = min(first, key=lambda c: c["amount"])


def step_sign_in(ctx: SmokeContext) -> None:
    message = expect(ctx.client.get("/auth/challenge", params={"wallet": ctx.wallet}))["message"]
    data = expect(
        ctx.client.post(
            "/auth/confirm",
            json={"wallet": ctx.wallet, "signature": ctx.sign(message)},
        )
    )
    ctx.session_token = data["sessionToken"]


def step_tampered_sign_in(ctx: SmokeContext) -> None:
    message = expect(ctx.client.get("/auth/challenge", params={"wallet": ctx.wallet}))["message"]
    expect(
        ctx.client.post(
            "/auth/confirm",
            json={"wallet": ctx.wallet, "signature": ctx.sign(message + "x")},
        ),
        401,
    )


def step_check_session(ctx: SmokeContext) -> None:
    data = expect(ctx.client.get("/check-session", params={"token": ctx.session_token}))
    if data.get("walletAddress") != ctx.wallet:
        raise StepError(f"Session not linked to our wallet: {data}")


def step_progress(ctx: SmokeContext) -> None:
    data = expect(
        ctx.client.post(
            "/progress",
            json={
                "sessionToken": ctx.session_token,
                "challengeId": ctx.challenge["id"],
                "progress": ctx.challenge["amount"] + 1,
            },
        )
    )
    if data["progress"] != {"completed": ctx.challenge["amount"], "claimed": False}:
        raise StepError(f"Progress not clamped to amount: {data}")


def step_claim(ctx: SmokeContext) -> None:
    data = expect(ctx.client.post("/claim", json={"walletAddress": ctx.wallet}))
    if data != {"success": True, "reward": ctx.challenge["reward"]}:
        raise StepError(f"Unexpected claim result: {data}")
    data = expect(ctx.client.post("/claim", json={"walletAddress": ctx.wallet}), 400)
    if data.get("error") != "No rewards to claim":
        raise StepError(f"Second claim should be a no-op: {data}")


def run(base_url: str, health_only: bool, skip_claim: bool) -> int:
    steps: list[tuple[str, Callable[[SmokeContext], None]]] = [("health", step_health)]
    if not health_only:
        steps += [
            ("challenges", step_challenges),
            ("tampered sign-in rejected", step_tampered_sign_in),
            ("sign-in", step_sign_in),
            ("check-session", step_check_session),
            ("progress", step_progress),
        ]
        if not skip_claim:
            steps.append(("claim", step_claim))

    with httpx.Client(base_url=base_url.rstrip("/"), timeout=DEFAULT_TIMEOUT_SECONDS) as client:
        ctx = SmokeContext(client=client)
        log(f"Smoke testing {base_url} as {ctx.wallet}")
        for name, step in steps:
            started = time.perf_counter()
            try:
                step(ctx)
            except (StepError, httpx.HTTPError) as e:
                log(f"FAIL {name}: {e}")
                return 1
            log(f"ok   {name} ({(time.perf_counter() - started) * 1000:.0f} ms)")

    log("All steps passed")
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Daily Quest deployment smoke test")
    parser.add_argument("base_url")
    parser.add_argument("--health-only", action="store_true")
    parser.add_argument("--skip-claim", action="store_true", help="do not trigger a real payout")
    args = parser.parse_args()
    sys.exit(run(args.base_url, args.health_only, args.skip_claim))


if __name__ == "__main__":
    main()
