"""
Wallet sign-in and session tokens.

A web client asks for a nonce message, signs it with the wallet and sends the
signature back. On success a random bearer token is minted that a second
client (the game runtime) uses to learn which wallet it is playing for.
Sessions live until the next catalog rotation.
"""

import secrets
import threading
from dataclasses import replace
from datetime import datetime, timedelta

import structlog

from dailyquest.config import settings
from dailyquest.exceptions import AuthError, SessionNotFoundError, ValidationError
from dailyquest.models.session import PendingNonce, Session
from dailyquest.services import signature_service
from dailyquest.services.catalog_service import utcnow

logger = structlog.get_logger()

TOKEN_BYTES = 32  # 64 hex characters


def build_sign_in_message(pending: PendingNonce) -> str:
    """The exact text the wallet signs. Re-derived on confirm."""
    return (
        "Sign in to Daily Quest\n"
        f"Wallet: {pending.wallet_address}\n"
        f"Nonce: {pending.nonce}\n"
        f"Issued: {pending.issued_at.isoformat()}"
    )


class SessionBroker:
    def __init__(self, nonce_ttl_seconds: int | None = None):
        self._nonce_ttl = timedelta(
            seconds=settings.nonce_ttl_seconds if nonce_ttl_seconds is None else nonce_ttl_seconds
        )
        self._lock = threading.Lock()
        self._sessions: dict[str, Session] = {}
        self._pending: dict[str, PendingNonce] = {}

    @property
    def count(self) -> int:
        return len(self._sessions)

    def issue_nonce(self, wallet: str, now: datetime | None = None) -> str:
        """Create a single-use nonce for ``wallet`` and return the message to sign."""
        if not signature_service.is_valid_wallet_address(wallet):
            raise ValidationError("Invalid wallet address")

        now = now or utcnow()
        pending = PendingNonce(
            wallet_address=wallet,
            nonce=secrets.token_hex(32),
            issued_at=now,
            expires_at=now + self._nonce_ttl,
        )

        with self._lock:
            self._sweep_expired_nonces(now)
            # A newer request supersedes any outstanding nonce for the wallet
            self._pending[wallet] = pending

        logger.info("nonce_issued", wallet=wallet, expires_at=pending.expires_at.isoformat())
        return build_sign_in_message(pending)

    def confirm(self, wallet: str, signature: str, now: datetime | None = None) -> str:
        """
        Verify the signed nonce message and mint a session token.

        The nonce is consumed whether or not verification succeeds.
        Raises AuthError on any failure; no session is created in that case.
        """
        now = now or utcnow()

        with self._lock:
            pending = self._pending.pop(wallet, None)

        if pending is None:
            logger.warning("session_confirm_failed", wallet=wallet, reason="no_pending_nonce")
            raise AuthError("No pending sign-in for this wallet")

        if now > pending.expires_at:
            logger.warning("session_confirm_failed", wallet=wallet, reason="nonce_expired")
            raise AuthError("Sign-in request expired")

        message = build_sign_in_message(pending)
        if not signature_service.verify(message, signature, wallet):
            logger.warning("session_confirm_failed", wallet=wallet, reason="bad_signature")
            raise AuthError("Invalid signature")

        session = Session(
            token=secrets.token_hex(TOKEN_BYTES),
            wallet_address=wallet,
            verified_at=now,
        )
        with self._lock:
            self._sessions[session.token] = session

        logger.info("session_confirmed", wallet=wallet)
        return session.token

    def lookup(self, token: str) -> Session:
        with self._lock:
            session = self._sessions.get(token)
        if session is None:
            raise SessionNotFoundError()
        return session

    def attach_external_token(self, token: str, external_access_token: str) -> Session:
        with self._lock:
            session = self._sessions.get(token)
            if session is None:
                raise SessionNotFoundError()
            session = replace(session, external_access_token=external_access_token)
            self._sessions[token] = session

        logger.info("external_token_attached", wallet=session.wallet_address)
        return session

    def resolve_wallet(self, session_token: str | None, wallet: str | None) -> str:
        """
        Work out which wallet a progress report is for.

        A token wins; if a wallet is also given the two must agree.
        """
        if session_token:
            try:
                session = self.lookup(session_token)
            except SessionNotFoundError:
                raise AuthError("Invalid session") from None
            if wallet and wallet != session.wallet_address:
                raise AuthError("Invalid session") from None
            return session.wallet_address

        if not wallet:
            raise ValidationError("sessionToken or walletAddress is required")
        return wallet

    def clear(self) -> None:
        """Drop every session and pending nonce. Called on rotation."""
        with self._lock:
            dropped = len(self._sessions)
            self._sessions = {}
            self._pending = {}
        logger.info("sessions_cleared", count=dropped)

    def _sweep_expired_nonces(self, now: datetime) -> None:
        expired = [w for w, p in self._pending.items() if now > p.expires_at]
        for wallet in expired:
            del self._pending[wallet]
