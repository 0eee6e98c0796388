"""
Administrator authentication.

Accounts are configuration (username, salt, hash) keyed by username. Two hash
formats are understood:
- passlib modular crypt strings ("$scrypt$..."), produced by `hash_password`
- bare hex scrypt digests (N=16384, r=8, p=1, 64 bytes) over the account's
  fixed salt, as written by the first deployment

Sessions live in a process-local store; the browser only holds a signed token
naming the session id, so logout and expiry are enforced server side.
"""
import hashlib
import hmac
import logging
import secrets
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Mapping, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from detecporc.errors import InvalidCredentialsError, UnauthorizedError
from detecporc.schemas import AdminAccount, AdminSession

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
SCRYPT_N = 16384
SCRYPT_R = 8
SCRYPT_P = 1
SCRYPT_KEYLEN = 64

pwd_context = CryptContext(schemes=["scrypt"], scrypt__rounds=14)

# compared against when the username is unknown, so both failures cost one derivation
_DUMMY_ACCOUNT = AdminAccount.model_construct(
    username="", salt="detecporc-dummy-salt", password_hash="00" * SCRYPT_KEYLEN
)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def scrypt_hex(password: str, salt: str) -> str:
    return hashlib.scrypt(
        password.encode("utf-8"),
        salt=salt.encode("utf-8"),
        n=SCRYPT_N,
        r=SCRYPT_R,
        p=SCRYPT_P,
        dklen=SCRYPT_KEYLEN,
    ).hex()


def verify_password(password: str, account: AdminAccount) -> bool:
    if pwd_context.identify(account.password_hash, required=False):
        return pwd_context.verify(password, account.password_hash)

    candidate = bytes.fromhex(scrypt_hex(password, account.salt))
    try:
        stored = bytes.fromhex(account.password_hash)
    except ValueError:
        stored = b""
    return hmac.compare_digest(candidate, stored)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionStore:
    """Process-local admin sessions with a fixed time to live."""

    def __init__(self, ttl: timedelta, clock: Callable[[], datetime] = _utcnow):
        self.ttl = ttl
        self.clock = clock
        self._sessions: Dict[str, AdminSession] = {}
        self._lock = threading.Lock()

    def open(self, username: str) -> AdminSession:
        now = self.clock()
        session = AdminSession(
            sid=secrets.token_urlsafe(32),
            username=username,
            is_admin=True,
            issued_at=now,
            expires_at=now + self.ttl,
        )
        with self._lock:
            self._sessions[session.sid] = session
        return session

    def get(self, sid: str) -> Optional[AdminSession]:
        with self._lock:
            session = self._sessions.get(sid)
            if session is None:
                return None
            if session.expires_at <= self.clock():
                del self._sessions[sid]
                return None
            return session

    def destroy(self, sid: str) -> None:
        with self._lock:
            self._sessions.pop(sid, None)

    def purge_expired(self) -> int:
        now = self.clock()
        with self._lock:
            expired = [sid for sid, s in self._sessions.items() if s.expires_at <= now]
            for sid in expired:
                del self._sessions[sid]
        return len(expired)

    def __len__(self) -> int:
        return len(self._sessions)


class AuthGate:
    def __init__(self, accounts: Mapping[str, AdminAccount], sessions: SessionStore, secret: str):
        self.accounts = dict(accounts)
        self.sessions = sessions
        self.secret = secret

    def verify(self, username, password) -> bool:
        if not isinstance(username, str) or not isinstance(password, str):
            return False
        account = self.accounts.get(username)
        matched = verify_password(password, account or _DUMMY_ACCOUNT)
        return account is not None and matched

    def login(self, username, password) -> AdminSession:
        if not self.verify(username, password):
            logger.warning("Failed admin login for %r", username)
            raise InvalidCredentialsError("login failed")
        self.sessions.purge_expired()
        session = self.sessions.open(username)
        logger.info("Admin %s logged in", username)
        return session

    def logout(self, session: Optional[AdminSession]) -> None:
        if session is not None:
            self.sessions.destroy(session.sid)
            logger.info("Admin %s logged out", session.username)

    def require_admin(self, session: Optional[AdminSession]) -> AdminSession:
        if session is None or not session.is_admin:
            raise UnauthorizedError("admin session required")
        return session

    # Cookie tokens

    def issue_token(self, session: AdminSession) -> str:
        claims = {"sub": session.username, "sid": session.sid, "exp": session.expires_at}
        return jwt.encode(claims, self.secret, algorithm=ALGORITHM)

    def session_from_token(self, token: Optional[str]) -> Optional[AdminSession]:
        """Resolve a cookie token to its live session, None when invalid, expired or destroyed."""
        if not token:
            return None
        try:
            payload = jwt.decode(token, self.secret, algorithms=[ALGORITHM])
        except JWTError:
            return None
        sid = payload.get("sid")
        if not sid:
            return None
        session = self.sessions.get(sid)
        if session is None or session.username != payload.get("sub"):
            return None
        return session
