"""
One-time password login.

Codes live in an ``OTPStore`` keyed by phone number. The in-process store is
enough for a single instance; deployments with several API instances use the
Redis store so every instance sees the same codes.
"""

import asyncio
import enum
import secrets
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, Optional

import structlog

from labflow.config import settings
from labflow.errors import OTPMismatch, OTPNotFound

logger = structlog.get_logger()


class OTPCheck(str, enum.Enum):
    OK = "ok"
    MISMATCH = "mismatch"
    MISSING = "missing"


@dataclass
class OTPEntry:
    code: str
    expires_at: float


class OTPStore(ABC):
    """Single-use, expiring codes keyed by phone"""

    @abstractmethod
    async def put(self, phone: str, code: str, ttl_seconds: int) -> None:
        """Store ``code`` for ``phone``, replacing any previous code"""
        pass

    @abstractmethod
    async def check_and_consume(self, phone: str, code: str) -> OTPCheck:
        """Compare and, on a match, delete the entry in one step"""
        pass

    async def sweep(self) -> int:
        """Evict expired entries; returns how many were removed"""
        return 0


class MemoryOTPStore(OTPStore):
    """Process-local store guarded by a lock"""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._entries: Dict[str, OTPEntry] = {}
        self._lock = threading.Lock()
        self._clock = clock

    async def put(self, phone: str, code: str, ttl_seconds: int) -> None:
        with self._lock:
            self._entries[phone] = OTPEntry(code=code, expires_at=self._clock() + ttl_seconds)

    async def check_and_consume(self, phone: str, code: str) -> OTPCheck:
        with self._lock:
            entry = self._entries.get(phone)
            if entry is None:
                return OTPCheck.MISSING
            if entry.expires_at <= self._clock():
                del self._entries[phone]
                return OTPCheck.MISSING
            if not secrets.compare_digest(entry.code.encode("utf-8"), code.encode("utf-8")):
                return OTPCheck.MISMATCH
            del self._entries[phone]
            return OTPCheck.OK

    async def sweep(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [phone for phone, entry in self._entries.items() if entry.expires_at <= now]
            for phone in expired:
                del self._entries[phone]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


# KEYS[1] = otp key, ARGV[1] = submitted code
_CHECK_AND_DELETE = """
local stored = redis.call('GET', KEYS[1])
if not stored then
    return 0
end
if stored ~= ARGV[1] then
    return 1
end
redis.call('DEL', KEYS[1])
return 2
"""


class RedisOTPStore(OTPStore):
    """Shared store; Redis expires keys and the Lua script makes verification atomic"""

    KEY_PREFIX = "otp:"

    def __init__(self, client):
        self.client = client
        self._script = client.register_script(_CHECK_AND_DELETE)

    @classmethod
    def from_url(cls, url: str) -> "RedisOTPStore":
        import redis.asyncio as redis

        return cls(redis.from_url(url, decode_responses=True))

    async def put(self, phone: str, code: str, ttl_seconds: int) -> None:
        await self.client.set(self.KEY_PREFIX + phone, code, ex=ttl_seconds)

    async def check_and_consume(self, phone: str, code: str) -> OTPCheck:
        result = await self._script(keys=[self.KEY_PREFIX + phone], args=[code])
        return {0: OTPCheck.MISSING, 1: OTPCheck.MISMATCH, 2: OTPCheck.OK}[int(result)]


def generate_code() -> str:
    return str(100000 + secrets.randbelow(900000))


class OTPAuthGate:
    """Issues and verifies login codes"""

    def __init__(self, store: OTPStore, ttl_seconds: Optional[int] = None):
        self.store = store
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.otp_ttl_seconds

    async def request(self, phone: str) -> str:
        code = generate_code()
        await self.store.put(phone, code, self.ttl_seconds)
        logger.info("OTP issued", phone_suffix=phone[-4:])
        return code

    async def verify(self, phone: str, code: str) -> None:
        result = await self.store.check_and_consume(phone, code)
        if result == OTPCheck.MISSING:
            raise OTPNotFound()
        if result == OTPCheck.MISMATCH:
            logger.warning("OTP mismatch", phone_suffix=phone[-4:])
            raise OTPMismatch()

    async def sweep_forever(self, interval_seconds: float) -> None:
        while True:
            await asyncio.sleep(interval_seconds)
            try:
                removed = await self.store.sweep()
            except Exception as e:
                logger.error("OTP sweep failed", error=str(e))
                continue
            if removed:
                logger.info("Expired OTPs swept", count=removed)


_gate: Optional[OTPAuthGate] = None


def get_otp_gate() -> OTPAuthGate:
    """Process-wide gate built from settings"""
    global _gate
    if _gate is None:
        if settings.otp_backend == "redis":
            store: OTPStore = RedisOTPStore.from_url(settings.redis_url)
        else:
            store = MemoryOTPStore()
        _gate = OTPAuthGate(store)
    return _gate
