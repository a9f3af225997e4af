"""OTP login tests"""

import pytest

from labflow.errors import OTPMismatch, OTPNotFound
from labflow.services.otp import MemoryOTPStore, OTPAuthGate, OTPCheck, generate_code


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def gate(clock):
    return OTPAuthGate(MemoryOTPStore(clock=clock), ttl_seconds=300)


def wrong_code(code: str) -> str:
    return "111111" if code != "111111" else "222222"


def test_generated_codes_are_six_digits():
    for _ in range(200):
        code = generate_code()
        assert len(code) == 6
        assert 100000 <= int(code) <= 999999


@pytest.mark.asyncio
async def test_wrong_code_then_right_code_once(gate):
    phone = "+919999999999"
    code = await gate.request(phone)

    with pytest.raises(OTPMismatch):
        await gate.verify(phone, wrong_code(code))

    await gate.verify(phone, code)

    with pytest.raises(OTPNotFound):
        await gate.verify(phone, code)


@pytest.mark.asyncio
async def test_unknown_phone(gate):
    with pytest.raises(OTPNotFound):
        await gate.verify("+910000000000", "123456")


@pytest.mark.asyncio
async def test_new_request_replaces_previous_code(gate, clock):
    phone = "+919999999999"
    first = await gate.request(phone)
    second = await gate.request(phone)

    if first != second:
        with pytest.raises(OTPMismatch):
            await gate.verify(phone, first)
    await gate.verify(phone, second)


@pytest.mark.asyncio
async def test_expired_code_is_missing_without_sweep(gate, clock):
    phone = "+919999999999"
    code = await gate.request(phone)
    assert len(gate.store) == 1

    clock.advance(301)

    with pytest.raises(OTPNotFound):
        await gate.verify(phone, code)


@pytest.mark.asyncio
async def test_code_valid_until_expiry(gate, clock):
    phone = "+919999999999"
    code = await gate.request(phone)

    clock.advance(299)
    await gate.verify(phone, code)


@pytest.mark.asyncio
async def test_replacement_restarts_expiry(gate, clock):
    phone = "+919999999999"
    await gate.request(phone)
    clock.advance(200)
    code = await gate.request(phone)
    clock.advance(200)

    await gate.verify(phone, code)


@pytest.mark.asyncio
async def test_sweep_evicts_only_expired(clock):
    store = MemoryOTPStore(clock=clock)
    await store.put("+911111111111", "123456", 60)
    await store.put("+912222222222", "654321", 600)

    clock.advance(120)
    removed = await store.sweep()

    assert removed == 1
    assert len(store) == 1
    assert await store.check_and_consume("+912222222222", "654321") == OTPCheck.OK


@pytest.mark.asyncio
async def test_mismatch_keeps_entry(clock):
    store = MemoryOTPStore(clock=clock)
    await store.put("+911111111111", "123456", 60)

    assert await store.check_and_consume("+911111111111", "000000") == OTPCheck.MISMATCH
    assert await store.check_and_consume("+911111111111", "123456") == OTPCheck.OK
    assert await store.check_and_consume("+911111111111", "123456") == OTPCheck.MISSING


@pytest.mark.asyncio
async def test_non_ascii_digits_are_a_mismatch(gate):
    phone = "+919999999999"
    code = await gate.request(phone)

    with pytest.raises(OTPMismatch):
        await gate.verify(phone, "١٢٣٤٥٦")

    await gate.verify(phone, code)
