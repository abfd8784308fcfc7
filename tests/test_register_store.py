import random

import pytest

from sensor_dashboard.app.core.register_store import RegisterStore, UINT16_MAX, clamp_uint16


@pytest.fixture
def store() -> RegisterStore:
    return RegisterStore(random.Random(7), seed_count=100, drift=5)


def test_first_access_seeds_bank(store: RegisterStore) -> None:
    assert 4 not in store
    bank = store.get_or_create_bank(4)
    assert sorted(bank) == list(range(100))
    assert all(0 <= value <= UINT16_MAX for value in bank.values())
    assert store.devices() == [4]


def test_first_read_of_unseen_device_returns_values_in_range(store: RegisterStore) -> None:
    values = store.read_registers(9, 0, 10)
    assert len(values) == 10
    assert all(0 <= value <= UINT16_MAX for value in values)
    bank = store.get_or_create_bank(9)
    assert all(index in bank for index in range(10))


def test_read_persists_drifted_values(store: RegisterStore) -> None:
    first = store.read_registers(1, 0, 5)
    bank = store.get_or_create_bank(1)
    assert [bank[i] for i in range(5)] == first


def test_write_then_read_stays_within_drift(store: RegisterStore) -> None:
    store.write_register(1, 0x10, 1234)
    value = store.read_registers(1, 0x10, 1)[0]
    assert abs(value - 1234) <= 5


def test_read_drift_is_clamped_at_the_top(store: RegisterStore) -> None:
    store.write_register(2, 3, UINT16_MAX)
    for _ in range(20):
        assert store.read_registers(2, 3, 1)[0] <= UINT16_MAX


def test_read_drift_is_clamped_at_zero(store: RegisterStore) -> None:
    store.write_register(2, 3, 0)
    for _ in range(20):
        assert store.read_registers(2, 3, 1)[0] >= 0


def test_absent_register_reads_near_zero_and_is_persisted(store: RegisterStore) -> None:
    value = store.read_registers(1, 500, 1)[0]
    assert 0 <= value <= 5
    assert store.get_or_create_bank(1)[500] == value


def test_zero_drift_makes_reads_pure() -> None:
    store = RegisterStore(random.Random(1), drift=0)
    first = store.read_registers(1, 0, 8)
    assert store.read_registers(1, 0, 8) == first


def test_peek_does_not_drift_and_persists_defaults(store: RegisterStore) -> None:
    store.write_register(3, 7, 4000)
    assert store.peek_registers(3, 7, 1) == [4000]
    assert store.peek_registers(3, 7, 1) == [4000]
    assert store.peek_registers(3, 1000, 2) == [0, 0]
    assert store.get_or_create_bank(3)[1001] == 0


@pytest.mark.parametrize("value,expected", [(70000, UINT16_MAX), (-3, 0), (42, 42)])
def test_write_clamps_to_uint16(store: RegisterStore, value: int, expected: int) -> None:
    assert store.write_register(1, 0, value) == expected
    assert store.peek_registers(1, 0, 1) == [expected]


def test_preload_overrides_seed_values(store: RegisterStore) -> None:
    store.preload(5, {0: 215, "1": 480})
    assert store.peek_registers(5, 0, 2) == [215, 480]


def test_clamp_uint16() -> None:
    assert clamp_uint16(-1) == 0
    assert clamp_uint16(65536) == 65535
    assert clamp_uint16(12) == 12
