import random
from typing import Dict, List, Optional

from sensor_dashboard.app.utilities.telemetry import logger

UINT16_MAX = 0xFFFF

RegisterBank = Dict[int, int]


def clamp_uint16(value: int) -> int:
    return max(0, min(UINT16_MAX, int(value)))


class RegisterStore:
    """
    Holding-register memory for every simulated slave on the bus.

    Banks are created on first access and seeded with random values so a fresh
    device looks like live hardware. Reads drift the stored value by a small
    random amount and write it back, which keeps dashboard charts moving.
    """

    def __init__(self, rng: Optional[random.Random] = None, seed_count: int = 100, drift: int = 5):
        self._rng = rng or random.Random()
        self.seed_count = seed_count
        self.drift = drift
        self._banks: Dict[int, RegisterBank] = {}

    def get_or_create_bank(self, device_address: int) -> RegisterBank:
        bank = self._banks.get(device_address)
        if bank is None:
            bank = {index: self._rng.randint(0, UINT16_MAX) for index in range(self.seed_count)}
            self._banks[device_address] = bank
            logger.debug("Register bank seeded", extra={
                "component": "register_store",
                "device_address": device_address,
                "register_count": len(bank)
            })
        return bank

    def read_registers(self, device_address: int, start: int, count: int) -> List[int]:
        """Read ``count`` registers, drifting each value and persisting the result"""
        bank = self.get_or_create_bank(device_address)
        values = []
        for register in range(start, start + count):
            value = bank.get(register, 0)
            if self.drift:
                value = clamp_uint16(value + self._rng.randint(-self.drift, self.drift))
            bank[register] = value
            values.append(value)
        return values

    def peek_registers(self, device_address: int, start: int, count: int) -> List[int]:
        """Drift-free read; absent registers default to 0 and are persisted"""
        bank = self.get_or_create_bank(device_address)
        return [bank.setdefault(register, 0) for register in range(start, start + count)]

    def write_register(self, device_address: int, address: int, value: int) -> int:
        bank = self.get_or_create_bank(device_address)
        stored = clamp_uint16(value)
        bank[address] = stored
        return stored

    def preload(self, device_address: int, registers: Dict[int, int]) -> None:
        """Overlay fixed register values on a device bank"""
        bank = self.get_or_create_bank(device_address)
        for address, value in registers.items():
            bank[int(address)] = clamp_uint16(value)
        logger.info("Register bank preloaded", extra={
            "component": "register_store",
            "device_address": device_address,
            "register_count": len(registers)
        })

    def devices(self) -> List[int]:
        return sorted(self._banks)

    def __contains__(self, device_address: int) -> bool:
        return device_address in self._banks
