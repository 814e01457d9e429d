"""Shared fixtures: controllable clocks and scripted transports."""

import asyncio

import pytest


class FakeClock:
    """Manually advanced clock. Returns whatever unit the caller works in."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, amount: float) -> None:
        self.now += amount


class ScriptedTransport:
    """
    Transport that replays a list of outcomes.

    Exceptions in the script are raised, anything else is returned. The last
    item repeats once the script runs out. When ``gate`` is set, every call
    waits for it before answering.
    """

    def __init__(self, *outcomes, gate: asyncio.Event = None):
        self.outcomes = list(outcomes) or [{}]
        self.calls = []
        self.gate = gate

    async def __call__(self, descriptor):
        self.calls.append(descriptor)
        if self.gate is not None:
            await self.gate.wait()
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def no_sleep():
    """Retry sleep that records delays instead of waiting."""
    delays = []

    async def sleep(seconds):
        delays.append(seconds)

    sleep.delays = delays
    return sleep
