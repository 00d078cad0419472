"""Shared fixtures for nodessh tests."""

import asyncio
import random

import pytest

from nodessh.types import SessionConfig


class Gauge:
    """Tracks how many calls are in flight and the highest count seen."""

    def __init__(self):
        self.current = 0
        self.peak = 0

    async def hold(self, seconds):
        self.current += 1
        self.peak = max(self.peak, self.current)
        try:
            await asyncio.sleep(seconds)
        finally:
            self.current -= 1


class FakeChannel:
    """In-memory channel that replays output and returns a fixed status."""

    def __init__(self, config, exit_status=0, output=(), open_error=None,
                 exec_error=None, delay=None, open_gauge=None, exec_gauge=None):
        self.config = config
        self.name = config.endpoint
        self.exit_status = exit_status
        self.output = list(output)
        self.open_error = open_error
        self.exec_error = exec_error
        self.delay = delay
        self.open_gauge = open_gauge
        self.exec_gauge = exec_gauge
        self.opened = False
        self.closed = False
        self.commands = []

    async def open(self):
        if self.open_gauge is None:
            await asyncio.sleep(0)
        else:
            await self.open_gauge.hold(0.005)
        if self.open_error is not None:
            raise self.open_error
        self.opened = True

    async def exec(self, command, on_data):
        self.commands.append(command)
        delay = random.uniform(0, 0.01) if self.delay is None else self.delay
        if self.exec_gauge is None:
            await asyncio.sleep(delay)
        else:
            await self.exec_gauge.hold(delay)
        if self.exec_error is not None:
            raise self.exec_error
        for line in self.output:
            on_data(self.name, line)
        return self.exit_status

    async def close(self):
        self.closed = True


@pytest.fixture
def make_channel():
    """Factory for fake channels keyed by endpoint."""

    def factory(endpoint, **kwargs):
        return FakeChannel(SessionConfig(endpoint=endpoint), **kwargs)

    return factory


@pytest.fixture
def fake_channel_cls():
    """The FakeChannel class, for tests that plug in their own factory."""
    return FakeChannel


@pytest.fixture
def gauge():
    """A fresh in-flight call counter."""
    return Gauge()
