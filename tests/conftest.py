from __future__ import annotations

from typing import Any, Optional

import numpy as np
import pytest

from mousevr.channel.inbound import MessageChannel
from mousevr.context import SessionContext
from mousevr.io.logsink import TrialLogSink
from mousevr.io.world import LoggingWorld
from mousevr.protocols import Vec3
from mousevr.scheduler import DeferredScheduler
from mousevr.trial import SessionParameters


class FakeClock:
    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


class RecordingOutput:
    def __init__(self) -> None:
        self.codes: list[str] = []

    def reward(self) -> None:
        self.codes.append("r")

    def punishment_on(self) -> None:
        self.codes.append("p")

    def punishment_off(self) -> None:
        self.codes.append("0")


def make_context(
    task: str = "alternation",
    *,
    n_trial: int = 100,
    reward_amount_ul: int = 10,
    clock: Optional[FakeClock] = None,
    **extra: Any,
) -> SessionContext:
    params = SessionParameters(
        subject="m01",
        task=task,
        n_trial=n_trial,
        reward_amount_ul=reward_amount_ul,
        note="",
    )
    world = LoggingWorld(waypoints={"10": Vec3(0.0, 0.0, 1.0), "0": Vec3(0.0, 0.0, 0.0)})
    return SessionContext(
        parameters=params,
        world=world,
        channel=MessageChannel(),
        scheduler=DeferredScheduler(clock or FakeClock()),
        sink=TrialLogSink(),
        device=RecordingOutput(),
        **extra,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(1234)


@pytest.fixture
def make_ctx(clock: FakeClock):
    def factory(task: str = "alternation", **kwargs: Any) -> SessionContext:
        kwargs.setdefault("clock", clock)
        return make_context(task, **kwargs)

    return factory
