"""Behavioural task variants driving the trial record."""

from __future__ import annotations

import math
from typing import Dict, Optional, Type

import numpy as np

from mousevr.context import SessionContext
from mousevr.protocols import Vec3
from mousevr.trial import Choice, TrialState, ZoneEvent
from mousevr.utils._logger import get_logger

logger = get_logger(__name__)

__all__ = [
    "AlternationTask",
    "AvoidanceTask",
    "Task",
    "TaskController",
    "TASKS",
    "delay_from_uniform",
    "sample_delay",
]

DELAY_OFFSET_S = 10.0
DELAY_SCALE_S = 10.0
DELAY_CAP_S = 20.0

CUE_OBJECT = "cue"
CUE_HIDDEN = Vec3(0.0, -2.0, 0.0)


def delay_from_uniform(r: float) -> float:
    """Map a uniform draw in ``[0, 1)`` to a foreperiod in seconds.

    Inverse-transform sampling of an exponential tail shifted by 10 s and
    capped at 20 s. ``r == 0`` would give an infinite delay, so it is
    replaced by the smallest positive double.
    """
    if r <= 0.0:
        r = math.ulp(0.0)
    return min(DELAY_OFFSET_S - DELAY_SCALE_S * math.log(r), DELAY_CAP_S)


def sample_delay(rng: Optional[np.random.Generator] = None) -> float:
    rng = rng if rng is not None else np.random.default_rng()
    return delay_from_uniform(float(rng.random()))


class Task:
    """Transition table operating on the shared :class:`SessionContext`."""

    name = ""

    def __init__(self, context: SessionContext, **options) -> None:
        self.context = context
        self.options = options

    @property
    def record(self):
        return self.context.record

    def begin(self) -> None:
        """Called once the session has been armed (state ``START``)."""

    def tick(self) -> None:
        """Called once per control-loop tick."""

    def on_zone(self, event: ZoneEvent) -> None:
        raise NotImplementedError


class AlternationTask(Task):
    """T-maze style alternation: the rewarded door flips every trial."""

    name = "alternation"

    def on_zone(self, event: ZoneEvent) -> None:
        record = self.record
        zone = event.object_id
        if record.state == TrialState.START:
            if zone.startswith("l") or zone.startswith("r"):
                record.choice = Choice.LEFT if zone.startswith("l") else Choice.RIGHT
                if record.target == Choice.NONE or record.target == record.choice:
                    record.state = TrialState.SUCCESS
                    record.correct += 1
                    record.reward_ul += self.context.parameters.reward_amount_ul
                    self.context.device.reward()
                else:
                    record.state = TrialState.FAILURE
                self.context.log_trial()
        elif zone.startswith("e"):
            record.state = TrialState.START
            record.target = record.choice.opposite()
            self.context.log_trial()
            self.context.print_summary()

            self.context.world.teleport(self.options.get("start_waypoint", "10"))
            record.trial += 1

            if record.trial >= self.context.parameters.n_trial:
                self.context.request_quit("trial budget reached")


class AvoidanceTask(Task):
    """Cue-triggered avoidance.

    Each cycle waits a random foreperiod (``DELAY``), then shows the cue
    (``CUE``). Reaching the target before ``punishment_latency`` elapses is a
    success; otherwise punishment runs until ``punishment_duration`` after
    cue onset (``FAILURE`` then ``FAILURE_END``) and a new cycle starts.
    """

    name = "avoidance"

    def __init__(self, context: SessionContext, **options) -> None:
        super().__init__(context, **options)
        self.punishment_latency = float(options.get("punishment_latency", 2.0))
        self.punishment_duration = float(options.get("punishment_duration", 6.0))
        self.rng: Optional[np.random.Generator] = options.get("rng")
        self.delay_duration: Optional[float] = None

    def begin(self) -> None:
        self.tick()

    def tick(self) -> None:
        if self.record.state == TrialState.START:
            self.start_delay()

    def on_zone(self, event: ZoneEvent) -> None:
        record = self.record
        zone = event.object_id
        if zone.startswith("target"):
            if record.state == TrialState.CUE:
                record.state = TrialState.SUCCESS
                record.correct += 1
            else:
                record.state = TrialState.OTHER
            self.cue_off()
            self.context.device.punishment_off()
            self.context.log_trial()
            self.context.print_summary()
            self.start_delay()
        elif zone.startswith("end"):
            self.cue_off()
            self.context.device.punishment_off()
            self.start_delay()
            self.context.world.teleport(self.options.get("origin_waypoint", "0"))

    # cycle -------------------------------------------------------------
    def start_delay(self) -> None:
        # a restarted cycle owns the cue; drop whatever the previous one left queued
        scheduler = self.context.scheduler
        for name in ("cue_on", "check_success", "check_failure"):
            scheduler.cancel(name)
        record = self.record
        record.state = TrialState.DELAY
        record.trial += 1
        self.context.log_trial()
        self.delay_duration = sample_delay(self.rng)
        logger.info("Delay duration: %.3f s", self.delay_duration)
        scheduler.schedule("cue_on", self.delay_duration, self.cue_on)

    def cue_on(self) -> None:
        if self.record.state != TrialState.DELAY:
            return
        self.record.state = TrialState.CUE
        scheduler = self.context.scheduler
        scheduler.schedule("check_success", self.punishment_latency, self.check_success)
        scheduler.schedule("check_failure", self.punishment_duration, self.check_failure)
        current = self.context.world.get_position()
        self.context.world.move_object(CUE_OBJECT, Vec3(0.0, 0.0, current.z))
        self.context.log_trial()

    def cue_off(self) -> None:
        self.context.world.move_object(CUE_OBJECT, CUE_HIDDEN)

    def check_success(self) -> None:
        if self.record.state == TrialState.CUE:
            self.record.state = TrialState.FAILURE
            self.context.device.punishment_on()
            self.context.log_trial()

    def check_failure(self) -> None:
        if self.record.state == TrialState.FAILURE:
            self.record.state = TrialState.FAILURE_END
            self.cue_off()
            self.context.device.punishment_off()
            self.context.log_trial()
            self.context.print_summary()
            self.start_delay()


TASKS: Dict[str, Type[Task]] = {
    AlternationTask.name: AlternationTask,
    AvoidanceTask.name: AvoidanceTask,
}


class TaskController:
    """Own the trial record for one session and route events to its task.

    Not thread-safe: every call is expected from the control loop.
    """

    def __init__(self, context: SessionContext, **options) -> None:
        self.context = context
        task_name = context.parameters.task.strip().lower()
        task_class = TASKS.get(task_name)
        self.task: Optional[Task] = task_class(context, **options) if task_class else None
        if self.task is None:
            logger.warning("Unknown task '%s'; zone events will be ignored", context.parameters.task)

    @property
    def record(self):
        return self.context.record

    def start_session(self) -> None:
        self.context.log_parameters()
        self.reset()
        self.record.state = TrialState.START
        if self.task is not None:
            self.task.begin()

    def reset(self) -> None:
        self.record.reset()

    def tick(self) -> None:
        if self.task is not None:
            self.task.tick()

    def on_zone(self, event: Optional[ZoneEvent]) -> None:
        if event is None or not event.trigger:
            return
        self.record.note = event.name or event.object_id
        if self.task is None:
            logger.debug("Ignoring zone %s; no task loaded", event.object_id)
            return
        self.task.on_zone(event)
