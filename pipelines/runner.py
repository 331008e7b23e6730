from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Protocol, List, Optional

from utils.logging_setup import init_logging


logger = logging.getLogger(__name__)


class PipelineCancelled(Exception):
    """Raised when a run is cancelled at a step or batch boundary."""


@dataclass
class RunContext:
    user_id: Optional[str] = None
    filename: Optional[str] = None
    members: list = field(default_factory=list)
    parsed_files: list = field(default_factory=list)
    contacts: list = field(default_factory=list)
    profiles: list = field(default_factory=list)
    meta: dict = field(default_factory=dict)
    cancel_event: threading.Event = field(default_factory=threading.Event)

    def check_cancelled(self) -> None:
        if self.cancel_event.is_set():
            raise PipelineCancelled(f"Run cancelled for user {self.user_id}")


class Step(Protocol):
    def run(self, ctx: RunContext) -> RunContext:
        ...


class Pipeline:
    def __init__(self, steps: List[Step]):
        self.steps = steps

    def run(self, ctx: RunContext) -> RunContext:
        # Make logging idempotent for any direct runner use
        init_logging()
        for step in self.steps:
            ctx.check_cancelled()
            name = type(step).__name__
            t0 = time.time()
            ctx = step.run(ctx)
            logger.debug(
                f"{name} done",
                extra={"step": name, "status": "ok", "duration_ms": int((time.time() - t0) * 1000)},
            )
        return ctx
