from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Literal

PipelineMode = Literal["plan", "ask"]
PipelineStatus = Literal["ok", "error"]


class Metrics(ABC):
    @abstractmethod
    def observe_stage_duration_ms(self, *, stage: str, dt_ms: float) -> None: ...

    @abstractmethod
    def inc_pipeline_run(self, *, mode: PipelineMode, status: PipelineStatus) -> None: ...

    @abstractmethod
    def inc_stage_call(self, *, stage: str, ok: bool) -> None: ...

    @abstractmethod
    def inc_stage_error(self, *, stage: str, error_code: str) -> None: ...
