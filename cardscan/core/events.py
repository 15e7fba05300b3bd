"""
Structured events emitted by the pipeline stages.

Stages never print on their own; they hand a PipelineEvent to whatever sink the
caller supplied. With debug on and no sink, events go to stdout with the usual
bracketed stage tag.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional


@dataclass
class PipelineEvent:
    stage: str
    message: str
    data: Dict[str, Any] = field(default_factory=dict)

    def format(self) -> str:
        extra = " ".join(f"{k}={_fmt(v)}" for k, v in self.data.items())
        return f"[{self.stage}] {self.message}" + (f" {extra}" if extra else "")


EventSink = Callable[[PipelineEvent], None]


def _fmt(v: Any) -> str:
    if isinstance(v, float):
        return f"{v:.3f}"
    return str(v)


def print_sink(event: PipelineEvent) -> None:
    print(event.format())


def null_sink(event: PipelineEvent) -> None:
    return None


class EventLog:
    """Sink that keeps every event; handy for tests and the visualizer."""

    def __init__(self) -> None:
        self.events: List[PipelineEvent] = []

    def __call__(self, event: PipelineEvent) -> None:
        self.events.append(event)

    def stages(self) -> List[str]:
        return [e.stage for e in self.events]

    def by_stage(self, stage: str) -> List[PipelineEvent]:
        return [e for e in self.events if e.stage == stage]


def resolve_sink(sink: Optional[EventSink], cfg: Dict) -> EventSink:
    if sink is not None:
        return sink
    return print_sink if cfg.get("debug") else null_sink
