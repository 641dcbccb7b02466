from __future__ import annotations

from typing import Any

from groundwork.models.events import EventType, PipelineEvent


def stage_started(stage: str, **kwargs: Any) -> PipelineEvent:
    return PipelineEvent(event=EventType.STAGE_STARTED, data={"stage": stage, **kwargs})


def stage_completed(stage: str, **kwargs: Any) -> PipelineEvent:
    return PipelineEvent(event=EventType.STAGE_COMPLETED, data={"stage": stage, **kwargs})


def provider_result(provider: str, results_count: int) -> PipelineEvent:
    return PipelineEvent(
        event=EventType.PROVIDER_RESULT,
        data={"provider": provider, "results_count": results_count},
    )


def provider_failed(provider: str, reason: str) -> PipelineEvent:
    return PipelineEvent(
        event=EventType.PROVIDER_FAILED,
        data={"provider": provider, "reason": reason},
    )


def progress(message: str, **kwargs: Any) -> PipelineEvent:
    return PipelineEvent(event=EventType.PROGRESS, data={"message": message, **kwargs})


def sources_ready(sources: list[dict[str, Any]], runtime_ms: int | None = None) -> PipelineEvent:
    data: dict[str, Any] = {"sources": sources}
    if runtime_ms is not None:
        data["runtime_ms"] = runtime_ms
    return PipelineEvent(event=EventType.SOURCES_READY, data=data)


def error(message: str, checkpoint: str | None = None) -> PipelineEvent:
    data: dict[str, Any] = {"message": message}
    if checkpoint:
        data["checkpoint"] = checkpoint
    return PipelineEvent(event=EventType.ERROR, data=data)
