from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable


class EventType(str, Enum):
    STAGE_STARTED = "stage_started"
    STAGE_COMPLETED = "stage_completed"
    PROVIDER_RESULT = "provider_result"
    PROVIDER_FAILED = "provider_failed"
    PROGRESS = "progress"
    SOURCES_READY = "sources_ready"
    ERROR = "error"


@dataclass
class PipelineEvent:
    event: EventType
    data: dict[str, Any] = field(default_factory=dict)

    def format(self) -> str:
        return f"event: {self.event.value}\ndata: {json.dumps(self.data)}\n\n"


ProgressCallback = Callable[[PipelineEvent], None]
