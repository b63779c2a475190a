"""Ingestion pipeline: worker, protocol messages, batching and client."""

from agentlog.pipeline.client import PipelineClient, RunState, RunStatus
from agentlog.pipeline.messages import (
    BatchMessage,
    DoneMessage,
    ErrorMessage,
    ParseFromFile,
    ParseFromUrl,
    ProgressMessage,
)
from agentlog.pipeline.worker import IngestionWorker, WorkerState

__all__ = [
    "BatchMessage",
    "DoneMessage",
    "ErrorMessage",
    "IngestionWorker",
    "ParseFromFile",
    "ParseFromUrl",
    "PipelineClient",
    "ProgressMessage",
    "RunState",
    "RunStatus",
    "WorkerState",
]
