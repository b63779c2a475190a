"""agentlog - streaming ingestion of agent session logs.

Turns large, possibly malformed, line-delimited or single-array JSON logs
into an ordered sequence of canonical events, without blocking the caller.

Example:
    import asyncio
    from agentlog import PipelineClient, redact

    async def main():
        async with PipelineClient() as client:
            client.start_from_file("session.jsonl")
            state = await client.wait()
        for event in state.events:
            if event.type == "assistant":
                print(redact(event.text))

    asyncio.run(main())
"""

from agentlog.models import (
    Attachment,
    CanonicalEvent,
    MessageEvent,
    MetaEvent,
    ParseError,
    ToolCallEvent,
    ToolResultEvent,
)
from agentlog.normalize import normalize
from agentlog.pipeline import PipelineClient, RunState, RunStatus
from agentlog.redaction import RedactionOptions, redact
from agentlog.version import VERSION

__version__ = VERSION

__all__ = [
    "Attachment",
    "CanonicalEvent",
    "MessageEvent",
    "MetaEvent",
    "ParseError",
    "PipelineClient",
    "RedactionOptions",
    "RunState",
    "RunStatus",
    "ToolCallEvent",
    "ToolResultEvent",
    "normalize",
    "redact",
    "__version__",
]
