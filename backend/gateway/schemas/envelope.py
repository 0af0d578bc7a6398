"""
Board Gateway — Response Envelopes
===================================

What:  Pydantic models of the gateway's own JSON responses.
Why:   Documents the envelope in the OpenAPI output; collaborators are free
       to answer in their own shapes.

Envelope:
    {"ok": bool, "message"?: str, "stack"?: str, "env"?: str}
    `stack` only appears outside production.
"""

from typing import Optional

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    ok: bool = Field(description="Always true while the process is serving")
    env: str = Field(description="Runtime mode (NODE_ENV)")


class ErrorEnvelope(BaseModel):
    """Body of every 4xx/5xx the gateway itself produces."""

    ok: bool = Field(default=False)
    message: str = Field(description="Human-readable error description")
    stack: Optional[str] = Field(
        default=None,
        description="Traceback; omitted when NODE_ENV=production",
    )
