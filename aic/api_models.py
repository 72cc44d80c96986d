from __future__ import annotations

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    status: str = Field(..., description="ok|stopping")
    tick: int = Field(..., description="Number of ticks started so far")
    instances: int
    stopping: bool


class BuildResponse(BaseModel):
    build: str
    version: str


class StopResponse(BaseModel):
    stopped: bool
    message: str


class InstanceOut(BaseModel):
    id: str
    generation: int
    state: str
    source_dest_check: bool | None = None
    private_ip: str | None = None
    public_ip: str | None = None
    tags: dict[str, str] = Field(default_factory=dict)


class DNSStateResponse(BaseModel):
    applied: bool = Field(..., description="False until the first DNS apply (or DNS is disabled)")
    records: dict[str, list[str]] = Field(default_factory=dict)
