from __future__ import annotations

from typing import Any

from fastapi import FastAPI, HTTPException, Query, status

from . import BUILD_REPO, __version__, db
from .api_models import BuildResponse, DNSStateResponse, HealthResponse, InstanceOut, StopResponse
from .errors import AlreadyStoppingError
from .lifecycle import Controller


def create_app(controller: Controller) -> FastAPI:
    """Control surface: health, build info, read-only state and /stop."""
    app = FastAPI(title="AWS Instance Controller", version=__version__)
    reconciler = controller.reconciler

    @app.get("/healthz", response_model=HealthResponse)
    def healthz() -> HealthResponse:
        return HealthResponse(
            status="stopping" if controller.stopping else "ok",
            tick=reconciler.sequence,
            instances=len(reconciler.snapshot),
            stopping=controller.stopping,
        )

    @app.get("/build", response_model=BuildResponse)
    def build() -> BuildResponse:
        return BuildResponse(build=BUILD_REPO, version=__version__)

    @app.post("/stop", response_model=StopResponse)
    def stop() -> StopResponse:
        try:
            controller.stop()
        except AlreadyStoppingError as e:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
        db.log_event("INFO", "Stop requested over HTTP")
        return StopResponse(stopped=True, message="shutdown started")

    @app.get("/instances", response_model=list[InstanceOut])
    def instances() -> list[InstanceOut]:
        return [
            InstanceOut(
                id=i.id,
                generation=i.generation,
                state=i.status.state,
                source_dest_check=i.status.source_dest_check,
                private_ip=i.status.private_ip,
                public_ip=i.status.public_ip,
                tags=i.status.tags,
            )
            for i in reconciler.snapshot
        ]

    @app.get("/dns", response_model=DNSStateResponse)
    def dns() -> DNSStateResponse:
        state = reconciler.dns_state
        return DNSStateResponse(applied=state is not None, records=state or {})

    @app.get("/ticks")
    def ticks(limit: int = Query(20, ge=1, le=1000)) -> list[dict[str, Any]]:
        return db.latest_ticks(limit)

    @app.get("/events")
    def events(limit: int = Query(100, ge=1, le=1000)) -> list[dict[str, Any]]:
        return db.latest_events(limit)

    return app
