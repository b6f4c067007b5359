"""
HTTP surface of the playground (FastAPI).

Every response is an envelope ``{success, data | error, timestamp}``.
"""
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, FastAPI
from fastapi.responses import JSONResponse

from .exceptions import PlanValidationError, RunNotFoundError
from .models import ExecutionMode, PlanGraph
from .playground import Playground, get_playground
from .utils import now_ms
from .version import __version__

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/playground", tags=["playground"])


def _dump(model: Any) -> Any:
    if model is None:
        return None
    return model.model_dump(mode="json", by_alias=True, exclude_none=True)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message, "timestamp": now_ms()},
    )


def _run(playground: Playground, payload: Dict[str, Any], mode: ExecutionMode):
    if not PlanGraph.is_graph_payload(payload) and not isinstance(payload.get("actions"), list):
        return _error(400, "Invalid execution plan: actions array required")

    try:
        result = playground.run(payload, mode=mode)
    except PlanValidationError as e:
        return _error(400, str(e))

    data = _dump(result)
    return {
        "success": result.success,
        "data": data,
        "trace": data["trace"],
        "timestamp": now_ms(),
    }


@router.post("/simulate")
def simulate(
    payload: Dict[str, Any] = Body(...),
    playground: Playground = Depends(get_playground),
):
    return _run(playground, payload, ExecutionMode.SIMULATE)


@router.post("/execute")
def execute(
    payload: Dict[str, Any] = Body(...),
    playground: Playground = Depends(get_playground),
):
    logger.info("Execute request received; real transactions may be sent")
    return _run(playground, payload, ExecutionMode.EXECUTE)


@router.post("/validate")
def validate(
    payload: Dict[str, Any] = Body(...),
    playground: Playground = Depends(get_playground),
):
    report = playground.validate(payload)
    return {"success": report.valid, "data": _dump(report), "timestamp": now_ms()}


@router.get("/runs/{run_id}")
def get_run(run_id: str, playground: Playground = Depends(get_playground)):
    try:
        run = playground.get_run(run_id)
    except RunNotFoundError:
        return _error(404, f"Run {run_id} not found")

    return {
        "success": True,
        "data": {
            "trace": _dump(run["trace"]),
            "state": _dump(run["state"]),
            "summary": run["summary"],
            "stateSummary": run["stateSummary"],
        },
        "timestamp": now_ms(),
    }


@router.get("/runs")
def list_runs(playground: Playground = Depends(get_playground)):
    runs = playground.list_runs()
    return {
        "success": True,
        "data": {"total": len(runs), "runs": runs},
        "timestamp": now_ms(),
    }


@router.get("/health")
def health(playground: Playground = Depends(get_playground)):
    return {"success": True, "data": playground.health(), "timestamp": now_ms()}


def create_app(playground: Optional[Playground] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        playground: Instance to serve (the process-wide one if omitted)
    """
    app = FastAPI(title="x402 Playground", version=__version__)
    app.include_router(router)
    if playground is not None:
        app.dependency_overrides[get_playground] = lambda: playground
    return app


if __name__ == '__main__':
    import uvicorn
    uvicorn.run(create_app(), host='0.0.0.0', port=8000)
