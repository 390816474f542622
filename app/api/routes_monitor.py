# app/api/routes_monitor.py
"""
Monitor API routes.

POST /monitor/run triggers one scan cycle. External schedulers (cron, a
k8s CronJob) call this or run `python -m app.scheduling.monitor`.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException

from ..container import Container
from ..errors import PartialCycleFailure
from ..logging import get_api_logger
from .deps import container_dependency

logger = get_api_logger()

router = APIRouter(prefix="/monitor", tags=["monitor"])


@router.post("/run")
def run_monitor_cycle(container: Container = Depends(container_dependency)) -> Dict[str, Any]:
    """Run one weather monitoring cycle and return its report."""
    try:
        report = container.monitor.run_cycle()
    except PartialCycleFailure as e:
        logger.error("monitor_cycle_failed", error=str(e))
        raise HTTPException(
            status_code=e.status_code,
            detail={"error": str(e), "report": e.report.to_dict() if e.report else None},
        ) from e
    return report.to_dict()
