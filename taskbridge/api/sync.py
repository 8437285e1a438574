"""Sync control endpoints"""
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel

from taskbridge.scheduler import SyncAlreadyRunning, SyncScheduler

router = APIRouter(prefix="/api/sync", tags=["sync"])


class SyncStatusResponse(BaseModel):
    running: bool
    dry_run: bool
    dedup_mode: str
    interval_seconds: int
    last_run_at: Optional[datetime] = None
    next_run_at: Optional[datetime] = None
    last_result: Optional[Dict[str, Any]] = None


def get_scheduler(request: Request) -> SyncScheduler:
    return request.app.state.sync_scheduler


@router.post("/trigger")
def trigger_sync(scheduler: SyncScheduler = Depends(get_scheduler)):
    """Run a sync cycle now and return its result"""
    try:
        return scheduler.run_now()
    except SyncAlreadyRunning as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.get("/status", response_model=SyncStatusResponse)
def sync_status(scheduler: SyncScheduler = Depends(get_scheduler)):
    """Last cycle result and schedule"""
    return SyncStatusResponse(
        running=scheduler.running,
        dry_run=scheduler.service.dry_run,
        dedup_mode=scheduler.service.dedup_mode.value,
        interval_seconds=scheduler.interval_seconds,
        last_run_at=scheduler.last_run_at,
        next_run_at=scheduler.next_run_time(),
        last_result=scheduler.last_result,
    )
