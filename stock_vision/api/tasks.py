"""
Background Tasks API endpoints.

Provides endpoints for starting a batch analysis from the dashboard and
following its progress.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from typing import Dict, Optional
from datetime import datetime
import logging
import threading
import uuid

from ..batch import run_analysis, select_stocks
from ..config import AppConfig, get_config
from ..storage.models import AnalyzeTaskRequest, APIResponse, Stock, TaskStatus
from ..storage.store import StockStore

logger = logging.getLogger(__name__)

router = APIRouter()

# In-memory task storage; tasks do not survive a restart
active_tasks: Dict[str, TaskStatus] = {}
# Guards active_tasks; background runs update it from a worker thread
_tasks_lock = threading.RLock()


def _is_active(task: TaskStatus) -> bool:
    return task.status in ("pending", "running")


def claim_analysis_task() -> Optional[TaskStatus]:
    """Create an analysis task unless one is already pending or running."""
    with _tasks_lock:
        if any(_is_active(task) for task in active_tasks.values()):
            return None
        return create_task("analysis")


def run_analysis_task(task_id: str, config: AppConfig, stocks: list, merge: bool) -> None:
    """Run a batch for a task, reporting per-stock progress."""
    update_task(task_id, status="running", message=f"Analyzing {len(stocks)} stocks...")

    def progress(index: int, total: int, stock: Stock) -> bool:
        with _tasks_lock:
            task = active_tasks.get(task_id)
            if task is None or task.status == "cancelled":
                return False
        update_task(
            task_id,
            progress=round(index / total * 100, 1),
            message=f"[{index + 1}/{total}] {stock.name} ({stock.code})",
        )
        return True

    try:
        results = run_analysis(config, stocks, progress=progress, merge=merge)
    except Exception as e:
        logger.exception(f"Analysis task {task_id} failed: {e}")
        fail_task(task_id, f"Analysis failed: {e}")
        return

    with _tasks_lock:
        if active_tasks[task_id].status == "cancelled":
            return

    result = results.summary.model_dump()
    result["skipped_stocks"] = [s.model_dump() for s in results.skipped]
    if results.summary.succeeded == 0:
        fail_task(task_id, "No stock was analyzed successfully")
        update_task(task_id, result=result)
    else:
        complete_task(task_id, result=result)
        update_task(
            task_id,
            message=f"Analyzed {results.summary.succeeded} of {results.summary.total} stocks",
        )


@router.post("/analyze", response_model=TaskStatus)
async def start_analysis(
    request: AnalyzeTaskRequest,
    background_tasks: BackgroundTasks,
    config: AppConfig = Depends(get_config),
):
    """Start a batch analysis (one stock if a code is given)."""
    if request.code:
        config = config.model_copy(update={
            "target_stock_code": request.code,
            "target_stock_name": request.name,
        })

    stocks = select_stocks(config, StockStore(config.stocks_path))
    if not stocks:
        raise HTTPException(status_code=400, detail="No stocks to analyze")

    task = claim_analysis_task()
    if task is None:
        raise HTTPException(status_code=409, detail="An analysis is already running")
    background_tasks.add_task(run_analysis_task, task.task_id, config, stocks, bool(request.code))
    return task


@router.get("/{task_id}/status", response_model=TaskStatus)
async def get_task_status(task_id: str):
    """Get the status of a background task."""
    task = active_tasks.get(task_id)
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")
    return task


@router.get("/active", response_model=list[TaskStatus])
async def get_active_tasks():
    """Get all active background tasks."""
    with _tasks_lock:
        return [task for task in active_tasks.values() if _is_active(task)]


@router.post("/{task_id}/cancel", response_model=APIResponse)
async def cancel_task(task_id: str):
    """Cancel a running task; the stock in progress finishes first."""
    with _tasks_lock:
        task = active_tasks.get(task_id)
        if not task:
            raise HTTPException(status_code=404, detail="Task not found")

        if not _is_active(task):
            raise HTTPException(
                status_code=400,
                detail=f"Task already {task.status}"
            )

        task.status = "cancelled"
        task.updated_at = datetime.now()
        task.message = "Task cancelled by user"

    return APIResponse(success=True, message="Task cancelled")


def create_task(task_type: str = "analysis") -> TaskStatus:
    """Create a new background task."""
    task_id = str(uuid.uuid4())
    task = TaskStatus(
        task_id=task_id,
        status="pending",
        progress=0.0,
        message=f"Starting {task_type}...",
        created_at=datetime.now()
    )
    with _tasks_lock:
        active_tasks[task_id] = task
    return task


def update_task(task_id: str, **kwargs) -> Optional[TaskStatus]:
    """Update a task's fields."""
    with _tasks_lock:
        task = active_tasks.get(task_id)
        if task:
            for key, value in kwargs.items():
                if hasattr(task, key):
                    setattr(task, key, value)
            task.updated_at = datetime.now()
    return task


def complete_task(task_id: str, result: Optional[dict] = None) -> Optional[TaskStatus]:
    """Mark a task as completed."""
    with _tasks_lock:
        task = active_tasks.get(task_id)
        if task:
            task.status = "completed"
            task.progress = 100.0
            task.result = result
            task.updated_at = datetime.now()
    return task


def fail_task(task_id: str, error: str) -> Optional[TaskStatus]:
    """Mark a task as failed."""
    with _tasks_lock:
        task = active_tasks.get(task_id)
        if task:
            task.status = "failed"
            task.message = error
            task.updated_at = datetime.now()
    return task
