from __future__ import annotations
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException

from cronproc.scheduler import TickScheduler
from cronproc.schemas import TaskStatusOut
from cronproc.service import CronService


def create_app(service: CronService, scheduler: TickScheduler | None = None, root_path: str = "") -> FastAPI:
    @asynccontextmanager
    async def lifespan(_: FastAPI):
        if scheduler is not None:
            scheduler.start()
        try:
            yield
        finally:
            if scheduler is not None:
                scheduler.shutdown()

    root_path = root_path.strip()
    if root_path == "/":
        root_path = ""
    elif root_path:
        root_path = "/" + root_path.strip("/")

    app = FastAPI(lifespan=lifespan, root_path=root_path)

    @app.get("/api/status")
    def processor_status():
        store = service.tracker.store
        return {"enabled": service.enabled, "runtime_dir": str(store.runtime_dir), "records": len(store.list_ids())}

    @app.get("/api/tasks", response_model=list[TaskStatusOut])
    def tasks():
        return service.status()

    @app.get("/api/tasks/{task_id}", response_model=TaskStatusOut)
    def task_detail(task_id: str):
        out = service.status_of(task_id)
        if out is None:
            raise HTTPException(status_code=404, detail=f"Task not found: {task_id}")
        return out

    return app
