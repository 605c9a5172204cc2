"""Job store — implements JobStorePort on top of JsonStorage."""

from datetime import datetime, timezone
from typing import List, Optional

from cronclaw.adapters.storage.json_store import JsonStorage
from cronclaw.domain.models import Job

JOBS_KEY = "cron_jobs"


def _to_job(item: dict) -> Job:
    return Job(
        id=int(item["id"]),
        schedule=str(item.get("schedule", "")),
        task=str(item.get("task", "")),
        message=str(item.get("message", "")),
        enabled=bool(item.get("enabled", True)),
        created_at=str(item.get("created_at", "")),
    )


class JsonJobStore:
    """Durable job records with store-assigned integer ids.

    Rows are never removed: ``disable`` is the only way a job goes away, so
    ids stay unique for the lifetime of the file.
    """

    def __init__(self, storage: JsonStorage):
        self._storage = storage

    def add(self, schedule: str, task: str, message: str) -> int:
        new_id = 0

        def _append(rows: List[dict]) -> List[dict]:
            nonlocal new_id
            new_id = max((int(r["id"]) for r in rows), default=0) + 1
            rows.append({
                "id": new_id,
                "schedule": schedule,
                "task": task,
                "message": message,
                "enabled": True,
                "created_at": datetime.now(timezone.utc).isoformat(),
            })
            return rows

        self._storage.update(JOBS_KEY, _append)
        return new_id

    def list_all(self) -> List[Job]:
        return [_to_job(r) for r in self._storage.load(JOBS_KEY)]

    def list_enabled(self) -> List[Job]:
        return [j for j in self.list_all() if j.enabled]

    def get(self, job_id: int) -> Optional[Job]:
        for job in self.list_all():
            if job.id == job_id:
                return job
        return None

    def disable(self, job_id: int) -> bool:
        """Soft-delete a job. False if it does not exist or is already disabled."""
        found = False

        def _disable(rows: List[dict]) -> List[dict]:
            nonlocal found
            for row in rows:
                if int(row["id"]) == job_id and row.get("enabled", True):
                    row["enabled"] = False
                    found = True
            return rows

        self._storage.update(JOBS_KEY, _disable)
        return found
