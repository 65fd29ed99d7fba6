"""
Job store.

Row-keyed persistence for Job records and the assets rows written at
finalization. SupabaseJobStore talks to the `jobs` and `assets` tables with
the service-role key; InMemoryJobStore backs local runs and tests.
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Union
from uuid import UUID, uuid4

from shared.database import DatabaseClient
from shared.errors import JobNotFoundError
from shared.logging import get_logger
from shared.models.job import Job, JobStatus

logger = get_logger(__name__)

IdLike = Union[str, UUID]

# Columns written on insert; created_at/updated_at are set by the store
JOB_COLUMNS = (
    "id", "user_id", "status", "emotion", "lyrics", "song_url", "selfie_url",
    "result_url", "assembly_manifest", "error", "provider_refs",
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def job_to_record(job: Job) -> Dict[str, Any]:
    """Serialize a Job to a jobs-table row."""
    data = job.model_dump(mode="json")
    return {key: data[key] for key in JOB_COLUMNS}


def job_from_record(row: Dict[str, Any]) -> Job:
    """Build a Job from a jobs-table row."""
    data = dict(row)
    data["provider_refs"] = data.get("provider_refs") or {}
    return Job.model_validate(data)


def serialize_updates(updates: Dict[str, Any]) -> Dict[str, Any]:
    """Convert update values to their JSON column representation."""
    record = {}
    for key, value in updates.items():
        if hasattr(value, "model_dump"):
            record[key] = value.model_dump(mode="json")
        elif isinstance(value, JobStatus):
            record[key] = value.value
        else:
            record[key] = value
    return record


class JobStore:
    """Interface of a job store."""

    async def insert(self, job: Job) -> Job:
        raise NotImplementedError

    async def get(self, job_id: IdLike, user_id: Optional[IdLike] = None) -> Job:
        """
        Load a job.

        Args:
            job_id: Job ID
            user_id: Owning user; when given, jobs of other users are not found

        Raises:
            JobNotFoundError: If the job does not exist or is not owned by user_id
        """
        raise NotImplementedError

    async def update(
        self,
        job_id: IdLike,
        updates: Dict[str, Any],
        expected_statuses: Optional[Iterable[JobStatus]] = None
    ) -> Optional[Job]:
        """
        Update a job.

        Args:
            job_id: Job ID
            updates: Column values to write (updated_at is always refreshed)
            expected_statuses: When given, the row is only updated if its status
                is still one of these

        Returns:
            The updated job, or None if no row matched
        """
        raise NotImplementedError

    async def insert_asset(self, user_id: IdLike, asset_type: str, url: str, meta: Dict[str, Any]) -> None:
        raise NotImplementedError

    async def health_check(self) -> bool:
        return True


class SupabaseJobStore(JobStore):
    """Job store on the Supabase `jobs` and `assets` tables."""

    def __init__(self, db_client: DatabaseClient):
        self.db = db_client

    async def insert(self, job: Job) -> Job:
        record = job_to_record(job)
        result = await self.db.table("jobs").insert(record).execute()
        rows = getattr(result, "data", None) or []
        logger.info("Job created", extra={"job_id": str(job.id), "user_id": str(job.user_id)})
        return job_from_record(rows[0]) if rows else job

    async def get(self, job_id: IdLike, user_id: Optional[IdLike] = None) -> Job:
        query = self.db.table("jobs").select("*").eq("id", str(job_id))
        if user_id is not None:
            query = query.eq("user_id", str(user_id))
        result = await query.limit(1).execute()
        rows = getattr(result, "data", None) or []
        if not rows:
            raise JobNotFoundError("Job not found", job_id=job_id)
        return job_from_record(rows[0])

    async def update(
        self,
        job_id: IdLike,
        updates: Dict[str, Any],
        expected_statuses: Optional[Iterable[JobStatus]] = None
    ) -> Optional[Job]:
        record = serialize_updates(updates)
        record["updated_at"] = utcnow().isoformat()

        query = self.db.table("jobs").update(record).eq("id", str(job_id))
        if expected_statuses is not None:
            query = query.in_("status", [JobStatus(s).value for s in expected_statuses])
        result = await query.execute()

        rows = getattr(result, "data", None) or []
        if not rows:
            return None
        return job_from_record(rows[0])

    async def insert_asset(self, user_id: IdLike, asset_type: str, url: str, meta: Dict[str, Any]) -> None:
        await self.db.table("assets").insert({
            "user_id": str(user_id),
            "type": asset_type,
            "url": url,
            "meta": meta,
        }).execute()

    async def health_check(self) -> bool:
        return await self.db.health_check()


class InMemoryJobStore(JobStore):
    """Process-local job store."""

    def __init__(self):
        self.jobs: Dict[str, Dict[str, Any]] = {}
        self.assets: List[Dict[str, Any]] = []
        self._lock = asyncio.Lock()

    async def insert(self, job: Job) -> Job:
        async with self._lock:
            record = job_to_record(job)
            record["created_at"] = job.created_at.isoformat()
            record["updated_at"] = job.updated_at.isoformat()
            self.jobs[str(job.id)] = record
        return job_from_record(record)

    async def get(self, job_id: IdLike, user_id: Optional[IdLike] = None) -> Job:
        record = self.jobs.get(str(job_id))
        if record is None or (user_id is not None and record["user_id"] != str(user_id)):
            raise JobNotFoundError("Job not found", job_id=job_id)
        return job_from_record(record)

    async def update(
        self,
        job_id: IdLike,
        updates: Dict[str, Any],
        expected_statuses: Optional[Iterable[JobStatus]] = None
    ) -> Optional[Job]:
        async with self._lock:
            record = self.jobs.get(str(job_id))
            if record is None:
                return None
            if expected_statuses is not None:
                allowed = {JobStatus(s).value for s in expected_statuses}
                if record["status"] not in allowed:
                    return None
            record.update(serialize_updates(updates))
            record["updated_at"] = utcnow().isoformat()
            return job_from_record(record)

    async def insert_asset(self, user_id: IdLike, asset_type: str, url: str, meta: Dict[str, Any]) -> None:
        self.assets.append({
            "id": str(uuid4()),
            "user_id": str(user_id),
            "type": asset_type,
            "url": url,
            "meta": meta,
            "created_at": utcnow().isoformat(),
        })
