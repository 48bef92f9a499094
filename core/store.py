"""
Redis-backed job store for GEO Analyzer

Key layout:
    job:{id}              hash, one JSON-encoded value per job field
    job:{id}:events       list, the job's inline event array
    job_events:{id}       list, standalone append-only event log
    jobs:host:{host}      sorted set of job ids scored by creation time
    report:{id}           JSON snapshot of a completed job
    query:{id}            hash with the external query's status

Every job write is a single HSET of the changed fields, so concurrent
stages writing different fields of the same job never overwrite each other.
Errors from Redis propagate to the caller, except for the standalone
event log.
"""

import json
import logging
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel
from redis.exceptions import RedisError

from analyzer.models import AnalysisJob, EventStatus, JobEvent, utc_now_iso
from config import settings

logger = logging.getLogger(__name__)


def _encode(value: Any) -> str:
    if isinstance(value, BaseModel):
        value = value.model_dump(mode="json")
    elif isinstance(value, Enum):
        value = value.value
    elif isinstance(value, list):
        value = [v.model_dump(mode="json") if isinstance(v, BaseModel) else v for v in value]
    return json.dumps(value, ensure_ascii=False)


def _decode(value: str) -> Any:
    try:
        return json.loads(value)
    except (json.JSONDecodeError, TypeError):
        return value


class JobStore:
    """
    Persists analysis jobs, their events, report snapshots and query status.

    Args:
        redis: A redis.asyncio.Redis client created with decode_responses=True
        job_ttl: Expiry for job, report and query keys in seconds
        event_log_ttl: Expiry for the standalone event log in seconds
    """

    def __init__(self, redis, job_ttl: Optional[int] = None, event_log_ttl: Optional[int] = None):
        self.redis = redis
        self.job_ttl = job_ttl or settings.JOB_TTL
        self.event_log_ttl = event_log_ttl or settings.EVENT_LOG_TTL

    @staticmethod
    def job_key(job_id: str) -> str:
        return f"job:{job_id}"

    @staticmethod
    def events_key(job_id: str) -> str:
        return f"job:{job_id}:events"

    @staticmethod
    def event_log_key(job_id: str) -> str:
        return f"job_events:{job_id}"

    @staticmethod
    def host_key(url_host: str) -> str:
        return f"jobs:host:{url_host}"

    @staticmethod
    def report_key(job_id: str) -> str:
        return f"report:{job_id}"

    @staticmethod
    def query_key(query_id: str) -> str:
        return f"query:{query_id}"

    # ======================
    # Jobs
    # ======================

    async def get_job(self, job_id: str) -> Optional[AnalysisJob]:
        """Load a job with its inline events, or None if it does not exist"""
        raw = await self.redis.hgetall(self.job_key(job_id))
        if not raw:
            return None

        data = {k: _decode(v) for k, v in raw.items()}
        events = await self.redis.lrange(self.events_key(job_id), 0, -1)
        data["events"] = [json.loads(e) for e in events]
        return AnalysisJob.model_validate(data)

    async def create_job(self, job: AnalysisJob) -> AnalysisJob:
        """Persist a new job and index it by host for deduplication"""
        fields = job.model_dump(mode="json", exclude={"events"})
        await self.redis.hset(
            self.job_key(job.id),
            mapping={k: _encode(v) for k, v in fields.items()},
        )
        await self.redis.expire(self.job_key(job.id), self.job_ttl)

        if job.url_host:
            created = datetime.fromisoformat(job.created_at).timestamp()
            await self.redis.zadd(self.host_key(job.url_host), {job.id: created})
            await self.redis.expire(self.host_key(job.url_host), self.job_ttl)

        logger.info(f"🆕 Created job {job.id} for {job.url_host or job.url}")
        return job

    async def upsert_job_fields(self, job_id: str, fields: Dict[str, Any]) -> None:
        """
        Write a subset of job fields and refresh updated_at.
        Creates the job hash if it does not exist yet.
        """
        mapping = {k: _encode(v) for k, v in fields.items() if k != "events"}
        mapping["id"] = _encode(job_id)
        mapping["updated_at"] = _encode(utc_now_iso())

        await self.redis.hset(self.job_key(job_id), mapping=mapping)
        await self.redis.expire(self.job_key(job_id), self.job_ttl)

    async def find_recent_job(self, url_host: str, since: datetime) -> Optional[AnalysisJob]:
        """Newest job for url_host created at or after since"""
        job_ids = await self.redis.zrevrangebyscore(
            self.host_key(url_host), "+inf", since.timestamp()
        )
        for job_id in job_ids:
            job = await self.get_job(job_id)
            if job is not None:
                return job
        return None

    # ======================
    # Events
    # ======================

    async def append_event(
        self,
        job_id: str,
        step: str,
        status: EventStatus,
        detail: Optional[str] = None,
    ) -> JobEvent:
        """
        Append an event to the job's inline array and the standalone log.
        A failed standalone write is logged and does not raise.
        """
        event = JobEvent(step=step, status=status, detail=detail)
        payload = event.model_dump(mode="json")

        await self.redis.rpush(self.events_key(job_id), json.dumps(payload, ensure_ascii=False))
        await self.redis.expire(self.events_key(job_id), self.job_ttl)

        try:
            await self.redis.rpush(
                self.event_log_key(job_id),
                json.dumps({"job_id": job_id, **payload}, ensure_ascii=False),
            )
            await self.redis.expire(self.event_log_key(job_id), self.event_log_ttl)
        except RedisError as e:
            logger.warning(f"⚠️ Failed to write event log for job {job_id}: {str(e)}")

        return event

    async def get_events(self, job_id: str) -> List[Dict[str, Any]]:
        """Read the standalone event log for a job"""
        entries = await self.redis.lrange(self.event_log_key(job_id), 0, -1)
        return [json.loads(e) for e in entries]

    # ======================
    # Reports and queries
    # ======================

    async def upsert_report(self, job_id: str, snapshot: Dict[str, Any]) -> None:
        await self.redis.set(
            self.report_key(job_id),
            json.dumps(snapshot, ensure_ascii=False),
            ex=self.job_ttl,
        )

    async def get_report(self, job_id: str) -> Optional[Dict[str, Any]]:
        raw = await self.redis.get(self.report_key(job_id))
        return json.loads(raw) if raw else None

    async def upsert_query_status(self, query_id: Optional[str], status: str) -> None:
        """Record an external query's status; does nothing without a query id"""
        if not query_id:
            return
        await self.redis.hset(
            self.query_key(query_id),
            mapping={"id": query_id, "status": status, "updated_at": utc_now_iso()},
        )
        await self.redis.expire(self.query_key(query_id), self.job_ttl)

    async def get_query_status(self, query_id: str) -> Optional[Dict[str, str]]:
        raw = await self.redis.hgetall(self.query_key(query_id))
        return raw or None
