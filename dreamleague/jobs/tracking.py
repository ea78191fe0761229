"""Audit trail of batch jobs.

Each jornada close leaves one ``job_runs`` row (outcome, duration and the
close report), so operators can see which leagues closed cleanly and which
need a re-run. Outcomes:

  ok      : finished, no per-item problems
  partial : finished, some bets or members reported in ``errors``
  error   : aborted; the close can be re-run
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dreamleague.models import JobRun, utcnow

logger = logging.getLogger(__name__)

JOB_STATUSES = ("ok", "partial", "error")


async def record_job_run(
    session: AsyncSession,
    job_name: str,
    status: str,
    started_at: datetime,
    error: Optional[str] = None,
    metrics: Optional[dict] = None,
) -> JobRun:
    """Store one finished run of ``job_name`` and commit it."""
    if status not in JOB_STATUSES:
        raise ValueError(f"Unknown job status {status!r}")

    finished_at = utcnow()
    run = JobRun(
        job_name=job_name,
        status=status,
        started_at=started_at,
        finished_at=finished_at,
        duration_ms=int((finished_at - started_at).total_seconds() * 1000),
        error_message=error,
        metrics=metrics,
    )
    session.add(run)
    await session.commit()

    logger.debug(f"[JOB_TRACKING] {job_name}: {status} after {run.duration_ms}ms")
    return run


async def get_recent_runs(session: AsyncSession, job_name: str, limit: int = 10) -> list[JobRun]:
    """Latest runs of a job, newest first."""
    query = (
        select(JobRun)
        .where(JobRun.job_name == job_name)
        .order_by(JobRun.started_at.desc(), JobRun.id.desc())
        .limit(limit)
    )
    return list((await session.execute(query)).scalars().all())
