"""
===============================================================================
CRC CARD — interfaces/cli.py (operator CLI: cache-recovery)
===============================================================================

Responsibilities:
  - Expose the recovery operations to operators:
      recover               run a bulk recovery pass now (in-process)
      resume JOB_ID         resume one job (--force regenerates existing output)
      list-resumable        print resumable job IDs
      disable JOB_ID        close the resumability gate (--reason)
      cleanup               delete old completed jobs (--older-than-days)
      enqueue-recovery      schedule a recovery pass on the worker
      enqueue-resume JOB_ID schedule one resume on the worker
      jobs COLLECTION_ID    show the jobs of a collection with progress
  - Print JSON results; exit 0 on success, 1 on a reported error.

Collaborators:
  - container (use cases, recovery task queue)
  - infrastructure.db.pool (process pool for Postgres stores)
  - context (operation context for logs)
===============================================================================
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any, Callable, Dict, Optional, Sequence
from uuid import uuid4

from ..application.usecases import (
    CleanupOldCompletedJobsInput,
    DisableJobResumptionInput,
    ResumeCacheJobInput,
)
from ..container import (
    get_cleanup_completed_jobs_use_case,
    get_collection_jobs_use_case,
    get_disable_job_resumption_use_case,
    get_recover_incomplete_jobs_use_case,
    get_recovery_task_queue,
    get_resumable_jobs_use_case,
    get_resume_cache_job_use_case,
    requires_database,
)
from ..context import clear_context, set_operation_context
from ..crosscutting.config import get_settings
from ..infrastructure.db.pool import close_pool, init_pool

EXIT_OK = 0
EXIT_ERROR = 1


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cache-recovery",
        description="Recover interrupted cache-generation jobs.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("recover", help="Run a recovery pass over incomplete jobs")

    resume = sub.add_parser("resume", help="Resume a single job")
    resume.add_argument("job_id")
    resume.add_argument(
        "--force",
        action="store_true",
        help="Regenerate cache files even if they already exist",
    )

    sub.add_parser("list-resumable", help="List IDs of resumable jobs")

    disable = sub.add_parser("disable", help="Disable resumption of a job")
    disable.add_argument("job_id")
    disable.add_argument(
        "--reason",
        default="Resumption disabled by operator",
        help="Reason stored on the job",
    )

    cleanup = sub.add_parser("cleanup", help="Delete old completed jobs")
    cleanup.add_argument(
        "--older-than-days",
        type=int,
        default=None,
        help="Retention in days (default: COMPLETED_JOB_RETENTION_DAYS)",
    )

    sub.add_parser("enqueue-recovery", help="Schedule a recovery pass on the worker")

    enqueue_resume = sub.add_parser(
        "enqueue-resume", help="Schedule the resume of one job on the worker"
    )
    enqueue_resume.add_argument("job_id")

    jobs = sub.add_parser("jobs", help="Show the jobs of a collection with progress")
    jobs.add_argument("collection_id")
    return parser


# -----------------------------------------------------------------------------
# Commands (each returns a JSON-safe payload)
# -----------------------------------------------------------------------------


def _cmd_recover(args: argparse.Namespace) -> Dict[str, Any]:
    return get_recover_incomplete_jobs_use_case().execute().to_dict()


def _cmd_resume(args: argparse.Namespace) -> Dict[str, Any]:
    result = get_resume_cache_job_use_case().execute(
        ResumeCacheJobInput(job_id=args.job_id, force_regenerate=args.force)
    )
    return result.to_dict()


def _cmd_list_resumable(args: argparse.Namespace) -> Dict[str, Any]:
    result = get_resumable_jobs_use_case().execute()
    return {
        "job_ids": list(result.job_ids),
        "error": result.error.to_dict() if result.error else None,
    }


def _cmd_disable(args: argparse.Namespace) -> Dict[str, Any]:
    result = get_disable_job_resumption_use_case().execute(
        DisableJobResumptionInput(job_id=args.job_id, reason=args.reason)
    )
    return {
        "job_id": result.job_id,
        "disabled": result.disabled,
        "reason": result.reason,
        "error": result.error.to_dict() if result.error else None,
    }


def _cmd_cleanup(args: argparse.Namespace) -> Dict[str, Any]:
    days = args.older_than_days
    if days is None:
        days = get_settings().completed_job_retention_days
    result = get_cleanup_completed_jobs_use_case().execute(
        CleanupOldCompletedJobsInput(older_than_days=days)
    )
    return {
        "deleted": result.deleted,
        "cutoff": result.cutoff.isoformat() if result.cutoff else None,
        "error": result.error.to_dict() if result.error else None,
    }


def _cmd_enqueue_recovery(args: argparse.Namespace) -> Dict[str, Any]:
    rq_job_id = get_recovery_task_queue().enqueue_recovery_pass()
    return {"rq_job_id": rq_job_id, "error": None}


def _cmd_enqueue_resume(args: argparse.Namespace) -> Dict[str, Any]:
    job_id = args.job_id.strip()
    if not job_id:
        raise ValueError("job_id is required")
    rq_job_id = get_recovery_task_queue().enqueue_job_resume(job_id)
    return {"job_id": job_id, "rq_job_id": rq_job_id, "error": None}


def _cmd_jobs(args: argparse.Namespace) -> Dict[str, Any]:
    result = get_collection_jobs_use_case().execute(args.collection_id)
    return {
        "collection_id": result.collection_id,
        "jobs": [job.to_dict() for job in result.jobs],
        "error": result.error.to_dict() if result.error else None,
    }


_COMMANDS: Dict[str, Callable[[argparse.Namespace], Dict[str, Any]]] = {
    "recover": _cmd_recover,
    "resume": _cmd_resume,
    "list-resumable": _cmd_list_resumable,
    "disable": _cmd_disable,
    "cleanup": _cmd_cleanup,
    "enqueue-recovery": _cmd_enqueue_recovery,
    "enqueue-resume": _cmd_enqueue_resume,
    "jobs": _cmd_jobs,
}

# Commands that only talk to Redis.
_NO_DATABASE = {"enqueue-recovery", "enqueue-resume"}


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    command = _COMMANDS[args.command]
    needs_db = args.command not in _NO_DATABASE and requires_database()

    set_operation_context(request_id=str(uuid4()), operation=f"cli.{args.command}")
    if needs_db:
        settings = get_settings()
        init_pool(
            database_url=settings.database_url,
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
        )
    try:
        try:
            payload = command(args)
        except ValueError as exc:
            parser.error(str(exc))
    finally:
        if needs_db:
            close_pool()
        clear_context()

    print(json.dumps(payload, indent=2, default=str))
    return EXIT_ERROR if payload.get("error") else EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
