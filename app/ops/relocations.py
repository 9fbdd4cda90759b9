from __future__ import annotations

import argparse
import json

from sqlalchemy.orm import sessionmaker

from app.branchflow.core.config import settings
from app.branchflow.core.logging import configure_logging
from app.branchflow.db.session import build_engine
from app.branchflow.services.relocation import RelocationService, RelocationSummary


def _summary_payload(summary: RelocationSummary) -> dict:
    return {
        "total": summary.total,
        "applied": summary.applied,
        "retrying": summary.retrying,
        "failed": summary.failed,
        "errors": summary.errors,
    }


def _format_text(summary: RelocationSummary) -> str:
    lines = [
        "Relocation Drain Report",
        f"Processed: {summary.total}",
        f"APPLIED: {summary.applied}",
        f"RETRYING: {summary.retrying}",
        f"FAILED: {summary.failed}",
    ]
    for error in summary.errors:
        lines.append(f"[ERROR] task={error['task_id']} {error['error']}")
    return "\n".join(lines)


def drain(
    output_format: str = "text",
    *,
    limit: int | None = None,
    max_attempts: int | None = None,
    fail_on_failed: bool = False,
    database_url: str | None = None,
) -> int:
    engine = build_engine(database_url or settings.DATABASE_URL)
    SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    try:
        with SessionLocal() as db:
            summary = RelocationService(db, max_attempts=max_attempts).apply_pending(limit=limit)
    finally:
        engine.dispose()

    if output_format == "json":
        print(json.dumps(_summary_payload(summary), indent=2, default=str))
    else:
        print(_format_text(summary))
    if fail_on_failed and summary.failed > 0:
        return 1
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Apply pending inventory relocation tasks")
    parser.add_argument("--format", choices=["json", "text"], default="text")
    parser.add_argument("--limit", type=int, default=None, help="Maximum number of tasks to process")
    parser.add_argument("--max-attempts", type=int, default=None)
    parser.add_argument("--fail-on-failed", action="store_true")
    parser.add_argument("--database-url", default=None)
    args = parser.parse_args(argv)
    configure_logging()
    return drain(
        args.format,
        limit=args.limit,
        max_attempts=args.max_attempts,
        fail_on_failed=args.fail_on_failed,
        database_url=args.database_url,
    )


if __name__ == "__main__":
    raise SystemExit(main())
