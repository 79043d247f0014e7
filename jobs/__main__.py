"""CLI entrypoint for running the job worker."""
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from dotenv import load_dotenv

from domain.models import GenerationContext

from .queue import build_default_queue
from .runner import JobWorker


def _load_seed(path: str) -> dict:
    seed_path = Path(path)
    if not seed_path.exists():
        raise FileNotFoundError(f"Seed file not found: {seed_path}")
    try:
        data = json.loads(seed_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {seed_path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError("Seed file must contain a JSON object")
    return data


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the generation job worker")
    parser.add_argument(
        "--seed",
        help='JSON file with {"websites": [...], "jobs": [{"type": "BLOG_GENERATION", "input": {...}}]}',
    )
    parser.add_argument("--once", action="store_true", help="Drain the queue, print job statuses and exit")
    args = parser.parse_args()

    load_dotenv()
    queue = build_default_queue()
    job_ids = []
    if args.seed:
        seed = _load_seed(args.seed)
        for website in seed.get("websites") or []:
            ctx = queue.content.add_website(GenerationContext.from_dict(website))
            for keyword in website.get("keywords") or []:
                queue.content.add_keyword(ctx.id, str(keyword))
        for item in seed.get("jobs") or []:
            job_ids.append(queue.enqueue(item.get("type", "BLOG_GENERATION"), item.get("input") or {}))

    worker = JobWorker(queue)
    if args.once:
        worker.run_until_idle()
        statuses = [queue.jobs.get(job_id).to_status_dict() for job_id in job_ids]
        print(json.dumps(statuses, ensure_ascii=False, indent=2))
        return

    worker.start()
    try:
        worker.wait()
    except KeyboardInterrupt:
        worker.stop()


if __name__ == "__main__":  # pragma: no cover
    try:
        main()
    except Exception as exc:  # noqa: BLE001
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)
