"""Command-line entrypoint: one-off crawls, job submission and the queue worker.

Usage:
    contact-crawler crawl https://example.com --max-depth 2
    contact-crawler enqueue https://example.com
    contact-crawler worker
"""

import argparse
import asyncio
import json
import signal
import sys

import structlog
from redis.exceptions import RedisError

from contact_crawler.config import Settings, get_settings
from contact_crawler.crawler.crawler import crawl_site
from contact_crawler.exceptions import CrawlerError
from contact_crawler.logging import setup_logging
from contact_crawler.queue import JobQueue, JobRecord, JobStatus

logger = structlog.get_logger(__name__)


async def process_job(job: JobRecord, queue: JobQueue, settings: Settings) -> JobRecord:
    """Run one queued crawl and record its outcome."""
    job.status = JobStatus.RUNNING
    await queue.update_job(job)
    logger.info("job_started", job_id=job.id, url=job.url)

    try:
        result = await crawl_site(job.url, max_depth=job.max_depth, settings=settings)
    except CrawlerError as e:
        job.status = JobStatus.FAILED
        job.error = e.message
        logger.warning("job_failed", job_id=job.id, code=e.code, error=e.message)
    except Exception as e:
        job.status = JobStatus.FAILED
        job.error = str(e) or type(e).__name__
        logger.error("job_crashed", job_id=job.id, error=job.error, exc_info=e)
    else:
        job.status = JobStatus.DONE
        job.result = result.to_dict()
        logger.info("job_completed", job_id=job.id, pages_scanned=result.pages_scanned)

    await queue.update_job(job)
    return job


async def run_worker(
    queue: JobQueue | None = None,
    stop: asyncio.Event | None = None,
    settings: Settings | None = None,
) -> int:
    """
    Consume crawl jobs until ``stop`` is set.

    Returns:
        Number of jobs processed
    """
    settings = settings or get_settings()
    queue = queue or JobQueue()
    stop = stop or asyncio.Event()
    processed = 0

    logger.info("worker_started", queue=queue.queue_key, env=settings.env)

    while not stop.is_set():
        try:
            job = await queue.get_next_job()
        except RedisError as e:
            logger.warning("queue_unavailable", queue=queue.queue_key, error=str(e))
            job = None

        if job is None:
            try:
                await asyncio.wait_for(stop.wait(), timeout=settings.worker_poll_interval)
            except TimeoutError:
                pass
            continue

        try:
            await process_job(job, queue, settings)
        except RedisError as e:
            # The job record could not be written; keep consuming
            logger.error("job_status_update_failed", job_id=job.id, error=str(e))
        processed += 1

    logger.info("worker_stopped", processed=processed)
    return processed


async def _worker_main() -> int:
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)
    return await run_worker(stop=stop)


async def _enqueue(url: str, max_depth: int) -> JobRecord:
    return await JobQueue().add_job(url, max_depth)


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    parser = argparse.ArgumentParser(
        prog="contact-crawler",
        description="Crawl a website for email addresses and phone numbers",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    crawl = sub.add_parser("crawl", help="Crawl a site and print the result as JSON")
    crawl.add_argument("url", help="Seed URL (http or https)")
    crawl.add_argument(
        "--max-depth",
        type=int,
        default=settings.crawl_max_depth,
        help=f"Maximum link depth (default: {settings.crawl_max_depth})",
    )
    crawl.add_argument(
        "--max-pages",
        type=int,
        default=None,
        help=f"Maximum pages to fetch (default: {settings.crawl_max_pages})",
    )
    crawl.add_argument("--no-cache", action="store_true", help="Skip the Redis result cache")

    enqueue = sub.add_parser("enqueue", help="Queue a crawl for the worker")
    enqueue.add_argument("url", help="Seed URL (http or https)")
    enqueue.add_argument("--max-depth", type=int, default=settings.crawl_max_depth)

    sub.add_parser("worker", help="Process queued crawl jobs")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging()

    if args.command == "crawl":
        try:
            result = asyncio.run(
                crawl_site(
                    args.url,
                    max_depth=args.max_depth,
                    max_pages=args.max_pages,
                    use_cache=not args.no_cache,
                )
            )
        except CrawlerError as e:
            logger.error("crawl_failed", code=e.code, error=e.message)
            return 1
        print(json.dumps(result.to_dict(), indent=2))
        return 0

    if args.command == "enqueue":
        job = asyncio.run(_enqueue(args.url, args.max_depth))
        print(json.dumps(job.to_dict(), indent=2))
        return 0

    asyncio.run(_worker_main())
    return 0


if __name__ == "__main__":
    sys.exit(main())
