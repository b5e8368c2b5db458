"""Save several URLs to LaterStack concurrently.

Usage:
    uv run python -m tools.save_urls --user user_123 https://a.example/post https://b.example/post
    cat urls.txt | uv run python -m tools.save_urls --user user_123

Options:
    --base-url   API base URL (default: http://localhost:8000)
    --user       Identity-provider user id sent in the auth header
    --header     Auth header name (default: X-User-Id)
"""

import argparse
import asyncio
import logging
import sys

from laterstack.client import LaterStackClient, SubmissionCoordinator, SubmissionStatus

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Save URLs to LaterStack")
    parser.add_argument("urls", nargs="*", help="URLs to save (read from stdin if omitted)")
    parser.add_argument("--base-url", default="http://localhost:8000")
    parser.add_argument("--user", required=True)
    parser.add_argument("--header", default="X-User-Id")
    return parser.parse_args(argv)


async def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    urls = args.urls or [line.strip() for line in sys.stdin if line.strip()]
    if not urls:
        logger.error("No URLs given")
        return 1

    async with LaterStackClient(args.base_url, args.user, auth_header=args.header) as client:
        coordinator = SubmissionCoordinator(client.save_article, success_linger=0)
        coordinator.subscribe(
            lambda pending: logger.info(
                "In flight: %d",
                sum(1 for a in pending if a.status == SubmissionStatus.LOADING),
            )
        )
        results = await asyncio.gather(*(coordinator.submit(url) for url in urls))
        coordinator.close()

    failures = 0
    for article in results:
        if article.status == SubmissionStatus.SUCCESS:
            item = article.saved_item
            detail = (
                f"{item.title} ({item.estimated_time} min, relevance {item.relevance_score:.2f})"
                if item
                else "saved"
            )
            logger.info("OK    %s: %s", article.url, detail)
        elif article.is_duplicate:
            logger.info("DUP   %s: %s", article.url, article.error)
        else:
            failures += 1
            logger.info("FAIL  %s: %s", article.url, article.error)

    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
