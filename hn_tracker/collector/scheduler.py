"""Producer/consumer loops that snapshot the front page and walk its comment threads."""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Dict, Optional

from hn_tracker.collector.assembler import ArticleAssembler
from hn_tracker.collector.fetcher import FetchError, PageFetcher
from hn_tracker.collector.rate_limiter import RateLimiter
from hn_tracker.collector.threads import ThreadReconstructor, ThreadResult
from hn_tracker.config import Config
from hn_tracker.extract.rows import comment_rows, front_page_rows, parse_document
from hn_tracker.models.records import Article, Snapshot
from hn_tracker.storage.article_store import ArticleStore
from hn_tracker.storage.closure_store import ClosureStore
from hn_tracker.storage.database import Database, StoreError

logger = logging.getLogger(__name__)


class SnapshotScheduler:
    """
    Runs the snapshot producer and the comment consumer for process lifetime.

    The producer captures the front page once at startup and then every
    ``interval_sec``. Completed snapshots are handed over through a queue of
    capacity one: while a snapshot is still waiting there, the producer blocks,
    so at most one snapshot is in flight behind the one being processed. The
    consumer walks each snapshot's articles in order, waiting on the shared
    rate limiter before every comment page request.
    """

    def __init__(
        self,
        config: Config,
        database: Database,
        fetcher: PageFetcher,
        rate_limiter: RateLimiter,
        interval_sec: float,
        prometheus_exporter=None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        queue_size: int = 1,
    ):
        """
        Initialize the scheduler.

        Args:
            config: Application configuration
            database: Database the snapshots, articles and threads are stored in
            fetcher: Page fetcher
            rate_limiter: Throttle shared by all comment page requests
            interval_sec: Seconds between front page snapshots
            prometheus_exporter: Optional Prometheus metrics exporter
            clock: Monotonic time source
            sleep: Coroutine function used to wait between snapshots
            queue_size: Capacity of the handoff queue
        """
        self.config = config
        self.database = database
        self.fetcher = fetcher
        self.rate_limiter = rate_limiter
        self.interval_sec = interval_sec
        self.prometheus_exporter = prometheus_exporter
        self._clock = clock
        self._sleep = sleep
        self.queue: "asyncio.Queue[Snapshot]" = asyncio.Queue(maxsize=queue_size)
        self.stats: Dict[str, int] = {
            "snapshots": 0,
            "articles": 0,
            "threads": 0,
            "comments": 0,
            "edges": 0,
            "malformed_rows": 0,
            "fetch_errors": 0,
            "store_errors": 0,
        }

    async def produce_once(self) -> Optional[Snapshot]:
        """
        Capture the front page, store it as a snapshot and hand it to the consumer.

        A failed fetch skips the cycle before anything is stored; a store error
        rolls back the snapshot and its articles.

        Returns:
            The published snapshot, or None if the cycle was skipped
        """
        url = self.fetcher.resolve()
        try:
            html = await self.fetcher.fetch(url)
        except FetchError as e:
            self.stats["fetch_errors"] += 1
            if self.prometheus_exporter:
                self.prometheus_exporter.record_fetch_error("front_page")
            logger.error(f"Skipping snapshot cycle: {e}")
            return None

        rows = front_page_rows(parse_document(html), self.config.selectors)
        try:
            with self.database.session() as session:
                store = ArticleStore(session)
                snapshot = store.insert_snapshot()
                assembler = ArticleAssembler(store, self.config.selectors, self.prometheus_exporter)
                assembler.assemble(snapshot, rows)
        except StoreError as e:
            self.stats["store_errors"] += 1
            if self.prometheus_exporter:
                self.prometheus_exporter.record_store_error("snapshot")
            logger.error(f"Failed to store front page snapshot, skipping cycle: {e}")
            return None

        self.stats["snapshots"] += 1
        self.stats["articles"] += len(snapshot.articles)
        if self.prometheus_exporter:
            self.prometheus_exporter.record_snapshot()
        logger.info(f"Stored snapshot {snapshot.id} with {len(snapshot.articles)} articles")

        await self.publish(snapshot)
        return snapshot

    async def publish(self, snapshot: Snapshot) -> None:
        """Put a snapshot on the handoff queue, blocking while the queue is full."""
        if self.queue.full():
            logger.info(f"Snapshot {snapshot.id} waiting for the previous snapshot's comments to start")
        await self.queue.put(snapshot)
        if self.prometheus_exporter:
            self.prometheus_exporter.set_queued_snapshots(self.queue.qsize())

    async def process_snapshot(self, snapshot: Snapshot) -> None:
        """Reconstruct the comment thread of every article in the snapshot, throttled."""
        logger.info(f"Updating comments for snapshot {snapshot.id} ({len(snapshot.articles)} articles)")
        for article in snapshot.articles:
            await self.rate_limiter.wait()
            try:
                await self.process_article(article)
            except Exception as e:
                logger.error(f"Unexpected error processing comments for {article.comments_link}: {str(e)}", exc_info=True)

    async def process_article(self, article: Article) -> Optional[ThreadResult]:
        """
        Fetch one article's comment page and store its thread.

        The whole thread is written in one transaction; a store error discards
        all of it.

        Returns:
            The reconstruction result, or None if the article was skipped
        """
        url = self.fetcher.resolve(article.comments_link)
        logger.info(f"Parsing comments for {article.comments_link}")
        try:
            html = await self.fetcher.fetch(url)
        except FetchError as e:
            self.stats["fetch_errors"] += 1
            if self.prometheus_exporter:
                self.prometheus_exporter.record_fetch_error("comments")
            logger.error(f"Skipping comments for {article.comments_link}: {e}")
            return None

        rows = comment_rows(parse_document(html), self.config.selectors)
        try:
            with self.database.session() as session:
                reconstructor = ThreadReconstructor(
                    ClosureStore(session), self.config.selectors, self.prometheus_exporter
                )
                result = reconstructor.reconstruct(article, rows)
        except StoreError as e:
            self.stats["store_errors"] += 1
            if self.prometheus_exporter:
                self.prometheus_exporter.record_store_error("thread")
            logger.error(f"Discarded comment thread of {article.comments_link} after a store error: {e}")
            return None

        self.stats["threads"] += 1
        self.stats["comments"] += len(result.comments)
        self.stats["edges"] += result.edges
        self.stats["malformed_rows"] += result.malformed
        logger.info(
            f"Stored {len(result.comments)} comments ({result.edges} thread rows, "
            f"{result.malformed} malformed rows skipped) for {article.comments_link}"
        )
        return result

    async def run_producer(self) -> None:
        """Snapshot the front page now and then every ``interval_sec``."""
        logger.info(f"Starting snapshot loop, interval: {self.interval_sec}s")
        while True:
            cycle_start = self._clock()
            try:
                await self.produce_once()
            except Exception as e:
                logger.error(f"Error in snapshot cycle: {str(e)}", exc_info=True)

            elapsed = self._clock() - cycle_start
            await self._sleep(max(0.0, self.interval_sec - elapsed))

    async def run_consumer(self) -> None:
        """Process queued snapshots one at a time, in the order they were produced."""
        logger.info(f"Starting comments loop, throttle: {self.rate_limiter.interval_sec}s")
        while True:
            snapshot = await self.queue.get()
            if self.prometheus_exporter:
                self.prometheus_exporter.set_queued_snapshots(self.queue.qsize())
            try:
                await self.process_snapshot(snapshot)
            finally:
                self.queue.task_done()
            logger.info(
                f"Finished snapshot {snapshot.id}; totals: {self.stats['snapshots']} snapshots, "
                f"{self.stats['comments']} comments, {self.stats['fetch_errors']} fetch errors, "
                f"{self.stats['store_errors']} store errors"
            )

    async def run(self) -> None:
        """Run both loops until the process is terminated."""
        await asyncio.gather(self.run_producer(), self.run_consumer())
