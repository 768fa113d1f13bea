"""
Solver Core Module
One quiz round (load, extract, classify, execute, submit) and the bounded
multi-round loop that follows reply URLs.
"""

import asyncio
import logging
import time
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urljoin

import requests

from .browser import BrowserManager
from .classifier import TaskClassifier
from .config import EngineConfig
from .downloader import AssetResolver
from .executor import TaskExecutor
from .models import SubmissionContext
from .parser import PageContentExtractor, parse_task_description
from .submitter import SubmissionDriver

logger = logging.getLogger(__name__)


def next_url(reply: Any) -> Optional[str]:
    """Follow-up quiz URL from an evaluator reply, if any."""
    if isinstance(reply, dict) and isinstance(reply.get('url'), str) and reply['url']:
        return reply['url']
    return None


def _log_abandoned(task: 'asyncio.Task'):
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.warning(f"Abandoned solver round finished with error: {error}")
    else:
        logger.info("Abandoned solver round finished after its deadline; result discarded")


class QuizSolver:
    """Main quiz solving engine with bounded round chaining."""

    def __init__(self, config: Optional[EngineConfig] = None,
                 browser_factory: Optional[Callable[[], Any]] = None,
                 extractor: Optional[PageContentExtractor] = None,
                 classifier: Optional[TaskClassifier] = None,
                 executor: Optional[TaskExecutor] = None,
                 submitter: Optional[SubmissionDriver] = None,
                 session: Optional[requests.Session] = None):
        self.config = config or EngineConfig()
        self.owns_session = session is None
        self.session = session = session or requests.Session()
        self.browser_factory = browser_factory or (
            lambda: BrowserManager(timeout=self.config.browser_timeout_ms))
        self.extractor = extractor or PageContentExtractor()
        self.classifier = classifier or TaskClassifier()
        self.executor = executor or TaskExecutor(self.config, AssetResolver(self.config, session))
        self.submitter = submitter or SubmissionDriver(self.config, session)

    async def run_task(self, email: str, secret: str, url: str) -> Any:
        """
        Run one round against a quiz URL.

        Returns:
            The evaluator's reply (possibly carrying a `url` for the next round)
            or the submission failure marker. Task execution errors propagate.
        """
        async with self.browser_factory() as browser:
            logger.info(f"Visiting: {url}")
            page = await browser.load(url)

            content = self.extractor.extract(page.markup, page.visible_text)
            description = parse_task_description(content)
            task_type = self.classifier.classify(description, content)

            result = await self.executor.execute(task_type, description, content, url)

            context = SubmissionContext(
                email=email,
                secret=secret,
                page_url=url,
                fallback_url=urljoin(url, description.url) if description and description.url else url,
            )
            logger.info(f"Submitting answer for {url}")
            return await asyncio.to_thread(self.submitter.submit, result, context)

    async def solve(self, email: str, secret: str, url: str) -> Dict[str, Any]:
        """
        Follow quiz rounds until no next URL, the round cap, or the deadline.

        Each round races the remaining time budget; a late round is abandoned
        (left running, its result discarded) and the loop stops.
        """
        start = time.monotonic()
        deadline = self.config.deadline_seconds
        rounds: List[Dict[str, Any]] = []
        current_url: Optional[str] = url
        abandoned: Optional[asyncio.Task] = None

        while current_url and len(rounds) < self.config.max_rounds:
            elapsed = time.monotonic() - start
            if elapsed >= deadline:
                logger.warning("Solver deadline reached")
                break
            time_left = max(1.0, deadline - elapsed)
            logger.info(f"Solver round {len(rounds) + 1} for {current_url} (time left {time_left:.1f}s)")

            round_task = asyncio.ensure_future(self.run_task(email, secret, current_url))
            try:
                reply = await asyncio.wait_for(asyncio.shield(round_task), timeout=time_left)
            except asyncio.TimeoutError:
                logger.error(f"Solver round timed out for {current_url}")
                round_task.add_done_callback(_log_abandoned)
                abandoned = round_task
                rounds.append({'url': current_url, 'error': 'solver round timeout'})
                break
            except Exception as e:
                logger.error(f"Solver round failed for {current_url}: {e}")
                rounds.append({'url': current_url, 'error': str(e)})
                break

            rounds.append({'url': current_url, 'reply': reply})
            current_url = next_url(reply)
            if current_url:
                logger.info(f"Solver received next URL: {current_url}")

        if abandoned is not None:
            abandoned.add_done_callback(lambda _: self.close())
        else:
            self.close()

        total_time = time.monotonic() - start
        logger.info(f"Solver finished after {len(rounds)} rounds in {total_time:.1f}s")
        return {'rounds': rounds, 'total_time': total_time}

    def close(self):
        """Close the HTTP session if this solver created it."""
        if self.owns_session:
            self.session.close()
