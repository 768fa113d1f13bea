"""
Submission Module
Delivers answers to the evaluator through an ordered chain of transports.
"""

import json
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode
import requests

from .config import EngineConfig
from .errors import ChainExhaustedError, HttpStatusError, NetworkError
from .fallback import FallbackChain
from .models import AnswerResult, SubmissionAttempt, SubmissionContext
from .parser import origin_of

logger = logging.getLogger(__name__)

SUBMISSION_FAILED = {'correct': False, 'reason': 'submission failed'}
SNIPPET_LENGTH = 500


def answer_to_text(answer: Any) -> str:
    """Stringify an answer for form, plain-text and query transports."""
    if isinstance(answer, str):
        return answer
    if isinstance(answer, bool):
        return 'true' if answer else 'false'
    if answer is None:
        return 'null'
    if isinstance(answer, (int, float)):
        return str(answer)
    return json.dumps(answer)


def parse_reply(text: str) -> Any:
    try:
        return json.loads(text)
    except (json.JSONDecodeError, ValueError):
        return text


class SubmissionDriver:
    """Tries each delivery strategy in order until one gets a 2xx reply."""

    def __init__(self, config: Optional[EngineConfig] = None, session: Optional[requests.Session] = None):
        self.config = config or EngineConfig()
        self.session = session or requests.Session()

    def build_attempts(self, result: AnswerResult, context: SubmissionContext) -> List[SubmissionAttempt]:
        """
        Build the ordered delivery strategies.

        JSON and form POSTs go to {origin}/submit first, then JSON, form and
        plain-text POSTs to the fallback URL, and finally a GET with query
        parameters against the fallback URL.
        """
        origin = origin_of(context.page_url)
        submit_url = f"{origin}/submit" if origin else None
        fallback_url = context.fallback_url or context.page_url

        payload: Dict[str, Any] = {
            'email': context.email,
            'secret': context.secret,
            'url': context.page_url,
            'answer': result.answer,
        }
        if result.attachments:
            payload['attachments'] = [a.to_wire() for a in result.attachments]

        answer_text = answer_to_text(result.answer)
        json_body = json.dumps(payload)
        form_body = urlencode({
            'email': context.email,
            'secret': context.secret,
            'url': context.page_url,
            'answer': answer_text,
        })
        json_headers = {'Content-Type': 'application/json'}
        form_headers = {'Content-Type': 'application/x-www-form-urlencoded'}

        attempts = []
        if submit_url:
            attempts += [
                SubmissionAttempt(label='POST JSON /submit', target_url=submit_url,
                                  headers=json_headers, body=json_body),
                SubmissionAttempt(label='POST Form /submit', target_url=submit_url,
                                  headers=form_headers, body=form_body),
            ]
        attempts += [
            SubmissionAttempt(label='POST JSON', target_url=fallback_url,
                              headers=json_headers, body=json_body),
            SubmissionAttempt(label='POST Form', target_url=fallback_url,
                              headers=form_headers, body=form_body),
            SubmissionAttempt(label='POST Plain', target_url=fallback_url,
                              headers={'Content-Type': 'text/plain'}, body=answer_text),
            SubmissionAttempt(label='GET Query', target_url=fallback_url, method='GET',
                              params={'answer': answer_text, 'email': context.email,
                                      'secret': context.secret}),
        ]
        return attempts

    def submit(self, result: AnswerResult, context: SubmissionContext) -> Any:
        """
        Submit an answer.

        Returns:
            The first successful reply (JSON-decoded when possible), or the
            failure marker {"correct": False, "reason": "submission failed"}
        """
        attempts = self.build_attempts(result, context)
        steps = [(attempt.label, lambda attempt=attempt: self._deliver(attempt)) for attempt in attempts]
        try:
            label, reply = FallbackChain('submission').run(steps)
        except ChainExhaustedError:
            logger.error(f"All {len(attempts)} submission attempts failed")
            return dict(SUBMISSION_FAILED)
        logger.info(f"Submission succeeded with {label!r}: {str(reply)[:SNIPPET_LENGTH]}")
        return reply

    def _deliver(self, attempt: SubmissionAttempt) -> Any:
        try:
            response = self.session.request(
                attempt.method, attempt.target_url,
                headers=attempt.headers, data=attempt.body, params=attempt.params,
                timeout=self.config.submit_timeout,
            )
        except requests.Timeout as e:
            raise NetworkError(attempt.target_url, str(e), timed_out=True) from e
        except requests.RequestException as e:
            raise NetworkError(attempt.target_url, str(e)) from e

        body = response.text
        logger.info(f"Attempt {attempt.label} -> {response.status_code}")
        if body:
            logger.debug(f"Response snippet: {body[:SNIPPET_LENGTH]}")
        if not 200 <= response.status_code < 300:
            snippet = body[:SNIPPET_LENGTH] if self.config.debug_snippets else ''
            raise HttpStatusError(attempt.target_url, response.status_code, response.reason or '', snippet,
                                  message=f"{attempt.label} returned {response.status_code}")
        return parse_reply(body)
