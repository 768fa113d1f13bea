"""Shared fixtures: a stub requests session serving canned responses."""

from typing import Dict, List, Optional, Tuple, Union

import pytest
import requests

from quiz_engine.config import EngineConfig


def make_response(status: int = 200, body: Union[bytes, str] = b'',
                  content_type: str = 'application/octet-stream', url: str = '') -> requests.Response:
    response = requests.Response()
    response.status_code = status
    response._content = body if isinstance(body, bytes) else body.encode('utf-8')
    response.headers['Content-Type'] = content_type
    response.encoding = 'utf-8'
    response.url = url
    response.reason = 'OK' if status < 400 else 'Error'
    return response


class StubSession:
    """
    Serves responses per (method, url). A list is consumed in order and its
    last item repeats. Exceptions in the list are raised. Unknown routes raise
    ConnectionError. Every call is recorded.
    """

    def __init__(self, routes: Optional[Dict[Tuple[str, str], List]] = None):
        self.routes = {key: list(value) for key, value in (routes or {}).items()}
        self.calls: List[Dict] = []
        self.closed = False

    def add(self, method: str, url: str, *responses):
        self.routes[(method, url)] = list(responses)

    def request(self, method, url, headers=None, data=None, params=None, timeout=None):
        self.calls.append({'method': method, 'url': url, 'headers': headers or {},
                           'data': data, 'params': params, 'timeout': timeout})
        queue = self.routes.get((method, url))
        if not queue:
            raise requests.ConnectionError(f"no route for {method} {url}")
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        return item

    def close(self):
        self.closed = True

    def urls(self, method: Optional[str] = None) -> List[str]:
        return [c['url'] for c in self.calls if method is None or c['method'] == method]


@pytest.fixture
def config():
    return EngineConfig(expected_secret='s3cret', fetch_retry_delay=0.0)


@pytest.fixture
def session():
    return StubSession()
