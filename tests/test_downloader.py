import pytest
import requests

from conftest import make_response
from quiz_engine.downloader import AssetResolver
from quiz_engine.errors import HtmlInsteadOfAssetError, HttpStatusError, NetworkError

FILE_URL = 'https://files.test/data.bin'


@pytest.fixture
def resolver(config, session):
    return AssetResolver(config, session)


def test_returns_raw_bytes(resolver, session):
    session.add('GET', FILE_URL, make_response(200, b'\x00\x01raw'))
    asset = resolver.resolve(FILE_URL)
    assert asset.content == b'\x00\x01raw'
    assert asset.url == FILE_URL


def test_merges_headers_over_defaults(resolver, session):
    session.add('GET', FILE_URL, make_response(200, b'ok'))
    resolver.download(FILE_URL, headers={'Accept': 'text/csv', 'Referer': 'https://quiz.test/'})
    headers = session.calls[0]['headers']
    assert headers['Accept'] == 'text/csv'
    assert headers['Referer'] == 'https://quiz.test/'
    assert 'User-Agent' in headers


def test_post_405_retries_as_get(resolver, session):
    session.add('POST', FILE_URL, make_response(405, 'Method Not Allowed', 'text/plain'))
    session.add('GET', FILE_URL, make_response(200, b'payload'))
    assert resolver.download(FILE_URL, method='POST', body=b'{}') == b'payload'
    assert [c['method'] for c in session.calls] == ['POST', 'GET']


def test_html_wrapper_with_relative_audio_src(resolver, session):
    page_url = 'https://quiz.test/media/player'
    session.add('GET', page_url,
                make_response(200, '<html><body><audio src="track.opus"></audio></body></html>', 'text/html; charset=utf-8'))
    session.add('GET', 'https://quiz.test/media/track.opus', make_response(200, b'OggS-audio', 'audio/ogg'))

    asset = resolver.resolve(page_url)
    assert asset.content == b'OggS-audio'
    assert asset.url == 'https://quiz.test/media/track.opus'


def test_html_without_asset_raises(resolver, session):
    session.add('GET', FILE_URL, make_response(200, '<html><body>Sorry</body></html>', 'text/html'))
    with pytest.raises(HtmlInsteadOfAssetError) as exc_info:
        resolver.download(FILE_URL, retries=1)
    assert exc_info.value.snippet == ''


def test_html_snippet_in_debug_mode(resolver, session):
    session.add('GET', FILE_URL, make_response(200, '<html><body>Sorry</body></html>', 'text/html'))
    with pytest.raises(HtmlInsteadOfAssetError) as exc_info:
        resolver.download(FILE_URL, retries=1, debug=True)
    assert 'Sorry' in exc_info.value.snippet


def test_retries_then_succeeds(resolver, session):
    session.add('GET', FILE_URL, requests.ConnectionError('reset'), make_response(200, b'second time'))
    assert resolver.download(FILE_URL, retries=2) == b'second time'
    assert len(session.calls) == 2


def test_exhausted_retries_reraise_last_error(resolver, session):
    session.add('GET', FILE_URL, make_response(500, 'boom', 'text/plain'))
    with pytest.raises(HttpStatusError) as exc_info:
        resolver.download(FILE_URL, retries=3)
    assert exc_info.value.status == 500
    assert len(session.calls) == 3


def test_timeout_is_distinguished(resolver, session):
    session.add('GET', FILE_URL, requests.Timeout('read timed out'))
    with pytest.raises(NetworkError) as exc_info:
        resolver.download(FILE_URL, retries=1, timeout=0.5)
    assert exc_info.value.timed_out
    assert 'timeout' in str(exc_info.value)
    assert session.calls[0]['timeout'] == 0.5


def test_forbidden_mentions_auth(resolver, session):
    session.add('GET', FILE_URL, make_response(403, 'login required', 'text/plain'))
    with pytest.raises(HttpStatusError) as exc_info:
        resolver.download(FILE_URL, retries=1, debug=True)
    assert 'cookies/headers/auth' in str(exc_info.value)
    assert exc_info.value.snippet == 'login required'


def test_backoff_doubles(config, session, monkeypatch):
    delays = []
    monkeypatch.setattr('quiz_engine.downloader.time.sleep', delays.append)
    session.add('GET', FILE_URL, make_response(502, 'bad gateway', 'text/plain'))
    with pytest.raises(HttpStatusError):
        AssetResolver(config, session).download(FILE_URL, retries=3, retry_delay=0.5)
    assert delays == [0.5, 1.0]
