import json
from urllib.parse import parse_qs

import pytest
import requests

from conftest import make_response
from quiz_engine.models import AnswerResult, Attachment, SubmissionContext
from quiz_engine.submitter import SubmissionDriver, answer_to_text

PAGE_URL = 'https://quiz.test/demo?step=1'
FALLBACK_URL = 'https://quiz.test/answer'


@pytest.fixture
def driver(config, session):
    return SubmissionDriver(config, session)


@pytest.fixture
def context():
    return SubmissionContext(email='me@example.com', secret='s3cret', page_url=PAGE_URL,
                             fallback_url=FALLBACK_URL)


def test_attempt_order(driver, context):
    attempts = driver.build_attempts(AnswerResult(answer=42), context)
    assert [(a.label, a.method, a.target_url) for a in attempts] == [
        ('POST JSON /submit', 'POST', 'https://quiz.test/submit'),
        ('POST Form /submit', 'POST', 'https://quiz.test/submit'),
        ('POST JSON', 'POST', FALLBACK_URL),
        ('POST Form', 'POST', FALLBACK_URL),
        ('POST Plain', 'POST', FALLBACK_URL),
        ('GET Query', 'GET', FALLBACK_URL),
    ]


def test_payload_formats(driver, context):
    attempts = driver.build_attempts(AnswerResult(answer=42), context)
    assert json.loads(attempts[0].body) == {
        'email': 'me@example.com', 'secret': 's3cret', 'url': PAGE_URL, 'answer': 42}
    assert attempts[0].headers['Content-Type'] == 'application/json'
    form = parse_qs(attempts[1].body)
    assert form['answer'] == ['42']
    assert form['url'] == [PAGE_URL]
    assert attempts[4].body == '42'
    assert attempts[5].params == {'answer': '42', 'email': 'me@example.com', 'secret': 's3cret'}


def test_attachments_in_json_payload(driver, context):
    result = AnswerResult(answer='aGk=', attachments=[Attachment(name='chart.png', mime='image/png',
                                                                 base64_data='aGk=')])
    body = json.loads(driver.build_attempts(result, context)[0].body)
    assert body['attachments'] == [{'name': 'chart.png', 'mime': 'image/png', 'b64': 'aGk='}]


def test_fallback_defaults_to_page_url(driver):
    context = SubmissionContext(email='e', secret='s', page_url=PAGE_URL)
    attempts = driver.build_attempts(AnswerResult(answer='x'), context)
    assert attempts[2].target_url == PAGE_URL


def test_stops_at_first_success(driver, context, session):
    session.add('POST', 'https://quiz.test/submit',
                make_response(500, 'error', 'text/plain'), make_response(404, 'nope', 'text/plain'))
    session.add('POST', FALLBACK_URL,
                make_response(200, '{"correct": true, "url": "https://quiz.test/next"}', 'application/json'))

    reply = driver.submit(AnswerResult(answer=42), context)
    assert reply == {'correct': True, 'url': 'https://quiz.test/next'}
    assert len(session.calls) == 3


def test_plain_text_reply(driver, context, session):
    session.add('POST', 'https://quiz.test/submit', make_response(200, 'Thanks!', 'text/plain'))
    assert driver.submit(AnswerResult(answer='x'), context) == 'Thanks!'


def test_network_errors_do_not_abort(driver, context, session):
    session.add('POST', 'https://quiz.test/submit', requests.Timeout('slow'))
    session.add('POST', FALLBACK_URL, requests.ConnectionError('refused'))
    session.add('GET', FALLBACK_URL, make_response(200, '{"correct": false}', 'application/json'))
    assert driver.submit(AnswerResult(answer=1), context) == {'correct': False}
    assert len(session.calls) == 6


def test_all_attempts_fail(driver, context, session):
    session.add('POST', 'https://quiz.test/submit', make_response(500, 'error', 'text/plain'))
    reply = driver.submit(AnswerResult(answer=1), context)
    assert reply == {'correct': False, 'reason': 'submission failed'}
    assert len(session.calls) == 6
    assert all(c['timeout'] == 15.0 for c in session.calls)


def test_answer_to_text():
    assert answer_to_text('abc') == 'abc'
    assert answer_to_text(True) == 'true'
    assert answer_to_text(8.5) == '8.5'
    assert answer_to_text({'a': 1}) == '{"a": 1}'
    assert answer_to_text(None) == 'null'
