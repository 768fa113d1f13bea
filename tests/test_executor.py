import asyncio
import base64

import pytest

from quiz_engine.csv_utils import CSVProcessor
from quiz_engine.errors import FeatureDisabledError, MissingAssetError, MissingDataError
from quiz_engine.executor import TaskExecutor
from quiz_engine.models import TaskDescription, TaskType
from quiz_engine.ocr_utils import OCRProcessor
from quiz_engine.pdf_utils import sum_loose_table, sum_page_column


class FakeResolver:
    def __init__(self, files):
        self.files = files
        self.requested = []

    def download(self, url, method='GET', **options):
        self.requested.append(url)
        return self.files[url]


class FakeOCR:
    def __init__(self, text):
        self.text = text

    def extract_from_bytes(self, image_bytes):
        return self.text


class FakeChart:
    def __init__(self):
        self.calls = []

    def bar_chart_png(self, series, title=None, width=800, height=600):
        self.calls.append((series, title, width, height))
        return b'\x89PNG-fake'


def run(executor, task_type, description=None, text='', page_url='https://quiz.test/q'):
    return asyncio.run(executor.execute(task_type, description, text, page_url))


def describe(**fields):
    return TaskDescription.model_validate(fields)


class TestCsvSum:
    def test_sum_treats_non_numeric_as_zero(self):
        records = [{'value': '3'}, {'value': 'abc'}, {'value': '5.5'}]
        assert CSVProcessor().sum_column(records, 'value') == 8.5

    def test_missing_column_and_empty_cells(self):
        processor = CSVProcessor()
        assert processor.sum_column([{'a': '1'}], 'value') == 0
        assert processor.sum_column([{'value': ''}, {'value': ' 2 '}], 'value') == 2
        assert processor.sum_column([], 'value') == 0

    def test_parse_records_keeps_strings(self):
        records = CSVProcessor().parse_records(b'name,amount\nx,4\ny,\n')
        assert records == [{'name': 'x', 'amount': '4'}, {'name': 'y', 'amount': ''}]

    def test_executor_uses_named_column(self):
        resolver = FakeResolver({'https://x/data.csv': b'id,amount,value\n1,4,100\n2,6,200\n'})
        result = run(TaskExecutor(resolver=resolver), TaskType.CSV_SUM,
                     describe(url='https://x/data.csv', column='amount'))
        assert result.answer == 10
        assert isinstance(result.answer, int)

    def test_executor_falls_back_to_url_in_text(self):
        resolver = FakeResolver({'https://x/d.csv': b'value\n1.5\n2\n'})
        result = run(TaskExecutor(resolver=resolver), TaskType.CSV_SUM, None,
                     'Download https://x/d.csv and add the value column')
        assert result.answer == 3.5

    def test_relative_url_resolved_against_page(self):
        resolver = FakeResolver({'https://quiz.test/files/data.csv': b'value\n4\n6\n'})
        result = run(TaskExecutor(resolver=resolver), TaskType.CSV_SUM,
                     describe(url='/files/data.csv'), page_url='https://quiz.test/q1')
        assert result.answer == 10
        assert resolver.requested == ['https://quiz.test/files/data.csv']

    def test_missing_asset(self):
        with pytest.raises(MissingAssetError):
            run(TaskExecutor(resolver=FakeResolver({})), TaskType.CSV_SUM, None, 'sum the csv')


class TestPdfSum:
    def test_first_numeric_cell_per_line(self):
        assert sum_loose_table('Item   Amount\nItem   10\nItem   20') == 30

    def test_fallback_sums_all_numbers(self):
        assert sum_loose_table('Totals\n10 apples 5 oranges') == 15

    def test_control_characters_stripped(self):
        assert sum_loose_table('a\t\x0712\nb,  8') == 20

    def test_page_selection(self):
        text = 'Cover 99\fItem   10\nItem   20\fItem   1'
        assert sum_page_column(text, 2) == 30
        assert sum_page_column(text, 3) == 1
        assert sum_page_column(text, 7) == 99

    def test_executor_defaults_to_page_two(self):
        resolver = FakeResolver({'https://x/r.pdf': b'%PDF'})
        executor = TaskExecutor(resolver=resolver,
                                pdf_reader=lambda content: 'Cover 1\fRow   2.5\nRow   4')
        assert run(executor, TaskType.PDF_SUM, describe(url='https://x/r.pdf')).answer == 6.5
        assert run(executor, TaskType.PDF_SUM, describe(url='https://x/r.pdf', page=1)).answer == 1


class TestImageOcr:
    def test_first_number_from_ocr_text(self):
        executor = TaskExecutor(resolver=FakeResolver({'https://x/i.png': b'img'}),
                                ocr=FakeOCR('Total: 42 items, 7 boxes'))
        assert run(executor, TaskType.IMAGE_OCR, describe(url='https://x/i.png')).answer == '42'

    def test_text_when_no_number(self):
        executor = TaskExecutor(resolver=FakeResolver({'https://x/i.png': b'img'}),
                                ocr=FakeOCR('  hello world '))
        assert run(executor, TaskType.IMAGE_OCR, describe(url='https://x/i.png')).answer == 'hello world'

    def test_disabled_ocr(self):
        executor = TaskExecutor(resolver=FakeResolver({'https://x/i.png': b'img'}),
                                ocr=OCRProcessor(enabled=False))
        with pytest.raises(FeatureDisabledError) as exc_info:
            run(executor, TaskType.IMAGE_OCR, describe(url='https://x/i.png'))
        assert 'not enabled' in str(exc_info.value)


class TestChart:
    def test_chart_answer_and_attachment(self):
        chart = FakeChart()
        description = describe(makeChart=True, title='Sales', data=[{'label': 'a', 'value': 1}, {'x': 'b', 'y': 2}])
        result = run(TaskExecutor(resolver=FakeResolver({}), chart_generator=chart), TaskType.CHART, description)

        expected = base64.b64encode(b'\x89PNG-fake').decode('ascii')
        assert result.answer == expected
        assert result.attachments[0].name == 'chart.png'
        assert result.attachments[0].mime == 'image/png'
        assert result.attachments[0].base64_data == expected
        series, title, width, height = chart.calls[0]
        assert [p.display_label for p in series] == ['a', 'b']
        assert (title, width, height) == ('Sales', 800, 600)

    def test_missing_data(self):
        with pytest.raises(MissingDataError):
            run(TaskExecutor(resolver=FakeResolver({}), chart_generator=FakeChart()),
                TaskType.CHART, describe(makeChart=True))


class TestSimpleBranches:
    def test_passthrough_keeps_value(self):
        executor = TaskExecutor(resolver=FakeResolver({}))
        assert run(executor, TaskType.PASSTHROUGH, describe(answer=False)).answer is False
        assert run(executor, TaskType.PASSTHROUGH, describe(answer={'k': [1, 2]})).answer == {'k': [1, 2]}

    def test_unknown_first_number(self):
        executor = TaskExecutor(resolver=FakeResolver({}))
        assert run(executor, TaskType.UNKNOWN, None, 'The secret is 1234 or 5').answer == '1234'
        assert run(executor, TaskType.UNKNOWN, None, 'no digits').answer == 'unable to determine'


class TestAudio:
    def test_placeholder_transcription(self, config, session):
        from conftest import make_response
        from quiz_engine.downloader import AssetResolver

        session.add('GET', 'https://quiz.test/demo-audio.opus', make_response(200, b'opus', 'audio/ogg'))
        executor = TaskExecutor(config, resolver=AssetResolver(config, session))
        result = run(executor, TaskType.AUDIO_TRANSCRIBE, describe(url='https://quiz.test/demo-audio'))
        assert result.answer == 'TRANSCRIPTION_PLACEHOLDER'

    def test_missing_audio_url(self):
        with pytest.raises(MissingAssetError):
            run(TaskExecutor(resolver=FakeResolver({})), TaskType.AUDIO_TRANSCRIBE, None, 'transcribe the audio')
