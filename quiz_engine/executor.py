"""
Task Executor Module
Runs the computation for a classified task and builds the answer.
"""

import asyncio
import base64
import logging
from typing import Any, Awaitable, Callable, Dict, Optional
from urllib.parse import urljoin

from .audio_utils import AudioLocator, transcribe
from .chart_utils import ChartGenerator
from .config import EngineConfig
from .csv_utils import CSVProcessor
from .downloader import AssetResolver
from .errors import MissingAssetError, MissingDataError
from .models import AnswerResult, Attachment, TaskDescription, TaskType
from .ocr_utils import OCRProcessor
from .parser import extract_first_number, extract_first_url
from .pdf_utils import PDFProcessor, sum_page_column

logger = logging.getLogger(__name__)

UNABLE_TO_DETERMINE = 'unable to determine'
CHART_WIDTH = 800
CHART_HEIGHT = 600


class TaskExecutor:
    """Dispatches a TaskType to its handler. Blocking work runs in worker threads."""

    def __init__(self, config: Optional[EngineConfig] = None,
                 resolver: Optional[AssetResolver] = None,
                 csv_processor: Optional[CSVProcessor] = None,
                 chart_generator: Optional[ChartGenerator] = None,
                 ocr: Optional[OCRProcessor] = None,
                 pdf_reader: Optional[Callable[[bytes], str]] = None):
        self.config = config or EngineConfig()
        self.resolver = resolver or AssetResolver(self.config)
        self.csv_processor = csv_processor or CSVProcessor()
        self.chart_generator = chart_generator or ChartGenerator()
        self.ocr = ocr or OCRProcessor(enabled=self.config.ocr_enabled, lang=self.config.ocr_lang)
        self.pdf_reader = pdf_reader or (lambda content: PDFProcessor(content).extract_text())
        self.audio_locator = AudioLocator(self.resolver)

        self.handlers: Dict[TaskType, Callable[..., Awaitable[AnswerResult]]] = {
            TaskType.PDF_SUM: self._solve_pdf,
            TaskType.CSV_SUM: self._solve_csv,
            TaskType.AUDIO_TRANSCRIBE: self._solve_audio,
            TaskType.IMAGE_OCR: self._solve_image,
            TaskType.CHART: self._solve_chart,
            TaskType.PASSTHROUGH: self._solve_passthrough,
            TaskType.UNKNOWN: self._solve_unknown,
        }

    async def execute(self, task_type: TaskType, description: Optional[TaskDescription],
                      page_text: str, page_url: Optional[str] = None) -> AnswerResult:
        """
        Execute a classified task.

        Args:
            task_type: Result of the classifier
            description: Parsed task description (may be None)
            page_text: Extracted page content
            page_url: URL of the quiz page, used to derive the origin for audio probing

        Returns:
            AnswerResult with the answer and optional attachments
        """
        handler = self.handlers[task_type]
        logger.info(f"Executing {task_type.value} task")
        result = await handler(description, page_text or '', page_url)
        logger.info(f"{task_type.value} answer: {str(result.answer)[:200]}")
        return result

    def _asset_url(self, task: str, description: Optional[TaskDescription], page_text: str,
                   page_url: Optional[str]) -> str:
        """Task asset URL, resolved against the quiz page when relative."""
        url = (description.url if description else None) or extract_first_url(page_text)
        if not url:
            raise MissingAssetError(task)
        return urljoin(page_url, url) if page_url else url

    async def _download(self, url: str) -> bytes:
        return await asyncio.to_thread(self.resolver.download, url)

    async def _solve_pdf(self, description: Optional[TaskDescription], page_text: str,
                         page_url: Optional[str]) -> AnswerResult:
        url = self._asset_url('PDF', description, page_text, page_url)
        content = await self._download(url)
        text = await asyncio.to_thread(self.pdf_reader, content)
        page_number = description.page_number if description else 2
        return AnswerResult(answer=sum_page_column(text, page_number))

    async def _solve_csv(self, description: Optional[TaskDescription], page_text: str,
                         page_url: Optional[str]) -> AnswerResult:
        url = self._asset_url('CSV', description, page_text, page_url)
        content = await self._download(url)
        records = await asyncio.to_thread(self.csv_processor.parse_records, content)
        column = description.target_column if description else 'value'
        return AnswerResult(answer=self.csv_processor.sum_column(records, column))

    async def _solve_audio(self, description: Optional[TaskDescription], page_text: str,
                           page_url: Optional[str]) -> AnswerResult:
        url = self._asset_url('Audio', description, page_text, page_url)
        asset = await asyncio.to_thread(self.audio_locator.locate, url, page_url)
        logger.info(f"Audio resolved from {asset.url} ({len(asset.content)} bytes)")
        return AnswerResult(answer=transcribe(asset.content).strip())

    async def _solve_image(self, description: Optional[TaskDescription], page_text: str,
                           page_url: Optional[str]) -> AnswerResult:
        url = self._asset_url('Image', description, page_text, page_url)
        content = await self._download(url)
        text = await asyncio.to_thread(self.ocr.extract_from_bytes, content)
        number = extract_first_number(text)
        return AnswerResult(answer=number if number is not None else text.strip())

    async def _solve_chart(self, description: Optional[TaskDescription], page_text: str,
                           page_url: Optional[str]) -> AnswerResult:
        if description is None or description.data is None:
            raise MissingDataError()
        png = await asyncio.to_thread(self.chart_generator.bar_chart_png, description.data,
                                      description.title, CHART_WIDTH, CHART_HEIGHT)
        encoded = base64.b64encode(png).decode('ascii')
        return AnswerResult(
            answer=encoded,
            attachments=[Attachment(name='chart.png', mime='image/png', base64_data=encoded)],
        )

    async def _solve_passthrough(self, description: Optional[TaskDescription], page_text: str,
                                 page_url: Optional[str]) -> AnswerResult:
        answer: Any = description.answer if description else None
        return AnswerResult(answer=answer)

    async def _solve_unknown(self, description: Optional[TaskDescription], page_text: str,
                             page_url: Optional[str]) -> AnswerResult:
        number = extract_first_number(page_text)
        return AnswerResult(answer=number if number is not None else UNABLE_TO_DETERMINE)
