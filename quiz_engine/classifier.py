"""
Task Classifier Module
Rule-based classification of quiz tasks from the task description and page text.
"""

import re
import logging
from typing import Callable, List, Optional, Tuple

from .models import TaskDescription, TaskType

logger = logging.getLogger(__name__)

AUDIO_URL_PATTERN = re.compile(r'\baudio\b|demo-audio', re.IGNORECASE)
AUDIO_EXTENSION_PATTERN = re.compile(r'\.(mp3|wav|m4a|ogg|opus|m4b|flac)$', re.IGNORECASE)
IMAGE_EXTENSION_PATTERN = re.compile(r'\.(png|jpe?g|bmp|tiff)$', re.IGNORECASE)

PDF_KEYWORDS = re.compile(r'pdf', re.IGNORECASE)
CSV_KEYWORDS = re.compile(r'csv|comma separated', re.IGNORECASE)
AUDIO_KEYWORDS = re.compile(r'audio|mp3|wav|transcribe|opus', re.IGNORECASE)
IMAGE_KEYWORDS = re.compile(r'image|photo|scan', re.IGNORECASE)

Rule = Callable[[Optional[TaskDescription], str], bool]


def has_audio_url(description: Optional[TaskDescription]) -> bool:
    """The description points at an audio resource; vetoes the PDF and CSV rules."""
    return bool(description and description.url and AUDIO_URL_PATTERN.search(description.url))


def _url(description: Optional[TaskDescription]) -> str:
    return (description.url or '') if description else ''


def looks_like_pdf(description: Optional[TaskDescription], text: str) -> bool:
    if has_audio_url(description):
        return False
    if description is None:
        return bool(PDF_KEYWORDS.search(text)) and 'audio' not in text.lower()
    return _url(description).lower().endswith('.pdf') or bool(PDF_KEYWORDS.search(text))


def looks_like_csv(description: Optional[TaskDescription], text: str) -> bool:
    if has_audio_url(description):
        return False
    return _url(description).lower().endswith('.csv') or bool(CSV_KEYWORDS.search(text))


def looks_like_audio(description: Optional[TaskDescription], text: str) -> bool:
    url = _url(description)
    return (bool(AUDIO_EXTENSION_PATTERN.search(url))
            or bool(AUDIO_URL_PATTERN.search(url))
            or bool(AUDIO_KEYWORDS.search(text)))


def looks_like_image(description: Optional[TaskDescription], text: str) -> bool:
    return bool(IMAGE_EXTENSION_PATTERN.search(_url(description))) or bool(IMAGE_KEYWORDS.search(text))


def wants_chart(description: Optional[TaskDescription], text: str) -> bool:
    return bool(description and description.make_chart)


def has_explicit_answer(description: Optional[TaskDescription], text: str) -> bool:
    return bool(description and description.has_answer)


class TaskClassifier:
    """
    Classifies a task with an ordered, first-match-wins rule ladder.

    An explicit `task`/`type` tag naming a known task type bypasses the ladder.
    """

    RULES: List[Tuple[TaskType, Rule]] = [
        (TaskType.PDF_SUM, looks_like_pdf),
        (TaskType.CSV_SUM, looks_like_csv),
        (TaskType.AUDIO_TRANSCRIBE, looks_like_audio),
        (TaskType.IMAGE_OCR, looks_like_image),
        (TaskType.CHART, wants_chart),
        (TaskType.PASSTHROUGH, has_explicit_answer),
    ]

    def __init__(self, rules: Optional[List[Tuple[TaskType, Rule]]] = None):
        self.rules = list(rules) if rules is not None else list(self.RULES)

    def classify(self, description: Optional[TaskDescription], page_text: str) -> TaskType:
        """
        Classify a task.

        Args:
            description: Parsed task description (may be None)
            page_text: Extracted page content

        Returns:
            The TaskType to execute
        """
        text = page_text or ''

        if description is not None and description.tag:
            explicit = TaskType.from_tag(description.tag)
            if explicit is not None:
                logger.info(f"Task tag is explicit: {explicit.value}")
                return explicit
            logger.warning(f"Unrecognised task tag {description.tag!r}, falling back to heuristics")

        for task_type, rule in self.rules:
            if rule(description, text):
                logger.info(f"Classified as {task_type.value} by {rule.__name__}")
                return task_type

        logger.info("No rule matched, classified as unknown")
        return TaskType.UNKNOWN
