"""
Models Module
Typed structures passed between the extractor, classifier, executor and submitter.
"""

from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


class TaskType(Enum):
    """Closed set of task families the engine can execute."""
    PDF_SUM = "pdf-sum"
    CSV_SUM = "csv-sum"
    AUDIO_TRANSCRIBE = "audio-transcribe"
    IMAGE_OCR = "image-ocr"
    CHART = "chart"
    PASSTHROUGH = "passthrough"
    UNKNOWN = "unknown"

    @classmethod
    def from_tag(cls, tag: Optional[str]) -> Optional['TaskType']:
        """Map an explicit task tag to a TaskType, or None if it is not recognised."""
        if not tag:
            return None
        normalized = tag.strip().lower()
        for task_type in cls:
            if task_type.value == normalized:
                return task_type
        return None


def _lenient_str(value: Any) -> Optional[str]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)):
        return str(value)
    return None


class ChartPoint(BaseModel):
    """One bar of a chart series, given as {label, value} or {x, y}."""
    model_config = ConfigDict(extra='allow')

    label: Any = None
    x: Any = None
    value: Any = None
    y: Any = None

    @property
    def display_label(self) -> str:
        if self.label is not None:
            return str(self.label)
        if self.x is not None:
            return str(self.x)
        return ''

    @property
    def numeric_value(self) -> float:
        raw = self.value if self.value is not None else self.y
        try:
            return float(raw) if raw is not None else 0.0
        except (TypeError, ValueError):
            return 0.0


class TaskDescription(BaseModel):
    """
    Structured directive embedded in a quiz page.

    Every field is optional and loosely typed on the wire; validators coerce
    malformed values to "absent" instead of rejecting the whole description.
    """
    model_config = ConfigDict(extra='allow', populate_by_name=True)

    task: Optional[str] = None
    type_: Optional[str] = Field(default=None, alias='type')
    url: Optional[str] = None
    page: Optional[int] = None
    column: Optional[str] = None
    field: Optional[str] = None
    answer: Any = None
    make_chart: bool = Field(default=False, alias='makeChart')
    data: Optional[List[ChartPoint]] = None
    title: Optional[str] = None

    @field_validator('task', 'type_', 'url', 'column', 'field', 'title', mode='before')
    @classmethod
    def _coerce_str(cls, value: Any) -> Optional[str]:
        return _lenient_str(value)

    @field_validator('page', mode='before')
    @classmethod
    def _coerce_page(cls, value: Any) -> Optional[int]:
        if value is None or isinstance(value, bool):
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            return None

    @field_validator('make_chart', mode='before')
    @classmethod
    def _coerce_make_chart(cls, value: Any) -> bool:
        return bool(value)

    @field_validator('data', mode='before')
    @classmethod
    def _coerce_data(cls, value: Any) -> Optional[List[Dict[str, Any]]]:
        if not isinstance(value, list):
            return None
        return [item for item in value if isinstance(item, dict)]

    @property
    def tag(self) -> Optional[str]:
        """Explicit task tag, `task` taking precedence over `type`."""
        return self.task or self.type_

    @property
    def target_column(self) -> str:
        return self.column or self.field or 'value'

    @property
    def page_number(self) -> int:
        return self.page or 2

    @property
    def has_answer(self) -> bool:
        """True when an `answer` key was present, even if its value is falsy or null."""
        return 'answer' in self.model_fields_set


class ResolvedAsset(BaseModel):
    """Downloaded bytes and the URL they were finally fetched from."""
    model_config = ConfigDict(frozen=True)

    content: bytes
    url: str
    content_type: Optional[str] = None


class Attachment(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    mime: str
    base64_data: str

    def to_wire(self) -> Dict[str, str]:
        return {'name': self.name, 'mime': self.mime, 'b64': self.base64_data}


class AnswerResult(BaseModel):
    """Final output of one task execution."""
    model_config = ConfigDict(frozen=True)

    answer: Any = None
    attachments: Optional[List[Attachment]] = None


class SubmissionAttempt(BaseModel):
    """One candidate delivery strategy for an answer."""
    model_config = ConfigDict(frozen=True)

    label: str
    target_url: str
    method: str = 'POST'
    headers: Dict[str, str] = Field(default_factory=dict)
    body: Optional[str] = None
    params: Optional[Dict[str, str]] = None


class SubmissionContext(BaseModel):
    email: str
    secret: str
    page_url: str
    fallback_url: Optional[str] = None


class LoadedPage(BaseModel):
    """Rendered page content returned by the page-loading collaborator."""
    url: str
    markup: str = ''
    visible_text: str = ''
