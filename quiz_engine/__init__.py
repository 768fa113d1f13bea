"""
Quiz Engine Module
Task inference, asset resolution and answer submission for quiz pages.
"""

from .config import EngineConfig
from .models import TaskType, TaskDescription, AnswerResult, Attachment, ResolvedAsset
from .parser import PageContentExtractor, extract_balanced_json, parse_task_description
from .classifier import TaskClassifier
from .fallback import FallbackChain
from .downloader import AssetResolver
from .audio_utils import AudioLocator
from .executor import TaskExecutor
from .submitter import SubmissionDriver
from .browser import BrowserManager
from .solver_core import QuizSolver

__all__ = [
    'EngineConfig',
    'TaskType',
    'TaskDescription',
    'AnswerResult',
    'Attachment',
    'ResolvedAsset',
    'PageContentExtractor',
    'extract_balanced_json',
    'parse_task_description',
    'TaskClassifier',
    'FallbackChain',
    'AssetResolver',
    'AudioLocator',
    'TaskExecutor',
    'SubmissionDriver',
    'BrowserManager',
    'QuizSolver'
]
