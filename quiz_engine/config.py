"""
Configuration Module
Engine settings read once from the environment at process start.
"""

import os
import logging
from typing import Optional
from pydantic import BaseModel, ConfigDict
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = ('Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
                      '(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36')


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class EngineConfig(BaseModel):
    """Immutable engine configuration, injected into the solver and the webhook app."""
    model_config = ConfigDict(frozen=True)

    expected_secret: Optional[str] = None
    deadline_seconds: float = 170.0
    max_rounds: int = 10
    fetch_timeout: float = 15.0
    fetch_retries: int = 2
    fetch_retry_delay: float = 0.5
    submit_timeout: float = 15.0
    debug_snippets: bool = False
    ocr_enabled: bool = False
    ocr_lang: str = 'eng'
    browser_timeout_ms: int = 60000
    user_agent: str = DEFAULT_USER_AGENT

    @classmethod
    def from_env(cls, dotenv: bool = True) -> 'EngineConfig':
        """Build a config from environment variables (and a .env file if present)."""
        if dotenv:
            load_dotenv()

        config = cls(
            expected_secret=os.getenv('QUIZ_SECRET') or None,
            deadline_seconds=float(os.getenv('SOLVER_DEADLINE_SECONDS', '170')),
            max_rounds=int(os.getenv('SOLVER_MAX_ROUNDS', '10')),
            fetch_timeout=float(os.getenv('FETCH_TIMEOUT_SECONDS', '15')),
            fetch_retries=int(os.getenv('FETCH_RETRIES', '2')),
            fetch_retry_delay=float(os.getenv('FETCH_RETRY_DELAY_SECONDS', '0.5')),
            submit_timeout=float(os.getenv('SUBMIT_TIMEOUT_SECONDS', '15')),
            debug_snippets=_env_bool('DEBUG_SNIPPETS'),
            ocr_enabled=_env_bool('OCR_ENABLED'),
            ocr_lang=os.getenv('OCR_LANG', 'eng'),
            browser_timeout_ms=int(os.getenv('BROWSER_TIMEOUT_MS', '60000')),
            user_agent=os.getenv('USER_AGENT', DEFAULT_USER_AGENT),
        )
        if not config.expected_secret:
            logger.warning("QUIZ_SECRET not set; webhook requests will be rejected")
        return config
