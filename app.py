"""
Quiz Task Engine - FastAPI Server
Webhook entry point: validates the shared secret, acknowledges immediately
and runs the solver rounds in the background.
"""

import hmac
import json
import logging
from typing import Any, Callable, Optional
from fastapi import FastAPI, BackgroundTasks, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError, field_validator

from quiz_engine.config import EngineConfig
from quiz_engine.solver_core import QuizSolver

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


class WebhookRequest(BaseModel):
    """Request model for the webhook endpoint. Falsy values count as missing."""
    email: Optional[str] = None
    secret: Optional[str] = None
    url: Optional[str] = None

    @field_validator('email', 'secret', 'url', mode='before')
    @classmethod
    def _stringify(cls, value: Any) -> Optional[str]:
        if not value:
            return None
        return value if isinstance(value, str) else str(value)


def secret_matches(provided: Optional[str], expected: Optional[str]) -> bool:
    """Constant-time secret comparison."""
    if not provided or not expected:
        return False
    return hmac.compare_digest(str(provided).encode('utf-8'), str(expected).encode('utf-8'))


async def run_solver(solver: QuizSolver, email: str, secret: str, url: str):
    """Background task running the bounded multi-round solver."""
    try:
        summary = await solver.solve(email, secret, url)
        logger.info(f"Solver background task finished: {len(summary['rounds'])} rounds")
    except Exception as e:
        logger.error(f"Solver background error: {e}")


def create_app(config: Optional[EngineConfig] = None,
               solver_factory: Optional[Callable[[EngineConfig], QuizSolver]] = None) -> FastAPI:
    """Build the webhook app around an explicit configuration."""
    config = config or EngineConfig.from_env()
    solver_factory = solver_factory or QuizSolver

    app = FastAPI(
        title="Quiz Task Engine",
        description="Webhook-triggered agent that solves data-extraction quiz tasks",
        version="1.0.0"
    )

    @app.post("/webhook")
    async def webhook(request: Request, background_tasks: BackgroundTasks):
        """
        Accept a quiz task.

        - 400 if the body is not JSON or fields are missing
        - 500 if no secret is configured
        - 403 if the secret does not match
        - 200 {"status": "accepted"} otherwise, solving continues in the background
        """
        if 'application/json' not in request.headers.get('content-type', ''):
            return JSONResponse(status_code=400, content={"error": "invalid json"})
        try:
            payload = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            return JSONResponse(status_code=400, content={"error": "invalid json"})
        try:
            task = WebhookRequest.model_validate(payload)
        except ValidationError:
            return JSONResponse(status_code=400, content={"error": "missing fields"})
        if not task.email or not task.secret or not task.url:
            return JSONResponse(status_code=400, content={"error": "missing fields"})

        if not config.expected_secret:
            logger.error("QUIZ_SECRET not set in environment")
            return JSONResponse(status_code=500, content={"error": "server misconfigured"})
        if not secret_matches(task.secret, config.expected_secret):
            return JSONResponse(status_code=403, content={"error": "invalid secret"})

        background_tasks.add_task(run_solver, solver_factory(config), task.email, task.secret, task.url)
        return {"status": "accepted"}

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "version": "1.0.0"}

    @app.exception_handler(Exception)
    async def general_exception_handler(request, exc):
        """Handle general exceptions."""
        logger.error(f"Unexpected error: {str(exc)}")
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"}
        )

    return app


app = create_app()


if __name__ == "__main__":
    import os
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "3000")))
