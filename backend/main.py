"""
FastAPI Backend for the Adaptive Quiz

Provides REST API endpoints with:
- JWT Authentication
- Supabase-backed mastery lookup
- Adaptive question generation and grading via the adaptive-quiz edge function
- Five-round quiz sessions with a completion summary
"""

from fastapi import FastAPI, HTTPException, Depends, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from typing import Optional, Dict, Any
import sys
import time
import logging
import signal

from lib.logger import setup_logging, get_logger

setup_logging(level=logging.INFO, use_colors=True)

logger = get_logger("backend.main")

from lib.supabase_client import get_supabase_client
from lib.auth import get_current_user, get_optional_user

from adaptive_quiz.errors import (
    EvaluatorFailure,
    MasteryStoreFailure,
    MissingIdentity,
    ProviderFailure,
    QuizError,
    SessionAlreadyStarted,
    SessionBusy,
    ValidationError as AnswerValidationError,
)
from adaptive_quiz.mastery_store import SupabaseMasteryStore
from adaptive_quiz.quiz_function_client import AdaptiveQuizFunctionClient
from adaptive_quiz.session_controller import QuizSessionController
from adaptive_quiz.session_manager import QuizSessionManager
from adaptive_quiz.session_state import QuizStatus
from adaptive_quiz.settings import QuizSettings

settings = QuizSettings.from_env()

# Singleton registry of live quiz sessions
_session_manager: Optional[QuizSessionManager] = None


def build_controller(on_complete=None) -> QuizSessionController:
    """Create a controller wired to the Supabase-backed collaborators."""
    supabase = get_supabase_client(settings)
    function_client = AdaptiveQuizFunctionClient(supabase, function_name=settings.function_name)
    return QuizSessionController(
        question_provider=function_client,
        answer_evaluator=function_client,
        mastery_store=SupabaseMasteryStore(supabase, table=settings.mastery_table),
        on_complete=on_complete,
        request_timeout=settings.request_timeout,
    )


def get_session_manager() -> QuizSessionManager:
    """Get or create the singleton QuizSessionManager."""
    global _session_manager
    if _session_manager is None:
        _session_manager = QuizSessionManager(build_controller, session_ttl=settings.session_ttl)
    return _session_manager


app = FastAPI(
    title="Adaptive Quiz API",
    description="Adaptive five-question quiz sessions backed by Supabase",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ==================== Error Mapping ====================

ERROR_STATUS = {
    MissingIdentity: 401,
    AnswerValidationError: 422,
    SessionBusy: 409,
    SessionAlreadyStarted: 409,
    ProviderFailure: 502,
    EvaluatorFailure: 502,
    MasteryStoreFailure: 502,
}


@app.exception_handler(QuizError)
async def quiz_error_handler(request: Request, exc: QuizError):
    status_code = ERROR_STATUS.get(type(exc), 500)
    logger.warning(f"Quiz request failed: {type(exc).__name__}", data={
        "path": request.url.path,
        "status": status_code,
        "detail": str(exc),
    })
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "error": type(exc).__name__},
    )


# ==================== Pydantic Models ====================

class StartQuizRequest(BaseModel):
    topic_id: str
    topic_title: Optional[str] = None


class AnswerRequest(BaseModel):
    choice: str = ""


class QuizStateResponse(BaseModel):
    quiz_id: str
    state: Optional[Dict[str, Any]] = None
    summary: Optional[Dict[str, Any]] = None


# ==================== Helper Functions ====================

def _user_id(user: Optional[dict]) -> Optional[str]:
    return user["id"] if user else None


def get_owned_controller(
    quiz_id: str,
    user: Optional[dict],
    manager: QuizSessionManager,
) -> QuizSessionController:
    """Look up a live quiz and check that it belongs to the caller."""
    controller = manager.get(quiz_id)
    if controller is None:
        raise HTTPException(status_code=404, detail="Quiz session not found")

    owner_id = manager.owner_of(quiz_id)
    if owner_id and owner_id != _user_id(user):
        raise HTTPException(status_code=403, detail="Quiz session belongs to another user")
    return controller


async def start_quiz(
    quiz_id: str,
    body: StartQuizRequest,
    user: Optional[dict],
    manager: QuizSessionManager,
) -> QuizStateResponse:
    controller = get_owned_controller(quiz_id, user, manager)
    try:
        snapshot = await controller.initialize(body.topic_id, _user_id(user), topic_title=body.topic_title)
    except MissingIdentity:
        manager.discard(quiz_id)
        raise
    except (ProviderFailure, MasteryStoreFailure) as e:
        # Session stays registered so the client can retry via /start
        raise HTTPException(
            status_code=502,
            detail={"message": str(e), "error": type(e).__name__, "quiz_id": quiz_id},
        )
    return QuizStateResponse(quiz_id=quiz_id, state=snapshot.to_dict())


# ==================== API Endpoints ====================

@app.get("/")
async def root():
    """Health check endpoint."""
    return {
        "status": "ok",
        "service": "Adaptive Quiz API",
        "version": "1.0.0",
        "supabase_configured": settings.supabase_configured,
    }


@app.post("/api/quiz/sessions", response_model=QuizStateResponse)
async def create_quiz_session(
    body: StartQuizRequest,
    user: Optional[dict] = Depends(get_optional_user),
    manager: QuizSessionManager = Depends(get_session_manager),
):
    """Create a quiz for the caller and fetch the first question."""
    start_time = time.time()
    logger.request("POST", "/api/quiz/sessions", user_id=_user_id(user), data={
        "topic_id": body.topic_id,
        "topic_title": body.topic_title,
    })

    quiz_id = manager.create(owner_id=_user_id(user))
    response = await start_quiz(quiz_id, body, user, manager)

    logger.response(200, "/api/quiz/sessions", duration=time.time() - start_time, data={
        "quiz_id": quiz_id,
        "level": response.state.get("level"),
        "mastery": response.state.get("mastery"),
    })
    return response


@app.post("/api/quiz/sessions/{quiz_id}/start", response_model=QuizStateResponse)
async def retry_quiz_start(
    quiz_id: str,
    body: StartQuizRequest,
    user: Optional[dict] = Depends(get_optional_user),
    manager: QuizSessionManager = Depends(get_session_manager),
):
    """Retry fetching the first question after a failed start."""
    return await start_quiz(quiz_id, body, user, manager)


@app.get("/api/quiz/sessions/{quiz_id}", response_model=QuizStateResponse)
async def get_quiz_session(
    quiz_id: str,
    user: Optional[dict] = Depends(get_optional_user),
    manager: QuizSessionManager = Depends(get_session_manager),
):
    """Current display state of a live quiz."""
    controller = get_owned_controller(quiz_id, user, manager)
    snapshot = controller.snapshot()
    return QuizStateResponse(quiz_id=quiz_id, state=snapshot.to_dict() if snapshot else None)


@app.post("/api/quiz/sessions/{quiz_id}/answer", response_model=QuizStateResponse)
async def submit_quiz_answer(
    quiz_id: str,
    body: AnswerRequest,
    user: Optional[dict] = Depends(get_optional_user),
    manager: QuizSessionManager = Depends(get_session_manager),
):
    """Submit the selected option for the current question."""
    controller = get_owned_controller(quiz_id, user, manager)
    logger.request("POST", f"/api/quiz/sessions/{quiz_id}/answer", user_id=_user_id(user))

    snapshot = await controller.submit_answer(body.choice)

    logger.success("Answer evaluated", data={
        "quiz_id": quiz_id,
        "questions_answered": snapshot.questions_answered,
        "mastery": snapshot.mastery,
    })
    return QuizStateResponse(quiz_id=quiz_id, state=snapshot.to_dict())


@app.post("/api/quiz/sessions/{quiz_id}/advance", response_model=QuizStateResponse)
async def advance_quiz(
    quiz_id: str,
    user: Optional[dict] = Depends(get_optional_user),
    manager: QuizSessionManager = Depends(get_session_manager),
):
    """Fetch the next question, or finish the quiz after the last round."""
    controller = get_owned_controller(quiz_id, user, manager)
    snapshot = await controller.advance()

    summary = None
    if controller.status == QuizStatus.COMPLETED:
        result = manager.get_result(quiz_id)
        summary = result.to_dict() if result else None
        logger.section("QUIZ COMPLETE", {
            "quiz_id": quiz_id,
            "final_mastery": snapshot.mastery,
            "rounds": snapshot.questions_answered,
        })

    return QuizStateResponse(
        quiz_id=quiz_id,
        state=snapshot.to_dict() if snapshot else None,
        summary=summary,
    )


@app.delete("/api/quiz/sessions/{quiz_id}")
async def delete_quiz_session(
    quiz_id: str,
    user: Optional[dict] = Depends(get_optional_user),
    manager: QuizSessionManager = Depends(get_session_manager),
):
    """Abandon a live quiz or drop a completed quiz's result."""
    if manager.get(quiz_id) is None and manager.get_result(quiz_id) is None:
        raise HTTPException(status_code=404, detail="Quiz session not found")

    owner_id = manager.owner_of(quiz_id)
    if owner_id and owner_id != _user_id(user):
        raise HTTPException(status_code=403, detail="Quiz session belongs to another user")

    manager.discard(quiz_id)
    logger.info(f"🗑️ Deleted quiz session {quiz_id}", data={"user_id": _user_id(user)})
    return {"quiz_id": quiz_id, "deleted": True}


@app.get("/api/quiz/results/{quiz_id}")
async def get_quiz_result(
    quiz_id: str,
    user: dict = Depends(get_current_user),
    manager: QuizSessionManager = Depends(get_session_manager),
):
    """Summary of a completed quiz."""
    result = manager.get_result(quiz_id)
    if result is None:
        raise HTTPException(status_code=404, detail="No completed quiz with that id")
    if result.learner_id != user["id"]:
        raise HTTPException(status_code=403, detail="Quiz result belongs to another user")
    return result.to_dict()


if __name__ == "__main__":
    import uvicorn

    def handle_exit(*args):
        """Handle graceful shutdown."""
        logger.section("SERVER SHUTDOWN", {"reason": "signal received"})
        sys.exit(0)

    signal.signal(signal.SIGINT, handle_exit)
    signal.signal(signal.SIGTERM, handle_exit)

    try:
        uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
    except KeyboardInterrupt:
        logger.info("🛑 Server stopped.")
        sys.exit(0)
