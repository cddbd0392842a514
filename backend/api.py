# Izzy interview-prep API

import logging
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, File, Form, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from sqlmodel import Session

import config
from auth import get_current_user
from db import get_db, init_db
from schemas import (
    AnalyzeJobReq,
    ContinueInterviewReq,
    EvaluateAnswerReq,
    ParseResumeReq,
    SaveResumeReq,
    SubmitAnswerReq,
)
from services import resume_service, session_service
from services.assistant_client import AssistantClient, get_assistant_client
from services.errors import ParseError
from services.evaluator import Evaluator, evaluate_answer
from services.interviewer import Interviewer
from services.resume_parser import ResumeParser
from services.resume_text import extract_resume_text
from services.strategist import Strategist

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


# ---------- FastAPI & CORS ----------
app = FastAPI(title="Izzy API")
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def on_startup() -> None:
    init_db()
    logger.info("Database tables ready")


# ---------- Agent dependencies ----------
def get_resume_parser(assistant: AssistantClient = Depends(get_assistant_client)) -> ResumeParser:
    return ResumeParser(assistant)


def get_strategist(
    db: Session = Depends(get_db),
    assistant: AssistantClient = Depends(get_assistant_client),
) -> Strategist:
    return Strategist(db, assistant)


def get_interviewer(
    db: Session = Depends(get_db),
    assistant: AssistantClient = Depends(get_assistant_client),
) -> Interviewer:
    return Interviewer(db, assistant)


def get_evaluator(
    db: Session = Depends(get_db),
    assistant: AssistantClient = Depends(get_assistant_client),
) -> Evaluator:
    return Evaluator(db, assistant)


@app.get("/health")
def health() -> Dict[str, Any]:
    return {"status": "ok"}


# ---------- Resume ----------
@app.post("/api/resume/parse")
def parse_resume(
    req: ParseResumeReq,
    user_id: Optional[str] = Depends(get_current_user),
    parser: ResumeParser = Depends(get_resume_parser),
) -> Dict[str, Any]:
    if not user_id:
        return {"success": False, "error": "User not authenticated"}
    return parser.parse(req.resume_text)


@app.post("/api/resume")
def save_resume(
    req: SaveResumeReq,
    user_id: Optional[str] = Depends(get_current_user),
    db: Session = Depends(get_db),
    parser: ResumeParser = Depends(get_resume_parser),
) -> Dict[str, Any]:
    return resume_service.ingest_resume(db, parser, user_id, req.resume_text, title=req.title)


@app.post("/api/resume/upload")
def upload_resume(
    file: UploadFile = File(...),
    title: Optional[str] = Form(None),
    user_id: Optional[str] = Depends(get_current_user),
    db: Session = Depends(get_db),
    parser: ResumeParser = Depends(get_resume_parser),
) -> Dict[str, Any]:
    if not user_id:
        return {"success": False, "error": "User not authenticated"}

    data = file.file.read()
    try:
        text = extract_resume_text(data, file.filename or "")
    except ParseError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return resume_service.ingest_resume(db, parser, user_id, text, title=title or file.filename)


@app.get("/api/resume/active")
def active_resume(
    user_id: Optional[str] = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    return resume_service.get_active_resume(db, user_id)


@app.delete("/api/resume/{resume_id}")
def delete_resume(
    resume_id: str,
    user_id: Optional[str] = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    return resume_service.delete_resume(db, user_id, resume_id)


# ---------- Strategy ----------
@app.post("/api/interviews/strategy")
def create_strategy(
    req: AnalyzeJobReq,
    user_id: Optional[str] = Depends(get_current_user),
    strategist: Strategist = Depends(get_strategist),
) -> Dict[str, Any]:
    logger.info(f"REQ /api/interviews/strategy: {len(req.job_description)} chars, resume={req.resume_id}")
    if req.resume_id:
        return strategist.analyze(user_id, req.job_description, req.resume_id)
    return strategist.analyze_with_active_resume(user_id, req.job_description)


# ---------- Sessions ----------
@app.get("/api/interviews")
def list_interviews(
    user_id: Optional[str] = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    return session_service.list_sessions(db, user_id)


@app.get("/api/interviews/{session_id}")
def interview_detail(
    session_id: str,
    user_id: Optional[str] = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    return session_service.get_session_detail(db, user_id, session_id)


@app.get("/api/interviews/{session_id}/strategy")
def interview_strategy(
    session_id: str,
    user_id: Optional[str] = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    return session_service.get_interview_strategy(db, user_id, session_id)


@app.get("/api/interviews/{session_id}/results")
def interview_results(
    session_id: str,
    user_id: Optional[str] = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    return session_service.get_interview_results(db, user_id, session_id)


@app.post("/api/interviews/{session_id}/start")
def start_interview(
    session_id: str,
    user_id: Optional[str] = Depends(get_current_user),
    interviewer: Interviewer = Depends(get_interviewer),
) -> Dict[str, Any]:
    return interviewer.start_interview(user_id, session_id)


@app.post("/api/interviews/{session_id}/continue")
def continue_interview(
    session_id: str,
    req: ContinueInterviewReq,
    user_id: Optional[str] = Depends(get_current_user),
    interviewer: Interviewer = Depends(get_interviewer),
) -> Dict[str, Any]:
    return interviewer.continue_interview(
        user_id,
        session_id,
        req.thread_id,
        req.answer,
        current_question_id=req.current_question_id,
    )


@app.post("/api/interviews/{session_id}/answers")
def submit_answer(
    session_id: str,
    req: SubmitAnswerReq,
    user_id: Optional[str] = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    return session_service.submit_answer(db, user_id, session_id, req.question_id, req.answer)


@app.post("/api/interviews/{session_id}/evaluate-answer")
def evaluate_single_answer(
    session_id: str,
    req: EvaluateAnswerReq,
    user_id: Optional[str] = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    return evaluate_answer(db, user_id, session_id, req.question_id, req.answer)


@app.post("/api/interviews/{session_id}/evaluate")
def evaluate_interview(
    session_id: str,
    user_id: Optional[str] = Depends(get_current_user),
    evaluator: Evaluator = Depends(get_evaluator),
) -> Dict[str, Any]:
    return evaluator.evaluate_session(user_id, session_id)


@app.delete("/api/job-postings/{job_posting_id}")
def delete_job_posting(
    job_posting_id: str,
    user_id: Optional[str] = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    return session_service.delete_interview(db, user_id, job_posting_id)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
