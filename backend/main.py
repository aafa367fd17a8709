# backend/main.py
import os
import logging
from contextlib import asynccontextmanager
from dotenv import load_dotenv

_log = logging.getLogger("env_loader")

# Candidate .env locations (in order)
#  - PROJECT_ROOT/.env
#  - BACKEND_DIR/.env
#  - current working directory .env
BASE_DIR = os.path.dirname(os.path.abspath(__file__))        # backend/
PROJECT_ROOT = os.path.dirname(BASE_DIR)                     # project root (parent of backend)
CWD = os.getcwd()

cand_paths = [
    os.path.join(PROJECT_ROOT, ".env"),
    os.path.join(BASE_DIR, ".env"),
    os.path.join(CWD, ".env"),
]

loaded_from = None
for p in cand_paths:
    if os.path.exists(p):
        load_dotenv(p, override=False)
        loaded_from = p
        break

# ---------------------------------------------------------

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.config import settings
from core.errors import InterviewCoreError, core_error_handler
from core.logging import setup_json_logging
from core.request_id import RequestIDMiddleware
from db.init_db import init_db
from ai.llm_client import ModelClient
from tasks.evaluation_queue import EvaluationQueue
from tasks.score_answer import GraderRegistry
from tasks.summarize_session import SummaryAggregator
from api import candidate, recruiter
from api import ops as ops_router

setup_json_logging(settings.log_level.upper(), json_logs=settings.json_logs)
if loaded_from:
    _log.info("Loaded .env from: %s", loaded_from)
_log.info("[ENV] AI_PROVIDER=%s, OLLAMA_MODEL=%s", settings.AI_PROVIDER, settings.ollama_model)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    client = ModelClient()
    queue = EvaluationQueue(
        GraderRegistry.default(client).grade,
        SummaryAggregator(client).finalize,
    )
    await queue.start()
    await queue.recover()
    app.state.evaluation_queue = queue
    try:
        yield
    finally:
        await queue.stop()
        app.state.evaluation_queue = None


app = FastAPI(title="Interview Session Core API", lifespan=lifespan)

app.include_router(ops_router.router)
app.include_router(candidate.router)
app.include_router(recruiter.router)

app.add_exception_handler(InterviewCoreError, core_error_handler)

app.add_middleware(RequestIDMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Minimal endpoints (always present)
@app.get("/health")
def health():
    return {"ok": True}
