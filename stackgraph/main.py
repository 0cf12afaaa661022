"""
StackGraph FastAPI Application.

  GET  /health → status and loaded data counts
  POST /audit  → score a stack graph
  POST /report → evidence-backed report (JSON + Markdown)
  POST /share  → share link for a graph
  GET  /demo   → decode a share link and score it
"""

from __future__ import annotations

import logging

from dotenv import load_dotenv
load_dotenv()

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from stackgraph.api.routes.audit import router as audit_router
from stackgraph.api.routes.health import router as health_router
from stackgraph.api.routes.report import router as report_router
from stackgraph.api.routes.share import router as share_router
from stackgraph.config import settings

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("stackgraph")

app = FastAPI(
    title="StackGraph",
    description="Stack compatibility scoring with evidence-backed reports",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router)
app.include_router(audit_router)
app.include_router(report_router)
app.include_router(share_router)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    body = await request.body()
    logger.error(f"Validation Error. Raw body: {body.decode('utf-8')[:500]} | Errors: {exc.errors()}")
    return JSONResponse(
        status_code=422,
        content={"detail": jsonable_encoder(exc.errors()), "body": body.decode("utf-8")[:100]},
    )
