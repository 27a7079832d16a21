"""
NutriTrack Insights - FastAPI Application

API endpoints used by the clinician dashboard for:
- Population statistics and data readiness
- AI insight generation per HEIFA category
- NutriAssist chat sessions
- Translation and localized fruit lookup
"""
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from nutritrack import __version__
from nutritrack.config import settings
from nutritrack.core.chat.session import ChatSession
from nutritrack.core.insights.orchestrator import InsightRunStatus
from nutritrack.core.stats.patient_store import InMemoryPatientStore, PatientRecord
from nutritrack.dependencies import ServiceContainer
from nutritrack.models.schemas import (
    AnalyzeRequest,
    BatchTranslateRequest,
    BatchTranslateResponse,
    ChatMessageRequest,
    CreateChatSessionRequest,
    HealthResponse,
    PatientUploadRequest,
    TranslateRequest,
    TranslateResponse,
)
from nutritrack.utils import get_logger, setup_logging, NutriTrackError

setup_logging(settings.log_level, settings.log_file)
logger = get_logger(__name__)

START_TIME = datetime.now()

# Error code -> HTTP status; anything else from upstream is a 502
ERROR_STATUS = {
    "NOT_READY": 409,
    "CHAT_BUSY": 409,
    "FRUIT_NOT_FOUND": 404,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Own the service container for the lifetime of the server."""
    services = ServiceContainer.create(settings)
    app.state.services = services
    logger.info("API ready to accept requests")
    yield
    services.close()
    logger.info("NutriTrack Insights API shut down.")


app = FastAPI(
    title="NutriTrack Insights API",
    description="HEIFA population insights, NutriAssist chat and translation for clinicians",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_services(request: Request) -> ServiceContainer:
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise HTTPException(status_code=503, detail="Services are not initialized")
    return services


def get_session(session_id: str, services: ServiceContainer = Depends(get_services)) -> ChatSession:
    session = services.sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Chat session not found")
    return session


@app.exception_handler(NutriTrackError)
async def nutritrack_error_handler(request: Request, exc: NutriTrackError):
    status_code = ERROR_STATUS.get(exc.code, 502)
    logger.warning(f"{request.method} {request.url.path} -> {status_code} {exc.code}: {exc.message}")
    return JSONResponse(status_code=status_code, content=exc.to_dict())


# ---- Health ----

@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(services: ServiceContainer = Depends(get_services)):
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        version=__version__,
        timestamp=datetime.now().isoformat(),
        uptime_seconds=(datetime.now() - START_TIME).total_seconds(),
        llm=services.llm_stats(),
        translation_cache_entries=len(services.translations),
    )


# ---- Population ----

@app.get("/api/v1/population/stats", tags=["Population"])
async def population_stats(services: ServiceContainer = Depends(get_services)):
    """Gender-split averages for every HEIFA category."""
    summary = await services.aggregator.summarize()
    stats = await services.aggregator.aggregate()
    return {
        "summary": summary.to_dict(),
        "categories": [s.to_dict() for s in stats],
    }


@app.get("/api/v1/population/readiness", tags=["Population"])
async def population_readiness(services: ServiceContainer = Depends(get_services)):
    report = await services.aggregator.check_readiness()
    return report.to_dict()


@app.put("/api/v1/population/patients", tags=["Population"])
async def load_patients(
    request: PatientUploadRequest,
    services: ServiceContainer = Depends(get_services),
):
    """Replace the in-memory patient population."""
    if not isinstance(services.store, InMemoryPatientStore):
        raise HTTPException(status_code=405, detail="Patient store is read-only")
    try:
        records = [PatientRecord.from_dict(p.model_dump()) for p in request.patients]
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    services.store.replace(records)
    return {"loaded": len(records)}


# ---- Insights ----

@app.post("/api/v1/insights/analyze", tags=["Insights"])
async def analyze_population(
    request: AnalyzeRequest,
    services: ServiceContainer = Depends(get_services),
):
    """
    Generate one AI insight per HEIFA category.

    Partial failures still return 200 with the categories that succeeded.
    """
    language = request.language or services.settings.default_language
    result = await services.orchestrator.analyze(services.aggregator, language)
    if result.status in (InsightRunStatus.NOT_READY, InsightRunStatus.EMPTY):
        raise result.error
    return result.to_dict()


@app.get("/api/v1/insights", tags=["Insights"])
async def list_insights(
    category: Optional[str] = Query(None),
    services: ServiceContainer = Depends(get_services),
):
    orchestrator = services.orchestrator
    insights = orchestrator.insights_by_category(category) if category else orchestrator.insights
    return {
        "is_analyzing": orchestrator.is_analyzing,
        "insights": [i.to_dict() for i in insights],
    }


@app.post("/api/v1/insights/{insight_id}/read", tags=["Insights"])
async def mark_insight_read(insight_id: str, services: ServiceContainer = Depends(get_services)):
    insight = services.orchestrator.mark_as_read(insight_id)
    if insight is None:
        raise HTTPException(status_code=404, detail="Insight not found")
    return insight.to_dict()


# ---- Chat ----

@app.post("/api/v1/chat/sessions", tags=["Chat"])
async def create_chat_session(
    request: CreateChatSessionRequest,
    services: ServiceContainer = Depends(get_services),
):
    session = services.open_session(request.language)
    await session.localize_suggestions()
    return session.to_dict()


@app.get("/api/v1/chat/sessions/{session_id}", tags=["Chat"])
async def get_chat_session(session: ChatSession = Depends(get_session)):
    return session.to_dict()


@app.post("/api/v1/chat/sessions/{session_id}/messages", tags=["Chat"])
async def send_chat_message(
    request: ChatMessageRequest,
    session: ChatSession = Depends(get_session),
):
    """Run one chat turn. Returns 409 while a previous turn is still generating."""
    reply = await session.send_message(request.text)
    return {
        "reply": reply.to_dict() if reply else None,
        "session": session.to_dict(),
    }


@app.delete("/api/v1/chat/sessions/{session_id}", tags=["Chat"])
async def close_chat_session(session_id: str, services: ServiceContainer = Depends(get_services)):
    """Forget a chat session. Returns 409 while a turn is still generating."""
    if not services.close_session(session_id):
        raise HTTPException(status_code=404, detail="Chat session not found")
    return {"closed": True}


@app.post("/api/v1/chat/sessions/{session_id}/reset", tags=["Chat"])
async def reset_chat_session(session: ChatSession = Depends(get_session)):
    session.reset()
    await session.localize_suggestions()
    return session.to_dict()


# ---- Translation ----

@app.post("/api/v1/translate", response_model=TranslateResponse, tags=["Translation"])
async def translate_text(request: TranslateRequest, services: ServiceContainer = Depends(get_services)):
    translated = await services.translations.translate(
        request.text, request.source_lang, request.target_lang
    )
    return TranslateResponse(
        text=request.text,
        translated_text=translated,
        source_lang=request.source_lang,
        target_lang=request.target_lang,
    )


@app.post("/api/v1/translate/batch", response_model=BatchTranslateResponse, tags=["Translation"])
async def translate_batch(
    request: BatchTranslateRequest,
    services: ServiceContainer = Depends(get_services),
):
    translations = await services.translations.batch_translate(
        request.texts, request.target_lang, source_lang=request.source_lang
    )
    return BatchTranslateResponse(translations=translations, target_lang=request.target_lang)


@app.delete("/api/v1/translate/cache", tags=["Translation"])
async def clear_translation_cache(services: ServiceContainer = Depends(get_services)):
    services.translations.clear()
    return {"cleared": True}


# ---- Fruit lookup ----

@app.get("/api/v1/fruits", tags=["Fruits"])
async def list_fruits(
    language: str = Query("en"),
    services: ServiceContainer = Depends(get_services),
):
    fruits = await services.fruits.list_all(language)
    return {"fruits": [f.to_dict() for f in fruits]}


@app.get("/api/v1/fruits/{name}", tags=["Fruits"])
async def get_fruit(
    name: str,
    language: str = Query("en"),
    services: ServiceContainer = Depends(get_services),
):
    fruit = await services.fruits.search(name, language)
    return fruit.to_dict()


# ---- Run with uvicorn ----
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
