from datetime import datetime, timezone

from fastapi import Depends, FastAPI, HTTPException
from fastapi.responses import JSONResponse, StreamingResponse
from fastapi.middleware.cors import CORSMiddleware

from posh_assistant.core.config import settings
from posh_assistant.core.errors import LLMProviderError
from posh_assistant.core.logging import log_startup_info, log_shutdown_info, get_logger
from posh_assistant.llm.sentiment import quick_sentiment_check
from posh_assistant.models.request import (
    ChatRequest,
    SentimentRequest,
    EmbedRequest,
    AnalyzeRequest,
    CredibilityRequest,
    CompareRequest,
    PatternRequest,
    ReportRequest,
)
from posh_assistant.models.response import (
    ChatCompletionResponse,
    SentimentResponse,
    EmbedResponse,
    HealthCheckResponse,
    ErrorResponse,
    ResponseStatus,
    ComplaintAnalysis,
    CredibilityAssessment,
    StatementComparison,
    PatternAnalysis,
    AnnualReportResponse,
)
from posh_assistant.rag.embeddings import EmbeddingClient, get_embedding_client
from posh_assistant.services.analysis import AnalysisService, get_analysis_service
from posh_assistant.services.chat_service import ChatService, get_chat_service

logger = get_logger(__name__)

app = FastAPI(title=settings.APP_NAME, version=settings.APP_VERSION)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


def error_response(status_code: int, message: str) -> JSONResponse:
    """JSON error body used by the analysis and embedding routes"""
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message).model_dump(mode="json"),
    )


@app.on_event("startup")
async def startup_event():
    log_startup_info()
    logger.info("Application startup completed")


@app.on_event("shutdown")
async def shutdown_event():
    log_shutdown_info()


@app.get("/health", response_model=HealthCheckResponse)
async def health():
    """Health check: reports which providers are configured."""
    groq_ok = bool(settings.GROQ_API_KEY)
    return HealthCheckResponse(
        status=ResponseStatus.SUCCESS if groq_ok else ResponseStatus.DEGRADED,
        chat_model=settings.GROQ_CHAT_MODEL,
        groq_configured=groq_ok,
        gemini_configured=bool(settings.GEMINI_API_KEY),
        vector_store_configured=bool(settings.SUPABASE_URL and settings.SUPABASE_KEY),
        details={
            "sentiment_model": settings.GROQ_SENTIMENT_MODEL,
            "analysis_model": settings.GEMINI_MODEL,
            "embedding_model": settings.EMBEDDING_MODEL,
        },
    )


@app.post("/chat")
async def chat_stream(
    request: ChatRequest,
    chat_service: ChatService = Depends(get_chat_service),
):
    """Streaming chat endpoint using Server-Sent Events (SSE)."""
    try:
        message = chat_service.validate_query(request.message)
    except ValueError as ve:
        raise HTTPException(status_code=400, detail=str(ve))

    return StreamingResponse(
        chat_service.stream_response(message, request.history),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@app.post("/chat/complete", response_model=ChatCompletionResponse)
async def chat_complete(
    request: ChatRequest,
    chat_service: ChatService = Depends(get_chat_service),
):
    """Non-streaming chat endpoint."""
    try:
        message = chat_service.validate_query(request.message)
        return await chat_service.generate_response(message, request.history)
    except ValueError as ve:
        raise HTTPException(status_code=400, detail=str(ve))
    except LLMProviderError as e:
        logger.error(f"Chat error: {e}")
        raise HTTPException(status_code=502, detail=str(e))


@app.post("/sentiment", response_model=SentimentResponse)
async def sentiment(
    request: SentimentRequest,
    chat_service: ChatService = Depends(get_chat_service),
):
    """Quick emotional-tone check; always answers, defaulting to neutral."""
    label = await quick_sentiment_check(request.text, client=chat_service.llm_client)
    return SentimentResponse(sentiment=label)


@app.post("/embed", response_model=EmbedResponse)
async def embed(
    request: EmbedRequest,
    embedding_client: EmbeddingClient = Depends(get_embedding_client),
):
    """Embed text for vector storage."""
    try:
        embedding = await embedding_client.embed_text(request.text)
    except Exception as e:
        logger.error(f"Embedding error: {e}")
        return error_response(500, "Embedding failed")
    return EmbedResponse(embedding=embedding.tolist(), dimensions=len(embedding))


@app.post("/analyze", response_model=ComplaintAnalysis)
async def analyze(
    request: AnalyzeRequest,
    analysis_service: AnalysisService = Depends(get_analysis_service),
):
    """Severity and risk analysis of a complaint."""
    if not request.description or not request.description.strip():
        return error_response(400, "Description is required")
    try:
        return await analysis_service.analyze_complaint(request.description, request.complaint_type)
    except Exception as e:
        logger.error(f"Analysis error: {e}")
        return error_response(500, "Analysis failed")


@app.post("/credibility", response_model=CredibilityAssessment)
async def credibility(
    request: CredibilityRequest,
    analysis_service: AnalysisService = Depends(get_analysis_service),
):
    """ICC credibility assessment of a complaint."""
    if not request.complaint_text:
        return error_response(400, "Complaint text is required")
    try:
        return await analysis_service.assess_credibility(
            request.complaint_text,
            request.accused_response or "",
            request.evidence,
        )
    except Exception as e:
        logger.error(f"Credibility assessment error: {e}")
        return error_response(500, "Credibility assessment failed")


@app.post("/compare", response_model=StatementComparison)
async def compare(
    request: CompareRequest,
    analysis_service: AnalysisService = Depends(get_analysis_service),
):
    """Both-sides comparison of complainant and accused statements."""
    if not request.complaint_text or not request.accused_response:
        return error_response(400, "Both sides are required")
    try:
        return await analysis_service.compare_statements(request.complaint_text, request.accused_response)
    except Exception as e:
        logger.error(f"Comparison error: {e}")
        return error_response(500, "Comparison failed")


@app.post("/patterns", response_model=PatternAnalysis)
async def patterns(
    request: PatternRequest,
    analysis_service: AnalysisService = Depends(get_analysis_service),
):
    """Organisation-level pattern detection over case summaries."""
    try:
        return await analysis_service.detect_patterns(request.cases)
    except Exception as e:
        logger.error(f"Pattern detection error: {e}")
        return error_response(500, "Pattern detection failed")


@app.post("/report", response_model=AnnualReportResponse)
async def report(
    request: ReportRequest,
    analysis_service: AnalysisService = Depends(get_analysis_service),
):
    """Annual compliance report narrative."""
    year = request.year or datetime.now(timezone.utc).year
    try:
        text = await analysis_service.generate_annual_report(
            request.stats,
            request.org_name or "Organization",
            year,
        )
    except Exception as e:
        logger.error(f"Report generation error: {e}")
        return error_response(500, "Report generation failed")
    return AnnualReportResponse(report=text, year=year)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "posh_assistant.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.RELOAD,
    )
