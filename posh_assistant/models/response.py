from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any, Literal
from datetime import datetime, timezone
from enum import Enum

from posh_assistant.llm.sentiment import SentimentLabel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ResponseStatus(str, Enum):
    """Response status enumeration"""
    SUCCESS = "success"
    ERROR = "error"
    DEGRADED = "degraded"


class ChatCompletionResponse(BaseModel):
    """Non-streaming chat response model"""
    status: ResponseStatus = Field(..., description="Response status")
    message: str = Field(..., description="Assistant reply")
    context_count: int = Field(..., ge=0, description="Number of context passages used")
    model_used: Optional[str] = Field(None, description="Model name used for generation")

    class Config:
        json_schema_extra = {
            "example": {
                "status": "success",
                "message": "You can file a written complaint with the ICC within 3 months of the incident.",
                "context_count": 3,
                "model_used": "llama-3.3-70b-versatile"
            }
        }


class SentimentResponse(BaseModel):
    """Quick sentiment response model"""
    sentiment: SentimentLabel = Field(..., description="Emotional tone of the text")


class EmbedResponse(BaseModel):
    """Embedding response model"""
    embedding: List[float] = Field(..., description="Embedding vector")
    dimensions: int = Field(..., ge=0, description="Vector length")


class HealthCheckResponse(BaseModel):
    """Health check response model"""
    status: ResponseStatus = Field(..., description="Overall status")
    timestamp: datetime = Field(default_factory=_utcnow, description="Check timestamp")
    chat_model: Optional[str] = Field(None, description="Streaming chat model")
    groq_configured: bool = Field(..., description="Groq API key present")
    gemini_configured: bool = Field(..., description="Gemini API key present")
    vector_store_configured: bool = Field(..., description="Supabase vector store configured")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional details")


class ErrorResponse(BaseModel):
    """Error response model"""
    status: ResponseStatus = Field(default=ResponseStatus.ERROR, description="Error status")
    error: str = Field(..., description="Error message")
    timestamp: datetime = Field(default_factory=_utcnow, description="Error timestamp")

    class Config:
        json_schema_extra = {
            "example": {
                "status": "error",
                "error": "Embedding failed",
                "timestamp": "2024-01-10T12:30:00Z"
            }
        }


class RiskLevel(str, Enum):
    """Complaint risk level"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ComplaintAnalysis(BaseModel):
    """Severity and risk analysis of a single complaint"""
    sentiment: Literal["negative", "distressed", "neutral", "mixed"]
    severity_score: int = Field(..., ge=1, le=10, description="1 = minor discomfort, 10 = criminal")
    category: str = Field(..., description="Complaint type")
    keywords: List[str] = Field(default_factory=list)
    risk_level: RiskLevel
    emotional_state: str
    recommended_action: str


class CredibilityDimensions(BaseModel):
    consistency: float = Field(5, ge=0, le=10)
    detail_level: float = Field(5, ge=0, le=10)
    emotional_congruence: float = Field(5, ge=0, le=10)
    temporal_accuracy: float = Field(5, ge=0, le=10)
    corroboration: float = Field(5, ge=0, le=10)
    plausibility: float = Field(5, ge=0, le=10)


class CredibilityAssessment(BaseModel):
    """ICC credibility assessment; the defaults are the neutral no-opinion result"""
    overall_score: float = Field(5, ge=0, le=10)
    dimensions: CredibilityDimensions = Field(default_factory=CredibilityDimensions)
    summary: str = "Further review required."
    flags: List[str] = Field(default_factory=list)


class Contradiction(BaseModel):
    topic: str
    complaint_says: str
    accused_says: str


class StatementComparison(BaseModel):
    """Both-sides comparison; the defaults are the inconclusive result"""
    contradictions: List[Contradiction] = Field(default_factory=list)
    agreements: List[str] = Field(default_factory=list)
    evidence_gaps: List[str] = Field(default_factory=list)
    summary: str = "Both statements have been noted. Further evidence required."
    credibility_leaning: Literal["complainant", "accused", "inconclusive"] = "inconclusive"


class DetectedPattern(BaseModel):
    type: str
    description: str
    frequency: int = Field(0, ge=0)
    risk: str = "medium"


class PatternAnalysis(BaseModel):
    """Organisation-level pattern analysis"""
    patterns: List[DetectedPattern] = Field(default_factory=list)
    early_warnings: List[str] = Field(default_factory=list, alias="earlyWarnings")
    risk_areas: List[str] = Field(default_factory=list, alias="riskAreas")
    summary: str = "Insufficient data for pattern analysis."

    class Config:
        populate_by_name = True


class AnnualReportResponse(BaseModel):
    """Generated annual report"""
    report: str
    year: int
    generated_at: datetime = Field(default_factory=_utcnow, alias="generatedAt")

    class Config:
        populate_by_name = True
