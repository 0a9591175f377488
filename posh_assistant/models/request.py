from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from enum import Enum


class ChatMessageRole(str, Enum):
    """Chat message role enumeration"""
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class ChatMessage(BaseModel):
    """Single chat message"""
    role: ChatMessageRole
    content: str = Field(..., max_length=50000)


class ChatRequest(BaseModel):
    """Chat request model"""
    message: str = Field(..., min_length=1, max_length=10000, description="Employee message")
    history: List[ChatMessage] = Field(
        default_factory=list,
        description="Previous turns of the conversation, oldest first"
    )

    @field_validator("message")
    @classmethod
    def validate_message(cls, v):
        """Validate message is not just whitespace"""
        if not v.strip():
            raise ValueError("Message cannot be empty or whitespace only")
        return v.strip()


class SentimentRequest(BaseModel):
    """Quick sentiment request model"""
    text: str = Field(..., max_length=10000, description="Text to classify")


class EmbedRequest(BaseModel):
    """Embedding request model"""
    text: str = Field(..., min_length=1, description="Text to embed")


class AnalyzeRequest(BaseModel):
    """Complaint analysis request model"""
    description: Optional[str] = Field(None, max_length=20000, description="Complaint description")
    complaint_type: Optional[str] = Field(
        None,
        alias="type",
        description="verbal, physical, cyber or quid_pro_quo (defaults to verbal)"
    )

    class Config:
        populate_by_name = True


class CredibilityRequest(BaseModel):
    """ICC credibility assessment request model"""
    complaint_text: Optional[str] = Field(None, alias="complaintText", max_length=20000)
    accused_response: Optional[str] = Field(None, alias="accusedResponse", max_length=20000)
    evidence: List[str] = Field(default_factory=list, description="Evidence item names")

    class Config:
        populate_by_name = True


class CompareRequest(BaseModel):
    """Both-sides statement comparison request model"""
    complaint_text: Optional[str] = Field(None, alias="complaintText", max_length=20000)
    accused_response: Optional[str] = Field(None, alias="accusedResponse", max_length=20000)

    class Config:
        populate_by_name = True


class PatternCase(BaseModel):
    """One case summarised for pattern detection"""
    type: str
    description: str = ""
    severity: int = Field(..., ge=1, le=10)
    date: str = Field("", description="Date of incident (ISO format)")


class PatternRequest(BaseModel):
    """Pattern detection request model"""
    cases: List[PatternCase] = Field(default_factory=list)


class CaseTypeCount(BaseModel):
    type: str
    count: int = Field(..., ge=0)


class ReportStats(BaseModel):
    """Complaint statistics for one reporting year"""
    total_cases: int = Field(..., alias="totalCases", ge=0)
    resolved_cases: int = Field(..., alias="resolvedCases", ge=0)
    avg_resolution_days: float = Field(..., alias="avgResolutionDays", ge=0)
    cases_by_type: List[CaseTypeCount] = Field(default_factory=list, alias="casesByType")
    compliance_score: float = Field(..., alias="complianceScore", ge=0, le=100)

    class Config:
        populate_by_name = True


class ReportRequest(BaseModel):
    """Annual report request model"""
    stats: ReportStats
    org_name: Optional[str] = Field(None, alias="orgName")
    year: Optional[int] = Field(None, ge=2013)

    class Config:
        populate_by_name = True
