"""
Case Analysis Service Module

Gemini-backed analysis for HR and ICC users:
- Complaint severity/risk analysis, with an offline keyword analysis that is
  always computed and used whenever Gemini is unavailable or unparseable
- Credibility assessment of a complaint against the accused's response
- Both-sides statement comparison
- Organisation-level pattern detection
- Section 21 annual report narrative

Every operation degrades to a conservative default instead of raising.
"""

import json
import re
from typing import Optional, List, Sequence, Type, TypeVar

from pydantic import BaseModel, ValidationError

from posh_assistant.core.logging import get_logger
from posh_assistant.llm.client import get_gemini_client
from posh_assistant.models.request import PatternCase, ReportStats
from posh_assistant.models.response import (
    ComplaintAnalysis,
    CredibilityAssessment,
    StatementComparison,
    PatternAnalysis,
    RiskLevel,
)
from posh_assistant.rag.prompt import PromptTemplates

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

DEFAULT_COMPLAINT_TYPE = "verbal"

# Severity keyword buckets, checked most severe first
CRITICAL_KEYWORDS = [
    "rape", "assault", "molest", "grope", "stalk", "blackmail",
    "threaten to kill", "life threat", "sexual assault", "forced",
]
HIGH_KEYWORDS = [
    "touch", "physical", "threat", "coerce", "promotion", "fire me", "terminate",
    "quid pro quo", "power", "abuse of authority", "intimidat", "corner", "lock",
    "follow", "grabbed", "slap", "hit", "punch", "shove",
]
MODERATE_KEYWORDS = [
    "inappropriate", "uncomfort", "remark", "comment", "stare", "leer", "joke",
    "innuendo", "gesture", "message", "email", "text", "social media", "online",
    "cyber", "humiliat", "bully", "hostile", "discriminat",
]
LOW_KEYWORDS = ["awkward", "misunderstand", "minor", "once", "single incident"]

EMOTIONAL_KEYWORDS = [
    "scared", "afraid", "fear", "terrif", "panic", "cry", "depress", "anxious",
    "trauma", "nightmare", "suicid", "helpless", "desperate", "unsafe",
]
REPEATED_KEYWORDS = [
    "again", "multiple times", "every day", "constantly", "keeps", "ongoing",
    "for months", "for weeks", "repeated", "pattern", "not the first",
]

BASE_SEVERITY = 4
TYPE_SEVERITY_FLOOR = {"physical": 7, "quid_pro_quo": 8}
EMOTIONAL_BOOST = 2
REPEATED_BOOST = 1
DETAILED_DESCRIPTION_CHARS = 300
MAX_KEYWORDS = 5
PATTERN_SUMMARY_CHARS = 80

_CODE_FENCE = re.compile(r"```(?:json)?\n?")


def parse_json_reply(text: str, model: Type[ModelT], fallback: ModelT) -> ModelT:
    """
    Parse a model reply into a pydantic model.

    Markdown code fences are stripped first. Anything that is not valid JSON
    or does not fit the model returns the fallback.
    """
    cleaned = _CODE_FENCE.sub("", text or "").strip()
    try:
        return model.model_validate(json.loads(cleaned))
    except (json.JSONDecodeError, ValidationError) as e:
        logger.warning(f"Could not parse {model.__name__} reply, using fallback: {e}")
        return fallback


def _contains_any(text: str, keywords: Sequence[str]) -> bool:
    return any(k in text for k in keywords)


def score_severity(description: str, complaint_type: str) -> int:
    """Keyword severity score between 1 and 10"""
    desc = description.lower()

    score = BASE_SEVERITY
    if _contains_any(desc, CRITICAL_KEYWORDS):
        score = 9
    elif _contains_any(desc, HIGH_KEYWORDS):
        score = 7
    elif _contains_any(desc, MODERATE_KEYWORDS):
        score = 5
    elif _contains_any(desc, LOW_KEYWORDS):
        score = 2

    score = max(score, TYPE_SEVERITY_FLOOR.get(complaint_type, 0))

    if _contains_any(desc, EMOTIONAL_KEYWORDS):
        score += EMOTIONAL_BOOST
    if _contains_any(desc, REPEATED_KEYWORDS):
        score += REPEATED_BOOST
    if len(description) > DETAILED_DESCRIPTION_CHARS:
        score += 1

    return max(1, min(10, score))


def analyze_locally(description: str, complaint_type: str = DEFAULT_COMPLAINT_TYPE) -> ComplaintAnalysis:
    """Offline keyword analysis of a complaint"""
    score = score_severity(description, complaint_type)

    desc = description.lower()
    matched = [
        k for k in CRITICAL_KEYWORDS + HIGH_KEYWORDS + MODERATE_KEYWORDS + EMOTIONAL_KEYWORDS + REPEATED_KEYWORDS
        if k in desc
    ][:MAX_KEYWORDS]

    if score >= 9:
        risk_level = RiskLevel.CRITICAL
    elif score >= 7:
        risk_level = RiskLevel.HIGH
    elif score >= 4:
        risk_level = RiskLevel.MEDIUM
    else:
        risk_level = RiskLevel.LOW

    if score >= 8:
        sentiment = "distressed"
    elif score >= 5:
        sentiment = "negative"
    else:
        sentiment = "mixed"

    if score >= 9:
        emotional_state = "severely distressed, possibly traumatized"
    elif score >= 7:
        emotional_state = "distressed and fearful"
    elif score >= 5:
        emotional_state = "anxious and uncomfortable"
    elif score >= 3:
        emotional_state = "concerned but composed"
    else:
        emotional_state = "mildly uncomfortable"

    if score >= 9:
        action = "Immediate ICC intervention required. Consider interim relief measures."
    elif score >= 7:
        action = "Urgent: Assign senior ICC member. Schedule hearing within 7 days."
    elif score >= 5:
        action = "Assign ICC member for investigation within 10 days."
    else:
        action = "Document and monitor. Offer counseling support."

    return ComplaintAnalysis(
        sentiment=sentiment,
        severity_score=score,
        category=complaint_type,
        keywords=matched or [complaint_type.replace("_", " ")],
        risk_level=risk_level,
        emotional_state=emotional_state,
        recommended_action=action,
    )


def format_pattern_cases(cases: Sequence[PatternCase]) -> str:
    return "\n".join(
        f'Case {i}: type={c.type}, severity={c.severity}/10, date={c.date}, '
        f'summary="{c.description[:PATTERN_SUMMARY_CHARS]}"'
        for i, c in enumerate(cases, start=1)
    )


def summarize_report_stats(stats: ReportStats, year: int) -> str:
    """Plain-text report used when the narrative cannot be generated"""
    return (
        f"Annual report for {year}: {stats.total_cases} complaints received, "
        f"{stats.resolved_cases} resolved with an average resolution time of "
        f"{stats.avg_resolution_days:g} days."
    )


class AnalysisService:
    """
    Service for complaint analysis and ICC decision support.
    """

    def __init__(self, gemini_client=None):
        """Initialize analysis service with the Gemini client"""
        self.gemini_client = gemini_client or get_gemini_client()

        logger.info("Initialized AnalysisService")

    async def _generate_model(self, prompt: str, model: Type[ModelT], fallback: ModelT, task: str) -> ModelT:
        try:
            reply = await self.gemini_client.generate(prompt)
        except Exception as e:
            logger.error(f"{task} failed, using fallback: {e}")
            return fallback
        return parse_json_reply(reply, model, fallback)

    async def analyze_complaint(
        self,
        description: str,
        complaint_type: Optional[str] = None
    ) -> ComplaintAnalysis:
        """
        Analyze a complaint's severity and risk.

        The keyword analysis is always computed and is returned when Gemini
        is not configured, fails, or replies with unusable JSON.
        """
        complaint_type = complaint_type or DEFAULT_COMPLAINT_TYPE
        local_analysis = analyze_locally(description, complaint_type)

        if not getattr(self.gemini_client, "is_configured", True):
            logger.debug("Gemini not configured, using keyword analysis")
            return local_analysis

        prompt = PromptTemplates.COMPLAINT_ANALYSIS_PROMPT.format(
            complaint_type=complaint_type,
            description=description,
        )
        return await self._generate_model(prompt, ComplaintAnalysis, local_analysis, "Complaint analysis")

    async def assess_credibility(
        self,
        complaint_text: str,
        accused_response: str = "",
        evidence: Optional[List[str]] = None
    ) -> CredibilityAssessment:
        """Score a complaint's credibility; neutral scores on failure"""
        evidence_text = f"\nEvidence submitted: {', '.join(evidence)}" if evidence else ""
        prompt = PromptTemplates.CREDIBILITY_PROMPT.format(
            complaint_text=complaint_text,
            accused_response=accused_response,
            evidence=evidence_text,
        )
        return await self._generate_model(
            prompt, CredibilityAssessment, CredibilityAssessment(), "Credibility assessment"
        )

    async def compare_statements(self, complaint_text: str, accused_response: str) -> StatementComparison:
        """Compare both sides; inconclusive on failure"""
        prompt = PromptTemplates.STATEMENT_COMPARISON_PROMPT.format(
            complaint_text=complaint_text,
            accused_response=accused_response,
        )
        return await self._generate_model(
            prompt, StatementComparison, StatementComparison(), "Statement comparison"
        )

    async def detect_patterns(self, cases: Sequence[PatternCase]) -> PatternAnalysis:
        """Find organisation-level patterns; no remote call without cases"""
        if not cases:
            return PatternAnalysis()

        prompt = PromptTemplates.PATTERN_ANALYSIS_PROMPT.format(cases=format_pattern_cases(cases))
        return await self._generate_model(prompt, PatternAnalysis, PatternAnalysis(), "Pattern detection")

    async def generate_annual_report(self, stats: ReportStats, org_name: str, year: int) -> str:
        """Write the annual report narrative, or a one-line summary on failure"""
        prompt = PromptTemplates.ANNUAL_REPORT_PROMPT.format(
            org_name=org_name,
            year=year,
            total_cases=stats.total_cases,
            resolved_cases=stats.resolved_cases,
            avg_resolution_days=f"{stats.avg_resolution_days:g}",
            cases_by_type=", ".join(f"{c.type}: {c.count}" for c in stats.cases_by_type),
            compliance_score=f"{stats.compliance_score:g}",
        )
        try:
            return await self.gemini_client.generate(prompt)
        except Exception as e:
            logger.error(f"Annual report generation failed: {e}")
            return summarize_report_stats(stats, year)


# Global service instance
_analysis_service = None


def get_analysis_service() -> AnalysisService:
    """Get or create analysis service instance"""
    global _analysis_service
    if _analysis_service is None:
        _analysis_service = AnalysisService()
    return _analysis_service
