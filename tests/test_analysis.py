import asyncio
import json

import pytest
from fastapi.testclient import TestClient

from posh_assistant.core.errors import LLMProviderError
from posh_assistant.main import app
from posh_assistant.models.request import PatternCase, ReportStats
from posh_assistant.models.response import ComplaintAnalysis, RiskLevel, StatementComparison
from posh_assistant.services.analysis import (
    AnalysisService,
    analyze_locally,
    get_analysis_service,
    parse_json_reply,
)

GEMINI_ANALYSIS = {
    "sentiment": "distressed",
    "severity_score": 8,
    "category": "physical",
    "keywords": ["touch"],
    "risk_level": "high",
    "emotional_state": "fearful",
    "recommended_action": "Schedule a hearing this week.",
}


class FakeGemini:
    def __init__(self, reply="", error=None, is_configured=True):
        self.reply = reply
        self.error = error
        self.is_configured = is_configured
        self.prompts = []

    async def generate(self, prompt):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.reply


def test_moderate_keyword_scores_medium():
    analysis = analyze_locally("He made an inappropriate remark at lunch.", "verbal")

    assert analysis.severity_score == 5
    assert analysis.risk_level == RiskLevel.MEDIUM
    assert analysis.sentiment == "negative"
    assert analysis.keywords == ["inappropriate", "remark"]
    assert analysis.recommended_action == "Assign ICC member for investigation within 10 days."


def test_critical_keyword_scores_critical():
    analysis = analyze_locally("He tried to grope me in the parking lot", "verbal")

    assert analysis.severity_score == 9
    assert analysis.risk_level == RiskLevel.CRITICAL
    assert analysis.sentiment == "distressed"
    assert analysis.emotional_state == "severely distressed, possibly traumatized"
    assert "grope" in analysis.keywords


def test_emotional_and_repeated_boosts_stack():
    analysis = analyze_locally("My manager keeps sending messages and I am scared", "cyber")

    assert analysis.severity_score == 8
    assert analysis.risk_level == RiskLevel.HIGH
    assert analysis.sentiment == "distressed"
    assert analysis.emotional_state == "distressed and fearful"
    assert analysis.recommended_action.startswith("Urgent")


def test_type_floor_and_type_keyword_fallback():
    analysis = analyze_locally("We had an awkward conversation", "quid_pro_quo")

    assert analysis.severity_score == 8
    assert analysis.category == "quid_pro_quo"
    assert analysis.keywords == ["quid pro quo"]


def test_low_keyword_scores_low():
    analysis = analyze_locally("It was a minor misunderstanding", "verbal")

    assert analysis.severity_score == 2
    assert analysis.risk_level == RiskLevel.LOW
    assert analysis.sentiment == "mixed"
    assert analysis.emotional_state == "mildly uncomfortable"
    assert analysis.keywords == ["verbal"]


def test_base_score_and_length_boost():
    short = analyze_locally("Something happened.", "verbal")
    detailed = analyze_locally("a" * 301, "verbal")

    assert short.severity_score == 4
    assert short.risk_level == RiskLevel.MEDIUM
    assert short.emotional_state == "concerned but composed"
    assert detailed.severity_score == 5


def test_score_is_capped_at_ten():
    text = "He assaulted me again and I am terrified. " * 10

    assert analyze_locally(text, "physical").severity_score == 10


def test_parse_json_reply_strips_code_fences():
    reply = "```json\n" + json.dumps(GEMINI_ANALYSIS) + "\n```"
    fallback = analyze_locally("Something happened.", "verbal")

    parsed = parse_json_reply(reply, ComplaintAnalysis, fallback)

    assert parsed.severity_score == 8
    assert parsed.emotional_state == "fearful"


def test_parse_json_reply_falls_back_on_bad_json_or_shape():
    fallback = StatementComparison()

    assert parse_json_reply("not json at all", StatementComparison, fallback) is fallback
    assert parse_json_reply('{"credibility_leaning": "nobody"}', StatementComparison, fallback) is fallback


def test_analyze_complaint_uses_gemini_reply():
    gemini = FakeGemini(reply=json.dumps(GEMINI_ANALYSIS))
    svc = AnalysisService(gemini_client=gemini)

    analysis = asyncio.run(svc.analyze_complaint("He touched my shoulder", "physical"))

    assert analysis.emotional_state == "fearful"
    assert 'Description: "He touched my shoulder"' in gemini.prompts[0]
    assert '"category": "physical"' in gemini.prompts[0]


def test_analyze_complaint_falls_back_to_keywords_on_unparseable_reply():
    svc = AnalysisService(gemini_client=FakeGemini(reply="Sorry, I can't help with that."))

    analysis = asyncio.run(svc.analyze_complaint("He made an inappropriate remark at lunch."))

    assert analysis == analyze_locally("He made an inappropriate remark at lunch.", "verbal")


def test_analyze_complaint_falls_back_to_keywords_on_error():
    svc = AnalysisService(gemini_client=FakeGemini(error=LLMProviderError("Gemini request failed")))

    analysis = asyncio.run(svc.analyze_complaint("He tried to grope me", "verbal"))

    assert analysis.severity_score == 9


def test_analyze_complaint_skips_gemini_when_not_configured():
    gemini = FakeGemini(reply=json.dumps(GEMINI_ANALYSIS), is_configured=False)
    svc = AnalysisService(gemini_client=gemini)

    analysis = asyncio.run(svc.analyze_complaint("Something happened.", None))

    assert analysis.category == "verbal"
    assert gemini.prompts == []


def test_credibility_neutral_on_failure_and_lists_evidence():
    gemini = FakeGemini(error=LLMProviderError("down"))
    svc = AnalysisService(gemini_client=gemini)

    assessment = asyncio.run(svc.assess_credibility("statement", "denial", ["email.pdf", "chat.png"]))

    assert assessment.overall_score == 5
    assert assessment.dimensions.plausibility == 5
    assert assessment.summary == "Further review required."
    assert "Evidence submitted: email.pdf, chat.png" in gemini.prompts[0]


def test_detect_patterns_without_cases_makes_no_call():
    gemini = FakeGemini(reply="{}")
    svc = AnalysisService(gemini_client=gemini)

    result = asyncio.run(svc.detect_patterns([]))

    assert result.summary == "Insufficient data for pattern analysis."
    assert gemini.prompts == []


def test_detect_patterns_summarises_cases():
    reply = json.dumps({
        "patterns": [{"type": "repeat offender", "description": "Same team", "frequency": 2, "risk": "high"}],
        "earlyWarnings": ["Late-night messages"],
        "riskAreas": ["Sales"],
        "summary": "Two related cases.",
    })
    gemini = FakeGemini(reply=reply)
    svc = AnalysisService(gemini_client=gemini)
    cases = [
        PatternCase(type="cyber", description="x" * 120, severity=6, date="2024-03-01"),
        PatternCase(type="verbal", description="Comments in meetings", severity=4, date="2024-04-11"),
    ]

    result = asyncio.run(svc.detect_patterns(cases))

    assert result.early_warnings == ["Late-night messages"]
    assert result.patterns[0].frequency == 2
    prompt = gemini.prompts[0]
    assert "Case 1: type=cyber, severity=6/10, date=2024-03-01" in prompt
    assert 'summary="' + "x" * 80 + '"' in prompt
    assert "Case 2: type=verbal" in prompt


def test_annual_report_falls_back_to_summary():
    stats = ReportStats(total_cases=12, resolved_cases=10, avg_resolution_days=18, compliance_score=92)
    svc = AnalysisService(gemini_client=FakeGemini(error=LLMProviderError("down")))

    report = asyncio.run(svc.generate_annual_report(stats, "Acme", 2024))

    assert report == (
        "Annual report for 2024: 12 complaints received, 10 resolved "
        "with an average resolution time of 18 days."
    )


@pytest.fixture
def analysis_client():
    gemini = FakeGemini(reply=json.dumps({"summary": "Accounts differ on timing.", "agreements": ["They met"]}))
    app.dependency_overrides[get_analysis_service] = lambda: AnalysisService(gemini_client=gemini)
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_analyze_route_requires_description(analysis_client):
    response = analysis_client.post("/analyze", json={"type": "verbal"})

    assert response.status_code == 400
    assert response.json()["error"] == "Description is required"


def test_analyze_route_returns_keyword_analysis_for_unusable_reply(analysis_client):
    response = analysis_client.post("/analyze", json={"description": "He tried to grope me", "type": "physical"})

    assert response.status_code == 200
    body = response.json()
    assert body["severity_score"] == 9
    assert body["risk_level"] == "critical"


def test_analyze_route_reports_failure_as_500():
    class BrokenService:
        async def analyze_complaint(self, description, complaint_type=None):
            raise RuntimeError("unexpected")

    app.dependency_overrides[get_analysis_service] = lambda: BrokenService()
    try:
        response = TestClient(app).post("/analyze", json={"description": "text"})
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 500
    assert response.json()["error"] == "Analysis failed"


def test_compare_route(analysis_client):
    assert analysis_client.post("/compare", json={"complaintText": "only one side"}).status_code == 400

    response = analysis_client.post(
        "/compare",
        json={"complaintText": "He shouted at me", "accusedResponse": "I raised my voice once"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["summary"] == "Accounts differ on timing."
    assert body["credibility_leaning"] == "inconclusive"


def test_credibility_route_requires_complaint_text(analysis_client):
    response = analysis_client.post("/credibility", json={"accusedResponse": "denied"})

    assert response.status_code == 400
    assert response.json()["error"] == "Complaint text is required"


def test_patterns_route_uses_camel_case_keys(analysis_client):
    response = analysis_client.post("/patterns", json={"cases": []})

    assert response.status_code == 200
    body = response.json()
    assert body["earlyWarnings"] == []
    assert body["riskAreas"] == []


def test_report_route(analysis_client):
    response = analysis_client.post("/report", json={
        "orgName": "Acme",
        "year": 2024,
        "stats": {
            "totalCases": 3,
            "resolvedCases": 3,
            "avgResolutionDays": 21.5,
            "casesByType": [{"type": "Verbal", "count": 3}],
            "complianceScore": 88,
        },
    })

    assert response.status_code == 200
    body = response.json()
    assert body["year"] == 2024
    assert "generatedAt" in body
    assert body["report"]
