"""
Prompt Template Module

This module manages the prompt templates that ground the assistant in
POSH Act 2013 context.

Prompts:
- System prompt: persona "Aasha", behaviour guidelines and retrieved context
- Fallback answer prompt: single-shot question answering over context, used
  when the streaming chat model is unavailable
- Case analysis prompts: complaint severity, credibility, statement
  comparison, pattern detection and annual report (used by
  services/analysis.py; all but the report ask for JSON)

Variables in templates:
{context} - Retrieved POSH Act passages joined by CONTEXT_SEPARATOR
{question} - Employee question
"""

import re
from typing import List, Sequence

from posh_assistant.core.logging import get_logger

logger = get_logger(__name__)

CONTEXT_SEPARATOR = "\n\n---\n\n"

DEFAULT_CONTEXT = (
    "The POSH Act 2013 protects employees from sexual harassment at the workplace in India."
)

FALLBACK_APOLOGY = (
    "I'm sorry, I couldn't process your question. "
    "Please try again or contact your HR directly."
)


class PromptTemplate:
    """Base prompt template"""

    def __init__(self, template: str, description: str = ""):
        """
        Initialize prompt template.

        Args:
            template: Template string with {variable} placeholders
            description: Description of the template
        """
        self.template = template
        self.description = description

    def format(self, **kwargs) -> str:
        """Format template with provided variables"""
        try:
            return self.template.format(**kwargs)
        except KeyError as e:
            logger.warning(f"Missing variable in template: {e}")
            raise

    def get_variables(self) -> List[str]:
        """Extract variable names from template"""
        return re.findall(r'\{(\w+)\}', self.template)


class PromptTemplates:
    """Collection of prompt templates"""

    SYSTEM_PROMPT = PromptTemplate(
        template="""You are a compassionate, knowledgeable POSH Act 2013 (India) assistant named "Aasha" helping employees understand their rights, the complaints process, and workplace safety.

Relevant POSH Act context:
{context}

Guidelines:
- Be empathetic, warm, and non-judgmental. The person talking to you may be distressed.
- Answer ONLY based on the context provided. Don't make up laws or procedures.
- Keep answers concise (2-4 sentences unless more detail is clearly needed).
- If asked about filing a complaint, guide them to the complaint wizard in this app.
- If someone seems in distress or danger, remind them of the panic button.
- Never reveal case details or other users' information.
- If you don't know something, honestly say "I'm not sure, please contact your HR or ICC directly."
- Use simple, clear language. Avoid legal jargon.""",
        description="System prompt for the streaming POSH chatbot"
    )

    FALLBACK_ANSWER_PROMPT = PromptTemplate(
        template="""You are a POSH Act 2013 (India) expert assistant helping an employee understand their rights and the complaints process. Answer based ONLY on the provided context. If the answer isn't in the context, say so honestly. Be empathetic, clear, and concise.

Context from POSH Act 2013:
{context}

Employee question: "{question}"

Answer in 2-4 sentences. Use simple language.""",
        description="Single-shot answer used when streaming chat is unavailable"
    )

    # Case analysis prompts. Literal JSON braces are doubled for str.format.
    COMPLAINT_ANALYSIS_PROMPT = PromptTemplate(
        template="""You are a POSH Act (India 2013) expert. Analyze this workplace harassment complaint and respond ONLY with valid JSON.

Complaint type: {complaint_type}
Description: "{description}"

Respond with exactly this JSON structure:
{{
  "sentiment": "negative|distressed|neutral|mixed",
  "severity_score": <1-10 integer>,
  "category": "{complaint_type}",
  "keywords": ["word1", "word2", "word3"],
  "risk_level": "low|medium|high|critical",
  "emotional_state": "<short phrase describing the complainant's emotional state>",
  "recommended_action": "<one sentence recommended immediate HR action>"
}}

severity_score guide: 1-3=minor discomfort, 4-6=significant harassment, 7-8=severe, 9-10=extremely serious/criminal.
risk_level: critical if physical threat or repeated pattern, high if quid pro quo or power imbalance, medium if verbal/cyber, low otherwise.""",
        description="Structured severity and risk analysis of one complaint"
    )

    CREDIBILITY_PROMPT = PromptTemplate(
        template="""You are an ICC (Internal Complaints Committee) expert under India's POSH Act 2013. Assess the credibility of this complaint.

Complainant's statement: "{complaint_text}"
Accused's response: "{accused_response}"{evidence}

Respond ONLY with valid JSON:
{{
  "overall_score": <0-10 float>,
  "dimensions": {{
    "consistency": <0-10>,
    "detail_level": <0-10>,
    "emotional_congruence": <0-10>,
    "temporal_accuracy": <0-10>,
    "corroboration": <0-10>,
    "plausibility": <0-10>
  }},
  "summary": "<2-3 sentence neutral assessment>",
  "flags": ["<any concerning factors>"]
}}

Scoring: consistency=internal logical consistency, detail_level=specificity and recall quality, emotional_congruence=emotion matches described events, temporal_accuracy=timeline clarity, corroboration=supported by evidence/witnesses, plausibility=realistic given context.""",
        description="ICC credibility scoring across six dimensions"
    )

    STATEMENT_COMPARISON_PROMPT = PromptTemplate(
        template="""You are an ICC investigator under India's POSH Act 2013. Compare both sides of this workplace harassment case. Be neutral and factual.

Complainant's account: "{complaint_text}"
Accused's response: "{accused_response}"

Respond ONLY with valid JSON:
{{
  "contradictions": [
    {{"topic": "<what aspect>", "complaint_says": "<complainant's version>", "accused_says": "<accused's version>"}}
  ],
  "agreements": ["<points both parties agree on>"],
  "evidence_gaps": ["<what evidence would resolve key disputes>"],
  "summary": "<3-4 sentence neutral comparison>",
  "credibility_leaning": "complainant|accused|inconclusive"
}}""",
        description="Both-sides comparison of complainant and accused statements"
    )

    PATTERN_ANALYSIS_PROMPT = PromptTemplate(
        template="""You are an organizational safety analyst. Analyze these workplace harassment cases for patterns and risks.

Cases:
{cases}

Respond ONLY with valid JSON:
{{
  "patterns": [
    {{"type": "<pattern type>", "description": "<what the pattern shows>", "frequency": <count>, "risk": "low|medium|high"}}
  ],
  "earlyWarnings": ["<warning signals that need attention>"],
  "riskAreas": ["<departments, teams, or situations at risk>"],
  "summary": "<3-4 sentence executive summary of organizational risk>"
}}""",
        description="Organisation-level pattern detection over case summaries"
    )

    ANNUAL_REPORT_PROMPT = PromptTemplate(
        template="""You are a POSH compliance officer. Write a formal annual report section for submission to the District Officer as required under Section 21 of POSH Act 2013.

Organization: {org_name}
Year: {year}
Data:
- Total complaints received: {total_cases}
- Complaints resolved: {resolved_cases}
- Average resolution time: {avg_resolution_days} days (legal limit: 90 days)
- Cases by type: {cases_by_type}
- Compliance score: {compliance_score}%

Write a professional 3-paragraph report covering: actions taken, outcomes, and organizational measures implemented. Use formal language appropriate for a government submission.""",
        description="Section 21 annual report narrative"
    )


def join_context(context_chunks: Sequence[str]) -> str:
    """Join chunks in order with the visual separator"""
    return CONTEXT_SEPARATOR.join(context_chunks)


def build_posh_system_prompt(context_chunks: Sequence[str]) -> str:
    """
    Build the chatbot system prompt.

    Chunks keep the caller's order; an empty sequence is replaced by
    DEFAULT_CONTEXT so the model always has grounding text.

    Args:
        context_chunks: Retrieved POSH Act passages

    Returns:
        System prompt string
    """
    context = join_context(context_chunks) if context_chunks else DEFAULT_CONTEXT
    return PromptTemplates.SYSTEM_PROMPT.format(context=context)


def build_fallback_answer_prompt(question: str, context_chunks: Sequence[str]) -> str:
    """Build the single-shot fallback answer prompt"""
    return PromptTemplates.FALLBACK_ANSWER_PROMPT.format(
        context=join_context(context_chunks),
        question=question,
    )
