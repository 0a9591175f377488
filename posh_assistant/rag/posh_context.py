"""
Built-in POSH Act passages

Used as grounding context when the vector store is not configured or returns
nothing for a question.
"""

from typing import List

POSH_FALLBACK_CONTEXT: List[str] = [
    "Under Section 2(n) of the POSH Act 2013, sexual harassment includes: unwelcome physically, verbally or non-verbally conduct of a sexual nature. This includes physical contact and advances, a demand or request for sexual favours, making sexually coloured remarks, showing pornography, and any other unwelcome physical, verbal or non-verbal conduct of sexual nature.",
    "Under Section 4 of POSH Act 2013, every employer shall constitute an Internal Complaints Committee (ICC). The ICC shall consist of: a Presiding Officer (woman employed at senior level), not less than two Members from amongst employees (preferably committed to women's welfare), and one external member from an NGO or association committed to causes of women.",
    "Under Section 9 of POSH Act 2013, an aggrieved woman has to make a written complaint to the ICC within 3 months of the incident, or 3 months from the last incident in case of a series of incidents. The ICC may extend this time limit up to an additional 3 months if satisfied with the circumstances.",
    "Section 11 of POSH Act 2013: The ICC shall complete the inquiry within 90 days. Section 13: On completion of inquiry, the ICC shall provide a report to the employer within 10 days. The employer must act on the recommendations within 60 days.",
    "Section 16 of the POSH Act 2013 mandates strict confidentiality. The ICC, employer, and district officer shall not publish the contents of any complaint made under the Act. Breach of confidentiality is punishable under Section 17.",
    "Anonymous complaints: While the POSH Act doesn't explicitly provide for anonymous complaints, an aggrieved woman may choose not to disclose her identity under Section 6 (Local Complaints Committee). Organizations may create policies to accept anonymous complaints as an additional safeguard.",
    "Under Section 19 of POSH Act 2013, employers are required to: Provide a safe working environment, display penal consequences of sexual harassment, organize workshops and awareness programs, provide necessary facilities to the ICC, and include in the annual report the number of cases filed and resolved.",
]

MIN_KEYWORD_LENGTH = 5
MIN_MATCHED_PASSAGES = 2
DEFAULT_PASSAGE_COUNT = 3
FALLBACK_ANSWER_PASSAGE_COUNT = 2


def select_fallback_context(question: str) -> List[str]:
    """
    Pick built-in passages relevant to a question by keyword overlap.

    A passage matches when it contains any question word of at least
    MIN_KEYWORD_LENGTH characters (case-insensitive). Matches keep passage
    order. With fewer than MIN_MATCHED_PASSAGES matches the first
    DEFAULT_PASSAGE_COUNT passages are returned instead.
    """
    keywords = [w for w in (question or "").lower().split(" ") if len(w) >= MIN_KEYWORD_LENGTH]
    selected = [
        passage for passage in POSH_FALLBACK_CONTEXT
        if any(word in passage.lower() for word in keywords)
    ]
    if len(selected) < MIN_MATCHED_PASSAGES:
        selected = POSH_FALLBACK_CONTEXT[:DEFAULT_PASSAGE_COUNT]
    return selected
