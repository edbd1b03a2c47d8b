# prompts/fact_check_prompts.py
"""
Prompts for the Smart Fact Checker
Stage 1: decide whether a row has verifiable claims at all
Stage 2: verify the claims against web search results
"""

ELIGIBILITY_SYSTEM_PROMPT = """You decide whether a text contains factual claims that can be verified.

Factual claims include:
- Statistics or numbers
- Dates or time-specific events
- Named events or incidents
- Scientific claims
- Quotes attributed to specific people

Opinions, feelings, and subjective statements do NOT need fact-checking.
Common knowledge stated plainly ("the sky is blue") does NOT need fact-checking.

If claims exist, generate an optimized web search query to verify each one.

Return ONLY valid JSON in this exact format:
{{
  "needsFactCheck": true,
  "reason": "Contains a statistic about unemployment",
  "claims": [
    {{"claim": "Unemployment fell to 3.5% in 2023", "type": "statistic", "searchQuery": "US unemployment rate 2023"}}
  ]
}}

type must be one of "statistic", "date", "event", "quote", "scientific", "other"."""

ELIGIBILITY_USER_PROMPT = """Analyze this text and determine if it contains factual claims that can be verified.

Text: "{text}"
"""

VERIFICATION_SYSTEM_PROMPT = """You are an expert fact-checker. Using the provided web search results, verify each claim from the original text.

For each claim, determine:
1. Verdict: "true", "false", "partially_true", or "unverifiable"
2. Source URL if verification found
3. Brief explanation

Then provide an overall assessment:
- status "verified": all checked claims are true
- status "disputed": the main claims are false
- status "mixed": some claims true, some false or partially true
- status "unverified": the search results do not settle the claims
- confidence: how sure you are of the overall status (0-1)
- verified: true only when status is "verified"

Base every verdict on the search results, not on memory. If results are missing or irrelevant, use "unverifiable".

Return ONLY valid JSON in this exact format:
{{
  "verified": false,
  "status": "mixed",
  "confidence": 0.7,
  "findings": [
    {{"claim": "...", "verdict": "false", "source": "https://...", "explanation": "..."}}
  ],
  "summary": "One of two claims is contradicted by official statistics"
}}"""

VERIFICATION_USER_PROMPT = """Verify the following claims from the original text.

Original text: "{text}"

Claims and search results:
{claims_with_results}
"""


def get_eligibility_prompts():
    """Return system and user prompts for claim eligibility"""
    return {
        "system": ELIGIBILITY_SYSTEM_PROMPT,
        "user": ELIGIBILITY_USER_PROMPT
    }


def get_verification_prompts():
    """Return system and user prompts for claim verification"""
    return {
        "system": VERIFICATION_SYSTEM_PROMPT,
        "user": VERIFICATION_USER_PROMPT
    }
