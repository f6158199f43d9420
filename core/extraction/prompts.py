"""Prompt templates for the contract extraction agent.

The user prompt asks for the exact JSON shape that
``core.contracts.models.ExtractionResult`` validates.
"""

from core.contracts.models import RecommendedAction
from core.contracts.taxonomy import CLAUSE_DESCRIPTIONS, MissingClauseType, RedFlagType

CONTRACT_EXTRACTION_SYSTEM_PROMPT = """You are a legal expert specializing in creator economy contracts.

Your role is to read brand collaboration agreements and protect the creator's interests.
Always respond with valid JSON only.

Key principles:
- Be creator-focused in your analysis
- Flag anything that seems unfair to creators
- Consider Indian market standards (30-day payment terms are standard)
- Be specific and actionable in recommendations
- Only report a clause as detected if it appears in the contract text"""


CONTRACT_EXTRACTION_USER_PROMPT_TEMPLATE = """CONTRACT TEXT:
{contract_text}

CONTRACT METADATA:
- Brand: {brand_name}
- Contract Type: {contract_type}
- Platforms: {platforms}

CLAUSE CATEGORIES:
{clause_guide}

TASK:
Analyze this contract and respond with a JSON object of the following structure.

OUTPUT FORMAT (JSON ONLY, NO EXPLANATIONS):
{{
  "summary": "Brief 2-3 sentence summary of the contract",
  "riskScore": 0-100,
  "riskLevel": "low|medium|high|critical",
  "clauseAnalysis": {{
    "paymentTerms": {{"detected": true/false, "content": "clause text", "riskLevel": "safe|caution|risky",
                     "recommendation": "specific recommendation", "paymentDays": number_of_days, "paymentMethod": "method"}},
    "usageRights": {{"detected": true/false, "content": "clause text", "riskLevel": "safe|caution|risky",
                    "recommendation": "specific recommendation", "duration": "time period",
                    "scope": ["platforms", "media types"], "exclusivity": true/false}},
    "deliverables": {{"detected": true/false, "content": "clause text", "riskLevel": "safe|caution|risky",
                     "recommendation": "specific recommendation",
                     "items": [{{"type": "post/reel/story", "quantity": number, "deadline": "YYYY-MM-DD"}}]}},
    "exclusivityClause": {{"detected": true/false, "content": "clause text", "riskLevel": "safe|caution|risky",
                          "recommendation": "specific recommendation", "duration": "time period",
                          "scope": ["competitor categories"], "competitors": ["brands"]}},
    "penaltyClauses": {{"detected": true/false, "content": "clause text", "riskLevel": "safe|caution|risky",
                       "recommendation": "specific recommendation",
                       "penalties": [{{"condition": "breach type", "penalty": "description", "amount": number}}]}},
    "terminationClause": {{"detected": true/false, "content": "clause text", "riskLevel": "safe|caution|risky",
                          "recommendation": "specific recommendation", "noticePeriod": "time period",
                          "conditions": ["termination conditions"]}},
    "intellectualProperty": {{"detected": true/false, "content": "clause text", "riskLevel": "safe|caution|risky",
                             "recommendation": "specific recommendation", "ownership": "creator|brand|shared",
                             "licenseType": "exclusive|non-exclusive|limited"}}
  }},
  "redFlags": [
    {{"type": "{red_flag_types}",
      "severity": "low|medium|high|critical", "description": "specific issue",
      "recommendation": "how to address this", "location": "where in the contract"}}
  ],
  "missingClauses": [
    {{"clauseType": "{missing_clause_types}",
      "importance": "critical|important|recommended", "suggestion": "what should be added"}}
  ],
  "overallRecommendation": {{"action": "{actions}",
                            "reasoning": "detailed explanation", "priority": "low|medium|high"}},
  "marketComparison": {{"paymentTermsRank": "above_average|average|below_average",
                       "usageRightsRank": "creator_friendly|standard|brand_heavy",
                       "exclusivityRank": "reasonable|standard|excessive",
                       "overallRank": "excellent|good|fair|poor"}}
}}"""


def format_contract_extraction_prompt(
    contract_text: str,
    brand_name: str = "",
    contract_type: str = "",
    platforms: list[str] | None = None,
) -> str:
    """Format the user prompt for contract extraction."""
    clause_guide = "\n".join(
        f"- {clause_type.value}: {description}" for clause_type, description in CLAUSE_DESCRIPTIONS.items()
    )
    return CONTRACT_EXTRACTION_USER_PROMPT_TEMPLATE.format(
        clause_guide=clause_guide,
        red_flag_types="|".join(t.value for t in RedFlagType),
        missing_clause_types="|".join(t.value for t in MissingClauseType),
        actions="|".join(a.value for a in RecommendedAction),
        contract_text=contract_text,
        brand_name=brand_name or "Not specified",
        contract_type=contract_type or "Not specified",
        platforms=", ".join(platforms) if platforms else "Not specified",
    )
