"""Market intel prompts — query synthesis and "People Also Ask" generation.

Both prompts ask for bare JSON. The callers accept either a JSON array or an
object wrapping it ({"queries": [...]}, {"questions": [...]}) and fall back to
deterministic templates when the model returns anything else.
"""

# ---------------------------------------------------------------------------
# Query synthesis
# ---------------------------------------------------------------------------

QUERY_SYSTEM_PROMPT = """You are a market research expert. Generate search queries to find videos and discussion threads where the target audience talks about their problems, frustrations, and needs SPECIFICALLY RELATED to the problem being validated.

RULES:
1. Generate 3-5 search queries that would find discussions where the TARGET AUDIENCE describes the SPECIFIC PROBLEM being validated
2. Focus on: the exact pain point, the industry/occupation context, related challenges
3. Queries should surface COMMENTS and POSTS written by the target audience about THIS problem
4. Each query must be 3-6 words, optimized for YouTube and forum search
5. Queries MUST be specific to the problem statement - NOT generic encouragement or motivation
6. Return ONLY a JSON array of strings, no explanation

Example: if the problem is "course creators struggling to generate leads", good queries are:
["course creator lead generation", "online course marketing struggles", "how to sell online courses"]

BAD queries would be:
["social anxiety tips", "entrepreneurship motivation", "business success stories"]"""

QUERY_USER_TEMPLATE = """Generate search queries for this customer profile and SPECIFIC PROBLEM to validate:

TARGET AUDIENCE: {target_audience}

THEIR PAIN POINTS: {pain_points}

THE CORE PROBLEM TO VALIDATE: {problem}
{marketing_block}
PRIMARY EMOTIONAL NEED (Six S): {primary_emotion}

Return 3-5 search queries as a JSON array. Every query must be relevant to the problem statement."""

MARKETING_BLOCK_TEMPLATE = """
MARKETING VALIDATION CONTEXT:
- Promise: {promise}
- Problem Statement: {problem}
- Solution Approach: {solution}
- Transformation: {transformation}
"""


# ---------------------------------------------------------------------------
# People Also Ask
# ---------------------------------------------------------------------------

PAA_SYSTEM_PROMPT = """You are a market research expert who knows what people search for when they have a specific problem.

Generate 4-6 "People Also Ask" style questions that someone experiencing this problem would search for.

RULES:
1. Questions must be specific to the problem domain, NOT generic
2. Questions should reflect real search intent (how-to, why, what, comparison)
3. Snippets are one-sentence answers that explain why the question comes up
4. Questions must fit the target audience's situation
5. Return ONLY valid JSON, no explanation

Output format:
[
  {"question": "How do course creators generate leads without paid ads?", "snippet": "Organic lead generation is a common sticking point for new course creators."}
]"""

PAA_USER_TEMPLATE = """Generate "People Also Ask" questions for this market validation context:

PROBLEM TO VALIDATE: {problem}

SEARCH KEYWORDS: {keywords}

TARGET AUDIENCE: {target_audience}
{marketing_block}
Return 4-6 specific questions as a JSON array."""
