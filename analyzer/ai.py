import json

import httpx
from openai import OpenAI


ANALYSIS_PROMPT = """
You are an open source business strategist who helps maintainers turn GitHub projects into sustainable revenue.

Analyze the following repository and estimate how it could be monetized.

Repository: {{OWNER}}/{{NAME}}
URL: {{URL}}
Customer plan: {{PLAN}}

Return ONLY a JSON object with exactly this shape (no markdown, no commentary):

{
  "monetizationScore": 0,
  "insights": {
    "strengths": ["", "", "", ""],
    "opportunities": ["", "", "", ""],
    "recommendations": ["", "", "", ""]
  },
  "monetizationStrategies": [
    {"strategy": "", "potential": "Low|Medium|High|Very High", "effort": "Low|Medium|High", "timeline": "", "estimatedRevenue": ""}
  ],
  "metrics": {"communitySize": 0, "activityLevel": "Low|Medium|High", "commercialPotential": "Medium|High|Very High"},
  "advancedInsights": {
    "competitorAnalysis": ["", "", ""],
    "marketTrends": ["", "", ""],
    "customStrategy": {"phase1": "", "phase2": "", "phase3": "", "projectedRevenue": ""}
  }
}

monetizationScore is an integer from 0 to 100. Give exactly 3 monetizationStrategies.
Be specific to this repository. Be realistic about revenue ranges.
"""


class AIAnalysisError(Exception):
    """Raised when the model call fails or its answer is not a JSON object."""
    pass


def build_prompt(repo, plan: str) -> str:
    return (
        ANALYSIS_PROMPT
        .replace("{{OWNER}}", repo.owner)
        .replace("{{NAME}}", repo.name)
        .replace("{{URL}}", repo.url)
        .replace("{{PLAN}}", plan)
    )


def extract_json(text: str) -> dict:
    content = (text or "").strip()
    start = content.find("{")
    end = content.rfind("}")
    if start == -1 or end == -1 or end < start:
        raise AIAnalysisError("No JSON object found in model response")
    try:
        parsed = json.loads(content[start:end + 1])
    except json.JSONDecodeError as e:
        raise AIAnalysisError(f"Model returned malformed JSON: {e}") from e
    if not isinstance(parsed, dict):
        raise AIAnalysisError("Model response is not a JSON object")
    return parsed


class AIClient:
    """Single long-lived OpenAI client; one completion per analysis."""

    def __init__(self, api_key: str, model: str = "gpt-4o-mini", timeout: float = 60.0):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self._client = None

    @property
    def client(self):
        if self._client is None:
            http_client = httpx.Client(timeout=self.timeout)
            self._client = OpenAI(api_key=self.api_key, http_client=http_client)
        return self._client

    def analyze(self, repo, plan: str) -> dict:
        prompt = build_prompt(repo, plan)
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": "You output strict JSON only."},
                    {"role": "user", "content": prompt},
                ],
                response_format={"type": "json_object"},
            )
            content = response.choices[0].message.content
        except Exception as e:
            raise AIAnalysisError(f"Model call failed: {e}") from e
        return extract_json(content)
