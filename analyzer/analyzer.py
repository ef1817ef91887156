import re
import time
from dataclasses import dataclass

from analyzer.ai import AIClient, AIAnalysisError
from analyzer.generator import build_analysis, utc_now


PLANS = ("basic", "pro")

GITHUB_URL_RE = re.compile(
    r"^(?:https?://)?(?:www\.)?github\.com/([\w.-]+)/([\w.-]+?)(?:\.git)?/?$",
    re.ASCII | re.IGNORECASE,
)

FALLBACK_NOTE = "Automated analysis is temporarily unavailable. This is a generic report, not specific to the repository."


class InvalidRepositoryUrl(ValueError):
    """Raised when the submitted URL is not a GitHub repository URL."""
    pass


@dataclass(frozen=True)
class RepositoryRef:
    owner: str
    name: str
    url: str

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.name}"


def parse_repository_url(raw_url) -> RepositoryRef:
    url = (raw_url or "").strip() if isinstance(raw_url, str) else ""
    match = GITHUB_URL_RE.match(url)
    if not match:
        raise InvalidRepositoryUrl("Invalid GitHub repository URL")
    return RepositoryRef(owner=match.group(1), name=match.group(2), url=url)


def normalize_plan(value) -> str:
    plan = str(value or "").strip().lower()
    return plan if plan in PLANS else "basic"


ENUM_FIELDS = {
    "potential": {"Low", "Medium", "High", "Very High"},
    "effort": {"Low", "Medium", "High"},
    "activityLevel": {"Low", "Medium", "High"},
    "commercialPotential": {"Medium", "High", "Very High"},
}


def _merge_schema(base, data, path="analysis"):
    """Overlay model output on ``base``, keeping base's shape and types.

    Lists must match the base length, numbers must parse as integers and
    strings must be non-empty. Anything else raises ``AIAnalysisError``.
    """
    if data is None:
        return base
    if isinstance(base, dict):
        if not isinstance(data, dict):
            raise AIAnalysisError(f"{path} should be an object")
        return {key: _merge_schema(value, data.get(key), f"{path}.{key}") for key, value in base.items()}
    if isinstance(base, list):
        if not isinstance(data, list) or len(data) != len(base):
            raise AIAnalysisError(f"{path} should be a list of {len(base)} items")
        return [_merge_schema(b, d, f"{path}[{i}]") for i, (b, d) in enumerate(zip(base, data))]
    if isinstance(base, int):
        if isinstance(data, bool):
            raise AIAnalysisError(f"{path} should be a number, got {data!r}")
        try:
            return int(data)
        except (TypeError, ValueError) as e:
            raise AIAnalysisError(f"{path} should be a number, got {data!r}") from e
    if not isinstance(data, str) or not data.strip():
        raise AIAnalysisError(f"{path} should be a non-empty string, got {data!r}")
    allowed = ENUM_FIELDS.get(path.rsplit(".", 1)[-1])
    if allowed and data not in allowed:
        raise AIAnalysisError(f"{path} should be one of {sorted(allowed)}, got {data!r}")
    return data


def fallback_analysis(repo, plan="basic", now=None):
    analysis = {
        "repository": {
            "owner": repo.owner,
            "name": repo.name,
            "url": repo.url,
            "analyzedAt": (now or utc_now)(),
        },
        "monetizationScore": 70,
        "insights": {
            "strengths": [
                "Public repository with open collaboration",
                "Source code available for evaluation",
                "Potential for community growth",
                "Room to build a commercial offering on top",
            ],
            "opportunities": [
                "Set up GitHub Sponsors",
                "Offer paid support",
                "Create premium documentation",
                "Build a hosted version",
            ],
            "recommendations": [
                "Improve the README with clear use cases",
                "Add a sponsorship button to the repository",
                "Engage with early users for feedback",
                "Define a pricing page for commercial users",
            ],
        },
        "monetizationStrategies": [
            {
                "strategy": "GitHub Sponsors",
                "potential": "Medium",
                "effort": "Low",
                "timeline": "1-2 months",
                "estimatedRevenue": "$500-2000/month",
            },
            {
                "strategy": "Premium Support",
                "potential": "High",
                "effort": "Medium",
                "timeline": "2-3 months",
                "estimatedRevenue": "$2000-5000/month",
            },
            {
                "strategy": "Enterprise Licensing",
                "potential": "High",
                "effort": "High",
                "timeline": "3-6 months",
                "estimatedRevenue": "$5000-20000/month",
            },
        ],
        "metrics": {
            "communitySize": 1000,
            "activityLevel": "Medium",
            "commercialPotential": "Medium",
        },
    }
    if plan == "pro":
        analysis["advancedInsights"] = {
            "competitorAnalysis": [
                "Comparable projects monetize through sponsorships and support",
                "Enterprise segment is often underserved",
                "Hosted offerings command higher pricing",
            ],
            "marketTrends": [
                "Steady growth in open source funding",
                "Companies increasingly pay for maintained dependencies",
                "Managed services remain in high demand",
            ],
            "customStrategy": {
                "phase1": "Launch GitHub Sponsors with 3 tiers ($10, $50, $200/month)",
                "phase2": "Develop premium support offering for businesses",
                "phase3": "Create enterprise version with SLA and custom features",
                "projectedRevenue": "$15000/month within 12 months",
            },
        }
    analysis["source"] = "fallback"
    analysis["note"] = FALLBACK_NOTE
    return analysis


class RepositoryAnalyzer:
    """Resolves an analysis through AI, structured generation, then a static fallback.

    Only ``InvalidRepositoryUrl`` ever leaves ``analyze``.
    """

    def __init__(self, settings, ai_client=None, now=None, sleep=time.sleep):
        self.settings = settings
        self.now = now
        self.sleep = sleep
        if ai_client is None and settings.ai_enabled:
            ai_client = AIClient(settings.openai_key, model=settings.openai_model)
        self.ai_client = ai_client

    def analyze(self, repo_url, plan="basic"):
        repo = parse_repository_url(repo_url)
        plan = normalize_plan(plan)

        if self.settings.analysis_delay_ms:
            self.sleep(self.settings.analysis_delay_ms / 1000)

        if self.ai_client is not None and self.settings.ai_enabled and plan == "pro":
            try:
                return self.analyze_with_ai(repo, plan)
            except AIAnalysisError as e:
                print(f"AI analysis failed for {repo.slug}, using structured analysis:", e)
            except Exception as e:
                print(f"AI analysis crashed for {repo.slug}, using structured analysis:", e)

        try:
            return self.analyze_structured(repo, plan)
        except Exception as e:
            print(f"Structured analysis failed for {repo.slug}, returning fallback:", e)
            return fallback_analysis(repo, plan, now=self.now)

    def analyze_structured(self, repo, plan):
        analysis = build_analysis(repo, plan, now=self.now)
        analysis["source"] = "structured"
        return analysis

    def analyze_with_ai(self, repo, plan):
        parsed = dict(self.ai_client.analyze(repo, plan))
        parsed.pop("repository", None)
        base = build_analysis(repo, plan, now=self.now)
        analysis = _merge_schema(base, parsed)
        score = analysis["monetizationScore"]
        if not 0 <= score <= 100:
            raise AIAnalysisError(f"Model returned an out-of-range score: {score}")
        if analysis["metrics"]["communitySize"] < 0:
            raise AIAnalysisError("Model returned a negative community size")
        analysis["source"] = "ai"
        return analysis
