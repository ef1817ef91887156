from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
import math


STRENGTHS = [
    "Active community engagement with consistent contributions",
    "Well-documented codebase with comprehensive README",
    "Clear value proposition for potential users",
    "Growing star count indicating market interest",
    "Permissive license that encourages commercial adoption",
    "Regular release cadence with semantic versioning",
    "Responsive maintainers with fast issue turnaround",
    "Solid test coverage and continuous integration setup",
    "Modular architecture that is easy to extend",
    "Strong presence in developer forums and social media",
]

OPPORTUNITIES = [
    "Consider offering premium support packages",
    "Develop enterprise-tier features for B2B customers",
    "Create educational content and tutorials (monetizable)",
    "Implement sponsorship tiers on GitHub Sponsors",
    "Offer a hosted SaaS version for non-technical users",
    "Launch paid plugins or extensions marketplace",
    "Provide consulting and custom integration services",
    "Partner with cloud providers for marketplace listings",
    "Sell dual licenses for proprietary use",
    "Run paid workshops and certification programs",
]

RECOMMENDATIONS = [
    "Set up GitHub Sponsors with tiered benefits",
    "Create a landing page highlighting commercial use cases",
    "Develop a freemium model with advanced features",
    "Build partnerships with complementary tools",
    "Add usage analytics to understand your user base",
    "Publish case studies from companies using the project",
    "Open a Discord or Slack community for power users",
    "Introduce a paid priority issue queue",
    "Write a public roadmap to attract sponsors",
    "Collect testimonials and showcase them in the README",
]

STRATEGIES = [
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
    {
        "strategy": "Hosted SaaS Offering",
        "potential": "Very High",
        "effort": "High",
        "timeline": "4-8 months",
        "estimatedRevenue": "$3000-25000/month",
    },
    {
        "strategy": "Courses & Training",
        "potential": "Medium",
        "effort": "Medium",
        "timeline": "2-4 months",
        "estimatedRevenue": "$1000-6000/month",
    },
]

COMPETITOR_ANALYSIS = [
    "Similar projects generating $3k-10k/month through sponsorships",
    "Market gap identified in enterprise segment",
    "Opportunity for SaaS wrapper with 3x pricing potential",
    "Top competitors rely on open-core models with paid add-ons",
    "Few alternatives offer commercial support contracts",
    "Competing tools charge $20-100 per seat for team features",
]

MARKET_TRENDS = [
    "Growing demand in target industry (15% YoY)",
    "Increasing enterprise adoption of similar tools",
    "Emerging use cases in AI/ML workflows",
    "Developer tooling budgets shifting toward managed services",
    "Rising interest in self-hosted alternatives to SaaS",
    "Open source sponsorship programs expanding across companies",
]

ACTIVITY_LEVELS = ["Low", "Medium", "High"]
COMMERCIAL_POTENTIAL = ["Medium", "High", "Very High"]

# Below this size TimSort sorts a single run by binary insertion, no merging.
_MIN_MERGE = 64


def derive_seed(value: str) -> int:
    """Rolling 32-bit string hash (h * 31 + c) over UTF-16 code units."""
    h = 0
    data = value.encode("utf-16-le")
    for i in range(0, len(data), 2):
        code = data[i] | (data[i + 1] << 8)
        h = (h * 31 + code) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return abs(h)


class SeededRandom:
    """Linear congruential generator; one instance per analysis."""

    def __init__(self, seed: int):
        self.seed = seed

    def next(self) -> float:
        self.seed = (self.seed * 9301 + 49297) % 233280
        return self.seed / 233280


def _count_and_make_run(items, low, high, compare):
    if low + 1 == high:
        return 1
    run_length = 2
    descending = compare(items[low + 1], items[low]) < 0
    previous = items[low + 1]
    for idx in range(low + 2, high):
        current = items[idx]
        order = compare(current, previous)
        if descending:
            if order >= 0:
                break
        elif order < 0:
            break
        previous = current
        run_length += 1
    if descending:
        items[low:low + run_length] = items[low:low + run_length][::-1]
    return run_length


def _binary_insertion_sort(items, low, start, high, compare):
    if start == low:
        start += 1
    while start < high:
        left, right = low, start
        pivot = items[start]
        while left < right:
            mid = left + ((right - left) >> 1)
            if compare(pivot, items[mid]) < 0:
                right = mid
            else:
                left = mid + 1
        items[left + 1:start + 1] = items[left:start]
        items[left] = pivot
        start += 1


def comparator_sort(items, compare):
    """Sort a copy of ``items`` with TimSort's comparison sequence for short
    arrays (count a run, then binary insertion), so an impure comparator
    is consulted in a fixed, reproducible order."""
    result = list(items)
    length = len(result)
    if length < 2:
        return result
    if length >= _MIN_MERGE:
        raise ValueError(f"comparator_sort supports fewer than {_MIN_MERGE} items, got {length}")
    run = _count_and_make_run(result, 0, length, compare)
    if run < length:
        _binary_insertion_sort(result, 0, run, length, compare)
    return result


def select_random(catalog, count, rng):
    shuffled = comparator_sort(catalog, lambda a, b: rng.next() - 0.5)
    return shuffled[:max(count, 0)]


def to_fixed_0(value: float) -> str:
    return str(Decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def utc_now():
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def build_analysis(repo, plan="basic", now=None):
    rng = SeededRandom(derive_seed(f"{repo.owner}/{repo.name}"))

    score = math.floor(rng.next() * 35) + 60
    strengths = select_random(STRENGTHS, 4, rng)
    opportunities = select_random(OPPORTUNITIES, 4, rng)
    recommendations = select_random(RECOMMENDATIONS, 4, rng)
    strategies = [dict(s) for s in select_random(STRATEGIES, 3, rng)]
    community_size = math.floor(rng.next() * 8000) + 500
    activity_level = ACTIVITY_LEVELS[math.floor(rng.next() * 3)]
    commercial_potential = COMMERCIAL_POTENTIAL[math.floor(rng.next() * 3)]

    analysis = {
        "repository": {
            "owner": repo.owner,
            "name": repo.name,
            "url": repo.url,
            "analyzedAt": (now or utc_now)(),
        },
        "monetizationScore": score,
        "insights": {
            "strengths": strengths,
            "opportunities": opportunities,
            "recommendations": recommendations,
        },
        "monetizationStrategies": strategies,
        "metrics": {
            "communitySize": community_size,
            "activityLevel": activity_level,
            "commercialPotential": commercial_potential,
        },
    }

    if plan == "pro":
        competitors = select_random(COMPETITOR_ANALYSIS, 3, rng)
        trends = select_random(MARKET_TRENDS, 3, rng)
        projected = to_fixed_0(rng.next() * 20000 + 10000)
        analysis["advancedInsights"] = {
            "competitorAnalysis": competitors,
            "marketTrends": trends,
            "customStrategy": {
                "phase1": f"Launch GitHub Sponsors for {repo.name} with 3 tiers ($10, $50, $200/month)",
                "phase2": "Develop premium support offering for businesses",
                "phase3": "Create enterprise version with SLA and custom features",
                "projectedRevenue": f"${projected}/month within 12 months",
            },
        }

    return analysis
