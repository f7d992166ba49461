import os
import re
import json
import logging
from typing import Any, Dict, Optional

from openai import OpenAI

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-5"


class AIDemoMode(Exception):
    """Raised when no OpenAI key is configured; callers fall back to sample output."""


class AIServiceError(Exception):
    """Raised when the provider call fails or returns an unusable payload."""


_client: Optional[OpenAI] = None


def is_ai_configured() -> bool:
    return bool(os.getenv("OPENAI_API_KEY"))


def get_openai_client() -> OpenAI:
    """Create the OpenAI client on first use."""
    global _client
    if _client is None:
        api_key = os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise AIDemoMode("OPENAI_API_KEY is not set")
        _client = OpenAI(api_key=api_key)
    return _client


def reset_openai_client() -> None:
    global _client
    _client = None


def parse_json_payload(raw: str) -> Dict[str, Any]:
    """
    Decode the model's JSON object. Tolerates ```json fences and stray prose
    around the object; anything else is an AIServiceError.
    """
    text = (raw or "").strip()
    text = re.sub(r"^```(?:json)?\s*|\s*```$", "", text, flags=re.I | re.M)
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        start, end = text.find("{"), text.rfind("}")
        if start == -1 or end <= start:
            raise AIServiceError("Model response did not contain a JSON object")
        try:
            data = json.loads(text[start:end + 1])
        except json.JSONDecodeError as e:
            raise AIServiceError(f"Model response was not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise AIServiceError("Model response JSON was not an object")
    return data


class BaseAIAgent:
    """
    Base class for AI agents using the OpenAI chat completions API.
    Each agent formats its prompt template with the startup context and
    asks the model for a single JSON object.
    """
    system_prompt = "You are a helpful assistant. Always respond with valid JSON."
    max_completion_tokens = 1024

    def __init__(self, prompt_template: str):
        self.prompt_template = prompt_template

    def build_prompt(self, context: Dict[str, Any]) -> str:
        return self.prompt_template.format(**context)

    def generate(self, context: Dict[str, Any]) -> Dict[str, Any]:
        """
        Calls the model and returns the decoded JSON object.
        Raises AIDemoMode when no key is configured, AIServiceError otherwise.
        """
        prompt = self.build_prompt(context)
        client = get_openai_client()
        model_name = os.getenv("OPENAI_MODEL", DEFAULT_MODEL)
        logger.debug("%s prompt:\n%s", type(self).__name__, prompt)

        try:
            response = client.chat.completions.create(
                model=model_name,
                messages=[
                    {"role": "system", "content": self.system_prompt},
                    {"role": "user", "content": prompt},
                ],
                response_format={"type": "json_object"},
                max_completion_tokens=self.max_completion_tokens,
            )
            content = response.choices[0].message.content or "{}"
        except Exception as e:
            logger.error("%s call failed: %s", type(self).__name__, str(e), exc_info=True)
            raise AIServiceError(str(e)) from e

        logger.info("%s completed successfully using model: %s", type(self).__name__, model_name)
        return parse_json_payload(content)

    def demo_response(self, context: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError


# ---------------------------------------------------------------
# 1) Idea score (0-100 overall + four dimensions)
# ---------------------------------------------------------------
class IdeaScoringAgent(BaseAIAgent):
    system_prompt = (
        "You are an expert venture capitalist who evaluates startup ideas. "
        "Provide realistic, balanced scores. Always respond with valid JSON."
    )
    max_completion_tokens = 1024

    def __init__(self):
        prompt_template = (
            "Analyze and score this startup idea on a scale of 0-100:\n\n"
            "Title: {title}\n"
            "Description: {description}\n"
            "Problem: {problem}\n"
            "Solution: {solution}\n"
            "Target Market: {target_market}\n"
            "Industry: {industry}\n\n"
            "Score the idea across these four dimensions (each 0-100):\n"
            "1. Market Potential - Size of addressable market, growth potential\n"
            "2. Feasibility - Technical and operational feasibility to execute\n"
            "3. Innovation - Uniqueness and differentiation from existing solutions\n"
            "4. Scalability - Ability to scale the business model\n\n"
            "Respond with JSON in this exact format:\n"
            "{{\n"
            '  "overallScore": <number 0-100>,\n'
            '  "breakdown": {{\n'
            '    "marketPotential": <number 0-100>,\n'
            '    "feasibility": <number 0-100>,\n'
            '    "innovation": <number 0-100>,\n'
            '    "scalability": <number 0-100>\n'
            "  }}\n"
            "}}"
        )
        super().__init__(prompt_template)

    def demo_response(self, context: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "overallScore": 78,
            "breakdown": {
                "marketPotential": 82,
                "feasibility": 75,
                "innovation": 78,
                "scalability": 76,
            },
        }


# ---------------------------------------------------------------
# 2) Market analysis
# ---------------------------------------------------------------
class MarketAnalysisAgent(BaseAIAgent):
    system_prompt = (
        "You are an expert market analyst specializing in startup ecosystems. "
        "Provide realistic, actionable insights. Always respond with valid JSON."
    )
    max_completion_tokens = 2048

    def __init__(self):
        prompt_template = (
            "Provide a market analysis for this startup:\n\n"
            "Title: {title}\n"
            "Description: {description}\n"
            "Target Market: {target_market}\n"
            "Industry: {industry}\n\n"
            "Analyze and provide:\n"
            "1. Market Size - Estimated TAM/SAM/SOM\n"
            "2. Competition - List 3-5 main competitors or alternatives\n"
            "3. Risks - List 3-5 key risks\n"
            "4. Opportunities - List 3-5 key opportunities\n\n"
            "Respond with JSON in this exact format:\n"
            "{{\n"
            '  "marketSize": "Detailed market size analysis with numbers if possible",\n'
            '  "competition": ["Competitor 1 description", "Competitor 2 description", ...],\n'
            '  "risks": ["Risk 1", "Risk 2", ...],\n'
            '  "opportunities": ["Opportunity 1", "Opportunity 2", ...]\n'
            "}}"
        )
        super().__init__(prompt_template)

    def demo_response(self, context: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "marketSize": (
                "TAM: $500M-$1B. The market is growing at 45% CAGR. Current leaders include "
                "Stripe, Notion, and Slack in adjacent spaces. Emerging opportunities in "
                "AI-powered automation present $200M+ potential."
            ),
            "competition": [
                "Established players with strong market position but outdated technology",
                "Emerging startups focusing on niche segments with limited feature sets",
                "Open-source alternatives lacking professional support and enterprise features",
            ],
            "risks": [
                "Market adoption slower than projected due to switching costs",
                "Increased competition from well-funded incumbents entering the space",
                "Regulatory changes affecting data privacy and compliance requirements",
            ],
            "opportunities": [
                "International expansion into European and Asia-Pacific markets",
                "Strategic partnerships with Fortune 500 companies for integration",
                "API marketplace creating network effects and ecosystem value",
            ],
        }


# ---------------------------------------------------------------
# 3) Five-slide pitch deck
# ---------------------------------------------------------------
class PitchDeckAgent(BaseAIAgent):
    system_prompt = (
        "You are an expert startup advisor who creates compelling pitch decks. "
        "Always respond with valid JSON."
    )
    max_completion_tokens = 4096

    def __init__(self):
        prompt_template = (
            "Generate a professional 5-slide pitch deck for a startup with the following details:\n\n"
            "Title: {title}\n"
            "Description: {description}\n"
            "Problem: {problem}\n"
            "Solution: {solution}\n"
            "Target Market: {target_market}\n"
            "Business Model: {business_model}\n\n"
            "Create 5 slides with the following structure. For each slide, provide a title "
            "and detailed content (2-3 paragraphs):\n"
            "1. Problem - Clearly articulate the problem being solved\n"
            "2. Solution - Explain the solution and how it addresses the problem\n"
            "3. Market - Describe the target market size and opportunity\n"
            "4. Business Model - Explain how the company will make money\n"
            "5. Ask - What funding/resources are needed and expected use of funds\n\n"
            "Respond with JSON in this exact format:\n"
            "{{\n"
            '  "slides": [\n'
            '    {{"title": "The Problem", "content": "...", "type": "problem"}},\n'
            '    {{"title": "Our Solution", "content": "...", "type": "solution"}},\n'
            '    {{"title": "Market Opportunity", "content": "...", "type": "market"}},\n'
            '    {{"title": "Business Model", "content": "...", "type": "business_model"}},\n'
            '    {{"title": "The Ask", "content": "...", "type": "ask"}}\n'
            "  ]\n"
            "}}"
        )
        super().__init__(prompt_template)

    def demo_response(self, context: Dict[str, Any]) -> Dict[str, Any]:
        title = context.get("title") or "Our company"
        return {
            "slides": [
                {
                    "title": "The Problem",
                    "content": (
                        "Today's market faces significant challenges in this space. Users struggle "
                        "with inefficiency and lack of integrated solutions. Current alternatives are "
                        "fragmented, expensive, and difficult to use. This creates frustration and "
                        "lost opportunities for businesses trying to scale."
                    ),
                    "type": "problem",
                },
                {
                    "title": "Our Solution",
                    "content": (
                        f"{title} provides a unified platform that solves these core problems. Our "
                        "innovative approach combines cutting-edge technology with user-centric "
                        "design. We deliver seamless integration, superior performance, and an "
                        "intuitive interface that users love. Our solution is 10x better than "
                        "existing alternatives."
                    ),
                    "type": "solution",
                },
                {
                    "title": "Market Opportunity",
                    "content": (
                        "The total addressable market (TAM) is estimated at $500M-$1B annually. "
                        "We're targeting a growing segment of businesses seeking digital "
                        "transformation. Early market adoption shows 300% YoY growth in this sector. "
                        "Our serviceable addressable market (SAM) of $50-100M is substantial and growing."
                    ),
                    "type": "market",
                },
                {
                    "title": "Business Model",
                    "content": (
                        "We employ a SaaS subscription model with tiered pricing ($99-$999/month). "
                        "Additional revenue streams include enterprise licensing, implementation "
                        "services, and API partnerships. Customer lifetime value averages $12,000 "
                        "with 92% annual retention. Unit economics are highly favorable with 60% "
                        "gross margins."
                    ),
                    "type": "business_model",
                },
                {
                    "title": "The Ask",
                    "content": (
                        "We're seeking $2M in Series A funding to accelerate market expansion and "
                        "product development. Funds will be allocated: 40% sales & marketing, 35% "
                        "R&D, 15% operations, 10% administrative. We project 10x revenue growth "
                        "within 24 months and profitability by month 30."
                    ),
                    "type": "ask",
                },
            ]
        }


# ---------------------------------------------------------------
# 4) Investor matching
# ---------------------------------------------------------------
class InvestorMatchAgent(BaseAIAgent):
    system_prompt = (
        "You are an expert at matching startups with appropriate investors. "
        "Always respond with valid JSON."
    )
    max_completion_tokens = 1024

    def __init__(self):
        prompt_template = (
            "Match investors to a startup based on compatibility:\n\n"
            "Startup Industry: {industry}\n"
            "Startup Stage: {stage}\n\n"
            "Available Investors:\n"
            "{investor_descriptions}\n\n"
            "Score each investor's compatibility with this startup (0-100).\n"
            "Only return the top {top_k} most compatible investors.\n\n"
            "Respond with JSON in this exact format:\n"
            "{{\n"
            '  "matches": [\n'
            '    {{"investorId": "<id>", "matchScore": <number 0-100>}},\n'
            "    ...\n"
            "  ]\n"
            "}}"
        )
        super().__init__(prompt_template)

    def demo_response(self, context: Dict[str, Any]) -> Dict[str, Any]:
        investor_ids = context.get("investor_ids") or []
        top_k = context.get("top_k", 5)
        return {
            "matches": [
                {"investorId": investor_id, "matchScore": 95 - idx * 5}
                for idx, investor_id in enumerate(investor_ids[:top_k])
            ]
        }
