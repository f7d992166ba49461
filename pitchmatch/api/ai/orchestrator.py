# pitchmatch/api/ai/orchestrator.py

import logging
import os
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError

from pitchmatch.api.ai.agents import (
    AIDemoMode,
    AIServiceError,
    BaseAIAgent,
    IdeaScoringAgent,        # overall score + four dimensions
    MarketAnalysisAgent,     # market size, competition, risks, opportunities
    PitchDeckAgent,          # five-slide deck
    InvestorMatchAgent,      # per-investor compatibility
)
from pitchmatch.api.ai.sanitize_html import cleanse_json
from pitchmatch.api.schemas import (
    AIScoreBreakdown,
    IdeaScore,
    InvestorMatchResult,
    MarketAnalysis,
    PitchSlide,
)

logger = logging.getLogger(__name__)

MAX_MATCHES = 5
SLIDE_ORDER = ("problem", "solution", "market", "business_model", "ask")


def _max_attempts() -> int:
    return int(os.getenv("AI_MAX_ATTEMPTS", "3"))


def _retry_delay() -> float:
    return float(os.getenv("AI_RETRY_DELAY_SECONDS", "2"))


def generate_with_retry(
    agent: BaseAIAgent,
    context: Dict[str, Any],
    task_name: str,
    max_attempts: Optional[int] = None,
    delay: Optional[float] = None,
) -> Dict[str, Any]:
    """
    Run an agent, retrying transient errors with linear back-off.

    Demo mode short-circuits to the agent's sample output. When every
    attempt fails the last AIServiceError is re-raised.
    """
    max_attempts = max_attempts or _max_attempts()
    delay = _retry_delay() if delay is None else delay

    attempt = 0
    last_error: Optional[Exception] = None
    while attempt < max_attempts:
        try:
            logger.info("Attempt %s for '%s'.", attempt + 1, task_name)
            result = agent.generate(context)
            logger.info("'%s' generated successfully on attempt %s.", task_name, attempt + 1)
            return result
        except AIDemoMode:
            logger.info("AI feature in demo mode - returning sample %s", task_name)
            return agent.demo_response(context)
        except AIServiceError as e:
            attempt += 1
            last_error = e
            logger.error("Attempt %s failed for '%s': %s", attempt, task_name, str(e))
            if attempt < max_attempts:
                logger.info("Retrying '%s' in %s seconds...", task_name, delay * attempt)
                time.sleep(delay * attempt)

    logger.error("All %s attempts failed for '%s'.", max_attempts, task_name)
    raise AIServiceError(f"Failed to generate {task_name}") from last_error


def _clamp_score(value: Any, default: int = 50) -> int:
    try:
        score = int(round(float(value)))
    except (TypeError, ValueError, OverflowError):
        return default
    return max(0, min(100, score))


def build_startup_context(startup: Any) -> Dict[str, Any]:
    """Flatten a Startup row into the keys the prompt templates expect."""
    return {
        "title": startup.title,
        "description": startup.description,
        "problem": startup.problem,
        "solution": startup.solution,
        "target_market": startup.target_market,
        "industry": startup.industry or "General",
        "business_model": startup.business_model or "Not specified",
        "stage": startup.stage or "idea",
    }


# --------------------------------------------------------------------------- #
# Individual operations
# --------------------------------------------------------------------------- #
def score_startup_idea(startup: Any) -> IdeaScore:
    raw = generate_with_retry(IdeaScoringAgent(), build_startup_context(startup), "startup score")

    breakdown_raw = raw.get("breakdown") or {}
    if not isinstance(breakdown_raw, dict):
        breakdown_raw = {}
    breakdown = AIScoreBreakdown(
        market_potential=_clamp_score(breakdown_raw.get("marketPotential")),
        feasibility=_clamp_score(breakdown_raw.get("feasibility")),
        innovation=_clamp_score(breakdown_raw.get("innovation")),
        scalability=_clamp_score(breakdown_raw.get("scalability")),
    )
    return IdeaScore(score=_clamp_score(raw.get("overallScore")), breakdown=breakdown)


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if item]


def generate_market_analysis(startup: Any) -> MarketAnalysis:
    raw = generate_with_retry(MarketAnalysisAgent(), build_startup_context(startup), "market analysis")
    raw = cleanse_json(raw)
    return MarketAnalysis(
        market_size=str(raw.get("marketSize") or "Market size analysis unavailable"),
        competition=_string_list(raw.get("competition")),
        risks=_string_list(raw.get("risks")),
        opportunities=_string_list(raw.get("opportunities")),
    )


def generate_pitch_deck(startup: Any) -> List[PitchSlide]:
    """
    Produce the deck slides in canonical order. Slides with an unknown type
    are dropped, one slide per type is kept.
    """
    raw = generate_with_retry(PitchDeckAgent(), build_startup_context(startup), "pitch deck")
    raw = cleanse_json(raw)

    slides_by_type: Dict[str, PitchSlide] = {}
    for item in raw.get("slides") or []:
        if not isinstance(item, dict):
            continue
        try:
            slide = PitchSlide(**item)
        except ValidationError:
            logger.warning("Discarding malformed slide: %s", item)
            continue
        slides_by_type.setdefault(slide.type, slide)

    slides = [slides_by_type[t] for t in SLIDE_ORDER if t in slides_by_type]
    if not slides:
        raise AIServiceError("Model returned no usable slides")
    return slides


def match_investors(
    industry: Optional[str],
    stage: Optional[str],
    investors: Sequence[Any],
) -> List[InvestorMatchResult]:
    """
    Score investor compatibility. Returns at most MAX_MATCHES results,
    best first. Provider failures yield an empty list.
    """
    if not investors:
        return []

    known_ids = [inv.id for inv in investors]
    descriptions = "\n".join(
        f"ID: {inv.id}, Focus: {', '.join(inv.investment_focus or []) or 'General'}"
        for inv in investors
    )
    context = {
        "industry": industry or "General",
        "stage": stage or "Early",
        "investor_descriptions": descriptions,
        "investor_ids": known_ids,
        "top_k": MAX_MATCHES,
    }

    try:
        raw = generate_with_retry(InvestorMatchAgent(), context, "investor matches")
    except AIServiceError as e:
        logger.error("Error matching investors: %s", str(e))
        return []

    results: Dict[str, InvestorMatchResult] = {}
    for item in raw.get("matches") or []:
        if not isinstance(item, dict):
            continue
        investor_id = str(item.get("investorId", ""))
        if investor_id not in known_ids or investor_id in results:
            continue
        results[investor_id] = InvestorMatchResult(
            investor_id=investor_id,
            match_score=_clamp_score(item.get("matchScore"), default=0),
        )

    ranked = sorted(results.values(), key=lambda m: m.match_score, reverse=True)
    return ranked[:MAX_MATCHES]


# --------------------------------------------------------------------------- #
# Full pipeline for a newly posted startup
# --------------------------------------------------------------------------- #
def analyze_startup(startup: Any, investors: Sequence[Any]) -> Dict[str, Any]:
    """
    Orchestrates the evaluation of a freshly posted idea:

    1) Scores the idea and writes the market analysis (in parallel).
    2) Matches the idea against the investor pool.

    Returns:
        dict: {
            "ai_score": int,
            "ai_score_breakdown": {...},
            "market_analysis": {...},
            "matches": [{"investor_id": ..., "match_score": ...}, ...]
        }

    Scoring / analysis failures propagate as AIServiceError.
    """
    logger.info("Starting analysis for startup_id=%s", startup.id)

    with ThreadPoolExecutor(max_workers=2) as pool:
        score_future = pool.submit(score_startup_idea, startup)
        analysis_future = pool.submit(generate_market_analysis, startup)
        score = score_future.result()
        analysis = analysis_future.result()

    matches = match_investors(startup.industry or "General", startup.stage or "idea", investors)

    logger.info(
        "Analysis complete for startup_id=%s: score=%s matches=%d",
        startup.id, score.score, len(matches)
    )
    return {
        "ai_score": score.score,
        "ai_score_breakdown": score.breakdown.model_dump(),
        "market_analysis": analysis.model_dump(),
        "matches": [m.model_dump() for m in matches],
    }
