from types import SimpleNamespace

import pytest

from pitchmatch.api.ai import orchestrator
from pitchmatch.api.ai.agents import AIDemoMode, AIServiceError


def _startup(**overrides):
    data = dict(
        id="s-1",
        title="GreenLedger",
        description="Carbon accounting for SMEs",
        problem="Emissions are hard to measure",
        solution="Estimates from bookkeeping data",
        target_market="European SMEs",
        industry="Climate",
        business_model=None,
        stage="mvp",
    )
    data.update(overrides)
    return SimpleNamespace(**data)


def _investor(investor_id, focus=None):
    return SimpleNamespace(id=investor_id, investment_focus=focus)


class _ScriptedAgent:
    """Returns or raises the queued outcomes in order."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = 0

    def generate(self, context):
        self.calls += 1
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def demo_response(self, context):
        return {"demo": True}


def _patch_agent(monkeypatch, name, payload):
    """Swap an agent class for one that always answers with `payload`."""
    monkeypatch.setattr(
        orchestrator,
        name,
        lambda: SimpleNamespace(generate=lambda context: payload, demo_response=lambda context: payload),
    )


# --------------------------------------------------------------------------- #
# generate_with_retry
# --------------------------------------------------------------------------- #
def test_retry_recovers_after_transient_failure():
    agent = _ScriptedAgent(AIServiceError("timeout"), {"ok": 1})
    assert orchestrator.generate_with_retry(agent, {}, "task", max_attempts=3, delay=0) == {"ok": 1}
    assert agent.calls == 2


def test_retry_gives_up_after_max_attempts():
    agent = _ScriptedAgent(*[AIServiceError("down")] * 3)
    with pytest.raises(AIServiceError, match="Failed to generate task"):
        orchestrator.generate_with_retry(agent, {}, "task", max_attempts=3, delay=0)
    assert agent.calls == 3


def test_retry_backs_off_linearly(monkeypatch):
    sleeps = []
    monkeypatch.setattr(orchestrator.time, "sleep", sleeps.append)
    agent = _ScriptedAgent(AIServiceError("a"), AIServiceError("b"), {"ok": 1})
    orchestrator.generate_with_retry(agent, {}, "task", max_attempts=3, delay=2)
    assert sleeps == [2, 4]


def test_retry_reads_attempts_from_environment(monkeypatch):
    monkeypatch.setenv("AI_MAX_ATTEMPTS", "1")
    agent = _ScriptedAgent(AIServiceError("down"), {"ok": 1})
    with pytest.raises(AIServiceError):
        orchestrator.generate_with_retry(agent, {}, "task")
    assert agent.calls == 1


def test_demo_mode_returns_sample_output():
    agent = _ScriptedAgent(AIDemoMode("no key"))
    assert orchestrator.generate_with_retry(agent, {}, "task") == {"demo": True}


# --------------------------------------------------------------------------- #
# Scoring and market analysis
# --------------------------------------------------------------------------- #
def test_score_in_demo_mode():
    score = orchestrator.score_startup_idea(_startup())
    assert score.score == 78
    assert score.breakdown.model_dump() == {
        "market_potential": 82,
        "feasibility": 75,
        "innovation": 78,
        "scalability": 76,
    }


def test_score_is_clamped_and_defaulted(monkeypatch):
    _patch_agent(
        monkeypatch,
        "IdeaScoringAgent",
        {"overallScore": 140, "breakdown": {"marketPotential": -5, "feasibility": "72.6", "innovation": "n/a"}},
    )
    score = orchestrator.score_startup_idea(_startup())
    assert score.score == 100
    assert score.breakdown.market_potential == 0
    assert score.breakdown.feasibility == 73
    assert score.breakdown.innovation == 50
    assert score.breakdown.scalability == 50


def test_market_analysis_defaults_and_sanitises(monkeypatch):
    _patch_agent(
        monkeypatch,
        "MarketAnalysisAgent",
        {"competition": ["<img src=x onerror=alert(1)>Acme", ""], "risks": "not a list"},
    )
    analysis = orchestrator.generate_market_analysis(_startup())
    assert analysis.market_size == "Market size analysis unavailable"
    assert analysis.competition == ["Acme"]
    assert analysis.risks == []
    assert analysis.opportunities == []


def test_build_context_fills_missing_fields():
    context = orchestrator.build_startup_context(_startup(industry=None, stage=None))
    assert context["industry"] == "General"
    assert context["business_model"] == "Not specified"
    assert context["stage"] == "idea"


# --------------------------------------------------------------------------- #
# Pitch deck
# --------------------------------------------------------------------------- #
def test_pitch_deck_orders_and_filters_slides(monkeypatch):
    _patch_agent(
        monkeypatch,
        "PitchDeckAgent",
        {
            "slides": [
                {"title": "Ask", "content": "$2M", "type": "ask"},
                {"title": "Team", "content": "Us", "type": "team"},
                {"title": "Pain", "content": "It hurts", "type": "problem"},
                {"title": "Pain again", "content": "Still", "type": "problem"},
                "not a slide",
            ]
        },
    )
    slides = orchestrator.generate_pitch_deck(_startup())
    assert [(s.type, s.title) for s in slides] == [("problem", "Pain"), ("ask", "Ask")]


def test_pitch_deck_without_usable_slides_fails(monkeypatch):
    _patch_agent(monkeypatch, "PitchDeckAgent", {"slides": [{"type": "team"}]})
    with pytest.raises(AIServiceError):
        orchestrator.generate_pitch_deck(_startup())


def test_pitch_deck_in_demo_mode_has_five_slides():
    slides = orchestrator.generate_pitch_deck(_startup())
    assert [s.type for s in slides] == list(orchestrator.SLIDE_ORDER)


# --------------------------------------------------------------------------- #
# Investor matching
# --------------------------------------------------------------------------- #
def test_match_without_investors_skips_the_model(monkeypatch):
    def explode():
        raise AssertionError("agent should not be built")

    monkeypatch.setattr(orchestrator, "InvestorMatchAgent", explode)
    assert orchestrator.match_investors("Climate", "mvp", []) == []


def test_match_drops_unknown_and_duplicate_ids(monkeypatch):
    investors = [_investor(f"inv-{i}", ["Climate"]) for i in range(7)]
    _patch_agent(
        monkeypatch,
        "InvestorMatchAgent",
        {
            "matches": [
                {"investorId": "inv-0", "matchScore": 60},
                {"investorId": "ghost", "matchScore": 99},
                {"investorId": "inv-1", "matchScore": 150},
                {"investorId": "inv-0", "matchScore": 10},
                {"investorId": "inv-2", "matchScore": 70},
                {"investorId": "inv-3", "matchScore": 20},
                {"investorId": "inv-4", "matchScore": 30},
                {"investorId": "inv-5", "matchScore": 40},
            ]
        },
    )
    matches = orchestrator.match_investors("Climate", "mvp", investors)
    assert [(m.investor_id, m.match_score) for m in matches] == [
        ("inv-1", 100),
        ("inv-2", 70),
        ("inv-0", 60),
        ("inv-5", 40),
        ("inv-4", 30),
    ]


def test_match_failure_yields_empty_list(monkeypatch):
    def failing(context):
        raise AIServiceError("down")

    monkeypatch.setattr(
        orchestrator,
        "InvestorMatchAgent",
        lambda: SimpleNamespace(generate=failing, demo_response=lambda context: {}),
    )
    assert orchestrator.match_investors("Climate", "mvp", [_investor("inv-0")]) == []


def test_match_in_demo_mode():
    investors = [_investor(f"inv-{i}") for i in range(6)]
    matches = orchestrator.match_investors("Climate", "mvp", investors)
    assert [m.match_score for m in matches] == [95, 90, 85, 80, 75]


# --------------------------------------------------------------------------- #
# Full pipeline
# --------------------------------------------------------------------------- #
def test_analyze_startup_in_demo_mode():
    result = orchestrator.analyze_startup(_startup(), [_investor("inv-0"), _investor("inv-1")])
    assert result["ai_score"] == 78
    assert result["ai_score_breakdown"]["market_potential"] == 82
    assert result["market_analysis"]["market_size"].startswith("TAM")
    assert result["matches"] == [
        {"investor_id": "inv-0", "match_score": 95},
        {"investor_id": "inv-1", "match_score": 90},
    ]


def test_analyze_startup_propagates_scoring_failure(monkeypatch):
    def failing(startup):
        raise AIServiceError("down")

    monkeypatch.setattr(orchestrator, "score_startup_idea", failing)
    with pytest.raises(AIServiceError):
        orchestrator.analyze_startup(_startup(), [])


@pytest.mark.parametrize("value", [float("inf"), float("-inf"), float("nan"), "1e400", "Infinity"])
def test_non_finite_scores_fall_back_to_default(monkeypatch, value):
    _patch_agent(
        monkeypatch,
        "IdeaScoringAgent",
        {"overallScore": value, "breakdown": {"marketPotential": value, "scalability": 64}},
    )
    score = orchestrator.score_startup_idea(_startup())
    assert score.score == 50
    assert score.breakdown.market_potential == 50
    assert score.breakdown.scalability == 64


def test_non_finite_match_score_counts_as_zero(monkeypatch):
    _patch_agent(
        monkeypatch,
        "InvestorMatchAgent",
        {"matches": [{"investorId": "inv-0", "matchScore": float("inf")}, {"investorId": "inv-1", "matchScore": 55}]},
    )
    matches = orchestrator.match_investors("Climate", "mvp", [_investor("inv-0"), _investor("inv-1")])
    assert [(m.investor_id, m.match_score) for m in matches] == [("inv-1", 55), ("inv-0", 0)]
