"""Tests for the analysis agents and the Exa search client."""

import json

import httpx
import pytest
from langchain_core.language_models.fake_chat_models import FakeListChatModel

from agents.bias_detector import BiasDetector, BiasResult
from agents.fact_checker import (
    CheckableClaim,
    FactChecker,
    FactCheckResult,
    format_claims_with_results,
)
from agents.sentiment_analyzer import SentimentAnalyzer
from utils.exa_searcher import ExaSearcher, ExaSearchResult, ExaSearchResults

POLITICAL_BIAS_RESPONSE = json.dumps({
    "gender": {"score": 0.1, "direction": "neutral", "examples": []},
    "religion": {"score": 0.0, "targetReligion": None, "examples": []},
    "political": {"score": 0.9, "leaning": "far-right", "examples": ["all criminals and thieves"]},
    "overallBiasScore": 0.9,
    "summary": "Sweeping generalization about a political party",
})

NEGATIVE_SENTIMENT_RESPONSE = json.dumps({
    "sentiment": "Negative",
    "confidence": 0.8,
    "scores": {"positive": 0.05, "negative": 0.85, "neutral": 0.1},
    "reasoning": "Hostile language",
})

NO_CLAIMS_RESPONSE = json.dumps({
    "needsFactCheck": False,
    "reason": "Personal opinion only",
    "claims": [],
})


def claims_response(*claims):
    return json.dumps({
        "needsFactCheck": True,
        "reason": "Contains statistics",
        "claims": [
            {"claim": c, "type": "statistic", "searchQuery": f"query for {c}"}
            for c in claims
        ],
    })


VERIFICATION_RESPONSE = json.dumps({
    "verified": False,
    "status": "disputed",
    "confidence": 0.85,
    "findings": [{
        "claim": "The Eiffel Tower is in Berlin",
        "verdict": "False",
        "source": "https://example.org/eiffel",
        "explanation": "It is in Paris",
    }],
    "summary": "The location claim is false",
})


def exa_transport(requests, status_code=200):
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        requests.append((request, body))
        if status_code != 200:
            return httpx.Response(status_code, json={"error": "boom"})
        return httpx.Response(200, json={"results": [{
            "url": f"https://example.org/{len(requests)}",
            "title": f"Result for {body['query']}",
            "text": "Evidence text",
            "publishedDate": "2024-01-01",
        }]})

    return httpx.MockTransport(handler)


async def test_bias_detector_parses_result(config):
    detector = BiasDetector(config, llm=FakeListChatModel(responses=[POLITICAL_BIAS_RESPONSE]))
    result = await detector.analyze("Party X are all criminals and thieves.")

    assert isinstance(result, BiasResult)
    assert result.political.score == pytest.approx(0.9)
    assert result.political.leaning == "right"
    assert result.overall_bias_score == pytest.approx(0.9)
    # Flag derived from the overall score when the model omits it
    assert result.flagged is True


def test_bias_result_keeps_explicit_flag():
    result = BiasResult.model_validate({"overallBiasScore": 0.9, "flagged": False})
    assert result.flagged is False


async def test_bias_detector_raises_on_malformed_output(config):
    detector = BiasDetector(config, llm=FakeListChatModel(responses=["not json"]))
    with pytest.raises(Exception):
        await detector.analyze("text")


async def test_sentiment_analyzer_parses_result(config):
    analyzer = SentimentAnalyzer(config, llm=FakeListChatModel(responses=[NEGATIVE_SENTIMENT_RESPONSE]))
    result = await analyzer.analyze("I hate this.")

    assert result.sentiment == "negative"
    assert result.confidence == pytest.approx(0.8)
    assert result.scores.negative == pytest.approx(0.85)


async def test_fact_checker_no_claims_skips_search(config):
    requests = []
    searcher = ExaSearcher("exa-key", transport=exa_transport(requests))
    checker = FactChecker(config, llm=FakeListChatModel(responses=[NO_CLAIMS_RESPONSE]), searcher=searcher)

    result = await checker.analyze("I think pineapple belongs on pizza.")

    assert result.status == "no_claims"
    assert result.skipped is True
    assert result.confidence == 1.0
    assert result.findings == []
    assert requests == []


async def test_fact_checker_without_search_reports_unverified(config):
    checker = FactChecker(config, llm=FakeListChatModel(responses=[claims_response("GDP grew 4%")]))
    assert checker.searcher is None

    result = await checker.analyze("GDP grew 4% last year.")

    assert result.status == "unverified"
    assert result.confidence == 0.0
    assert [f.verdict for f in result.findings] == ["unverifiable"]


async def test_fact_checker_searches_and_verifies(config):
    requests = []
    searcher = ExaSearcher("exa-key", transport=exa_transport(requests))
    llm = FakeListChatModel(responses=[claims_response("The Eiffel Tower is in Berlin"), VERIFICATION_RESPONSE])
    checker = FactChecker(config, llm=llm, searcher=searcher)

    result = await checker.analyze("The Eiffel Tower is in Berlin.")

    assert isinstance(result, FactCheckResult)
    assert result.status == "disputed"
    assert result.findings[0].verdict == "false"
    assert len(requests) == 1
    request, body = requests[0]
    assert request.headers["x-api-key"] == "exa-key"
    assert body["query"] == "query for The Eiffel Tower is in Berlin"


async def test_fact_checker_limits_claims(config):
    config.max_claims = 2
    requests = []
    searcher = ExaSearcher("exa-key", transport=exa_transport(requests))
    llm = FakeListChatModel(responses=[claims_response("a", "b", "c", "d"), VERIFICATION_RESPONSE])
    checker = FactChecker(config, llm=llm, searcher=searcher)

    await checker.analyze("Four claims in one row.")

    assert sorted(body["query"] for _, body in requests) == ["query for a", "query for b"]


def test_fact_check_status_is_normalized():
    result = FactCheckResult.model_validate({"status": "No Claims", "confidence": "0.4"})
    assert result.status == "no_claims"
    assert result.confidence == pytest.approx(0.4)


def test_format_claims_with_results():
    claims = [CheckableClaim(claim="X happened"), CheckableClaim(claim="Y happened")]
    searches = [
        ExaSearchResults(query="x", results=[ExaSearchResult(url="https://a.org", title="A", text="about x")]),
        ExaSearchResults(query="y", error="Search failed: timeout"),
    ]
    rendered = format_claims_with_results(claims, searches)

    assert 'Claim 1: "X happened"' in rendered
    assert "- A (https://a.org): about x..." in rendered
    assert "- (no results)" in rendered
    assert "Error: Search failed: timeout" in rendered


def test_exa_searcher_requires_key():
    with pytest.raises(ValueError):
        ExaSearcher("")


async def test_exa_search_parses_results():
    requests = []
    searcher = ExaSearcher("exa-key", num_results=2, transport=exa_transport(requests))

    results = await searcher.search("climate data")

    assert results.error is None
    assert results.results[0].title == "Result for climate data"
    assert results.results[0].published_date == "2024-01-01"
    assert results.get_urls() == ["https://example.org/1"]
    assert requests[0][1]["num_results"] == 2
    assert searcher.stats["successful_searches"] == 1


async def test_exa_search_failure_is_returned_not_raised():
    searcher = ExaSearcher("exa-key", transport=exa_transport([], status_code=500))

    results = await searcher.search("anything")

    assert results.results == []
    assert results.error.startswith("Search failed")
    assert searcher.stats["failed_searches"] == 1


async def test_exa_search_many_keeps_query_order():
    searcher = ExaSearcher("exa-key", transport=exa_transport([]))

    results = await searcher.search_many(["first", "second", "third"])

    assert [r.query for r in results] == ["first", "second", "third"]
    assert [r.results[0].title for r in results] == [
        "Result for first",
        "Result for second",
        "Result for third",
    ]
    assert await searcher.search_many([]) == []
