"""
Unit Tests for the Insight Orchestrator

Concurrent fan-out, partial-failure isolation, reply validation and the
read-state of published insights.
"""
import asyncio
import json

import pytest

from nutritrack.core.insights import (
    InsightOrchestrator,
    InsightRunStatus,
    parse_insight_payload,
    strip_code_fence,
)
from nutritrack.core.stats import (
    CategoryStat,
    DEFAULT_CATEGORIES,
    PopulationStatsAggregator,
    PopulationSummary,
)
from nutritrack.core.stats.aggregator import display_name
from nutritrack.utils import MalformedResponseError, ServiceError

VALID_REPLY = json.dumps({
    "description": "Vegetable intake is below target for males.",
    "recommendations": ["Eat more greens."],
})


def _stat(category: str) -> CategoryStat:
    return CategoryStat(
        component=display_name(category), male_score=3.2, female_score=4.1, max_score=5.0
    )


@pytest.fixture
def population() -> PopulationSummary:
    return PopulationSummary(total=10, male=4, female=6)


@pytest.fixture
def all_stats():
    return [_stat(c) for c in DEFAULT_CATEGORIES]


def _category_of(prompt: str) -> str:
    """Recover the category display name from an insight prompt."""
    return prompt.split('nutritional category "', 1)[1].split('"', 1)[0]


class TestReplyParsing:

    def test_strip_json_fence(self):
        assert strip_code_fence("```json\n{\"a\": 1}\n```") == '{"a": 1}'
        assert strip_code_fence("```\n{}\n```") == "{}"
        assert strip_code_fence('  {"a": 1}  ') == '{"a": 1}'

    def test_parse_valid_payload(self):
        description, recommendations = parse_insight_payload(VALID_REPLY)
        assert description == "Vegetable intake is below target for males."
        assert recommendations == ["Eat more greens."]

    def test_missing_keys_use_defaults(self):
        description, recommendations = parse_insight_payload("{}")
        assert description == "No description provided."
        assert recommendations == []

    @pytest.mark.parametrize("raw", [
        "Sure! Here is the analysis.",
        "[1, 2, 3]",
        "{not json}",
        '{"description": "x", "recommendations": "eat"}',
    ])
    def test_malformed_replies(self, raw):
        with pytest.raises(MalformedResponseError):
            parse_insight_payload(raw, "vegetables")


class TestInsightOrchestrator:

    async def test_vegetables_scenario(self, fake_client_factory, population):
        client = fake_client_factory(replies=[VALID_REPLY])
        orchestrator = InsightOrchestrator(client)

        result = await orchestrator.generate_insights([_stat("vegetables")], population, "en")

        assert result.status is InsightRunStatus.COMPLETED
        [insight] = result.insights
        assert insight.category == "vegetables"
        assert insight.title == "Vegetables Analysis"
        assert list(insight.recommendations) == ["Eat more greens."]
        assert insight.patient_count == 10
        assert insight.is_new
        assert orchestrator.insights == [insight]

    async def test_empty_input_is_not_ready(self, fake_client_factory, population):
        client = fake_client_factory(replies=[VALID_REPLY])
        orchestrator = InsightOrchestrator(client)

        result = await orchestrator.generate_insights([], population)

        assert result.status is InsightRunStatus.NOT_READY
        assert result.error.code == "NOT_READY"
        assert result.error.message == "Component data not ready. Please try again shortly."
        assert client.call_count == 0

    async def test_partial_failure_keeps_successful_categories(
        self, fake_client_factory, population, all_stats
    ):
        good = {"Vegetables", "Water", "Unsaturated fat"}

        def responder(prompt):
            return VALID_REPLY if _category_of(prompt) in good else "not json at all"

        orchestrator = InsightOrchestrator(fake_client_factory(responder=responder))
        result = await orchestrator.generate_insights(all_stats, population)

        assert result.status is InsightRunStatus.PARTIAL
        assert [i.category for i in result.insights] == ["vegetables", "water", "unsaturated_fat"]
        assert len(result.failed_categories) == 5
        assert "fruits" in result.failed_categories

    async def test_client_errors_are_isolated(self, fake_client_factory, population, all_stats):
        def responder(prompt):
            if _category_of(prompt) == "Fruits":
                return ServiceError("quota exceeded")
            return VALID_REPLY

        client = fake_client_factory(responder=responder)
        result = await InsightOrchestrator(client).generate_insights(all_stats, population)

        assert len(result.insights) == len(all_stats) - 1
        assert result.failed_categories == ["fruits"]
        assert client.call_count == len(all_stats)

    async def test_all_failures_yield_empty(self, fake_client_factory, population, all_stats):
        orchestrator = InsightOrchestrator(fake_client_factory(responder=lambda p: "oops"))
        result = await orchestrator.generate_insights(all_stats, population)

        assert result.status is InsightRunStatus.EMPTY
        assert result.insights == []
        assert result.error.code == "EMPTY_RESULT"
        assert orchestrator.insights == []

    async def test_calls_run_concurrently(self, fake_client_factory, population, all_stats):
        client = fake_client_factory(responder=lambda p: VALID_REPLY, delay=0.2)
        orchestrator = InsightOrchestrator(client)

        loop = asyncio.get_running_loop()
        started = loop.time()
        result = await orchestrator.generate_insights(all_stats, population)
        elapsed = loop.time() - started

        assert len(result.insights) == len(all_stats)
        assert elapsed < 0.2 * len(all_stats) / 2

    async def test_slow_category_times_out_alone(self, fake_client_factory, population):
        class SlowForWater:
            def __init__(self):
                self.prompts = []

            async def generate(self, prompt):
                self.prompts.append(prompt)
                if _category_of(prompt) == "Water":
                    await asyncio.sleep(5)
                return VALID_REPLY

        orchestrator = InsightOrchestrator(SlowForWater(), call_timeout_seconds=0.05)
        result = await orchestrator.generate_insights(
            [_stat("vegetables"), _stat("water")], population
        )

        assert [i.category for i in result.insights] == ["vegetables"]
        assert result.failed_categories == ["water"]

    async def test_new_run_replaces_previous_insights(self, fake_client_factory, population):
        orchestrator = InsightOrchestrator(fake_client_factory(responder=lambda p: VALID_REPLY))
        first = await orchestrator.generate_insights([_stat("vegetables")], population)
        second = await orchestrator.generate_insights([_stat("fruits"), _stat("dairy")], population)

        assert [i.category for i in orchestrator.insights] == ["fruits", "dairy"]
        assert first.insights[0].id not in {i.id for i in second.insights}

    async def test_prompt_carries_findings_and_language(self, fake_client_factory, population):
        client = fake_client_factory(replies=[VALID_REPLY])
        await InsightOrchestrator(client).generate_insights([_stat("vegetables")], population, "ms")

        [prompt] = client.prompts
        assert "Male HEIFA Score: 3.20/5.00" in prompt
        assert population.context_line in prompt
        assert 'language with code: "ms"' in prompt

    async def test_analyze_uses_aggregator(self, fake_client_factory, patient_store):
        client = fake_client_factory(responder=lambda p: VALID_REPLY)
        orchestrator = InsightOrchestrator(client)

        result = await orchestrator.analyze(PopulationStatsAggregator(patient_store), "en")

        assert result.status is InsightRunStatus.COMPLETED
        assert len(result.insights) == len(DEFAULT_CATEGORIES)
        assert all(i.patient_count == 4 for i in result.insights)


class TestMarkAsRead:

    async def _orchestrator(self, fake_client_factory, population):
        orchestrator = InsightOrchestrator(fake_client_factory(responder=lambda p: VALID_REPLY))
        await orchestrator.generate_insights([_stat("vegetables"), _stat("fruits")], population)
        return orchestrator

    async def test_mark_as_read_is_idempotent(self, fake_client_factory, population):
        orchestrator = await self._orchestrator(fake_client_factory, population)
        target = orchestrator.insights[0]

        orchestrator.mark_as_read(target.id)
        once = orchestrator.insights
        orchestrator.mark_as_read(target.id)

        assert orchestrator.insights == once
        assert not orchestrator.get(target.id).is_new
        assert orchestrator.insights[1].is_new

    async def test_unknown_id_is_noop(self, fake_client_factory, population):
        orchestrator = await self._orchestrator(fake_client_factory, population)
        before = orchestrator.insights

        assert orchestrator.mark_as_read("missing") is None
        assert orchestrator.insights == before

    async def test_filter_by_category(self, fake_client_factory, population):
        orchestrator = await self._orchestrator(fake_client_factory, population)
        assert [i.category for i in orchestrator.insights_by_category("fruits")] == ["fruits"]
