"""Tests for the AI insight service and the analysis guard."""
import json
import threading
from datetime import datetime

import pytest

from app.crm.modules.clients.records import Client
from app.crm.modules.insights.gemini_client import GenerationError
from app.crm.modules.insights.service import (
    ANALYSIS_FAILED,
    ANALYSIS_FALLBACK,
    NOTHING_TO_ANALYZE,
    SAMPLE_SCHEMA,
    AnalysisInProgress,
    AnalysisRunner,
    InsightService,
    parse_samples,
)


class FakeGenerator:
    def __init__(self, text=None, json_text=None, error=None):
        self.text = text
        self.json_text = json_text
        self.error = error
        self.prompts: list[str] = []
        self.schemas: list[dict] = []

    def generate_text(self, model, prompt):
        self.prompts.append(prompt)
        if self.error:
            raise self.error
        return self.text

    def generate_json(self, model, prompt, schema):
        self.prompts.append(prompt)
        self.schemas.append(schema)
        if self.error:
            raise self.error
        return self.json_text


def _client(name="Ana Souza", notes="Wants a demo"):
    return Client(
        id="c1",
        name=name,
        email="ana@private.example",
        phone="(11) 98888-7777",
        company="Tech Solutions",
        status="active",
        notes=notes,
        created_at=datetime(2026, 1, 1),
    )


def _sample(**overrides):
    s = {
        "name": "Bruno Lima",
        "email": "bruno@example.com",
        "phone": "555",
        "company": "Lima Ltda",
        "status": "pending",
        "notes": "Evaluating",
    }
    s.update(overrides)
    return s


def test_summarize_empty_short_circuits():
    gen = FakeGenerator(text="should not be used")
    assert InsightService(gen, model="m").summarize([]) == NOTHING_TO_ANALYZE
    assert gen.prompts == []


def test_summarize_sends_only_name_company_notes():
    gen = FakeGenerator(text="Three paragraphs.")
    result = InsightService(gen, model="m").summarize([_client()])

    assert result == "Three paragraphs."
    prompt = gen.prompts[0]
    assert "three-paragraph" in prompt
    payload = json.loads(prompt[prompt.index("["):])
    assert payload == [{"name": "Ana Souza", "company": "Tech Solutions", "notes": "Wants a demo"}]
    assert "private.example" not in prompt
    assert "98888" not in prompt


def test_summarize_empty_text_falls_back():
    for text in (None, ""):
        assert InsightService(FakeGenerator(text=text), model="m").summarize([_client()]) == ANALYSIS_FALLBACK


def test_summarize_propagates_generation_error():
    with pytest.raises(GenerationError):
        InsightService(FakeGenerator(error=GenerationError("boom")), model="m").summarize([_client()])


def test_generate_samples_parses_schema_output():
    gen = FakeGenerator(json_text=json.dumps([_sample(), _sample(name="Carla Dias", status="active")]))
    samples = InsightService(gen, model="m", sample_count=5).generate_samples()

    assert [s.name for s in samples] == ["Bruno Lima", "Carla Dias"]
    assert gen.schemas == [SAMPLE_SCHEMA]
    assert "5 fictitious clients" in gen.prompts[0]


@pytest.mark.parametrize(
    "text",
    [
        "not json at all",
        "{\"name\": \"x\"}",
        "[1, 2]",
        json.dumps([_sample(phone=None)]),
        "[{\"name\": ",
    ],
)
def test_generate_samples_malformed_output_is_empty(text):
    assert InsightService(FakeGenerator(json_text=text), model="m").generate_samples() == []


def test_generate_samples_none_is_empty():
    assert parse_samples(None) == []


def test_sample_status_is_not_schema_checked():
    # status is constrained by the prompt only; filtering happens on import
    samples = parse_samples(json.dumps([_sample(status="vip")]))
    assert samples[0].status == "vip"


def test_runner_returns_summary_and_clears_flag():
    runner = AnalysisRunner()
    result = runner.run(InsightService(FakeGenerator(text="ok"), model="m"), [_client()])
    assert result.text == "ok"
    assert result.failed is False
    assert runner.is_loading is False


def test_runner_converts_failure_and_clears_flag():
    runner = AnalysisRunner()
    service = InsightService(FakeGenerator(error=GenerationError("boom")), model="m")
    result = runner.run(service, [_client()])
    assert result.failed is True
    assert result.text == ANALYSIS_FAILED
    assert runner.is_loading is False


def test_runner_rejects_concurrent_run():
    runner = AnalysisRunner()
    entered = threading.Event()
    release = threading.Event()

    class SlowGenerator(FakeGenerator):
        def generate_text(self, model, prompt):
            entered.set()
            release.wait(timeout=5)
            return "slow"

    service = InsightService(SlowGenerator(), model="m")
    results = []
    t = threading.Thread(target=lambda: results.append(runner.run(service, [_client()])))
    t.start()
    assert entered.wait(timeout=5)
    try:
        assert runner.is_loading is True
        with pytest.raises(AnalysisInProgress):
            runner.run(service, [_client()])
    finally:
        release.set()
        t.join(timeout=5)

    assert results[0].text == "slow"
    assert runner.is_loading is False
