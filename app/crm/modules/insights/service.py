"""
AI insight service.

Both operations are advisory: a summary that cannot be produced turns into a
message for the user, and a sample batch that cannot be parsed is simply empty.
"""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Sequence
from dataclasses import asdict, dataclass
from typing import Any, Protocol

from app.crm.modules.clients.records import Client
from app.crm.modules.insights.gemini_client import GenerationError

logger = logging.getLogger(__name__)

NOTHING_TO_ANALYZE = "No clients to analyze."
ANALYSIS_FALLBACK = "Could not generate analysis."
ANALYSIS_FAILED = "Error analyzing data."

SUMMARY_INSTRUCTION = (
    "Analyze the following client profiles and write a three-paragraph strategic "
    "executive summary of the business opportunities: "
)

SAMPLE_FIELDS = ("name", "email", "phone", "company", "status", "notes")

SAMPLE_SCHEMA: dict[str, Any] = {
    "type": "ARRAY",
    "items": {
        "type": "OBJECT",
        "properties": {
            "name": {"type": "STRING"},
            "email": {"type": "STRING"},
            "phone": {"type": "STRING"},
            "company": {"type": "STRING"},
            "status": {"type": "STRING", "description": "Must be 'active', 'inactive' or 'pending'"},
            "notes": {"type": "STRING"},
        },
        "required": list(SAMPLE_FIELDS),
    },
}


class GenerativeGateway(Protocol):
    def generate_text(self, model: str, prompt: str) -> str | None: ...

    def generate_json(self, model: str, prompt: str, schema: dict[str, Any]) -> str | None: ...


@dataclass(frozen=True)
class SampleClient:
    name: str
    email: str
    phone: str
    company: str
    status: str
    notes: str

    def as_payload(self) -> dict[str, str]:
        return asdict(self)


def build_summary_prompt(clients: Sequence[Client]) -> str:
    # Only name/company/notes leave the system.
    projection = [{"name": c.name, "company": c.company, "notes": c.notes} for c in clients]
    return SUMMARY_INSTRUCTION + json.dumps(projection, ensure_ascii=False)


def build_samples_prompt(count: int) -> str:
    return (
        f"Generate a list of {count} fictitious clients for a CRM system. "
        "Include name, email, phone, company, a status of 'active', 'inactive' or 'pending', "
        "and a short note about their profile."
    )


def parse_samples(text: str | None) -> list[SampleClient]:
    """Parse structured output; anything off-schema yields an empty list."""
    try:
        data = json.loads(text or "[]")
        if not isinstance(data, list):
            raise ValueError(f"expected a JSON array, got {type(data).__name__}")
        samples = []
        for item in data:
            if not isinstance(item, dict):
                raise ValueError("sample item is not an object")
            values = {k: item.get(k) for k in SAMPLE_FIELDS}
            if not all(isinstance(v, str) for v in values.values()):
                raise ValueError("sample item is missing a string field")
            samples.append(SampleClient(**values))
        return samples
    except ValueError as e:
        logger.warning("Failed to parse generated sample clients: %s", e)
        return []


class InsightService:
    def __init__(self, gateway: GenerativeGateway, model: str, sample_count: int = 5):
        self.gateway = gateway
        self.model = model
        self.sample_count = sample_count

    def summarize(self, clients: Sequence[Client]) -> str:
        if not clients:
            return NOTHING_TO_ANALYZE
        text = self.gateway.generate_text(self.model, build_summary_prompt(clients))
        return text or ANALYSIS_FALLBACK

    def generate_samples(self) -> list[SampleClient]:
        text = self.gateway.generate_json(self.model, build_samples_prompt(self.sample_count), SAMPLE_SCHEMA)
        return parse_samples(text)


class AnalysisInProgress(RuntimeError):
    pass


@dataclass
class AnalysisResult:
    text: str
    failed: bool = False


class AnalysisRunner:
    """
    One summary at a time. `is_loading` is true only while a request is
    outstanding and is cleared on success and failure alike.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()

    @property
    def is_loading(self) -> bool:
        return self._lock.locked()

    def run(self, service: InsightService, clients: Sequence[Client]) -> AnalysisResult:
        if not self._lock.acquire(blocking=False):
            raise AnalysisInProgress("an analysis is already running")
        try:
            return AnalysisResult(text=service.summarize(clients))
        except GenerationError as e:
            logger.warning("Client base analysis failed: %s", e)
            return AnalysisResult(text=ANALYSIS_FAILED, failed=True)
        finally:
            self._lock.release()


_runners: dict[int, AnalysisRunner] = {}
_runners_lock = threading.Lock()


def runner_for(user_id: int) -> AnalysisRunner:
    with _runners_lock:
        r = _runners.get(user_id)
        if r is None:
            r = _runners[user_id] = AnalysisRunner()
        return r
