"""Shared pytest fixtures for all tests."""

import csv
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from modeldoc.core.models import Cardinality, CrossFilterDirection, Result, TableRole
from modeldoc.llm.client import LLMClient
from modeldoc.llm.config import LLMConfig, ProviderConfig
from modeldoc.llm.prompts import PromptRenderer
from modeldoc.llm.providers.base import LLMProvider, LLMRequest, LLMResponse
from modeldoc.model.entities import Column, Measure, Relationship, SemanticModel, Table
from modeldoc.model.integrity import check_integrity
from modeldoc.pipeline.base import PipelineContext

# A phrase from each stage's system prompt, used to tell which stage is calling.
STAGE_MARKERS = {
    "domain_classification": "senior BI analyst",
    "glossary": "business glossaries",
    "architecture": "data architect",
    "measure_analysis": "DAX expert",
    "synthesis": "assemble model documentation",
    "polish": "You are an editor",
}

Scripted = str | Exception | Result | Callable[[LLMRequest], Any]


class FakeProvider(LLMProvider):
    """Provider answering from a per-stage script.

    A script entry may be response text, a Result, an exception to raise, or
    a callable taking the request and returning any of those. Stages without
    an entry fail permanently.
    """

    def __init__(self, responses: dict[str, Scripted] | None = None):
        self.responses = responses or {}
        self.calls: list[tuple[str, LLMRequest]] = []

    @staticmethod
    def stage_of(request: LLMRequest) -> str:
        text = request.system or ""
        for stage, marker in STAGE_MARKERS.items():
            if marker in text:
                return stage
        return "unknown"

    def calls_for(self, stage: str) -> list[LLMRequest]:
        return [request for name, request in self.calls if name == stage]

    async def complete(self, request: LLMRequest) -> Result[LLMResponse]:
        stage = self.stage_of(request)
        self.calls.append((stage, request))

        scripted = self.responses.get(stage)
        if callable(scripted) and not isinstance(scripted, Result):
            scripted = scripted(request)
        if scripted is None:
            return Result.fail(f"No scripted response for {stage}")
        if isinstance(scripted, Exception):
            raise scripted
        if isinstance(scripted, Result):
            return scripted
        return Result.ok(
            LLMResponse(content=scripted, model=request.model or "fake", input_tokens=10, output_tokens=5)
        )

    def get_model_for_tier(self, tier: str) -> str:
        return f"fake-{tier}"


async def no_sleep(delay: float) -> None:
    return None


@pytest.fixture
def llm_config() -> LLMConfig:
    """LLM configuration with a single fake provider and default features."""
    return LLMConfig(
        providers={
            "fake": ProviderConfig(
                api_key_env="FAKE_API_KEY",
                default_model="fake-balanced",
                models={"fast": "fake-fast", "balanced": "fake-balanced"},
            )
        },
        active_provider="fake",
    )


@pytest.fixture
def make_client(llm_config: LLMConfig) -> Callable[..., tuple[LLMClient, FakeProvider]]:
    """Factory returning a client over a scripted provider, and the provider."""

    def factory(responses: dict[str, Scripted] | None = None) -> tuple[LLMClient, FakeProvider]:
        provider = FakeProvider(responses)
        return LLMClient(provider, llm_config, sleep=no_sleep), provider

    return factory


@pytest.fixture
def sample_model() -> SemanticModel:
    """A small sales star schema."""
    return SemanticModel(
        measures=[
            Measure(name="Total Sales", expression="SUM(Sales[Amount])", display_folder="Sales"),
            Measure(
                name="Margin %",
                expression="DIVIDE([Profit], [Revenue]) * 100",
                display_folder="Profitability",
            ),
            Measure(name="Avg Order Value", expression="AVERAGE(Sales[Amount])"),
        ],
        tables=[
            Table(name="Sales", row_count=50_000, role=TableRole.FACT),
            Table(name="Customer", row_count=1_200),
            Table(name="Calendar", row_count=730),
        ],
        columns=[
            Column(table_name="Sales", name="Amount", data_type="Decimal"),
            Column(table_name="Sales", name="CustomerID", data_type="Integer", is_key=True),
            Column(table_name="Sales", name="Date", data_type="DateTime"),
            Column(table_name="Customer", name="CustomerID", data_type="Integer", is_key=True),
            Column(table_name="Customer", name="Name", data_type="Text"),
            Column(table_name="Calendar", name="Date", data_type="DateTime"),
        ],
        relationships=[
            Relationship(
                from_table="Sales",
                from_column="CustomerID",
                to_table="Customer",
                to_column="CustomerID",
            ),
            Relationship(
                from_table="Sales",
                from_column="Date",
                to_table="Calendar",
                to_column="Date",
                cardinality=Cardinality.MANY_TO_ONE,
                direction=CrossFilterDirection.SINGLE,
            ),
        ],
    )


@pytest.fixture
def sample_context(sample_model: SemanticModel) -> PipelineContext:
    return PipelineContext(model=sample_model, integrity=check_integrity(sample_model))


def write_csv(path: Path, header: list[str], rows: list[list[str]]) -> Path:
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        writer.writerows(rows)
    return path


@pytest.fixture
def csv_dir(tmp_path: Path) -> Path:
    """Directory holding one export file per entity kind."""
    write_csv(
        tmp_path / "Model_Measures.csv",
        ["Name", "Expression", "DisplayFolder", "Description"],
        [
            ["Total Sales", "SUM(Sales[Amount])", "Sales", "Revenue booked"],
            ["Margin %", "DIVIDE([Profit], [Revenue]) * 100", "Profitability", ""],
            ["Orphan", "", "", ""],
        ],
    )
    write_csv(
        tmp_path / "Model_Tables.csv",
        ["ID", "Name", "RowCount", "IsHidden"],
        [
            ["1", "Sales", "50000", "false"],
            ["2", "Customer", "1200", "false"],
            ["3", "INFO.VIEW.MEASURES()", "", ""],
        ],
    )
    write_csv(
        tmp_path / "Model_Columns.csv",
        ["ID", "TableID", "ExplicitName", "DataType"],
        [
            ["10", "1", "Amount", "4"],
            ["11", "1", "CustomerID", "2"],
            ["20", "2", "CustomerID", "2"],
            ["21", "2", "Name", "1"],
        ],
    )
    write_csv(
        tmp_path / "Model_Relationships.csv",
        ["FromTableID", "FromColumnID", "ToTableID", "ToColumnID", "FromCardinality", "ToCardinality", "IsActive"],
        [["1", "11", "2", "20", "2", "1", "true"]],
    )
    return tmp_path


PROMPTS_DIR = Path(__file__).resolve().parent.parent / "config" / "prompts"


@pytest.fixture
def renderer() -> PromptRenderer:
    """Renderer over the shipped prompt templates."""
    return PromptRenderer(PROMPTS_DIR)
