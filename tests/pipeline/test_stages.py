"""Tests for the individual pipeline stages."""

import json

import pytest

from modeldoc.analysis.heuristics import describe
from modeldoc.core.models import Complexity, Result, SchemaType, TableRole
from modeldoc.model.entities import Measure, Relationship, SemanticModel, Table
from modeldoc.pipeline.base import PipelineContext, StageResult, StageStatus
from modeldoc.pipeline.models import GlossaryPayload
from modeldoc.pipeline.stages import (
    ArchitectureStage,
    ClassificationStage,
    GlossaryStage,
    MeasureAnalysisStage,
    SynthesisStage,
)
from modeldoc.pipeline.stages.architecture import infer_schema_type
from modeldoc.pipeline.stages.base import clamp_confidence
from modeldoc.pipeline.stages.classification import resolve_domain
from modeldoc.pipeline.stages.measure_analysis import (
    NO_MEASURES_REASON,
    coerce_analysis,
    heuristic_stub,
    referenced_columns,
    referenced_tables,
)


def classification_json(**overrides) -> str:
    data = {
        "domain": "Retail Sales",
        "confidence": 0.99,
        "executive_summary": {"purpose": "Tracks retail revenue", "users": ["Analysts"]},
        "stakeholders": {"primary": ["Sales Manager"], "management": ["CFO"], "support": []},
        "business_processes": ["Order to Cash"],
    }
    data.update(overrides)
    return json.dumps(data)


class TestClampConfidence:
    def test_clamped_to_ceiling(self):
        assert clamp_confidence(0.99, 0.9) == 0.9

    def test_negative_clamped_to_zero(self):
        assert clamp_confidence(-1, 0.9) == 0.0

    def test_missing_uses_default(self):
        assert clamp_confidence(None, 0.98) == 0.9

    def test_numeric_text(self):
        assert clamp_confidence("0.5", 0.98) == 0.5


class TestClassificationStage:
    @pytest.mark.parametrize("label", ["Business Intelligence", "unknown", "Analytics", "", None])
    def test_generic_domains_resolved(self, label):
        assert resolve_domain(label) == "Analytics Model"

    def test_specific_domain_kept(self):
        assert resolve_domain("Healthcare Claims") == "Healthcare Claims"

    @pytest.mark.asyncio
    async def test_generated_response(self, make_client, renderer, sample_context: PipelineContext):
        client, provider = make_client({"domain_classification": classification_json()})

        result = await ClassificationStage(renderer).execute(sample_context, client)

        assert result.status == StageStatus.SUCCEEDED
        assert not result.used_fallback
        assert result.payload.domain == "Retail Sales"
        assert result.confidence == 0.98
        assert result.payload.stakeholders.all() == ["Sales Manager", "CFO"]
        assert len(provider.calls_for("domain_classification")) == 1

    @pytest.mark.asyncio
    async def test_camel_case_keys_accepted(self, make_client, renderer, sample_context):
        text = json.dumps(
            {
                "domain": "Finance",
                "executiveSummary": {"purpose": "Ledger"},
                "businessProcesses": "Close, Audit",
            }
        )
        client, _ = make_client({"domain_classification": text})

        result = await ClassificationStage(renderer).execute(sample_context, client)

        assert result.payload.executive_summary.purpose == "Ledger"
        assert result.payload.business_processes == ["Close", "Audit"]

    @pytest.mark.asyncio
    async def test_failed_call_uses_fallback(self, make_client, renderer, sample_context):
        client, _ = make_client()

        result = await ClassificationStage(renderer).execute(sample_context, client)

        assert result.used_fallback
        assert result.status == StageStatus.FALLBACK_USED
        assert result.confidence == 0.3
        assert result.payload.domain == "Sales Analytics"
        assert "Sales Performance" in result.payload.business_processes
        assert "Time Intelligence" in result.payload.business_processes

    @pytest.mark.asyncio
    async def test_unparseable_response_zero_confidence(self, make_client, renderer, sample_context):
        client, _ = make_client({"domain_classification": "I cannot help with that."})

        result = await ClassificationStage(renderer).execute(sample_context, client)

        assert result.used_fallback
        assert result.confidence == 0.0
        assert result.payload.domain == "Analytics Model"
        assert result.raw_text == "I cannot help with that."

    def test_fallback_without_known_tables(self):
        ctx = PipelineContext(model=SemanticModel(tables=[Table(name="Widgets")]))

        payload = ClassificationStage()._fallback(ctx, "offline")

        assert payload.domain == "Analytics Model"
        assert payload.business_processes == ["Reporting", "Analysis"]

    def test_apply_copies_classification(self, sample_context):
        payload = ClassificationStage()._coerce(json.loads(classification_json()), sample_context)

        ctx = ClassificationStage.apply(sample_context, payload)

        assert ctx.domain == "Retail Sales"
        assert ctx.stakeholders == ("Sales Manager", "CFO")
        assert ctx.business_context == "Tracks retail revenue"
        assert sample_context.domain == "Analytics Model"

    def test_apply_defaults_stakeholders(self, sample_context):
        payload = ClassificationStage()._coerce({"domain": "Sales"}, sample_context)

        ctx = ClassificationStage.apply(sample_context, payload)

        assert "Analysts" in ctx.stakeholders


class TestGlossaryStage:
    def test_coerce_filters_and_normalizes(self, sample_context):
        data = {
            "overview": {"primaryUse": "Sales reviews"},
            "terms": [
                {"term": "Total Sales", "kind": "MEASURE", "definition": "Revenue"},
                {"term": "Churn", "kind": "buzzword"},
                {"definition": "no name"},
                "not an object",
            ],
            "metricQuickRef": [{"name": "Total Sales", "whenToUse": "Weekly review"}],
        }

        payload = GlossaryStage()._coerce(data, sample_context)

        assert [t.term for t in payload.terms] == ["Total Sales", "Churn"]
        assert payload.terms[0].kind == "measure"
        assert payload.terms[1].kind == "concept"
        assert payload.overview.primary_use == "Sales reviews"
        assert payload.overview.domain == sample_context.domain
        assert payload.metric_quick_reference[0].when_to_use == "Weekly review"

    def test_fallback_covers_every_measure_and_table(self, sample_context):
        payload = GlossaryStage()._fallback(sample_context, "offline")

        kinds = [t.kind for t in payload.terms]
        assert kinds.count("measure") == 3
        assert kinds.count("table") == 3
        assert [q.name for q in payload.metric_quick_reference] == [
            "Total Sales",
            "Margin %",
            "Avg Order Value",
        ]
        assert payload.overview.categories == ["Sales", "Profitability"]


class TestArchitectureStage:
    def test_star_schema(self, sample_model):
        assert infer_schema_type(sample_model) == SchemaType.STAR

    def test_galaxy_schema(self, sample_model):
        sample_model.tables[1].role = TableRole.FACT

        assert infer_schema_type(sample_model) == SchemaType.GALAXY

    def test_snowflake_schema(self, sample_model):
        sample_model.relationships.append(
            Relationship(from_table="Customer", from_column="Region", to_table="Calendar", to_column="Date")
        )

        assert infer_schema_type(sample_model) == SchemaType.SNOWFLAKE

    def test_no_relationships(self):
        assert infer_schema_type(SemanticModel(tables=[Table(name="A")])) == SchemaType.UNKNOWN

    def test_coerce_takes_column_counts_from_model(self, sample_context):
        data = {
            "overview": {"schemaType": "snowflake", "tables": 99},
            "tables": [
                {"name": "Sales", "role": "FACT", "columns": 99},
                {"name": "Staging", "role": "lake", "columns": 7},
            ],
            "relationships": [{"from": "Sales[Date]", "to": "Calendar[Date]", "direction": "Both"}],
        }

        payload = ArchitectureStage()._coerce(data, sample_context)

        assert payload.overview.tables == 3
        assert payload.overview.schema_type == SchemaType.SNOWFLAKE
        assert payload.tables[0].columns == 3
        assert payload.tables[0].role == "fact"
        assert payload.tables[1].columns == 7
        assert payload.tables[1].role == "other"
        assert payload.relationships[0].direction == "Both"
        assert payload.relationships[0].cardinality == "Many-to-One"

    def test_fallback(self, sample_context):
        payload = ArchitectureStage()._fallback(sample_context, "offline")

        roles = {t.name: t.role for t in payload.tables}
        assert roles == {"Sales": "fact", "Customer": "dimension", "Calendar": "calendar"}
        assert payload.overview.schema_type == SchemaType.STAR
        assert payload.tables[0].foreign_keys == ["Sales[CustomerID]", "Sales[Date]"]
        assert len(payload.lineage) == 2
        assert payload.lineage[0].source == "Customer"
        assert payload.lineage[0].target == "Sales"


class TestMeasureAnalysisHelpers:
    def test_referenced_tables_and_columns(self, sample_model):
        expression = "SUM(Sales[Amount]) + COUNTROWS(Customer)"

        assert referenced_tables(expression, [t.name for t in sample_model.tables]) == [
            "Sales",
            "Customer",
        ]
        assert referenced_columns(expression, [c.ref for c in sample_model.columns]) == [
            "Sales[Amount]"
        ]

    def test_referenced_tables_match_whole_names(self):
        expression = "SUM(SalesTarget[Goal]) + [Total Sales] + SUM('Customer'[Score])"

        assert referenced_tables(expression, ["Sales", "SalesTarget", "Customer"]) == [
            "SalesTarget",
            "Customer",
        ]

    def test_coerce_analysis_keeps_input_name_and_formula(self):
        measure = Measure(name="Total Sales", expression="SUM(Sales[Amount])")
        data = {
            "measure": "Renamed",
            "formula": "SUM(Other[X])",
            "purpose": "Revenue booked",
            "complexity": "SIMPLE",
            "suggestedFixes": [{"title": "Use a base measure", "fixedDax": "[Base]"}, {"rationale": "x"}],
            "tests": [{"scenario": "Empty filter", "expectation": "Grand total"}],
            "confidence": 2,
        }

        analysis = coerce_analysis(data, measure, describe(measure), 0.96)

        assert analysis.measure == "Total Sales"
        assert analysis.formula == "SUM(Sales[Amount])"
        assert analysis.purpose == "Revenue booked"
        assert analysis.complexity == Complexity.SIMPLE
        assert [f.title for f in analysis.suggested_fixes] == ["Use a base measure"]
        assert analysis.tests[0].scenario == "Empty filter"
        assert analysis.confidence == 0.96

    def test_coerce_analysis_fills_from_heuristics(self):
        measure = Measure(name="Total Sales", expression="SUM(Sales[Amount])")

        analysis = coerce_analysis({"complexity": "extreme"}, measure, describe(measure), 0.96)

        assert analysis.purpose == describe(measure).purpose
        assert analysis.dependencies == ["Sales[Amount]", "[Amount]"]
        assert analysis.complexity == Complexity.SIMPLE

    def test_heuristic_stub(self):
        measure = Measure(name="Ratio", expression="[A] / [B]")

        stub = heuristic_stub(measure, describe(measure), "timeout")

        assert stub.used_fallback
        assert stub.confidence == 0.6
        assert stub.formula == "[A] / [B]"
        assert stub.risks[-1] == "LLM analysis unavailable: timeout"


class TestMeasureAnalysisStage:
    @pytest.mark.asyncio
    async def test_no_measures_skips_without_calls(self, make_client, renderer):
        client, provider = make_client()
        ctx = PipelineContext(model=SemanticModel(tables=[Table(name="Sales")]))

        result = await MeasureAnalysisStage(renderer).execute(ctx, client)

        assert result.confidence == 1.0
        assert not result.used_fallback
        assert result.payload.analyses == []
        assert result.payload.skipped_reason == NO_MEASURES_REASON
        assert result.metadata["skipped_reason"] == NO_MEASURES_REASON
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_one_call_per_measure(self, make_client, renderer, sample_context):
        response = json.dumps({"purpose": "Generated purpose", "confidence": 0.8})
        client, provider = make_client({"measure_analysis": response})

        result = await MeasureAnalysisStage(renderer).execute(sample_context, client)

        assert len(provider.calls_for("measure_analysis")) == 3
        assert [a.measure for a in result.payload.analyses] == [
            "Total Sales",
            "Margin %",
            "Avg Order Value",
        ]
        assert all(a.purpose == "Generated purpose" for a in result.payload.analyses)
        assert result.confidence == pytest.approx(0.8)
        assert not result.used_fallback

    @pytest.mark.asyncio
    async def test_partial_failure_uses_stubs(self, make_client, renderer, sample_context):
        def answer(request):
            if "Measure: Total Sales" in request.prompt:
                return json.dumps({"purpose": "Revenue", "confidence": 0.8})
            return Result.fail("Invalid request (status 400)")

        client, _ = make_client({"measure_analysis": answer})

        result = await MeasureAnalysisStage(renderer).execute(sample_context, client)

        analyses = result.payload.analyses
        assert len(analyses) == 3
        assert not analyses[0].used_fallback
        assert analyses[1].used_fallback and analyses[2].used_fallback
        assert not result.used_fallback
        assert result.confidence == pytest.approx((0.8 + 0.6 + 0.6) / 3)
        assert result.warnings == ("2 measure(s) analysed by heuristics only",)

    @pytest.mark.asyncio
    async def test_all_failures_fall_back(self, make_client, renderer, sample_context):
        client, _ = make_client()

        result = await MeasureAnalysisStage(renderer).execute(sample_context, client)

        assert result.used_fallback
        assert result.confidence == 0.3
        assert len(result.payload.analyses) == 3
        assert all(a.used_fallback for a in result.payload.analyses)

    @pytest.mark.asyncio
    async def test_provider_exception_becomes_stub(self, make_client, renderer, sample_context):
        client, _ = make_client({"measure_analysis": RuntimeError("socket closed")})

        result = await MeasureAnalysisStage(renderer).execute(sample_context, client)

        assert len(result.payload.analyses) == 3
        assert all("socket closed" in a.risks[-1] for a in result.payload.analyses)

    def test_lint_findings_attached(self):
        ctx = PipelineContext(
            model=SemanticModel(measures=[Measure(name="Ratio", expression="[A] / [B]")])
        )

        payload = MeasureAnalysisStage()._fallback(ctx, "offline")

        assert "Ratio" in payload.lint_findings
        assert payload.lint_summary["warnings"] >= 1
        assert payload.findings_text()[0].startswith("Ratio: ")


class TestSynthesisStage:
    def test_fallback_report(self, sample_context):
        glossary = GlossaryStage()._fallback(sample_context, "offline")
        ctx = sample_context.with_output(StageResult.succeeded("glossary", glossary, 0.9))

        report = SynthesisStage()._fallback(ctx, "offline")

        assert [m.name for m in report.measures] == ["Total Sales", "Margin %", "Avg Order Value"]
        assert report.overview.notes[-1] == "Report assembled without AI synthesis"
        assert report.overview.measures == 3

    def test_build_inputs_summarizes_earlier_stages(self, sample_context):
        ctx = sample_context.with_output(StageResult.succeeded("glossary", GlossaryPayload(), 0.9))

        inputs = SynthesisStage().build_inputs(ctx)

        assert set(inputs["summaries"]) == {"glossary"}
        assert inputs["measure_count"] == 3
        assert inputs["dax_items"][1]["formula"] == "DIVIDE([Profit], [Revenue]) * 100"
