"""Tests for the pipeline runner."""

import json
from pathlib import Path

import pytest

from modeldoc.core.models import TableRole
from modeldoc.llm.config import LLMConfig
from modeldoc.llm.providers import NullProvider
from modeldoc.pipeline.runner import RunConfig, create_client, ingest, run, run_async

ARTIFACT_NAMES = {
    "meta.json",
    "final_report.json",
    "synthesis.json",
    "model_documentation.md",
    "model_kpis.csv",
}


class TestIngest:
    def test_reads_all_exports(self, csv_dir: Path):
        result = ingest(csv_dir)

        assert result.success
        ingestion = result.unwrap()
        model = ingestion.normalized.model
        assert [m.name for m in model.measures] == ["Total Sales", "Margin %"]
        assert [t.name for t in model.tables] == ["Sales", "Customer"]
        assert model.tables[0].role == TableRole.FACT
        assert len(model.columns) == 4
        assert model.relationships[0].from_ref == "Sales[CustomerID]"
        assert ingestion.warnings == []
        assert ingestion.integrity.issues == []
        assert ingestion.summary

    def test_missing_files_become_warnings(self, csv_dir: Path):
        (csv_dir / "Model_Columns.csv").unlink()
        (csv_dir / "Model_Relationships.csv").unlink()

        ingestion = ingest(csv_dir).unwrap()

        assert ingestion.warnings == ["No columns file found", "No relationships file found"]
        assert ingestion.normalized.model.columns == []
        assert len(ingestion.normalized.model.measures) == 2

    def test_max_measures(self, csv_dir: Path):
        ingestion = ingest(csv_dir, max_measures=1).unwrap()

        assert [m.name for m in ingestion.normalized.model.measures] == ["Total Sales"]

    def test_fact_threshold(self, csv_dir: Path):
        ingestion = ingest(csv_dir, fact_row_threshold=100_000).unwrap()

        assert ingestion.normalized.model.tables[0].role == TableRole.DIMENSION

    def test_missing_directory(self, tmp_path: Path):
        result = ingest(tmp_path / "nope")

        assert not result.success


class TestCreateClient:
    def test_skip_llm(self, llm_config: LLMConfig):
        client = create_client(skip_llm=True, llm_config=llm_config)

        assert isinstance(client.provider, NullProvider)

    def test_unavailable_provider_degrades(self, llm_config: LLMConfig):
        client = create_client(llm_config=llm_config)

        assert isinstance(client.provider, NullProvider)
        assert "fake" in client.provider.reason


class TestRunAsync:
    @pytest.mark.asyncio
    async def test_writes_artifacts(self, make_client, csv_dir: Path, tmp_path: Path):
        client, _ = make_client()
        output_dir = tmp_path / "docs"

        result = await run_async(RunConfig(source_path=csv_dir, output_dir=output_dir), client)

        assert result.success
        run_result = result.unwrap()
        assert run_result.success
        assert run_result.output_dir == output_dir
        assert set(run_result.artifacts) == ARTIFACT_NAMES
        assert all(path.exists() for path in run_result.artifacts.values())

        report = json.loads((output_dir / "final_report.json").read_text(encoding="utf-8"))
        assert [m["name"] for m in report["measures"]] == ["Total Sales", "Margin %"]
        assert report["overview"]["tables"] == 2

        meta = json.loads((output_dir / "meta.json").read_text(encoding="utf-8"))
        assert meta["counts"]["columns"] == 4
        assert list(meta["pipeline"])[0] == "domain_classification"

        assert len(run_result.stages) == 6
        assert set(run_result.fallback_stages) == {s.stage_name for s in run_result.stages}
        assert run_result.domain == "Sales Analytics"
        # Failed calls count too: five single-call stages plus one call per measure.
        assert run_result.total_llm_calls == 7
        assert result.warnings

    @pytest.mark.asyncio
    async def test_no_outputs_written(self, make_client, csv_dir: Path, tmp_path: Path):
        client, _ = make_client()
        output_dir = tmp_path / "docs"

        result = await run_async(
            RunConfig(source_path=csv_dir, output_dir=output_dir, write_outputs=False), client
        )

        assert result.unwrap().artifacts == {}
        assert not output_dir.exists()

    @pytest.mark.asyncio
    async def test_fact_row_threshold_reaches_table_roles(self, make_client, csv_dir: Path):
        client, _ = make_client()

        default = await run_async(RunConfig(source_path=csv_dir, write_outputs=False), client)
        raised = await run_async(
            RunConfig(source_path=csv_dir, write_outputs=False, fact_row_threshold=100_000), client
        )

        assert default.unwrap().report.data_lineage.key_entities.fact_tables == ["Sales"]
        assert raised.unwrap().report.data_lineage.key_entities.fact_tables == []

    @pytest.mark.asyncio
    async def test_default_output_dir(self, make_client, csv_dir: Path):
        client, _ = make_client()

        run_result = (await run_async(RunConfig(source_path=csv_dir), client)).unwrap()

        assert run_result.output_dir == csv_dir / "out"
        assert (csv_dir / "out" / "model_documentation.md").exists()

    @pytest.mark.asyncio
    async def test_missing_directory_fails(self, make_client, tmp_path: Path):
        client, _ = make_client()

        result = await run_async(RunConfig(source_path=tmp_path / "missing"), client)

        assert not result.success
        assert result.error

    @pytest.mark.asyncio
    async def test_required_stage_failure(self, make_client, csv_dir: Path, tmp_path: Path):
        client, _ = make_client({"synthesis": RuntimeError("connection reset")})

        result = await run_async(RunConfig(source_path=csv_dir, output_dir=tmp_path / "docs"), client)

        run_result = result.unwrap()
        assert not run_result.success
        assert "synthesis" in (run_result.error or "")
        assert run_result.ingestion is not None
        assert run_result.artifacts == {}
        assert any(w.startswith("Pipeline error") for w in result.warnings)


class TestRun:
    def test_sync_wrapper(self, make_client, csv_dir: Path, tmp_path: Path):
        client, _ = make_client()

        result = run(RunConfig(source_path=csv_dir, output_dir=tmp_path / "docs"), client)

        assert result.unwrap().success
