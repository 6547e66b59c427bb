"""Tests for pipeline metrics collection."""

from modeldoc.core.logging import (
    end_pipeline_metrics,
    end_stage_metrics,
    get_stage_metrics,
    increment_llm_call,
    record_measures_processed,
    start_pipeline_metrics,
    start_stage_metrics,
)


class TestStageMetrics:
    def test_counters_and_serialized_fields(self):
        pipeline = start_pipeline_metrics("run-1")
        start_stage_metrics("measure_analysis")

        increment_llm_call(input_tokens=10, output_tokens=5)
        increment_llm_call(failed=True)
        record_measures_processed(3)
        stage = end_stage_metrics()
        end_pipeline_metrics()

        assert stage is not None
        assert get_stage_metrics() is None
        assert pipeline.stages == [stage]
        assert stage.to_dict().keys() == {
            "stage_name",
            "duration_seconds",
            "llm_calls",
            "llm_failures",
            "llm_input_tokens",
            "llm_output_tokens",
            "measures_processed",
        }
        assert (stage.llm_calls, stage.llm_failures, stage.measures_processed) == (2, 1, 3)
        assert pipeline.to_dict()["total_llm_tokens"] == 15

    def test_counters_ignored_outside_a_stage(self):
        increment_llm_call(input_tokens=10)
        record_measures_processed(1)

        assert get_stage_metrics() is None
