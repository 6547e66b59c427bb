"""Documentation pipeline: stage contracts, stages, coercion and orchestration."""
