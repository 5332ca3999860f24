"""Pipelines - thin orchestration over the rollups."""

from .metrics_pipeline import (
    MetricsPipeline,
    MetricsPipelineConfig,
    MetricsPipelineResult,
    create_metrics_pipeline,
)

__all__ = [
    "MetricsPipeline",
    "MetricsPipelineConfig",
    "MetricsPipelineResult",
    "create_metrics_pipeline",
]
