"""Concurrent pipeline execution."""

from src.workers.pool import BackgroundLoop, PipelineWorkerPool

__all__ = ["BackgroundLoop", "PipelineWorkerPool"]
