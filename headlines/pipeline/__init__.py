"""Digest pipeline runner and CLI."""

from headlines.pipeline.orchestrator import DigestPipeline

__all__ = ["DigestPipeline"]
