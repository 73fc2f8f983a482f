"""API module for the Ops Scale contact intake service.

This module provides the HTTP application and the contact intake pipeline.
"""

from opsscale.api.app import create_app
from opsscale.api.pipeline import IntakePipeline, PipelineConfig

__all__ = ["create_app", "IntakePipeline", "PipelineConfig"]
