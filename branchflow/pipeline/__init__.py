"""Render pipeline: definition document -> validated Markdown flowchart."""

from branchflow.pipeline.orchestrator import build_graph, render_definition
from branchflow.pipeline.state import RenderState

__all__ = ["RenderState", "build_graph", "render_definition"]
