"""Plan document rendering and persistence."""

from planmode.output.renderer import (
    FAILURE_NOTICE,
    render_clarifying_response,
    render_completion_response,
    render_plan_document,
)
from planmode.output.writer import DocumentSink, PlanDocumentWriter

__all__ = [
    "FAILURE_NOTICE",
    "DocumentSink",
    "PlanDocumentWriter",
    "render_clarifying_response",
    "render_completion_response",
    "render_plan_document",
]
