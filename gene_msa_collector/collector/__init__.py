"""
Collection workflow: capture channels, the per-gene pipeline and the run
orchestrator.
"""

from .capture import (
    CaptureState,
    NetworkObserver,
    is_candidate_response,
    read_clipboard,
    scan_dom,
    resolve_capture
)
from .pipeline import GeneAcquisitionPipeline
from .orchestrator import RunOrchestrator, RunReport, run_collection

__all__ = [
    'CaptureState',
    'NetworkObserver',
    'is_candidate_response',
    'read_clipboard',
    'scan_dom',
    'resolve_capture',
    'GeneAcquisitionPipeline',
    'RunOrchestrator',
    'RunReport',
    'run_collection'
]
