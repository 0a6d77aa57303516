"""Chunked batch upload engine for vidctl.

This module provides the upload machinery behind a batch:
- Part planning and retry policies (common)
- Part transfer with per-part retry (parts)
- Backend completion verification (verifier)
- Thread-safe progress tracking (tracker)
- Batch orchestration and cancellation (orchestrator)

These are internal implementation details. Use `UploadService` from
`vidctl.services.uploads` as the public API.
"""

from vidctl.uploaders.common import (
    DEFAULT_PART_RETRY_POLICY,
    DEFAULT_VERIFY_POLICY,
    PartRange,
    RetryPolicy,
    expected_part_count,
    iter_waves,
    part_range,
    read_part,
    should_chunk,
    split_into_parts,
)
from vidctl.uploaders.constants import (
    CHUNKING_THRESHOLD,
    CONVERGENCE_DELAY,
    MAX_CONCURRENT_UPLOADS,
    MAX_PART_RETRIES,
    PART_SIZE,
    RETRY_DELAY,
    VERIFY_BASE_DELAY,
    VERIFY_ROUNDS,
)
from vidctl.uploaders.orchestrator import BatchUploader
from vidctl.uploaders.parts import BatchAPI, PartRetryController, PartUploader
from vidctl.uploaders.tracker import ProgressTracker
from vidctl.uploaders.verifier import CompletionVerifier

__all__ = [
    # Constants
    "CHUNKING_THRESHOLD",
    "CONVERGENCE_DELAY",
    "MAX_CONCURRENT_UPLOADS",
    "MAX_PART_RETRIES",
    "PART_SIZE",
    "RETRY_DELAY",
    "VERIFY_BASE_DELAY",
    "VERIFY_ROUNDS",
    # Common utilities
    "DEFAULT_PART_RETRY_POLICY",
    "DEFAULT_VERIFY_POLICY",
    "PartRange",
    "RetryPolicy",
    "expected_part_count",
    "iter_waves",
    "part_range",
    "read_part",
    "should_chunk",
    "split_into_parts",
    # Engine
    "BatchAPI",
    "BatchUploader",
    "CompletionVerifier",
    "PartRetryController",
    "PartUploader",
    "ProgressTracker",
]
