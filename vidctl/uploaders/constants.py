"""Shared constants for uploader modules.

These values form the contract with the backend: it pre-signs one URL per
PART_SIZE slice and decides chunking with the same threshold. Concurrency and
delays can be tuned through the ``upload`` section of the config file.
"""

# =============================================================================
# Part Layout
# =============================================================================

# Size of every part except the last
PART_SIZE = 5 * 1024 * 1024

# Files above this size get a chunked session from the backend
CHUNKING_THRESHOLD = 150 * 1024 * 1024

# Content type of part uploads to pre-signed URLs
PART_CONTENT_TYPE = "application/octet-stream"

# ETag recorded when storage does not return one
UNKNOWN_ETAG = '"unknown"'

# =============================================================================
# Concurrency and Retry Defaults
# =============================================================================

# Simultaneous part uploads per file (wave size)
MAX_CONCURRENT_UPLOADS = 3

# Retries of a single part after its first attempt
MAX_PART_RETRIES = 3

# Fixed delay between part retries, seconds
RETRY_DELAY = 1.0

# Wait after the last wave before verification, seconds
CONVERGENCE_DELAY = 1.0

# Verification rounds and backoff: 2s, 4s, 8s
VERIFY_ROUNDS = 3
VERIFY_BASE_DELAY = 2.0
VERIFY_BACKOFF_MULTIPLIER = 2.0

# HTTP timeout for a single part or single-shot PUT, seconds
PUT_TIMEOUT = 300
