# Copyright (c) 2025 Stephen Clau

# This file is part of Logtail Viewer.

# Logtail Viewer is dual-licensed:

# 1. GNU Affero General Public License v3.0 (AGPL-3.0)
#    See LICENSE file for full terms

# 2. Commercial License
#    For proprietary use without AGPL requirements
#    Contact: licensing@laudiversified.com

# SPDX-License-Identifier: AGPL-3.0-only OR Commercial

"""
Read-failure taxonomy for the tailing engine.

Missing files and truncation are not errors here; they are handled as
semantic states by the reader. Only genuine I/O failures are classified.
"""

import errno
from enum import Enum


class ReadFailure(Enum):
    """How a failed read should be treated."""

    TRANSIENT = "transient"
    """File briefly unavailable (locked, busy, interrupted). Retry on next trigger."""

    UNRECOVERABLE = "unrecoverable"
    """Persistent failure such as revoked permissions. Logged once, polling continues."""


# errno values that indicate a writer is holding the file or the call was interrupted
TRANSIENT_ERRNOS = frozenset(
    code
    for code in (
        getattr(errno, "EAGAIN", None),
        getattr(errno, "EWOULDBLOCK", None),
        getattr(errno, "EBUSY", None),
        getattr(errno, "EINTR", None),
        getattr(errno, "ETXTBSY", None),
        getattr(errno, "EDEADLK", None),
    )
    if code is not None
)

# Windows sharing/lock violations surface as winerror 32 / 33
TRANSIENT_WINERRORS = frozenset({32, 33})


def classify_os_error(exc: OSError) -> ReadFailure:
    """
    Classify an OSError raised while polling the tracked file.

    Args:
        exc: The error raised by open/stat/read

    Returns:
        ReadFailure.TRANSIENT for contention-style errors,
        ReadFailure.UNRECOVERABLE for everything else
    """
    if isinstance(exc, (BlockingIOError, InterruptedError)):
        return ReadFailure.TRANSIENT

    if getattr(exc, "winerror", None) in TRANSIENT_WINERRORS:
        return ReadFailure.TRANSIENT

    if exc.errno in TRANSIENT_ERRNOS:
        return ReadFailure.TRANSIENT

    return ReadFailure.UNRECOVERABLE


def failure_key(exc: BaseException) -> str:
    """Stable identity of a failure, used to log each failure streak once."""
    code = getattr(exc, "errno", None)
    return f"{type(exc).__name__}:{code}"
