# SPDX-FileCopyrightText: Red Hat, Inc.
# SPDX-License-Identifier: GPL-2.0-or-later

"""
Compute checksum of disk images.

This module exposes the public names. Anything else in this package is private
and should not be used.
"""

# flake8: noqa

from . _internal import version

# The public APIs
from . _internal.blkhash import (
    ALGORITHM,
    BLOCK_SIZE,
    Hash,
)
from . _internal.checksum import (
    BUFFER_SIZE,
    compute,
    checksum,
)
from . _internal.backends import open
from . _internal.errors import (
    Error,
    ExtentQueryError,
    ImageOpenError,
    ReadError,
)

__all__ = (
    "ALGORITHM",
    "BLOCK_SIZE",
    "BUFFER_SIZE",
    "Error",
    "ExtentQueryError",
    "Hash",
    "ImageOpenError",
    "ReadError",
    "checksum",
    "compute",
    "open",
)

__version__ = version.string
