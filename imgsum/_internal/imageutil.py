# SPDX-FileCopyrightText: Red Hat, Inc.
# SPDX-License-Identifier: GPL-2.0-or-later
"""
imageutil - image reader utility functions.

Getting extents
===============

Image readers are liberal about returning extents. A reader returns the
extent covering the requested offset, and the returned extent may be shorter
than the requested range. The caller must query again from the end of the
returned extent to get the rest of the range.

Image:    [-------------|-------------|---------------|

Request:  [----------------------------------]
Reply:    [-------------]

Request:                [--------------------]
Reply:                  [-------------]

Request:                              [------]
Reply:                                [------]

Result:   [-------------|-------------|------]

A reader may return an extent exceeding the requested range. In this case the
extent is clipped to the requested range.

A reader may return multiple consecutive extents of the same type, for
example when a zero range spans multiple qcow2 L2 tables. Consecutive extents
of the same type are merged.
"""

import logging

from . import errors
from . extent import Extent

log = logging.getLogger("imageutil")


def extents(image, start=0, end=None):
    """
    Iterate over all extents in range [start, end) of image.

    Consecutive extents of same type are merged automatically. Errors from the
    image reader are not handled; retrying a failed extent query will not give
    a different result.

    Return iterator of extent.Extent objects.
    """
    size = image.size()
    if end is None:
        end = size

    if not 0 <= start <= end <= size:
        raise ValueError(
            f"Invalid range start={start} end={end} size={size}")

    log.debug("Getting extents start=%s end=%s", start, end)
    offset = start

    # Keep the current extent, until we find a new extent with different type.
    cur = None

    while offset < end:
        ext = image.extent(offset, end - offset)

        if ext.start != offset or ext.length <= 0:
            raise errors.ExtentQueryError(
                offset, end - offset, f"Invalid extent {ext}")

        # Handle the case of extent exceeding requested range.
        length = min(ext.length, end - offset)

        # Advance only by what the reader actually returned.
        offset += length

        # Handle the case of consecutive extents with same type.
        if cur is None:
            cur = Extent(ext.start, length, ext.zero)
        elif cur.zero == ext.zero:
            cur.length += length
        else:
            yield cur
            cur = Extent(ext.start, length, ext.zero)

    if cur is not None:
        yield cur
