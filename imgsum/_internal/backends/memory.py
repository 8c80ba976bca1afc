# SPDX-FileCopyrightText: Red Hat, Inc.
# SPDX-License-Identifier: GPL-2.0-or-later

import logging

from .. import errors
from .. extent import Extent

log = logging.getLogger("backends.memory")


class Backend:
    """
    Memory backend for testing.

    Arguments:
        data (bytes): Image content.
        extents (List[extent.Extent]): Extents reported by the backend. If not
            specified, report the entire image as one data extent. Extents
            are not clipped to the requested range, so tests can simulate
            readers returning extents exceeding the request.
        max_read (int): If set, limit the number of bytes returned by a
            single read, simulating readers returning short reads.
        size (int): If set, report this size instead of the data length,
            simulating images shorter than their reported size.
    """

    def __init__(self, data=b"", extents=None, max_read=None, size=None):
        self._buf = bytearray(data)
        self._extents = extents
        self._max_read = max_read
        self._size = len(self._buf) if size is None else size
        self._closed = False
        self.extent_calls = 0
        self.read_calls = 0
        log.debug("Open backend size=%r extents=%r", self._size, extents)

    @property
    def name(self):
        return "memory"

    def size(self):
        self._check_closed()
        return self._size

    def extent(self, offset, length):
        self._check_closed()
        self.extent_calls += 1

        if self._extents is None:
            return Extent(offset, length, False)

        for ext in self._extents:
            if ext.start <= offset < ext.end:
                return Extent(offset, ext.end - offset, ext.zero)

        raise errors.ExtentQueryError(offset, length, "No extent at offset")

    def readinto(self, offset, buf):
        self._check_closed()
        self.read_calls += 1

        with memoryview(buf) as view:
            length = len(view)
            if self._max_read:
                length = min(length, self._max_read)

            data = self._buf[offset:offset + length]
            view[:len(data)] = data
            return len(data)

    def __enter__(self):
        return self

    def __exit__(self, t, v, tb):
        self.close()

    def close(self):
        self._closed = True

    def _check_closed(self):
        if self._closed:
            raise ValueError("Operation on closed backend")
