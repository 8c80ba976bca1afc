# SPDX-FileCopyrightText: Red Hat, Inc.
# SPDX-License-Identifier: GPL-2.0-or-later

import builtins
import errno
import logging
import os

from .. import errors
from .. extent import Extent

from . common import CLOSED

log = logging.getLogger("backends.file")

# Errors returned by lseek() when the file system does not support SEEK_DATA
# and SEEK_HOLE.
UNSUPPORTED = (errno.EINVAL, errno.EOPNOTSUPP)


def open(path):
    """
    Open a raw image file or block device.

    Arguments:
        path (str): Path to raw image.
    """
    try:
        fio = builtins.open(path, "rb", buffering=0)
    except OSError as e:
        raise errors.ImageOpenError(path, e.strerror or str(e)) from e

    try:
        return Backend(fio)
    except:  # noqa: E722
        fio.close()
        raise


class Backend:
    """
    Raw image reader.

    Holes in sparse files are reported as zero extents. If the file system
    does not support SEEK_DATA and SEEK_HOLE, the entire image is reported as
    data.
    """

    def __init__(self, fio):
        self._fio = fio
        try:
            self._size = os.lseek(fio.fileno(), 0, os.SEEK_END)
        except OSError as e:
            raise errors.ImageOpenError(
                fio.name, e.strerror or str(e)) from e
        self._can_seek_data = hasattr(os, "SEEK_DATA")
        log.debug("Open path=%r size=%r", fio.name, self._size)

    @property
    def name(self):
        return "raw"

    def size(self):
        return self._size

    def extent(self, offset, length):
        fd = self._fio.fileno()
        end = min(offset + length, self._size)

        if not self._can_seek_data:
            return Extent(offset, end - offset, False)

        try:
            data = os.lseek(fd, offset, os.SEEK_DATA)
        except OSError as e:
            if e.errno == errno.ENXIO:
                # No data after offset, the rest of the file is a hole.
                return Extent(offset, end - offset, True)
            if e.errno in UNSUPPORTED:
                log.debug("SEEK_DATA not supported, reporting data extents")
                self._can_seek_data = False
                return Extent(offset, end - offset, False)
            raise errors.ExtentQueryError(
                offset, length, e.strerror or str(e)) from e

        if data > offset:
            return Extent(offset, min(data, end) - offset, True)

        try:
            hole = os.lseek(fd, offset, os.SEEK_HOLE)
        except OSError as e:
            raise errors.ExtentQueryError(
                offset, length, e.strerror or str(e)) from e

        return Extent(offset, min(hole, end) - offset, False)

    def readinto(self, offset, buf):
        try:
            return os.preadv(self._fio.fileno(), [buf], offset)
        except OSError as e:
            raise errors.ReadError(
                offset, len(buf), e.strerror or str(e)) from e

    def __enter__(self):
        return self

    def __exit__(self, t, v, tb):
        try:
            self.close()
        except Exception:
            # Do not hide the original error.
            if t is None:
                raise
            log.exception("Error closing")

    def close(self):
        if self._fio is not CLOSED:
            log.debug("Close path=%r", self._fio.name)
            try:
                self._fio.close()
            finally:
                self._fio = CLOSED
