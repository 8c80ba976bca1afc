# SPDX-FileCopyrightText: Red Hat, Inc.
# SPDX-License-Identifier: GPL-2.0-or-later

import logging

from . import backends
from . import blkhash
from . import errors
from . import imageutil
from . import ioutil
from . import util
from . units import MiB

# Reading 2 MiB per call amortizes the read overhead. This does not change the
# computed checksum.
BUFFER_SIZE = 2 * MiB

log = logging.getLogger("checksum")


class Operation:
    """
    Checksum operation.

    Zero blocks reported by the image extents are hashed without reading
    them. Data blocks are read into buf, and hashed block by block. Data
    blocks containing only zeroes are detected and hashed like zero blocks.
    """

    name = "checksum"

    def __init__(self, image, buf, algorithm=blkhash.ALGORITHM,
                 block_size=blkhash.BLOCK_SIZE, digest_size=None,
                 detect_zeroes=True, progress=None, log=log):
        if len(buf) < block_size or len(buf) % block_size:
            raise ValueError(
                f"Buffer size {len(buf)} is not a multiple of block size "
                f"{block_size}")

        # Fail before doing any I/O if the algorithm is not supported.
        self._hash = blkhash.Hash(
            block_size=block_size,
            algorithm=algorithm,
            digest_size=digest_size)

        self._image = image
        self._buf = buf
        self._algorithm = algorithm
        self._block_size = block_size
        self._detect_zeroes = detect_zeroes
        self._progress = progress
        self._log = log
        self._done = 0

    @property
    def done(self):
        return self._done

    def run(self):
        size = self._image.size()
        start_time = util.monotonic_time()

        self._log.debug(
            "Computing checksum size=%s algorithm=%s block_size=%s "
            "buffer_size=%s",
            size, self._algorithm, self._block_size, len(self._buf))

        # Consecutive data blocks are read together to fill the buffer.
        start = 0
        length = 0

        extents = imageutil.extents(self._image)
        for block in blkhash.split(extents, self._block_size):
            if block.zero:
                if length:
                    self._hash_data(start, length)
                    length = 0

                self._hash.zero(block.length)
                self._update_progress(block.length)
            else:
                if length == 0:
                    start = block.start
                length += block.length

                if length == len(self._buf):
                    self._hash_data(start, length)
                    length = 0

        if length:
            self._hash_data(start, length)

        self._hash.finalize(size)

        elapsed = util.monotonic_time() - start_time
        self._log.debug(
            "Computed checksum %s for %s in %.3f seconds",
            self._hash.hexdigest(), util.humansize(size), elapsed)

        return {
            "algorithm": self._algorithm,
            "block_size": self._block_size,
            "checksum": self._hash.hexdigest(),
        }

    def _hash_data(self, start, length):
        with memoryview(self._buf)[:length] as view:
            self._read(start, view)

            for pos in range(0, length, self._block_size):
                # The last block of the image may be shorter.
                with view[pos:pos + self._block_size] as block:
                    if self._detect_zeroes and ioutil.is_zero(block):
                        self._hash.zero(len(block))
                    else:
                        self._hash.update(block)

        self._update_progress(length)

    def _read(self, offset, view):
        """
        Fill view with image data starting at offset.

        A reader may return less data than requested; we continue from the
        last returned byte. Getting no data before the view is filled means
        the image is shorter than its reported size.
        """
        pos = 0
        while pos < len(view):
            with view[pos:] as v:
                n = self._image.readinto(offset + pos, v)
            if n == 0:
                raise errors.ReadError(
                    offset + pos, len(view) - pos, "Unexpected end of image")
            pos += n

    def _update_progress(self, n):
        self._done += n
        if self._progress:
            self._progress.update(n)


def compute(image, buf=None, algorithm=blkhash.ALGORITHM,
            block_size=blkhash.BLOCK_SIZE, buffer_size=BUFFER_SIZE,
            digest_size=None, detect_zeroes=True, progress=None, log=log):
    """
    Compute image checksum.

    Arguments:
        image: Image reader, see imgsum.open().
        buf (buffer): Buffer for reading image data. Must be a multiple of
            block_size. If not specified, allocate a buffer of buffer_size
            bytes.
        algorithm (str): One of the algorithms supported by hashlib module.
        block_size (int): Size of block in bytes. Changing the block size
            changes the checksum.
        buffer_size (int): Size of read buffer, rounded up to block_size.
            Ignored if buf is specified. Does not change the checksum.
        digest_size (int): Size of hash in bytes, supported only for blake2b
            and blake2s algorithms.
        detect_zeroes (bool): If True, detect zeroes in data blocks. Does not
            change the checksum.
        progress: If set, progress.update(n) is called for every n bytes
            processed.
        log (logging.Logger): Logger for diagnostic messages.
    """
    if buf is not None:
        op = Operation(
            image, buf, algorithm=algorithm, block_size=block_size,
            digest_size=digest_size, detect_zeroes=detect_zeroes,
            progress=progress, log=log)
        return op.run()

    buffer_size = util.round_up(max(buffer_size, block_size), block_size)
    with util.aligned_buffer(buffer_size) as buf:
        op = Operation(
            image, buf, algorithm=algorithm, block_size=block_size,
            digest_size=digest_size, detect_zeroes=detect_zeroes,
            progress=progress, log=log)
        return op.run()


def checksum(path, format=None, **kwargs):
    """
    Open image at path and compute its checksum.

    Arguments:
        path (str): Path to image.
        format (str): Image format ("raw" or "qcow2"). If not specified,
            detect the format.
        **kwargs: Passed to compute().
    """
    with backends.open(path, format=format) as image:
        return compute(image, **kwargs)
