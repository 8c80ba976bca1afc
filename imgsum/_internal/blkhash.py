# SPDX-FileCopyrightText: Red Hat, Inc.
# SPDX-License-Identifier: GPL-2.0-or-later

"""
blkhash - block based hash for disk images.

The image is split to block_size blocks, aligned to block_size from the start
of the image. Every block is hashed separately, and the block digests are
hashed in the order of the blocks in the image. Finally the image size is
appended as 64 bit little endian integer:

    H( H(block 0) || H(block 1) ... H(block N-1) || size )

The last block may be shorter if the image size is not aligned to block_size.
The block digest is computed over the actual bytes of the short block; the
block is never padded.

Since all zero blocks have the same digest, hashing zero blocks is optimized
by using a pre-computed digest instead of hashing zero bytes. Images exposing
the same logical content and size have the same checksum, regardless of their
format or allocation.
"""

import hashlib
import os
import struct

from . import ioutil
from . units import KiB

# Changing these will change the computed checksum.
BLOCK_SIZE = 64 * KiB
ALGORITHM = "sha256"

# Only blake2b and blake2s support variable digest size, and 32 works with
# both and is large enough.
BLAKE2_DIGEST_SIZE = 32

# shake algorithms require digest length and cannot be used.
ALGORITHMS = frozenset(
    name for name in hashlib.algorithms_available
    if not name.startswith("shake_"))

size_suffix = struct.Struct("<Q")


def digest_func(algorithm=ALGORITHM, digest_size=None):
    """
    Return a function creating a new hash object for algorithm.

    Raises ValueError if the algorithm is not supported by hashlib.
    """
    if algorithm not in ALGORITHMS:
        raise ValueError(f"Unsupported algorithm {algorithm!r}")

    if digest_size is None and algorithm.startswith("blake2"):
        digest_size = BLAKE2_DIGEST_SIZE

    # Fail early if the algorithm is not available.
    if digest_size:
        hashlib.new(algorithm, digest_size=digest_size)

        def func(data=b""):
            return hashlib.new(algorithm, data, digest_size=digest_size)
    else:
        hashlib.new(algorithm)

        def func(data=b""):
            return hashlib.new(algorithm, data)

    return func


class Hash:
    """
    Block based hash supporting fast zero block hashing.

    To use this, you must first split the input to block_size length blocks.
    Use blkhash.split() to return stream of blocks from stream of variable
    size extents.

    Then call update(data) for every data block, and zero(length) for every
    zero block, in the order of the blocks in the image. When all blocks were
    added, call finalize(size) to get the checksum.

    If you don't have extents information, split the image to block_size
    length blocks and call update(data) in the order of the blocks. The result
    will be equal but much slower.
    """

    def __init__(self, block_size=BLOCK_SIZE, algorithm=ALGORITHM,
                 digest_size=None):
        self._func = digest_func(algorithm, digest_size)
        self._hash = self._func()
        self._block_size = block_size
        self._zero_block_digest = self._func(bytes(block_size)).digest()
        self._digest = None

    @property
    def block_size(self):
        return self._block_size

    @property
    def name(self):
        return self._hash.name

    def update(self, block):
        """
        Add data block digest.
        """
        self.feed(self._func(block).digest())

    def zero(self, count):
        """
        Add digest of count zero bytes.
        """
        if count == self._block_size:
            # Fast path.
            self.feed(self._zero_block_digest)
        else:
            # Slow path, must be the last block.
            self.feed(self._func(bytes(count)).digest())

    def feed(self, block_digest):
        """
        Add block digest to the outer hash.
        """
        if self._digest is not None:
            raise RuntimeError("Hash was finalized")
        self._hash.update(block_digest)

    def finalize(self, size):
        """
        Add image size to the outer hash and return the digest.
        """
        if self._digest is not None:
            raise RuntimeError("Hash was finalized")
        self._hash.update(size_suffix.pack(size))
        self._digest = self._hash.digest()
        return self._digest

    def digest(self):
        if self._digest is None:
            raise RuntimeError("Hash was not finalized")
        return self._digest

    def hexdigest(self):
        return self.digest().hex()


def checksum(path, block_size=BLOCK_SIZE, algorithm=ALGORITHM,
             digest_size=None, detect_zeroes=True):
    """
    Compute raw file checksum without extents information.

    This reads and hashes every byte in the file, and can be used to verify
    checksums computed using extents information.

    Arguments:
        path (str): Path to raw image.
        block_size (int): Size of block in bytes.
        algorithm (str): One of the algorithms supported py haslib module.
        digest_size (int): Size of hash in bytes, supported only for blake2b
            and blake2s algorithms.
        detect_zeroes (bool): If True, detect zeroes in the input, speeding up
            the calculation.
    """
    size = os.path.getsize(path)
    length = size
    block = bytearray(block_size)
    h = Hash(
        block_size=block_size, algorithm=algorithm, digest_size=digest_size)

    with open(path, "rb") as f:
        # Hash full blocks.
        while length >= block_size:
            _read_block(f, block_size, block)
            if detect_zeroes and ioutil.is_zero(block):
                h.zero(block_size)
            else:
                h.update(block)
            length -= block_size

        # Hash last partial block.
        if length:
            with memoryview(block)[:length] as view:
                _read_block(f, length, view)
                h.update(view)

    h.finalize(size)

    return {
        "algorithm": algorithm,
        "block_size": block_size,
        "checksum": h.hexdigest(),
    }


def _read_block(f, length, buf):
    pos = 0
    while pos < length:
        with memoryview(buf)[pos:] as view:
            n = f.readinto(view)
            if n == 0:
                raise RuntimeError(
                    f"Unexpected end of file at offset {f.tell()}")
            pos += n


class Block:
    """
    Block descriptor.
    """

    __slots__ = ("start", "length", "zero")

    def __init__(self, start, length, zero):
        self.start = start
        self.length = length
        self.zero = zero

    def merge(self, other, block_size):
        """
        Merge part of another block into this block, possibly converting this
        block to a data block.
        """
        stolen = min(block_size - self.length, other.length)

        # Steal range from other...
        other.start += stolen
        other.length -= stolen

        # And add to myself, possibly converting to data block.
        self.length += stolen
        self.zero &= other.zero

    def split(self, block_size):
        """
        Split another block from this block. Valid only if this block length is
        bigger than block_size.
        """
        assert self.length >= block_size

        block = Block(self.start, block_size, self.zero)
        self.start += block_size
        self.length -= block_size

        return block

    def __repr__(self):
        return (f"Block(start={self.start}, length={self.length}, "
                f"zero={self.zero})")


def split(extents, block_size=BLOCK_SIZE):
    """
    Generate stream of block_size blocks from extents stream.

    The extents must start at offset 0, so blocks are aligned to block_size.

    Extents smaller than block_size will be merged into a single block of
    block_size length. Merging blocks will convert small zero block to data
    blocks, or steal part of zero block into a data block.

    Extents:  |   data   | zero |  data  |          zero                  |
    Blocks:   |     data     |     data     |     zero     |     zero     |

    Extents larger than block_size are split into multiple block_size length
    blocks.

    Extents:  |             data            |             zero            |
    Blocks:   |     data     |     data     |     zero     |     zero     |

    If the image is not aligned to block_size, the last block length will be
    smaller than block_size.

    Extents:  |     data     |             zero            | data |
    Blocks:   |     data     |     zero     |     zero     | data |
    """
    partial = None

    for extent in extents:
        current = Block(extent.start, extent.length, extent.zero)

        # Try to complete and yield partial block.
        if partial:
            partial.merge(current, block_size)
            if partial.length < block_size:
                continue

            yield partial
            partial = None

        # Yield complete blocks.
        while current.length >= block_size:
            yield current.split(block_size)

        # Keep the partial block for the next extent.
        if current.length:
            partial = current

    if partial:
        yield partial
