# SPDX-FileCopyrightText: Red Hat, Inc.
# SPDX-License-Identifier: GPL-2.0-or-later
"""
qcow2 - read only qcow2 image reader.

Mapping guest offsets to host offsets
=====================================

The guest address space is divided into clusters. A guest offset is mapped to
a host cluster using a two level table:

    cluster index = offset >> cluster_bits
    L1 index      = cluster index // L2 entries
    L2 index      = cluster index % L2 entries

L1 entry points to an L2 table, L2 entry describes the cluster:

    L1 entry 0                          unallocated (the entire L2 range)
    L2 entry with compressed bit        compressed cluster
    L2 entry with zero bit (v3)         reads as zeroes
    L2 entry with host offset           data cluster
    L2 entry 0                          unallocated

Unallocated clusters are read from the backing image. If the image has no
backing file, or the offset is after the end of the backing image, they read
as zeroes.

Not supported: encryption, external data files, extended L2 entries, and
snapshots (only the active image is read).
"""

import builtins
import collections
import logging
import os
import struct
import zlib

import zstandard

from .. import errors
from .. extent import Extent

from . common import CLOSED
from .. import backends

log = logging.getLogger("backends.qcow2")

MAGIC = b"QFI\xfb"

# Version 2 header, big endian.
header_v2 = struct.Struct(">4sIQIIQIIQQIIQ")

# Version 3 header fields following the version 2 header.
header_v3 = struct.Struct(">QQQII")

# Header extension type and length.
extension_header = struct.Struct(">II")

# Header extension types.
EXT_END = 0x00000000
EXT_BACKING_FORMAT = 0xE2792ACA
EXT_EXTERNAL_DATA_FILE = 0x44415441

# Incompatible feature bits.
INCOMPAT_DIRTY = 1 << 0
INCOMPAT_CORRUPT = 1 << 1
INCOMPAT_EXTERNAL_DATA = 1 << 2
INCOMPAT_COMPRESSION_TYPE = 1 << 3
INCOMPAT_EXTENDED_L2 = 1 << 4
INCOMPAT_KNOWN = (INCOMPAT_DIRTY | INCOMPAT_CORRUPT | INCOMPAT_EXTERNAL_DATA |
                  INCOMPAT_COMPRESSION_TYPE | INCOMPAT_EXTENDED_L2)

# Compression types.
COMPRESSION_DEFLATE = 0
COMPRESSION_ZSTD = 1

# L1 and L2 entries bits.
OFFSET_MASK = 0x00fffffffffffe00
COMPRESSED = 1 << 62
ZERO = 1 << 0

MIN_CLUSTER_BITS = 9
MAX_CLUSTER_BITS = 21

# Number of L2 tables to cache. With 64 KiB clusters every table maps 512 MiB.
L2_CACHE_SIZE = 32

# Cluster types.
UNALLOCATED = "unallocated"
ZERO_CLUSTER = "zero"
DATA = "data"
COMPRESSED_CLUSTER = "compressed"


class InvalidImage(Exception):
    """
    Raised when image metadata is invalid.
    """


def open(path):
    """
    Open a qcow2 image.

    Arguments:
        path (str): Path to qcow2 image.
    """
    try:
        fio = builtins.open(path, "rb", buffering=0)
    except OSError as e:
        raise errors.ImageOpenError(path, e.strerror or str(e)) from e

    try:
        return Backend(fio)
    except errors.Error:
        fio.close()
        raise
    except (OSError, InvalidImage) as e:
        fio.close()
        raise errors.ImageOpenError(path, str(e)) from e
    except:  # noqa: E722
        fio.close()
        raise


class Header:

    def __init__(self, data):
        if len(data) < header_v2.size:
            raise InvalidImage("Truncated header")

        (self.magic,
         self.version,
         self.backing_file_offset,
         self.backing_file_size,
         self.cluster_bits,
         self.size,
         self.crypt_method,
         self.l1_size,
         self.l1_table_offset,
         self.refcount_table_offset,
         self.refcount_table_clusters,
         self.nb_snapshots,
         self.snapshots_offset) = header_v2.unpack_from(data)

        if self.magic != MAGIC:
            raise InvalidImage(f"Invalid magic {self.magic!r}")

        if self.version == 2:
            self.incompatible_features = 0
            self.compatible_features = 0
            self.autoclear_features = 0
            self.refcount_order = 4
            self.header_length = header_v2.size
        elif self.version == 3:
            if len(data) < header_v2.size + header_v3.size:
                raise InvalidImage("Truncated header")
            (self.incompatible_features,
             self.compatible_features,
             self.autoclear_features,
             self.refcount_order,
             self.header_length) = header_v3.unpack_from(
                data, header_v2.size)
        else:
            raise InvalidImage(f"Unsupported version {self.version}")

        self.compression_type = COMPRESSION_DEFLATE
        if self.incompatible_features & INCOMPAT_COMPRESSION_TYPE:
            if self.header_length <= 104 or len(data) <= 104:
                raise InvalidImage("Missing compression type")
            self.compression_type = data[104]

    @property
    def cluster_size(self):
        return 1 << self.cluster_bits

    def validate(self):
        if not MIN_CLUSTER_BITS <= self.cluster_bits <= MAX_CLUSTER_BITS:
            raise InvalidImage(f"Unsupported cluster bits {self.cluster_bits}")

        if self.crypt_method != 0:
            raise InvalidImage("Encrypted images are not supported")

        unknown = self.incompatible_features & ~INCOMPAT_KNOWN
        if unknown:
            raise InvalidImage(
                f"Unsupported incompatible features {unknown:#x}")

        if self.incompatible_features & INCOMPAT_EXTERNAL_DATA:
            raise InvalidImage("External data file is not supported")

        if self.incompatible_features & INCOMPAT_EXTENDED_L2:
            raise InvalidImage("Extended L2 entries are not supported")

        if self.compression_type not in (COMPRESSION_DEFLATE,
                                         COMPRESSION_ZSTD):
            raise InvalidImage(
                f"Unsupported compression type {self.compression_type}")

        l2_entries = self.cluster_size // 8
        if self.l1_size * l2_entries * self.cluster_size < self.size:
            raise InvalidImage(
                f"L1 table too small l1_size={self.l1_size} "
                f"size={self.size}")

    def __repr__(self):
        return (f"Header(version={self.version}, size={self.size}, "
                f"cluster_bits={self.cluster_bits}, l1_size={self.l1_size}, "
                f"incompatible_features={self.incompatible_features:#x}, "
                f"compression_type={self.compression_type})")


class Backend:
    """
    qcow2 image reader.
    """

    def __init__(self, fio):
        self._fio = fio
        self._backing = CLOSED
        self._has_backing = False
        self._path = fio.name

        header = Header(self._pread(0, 4096))
        header.validate()
        log.debug("Open path=%r header=%r", self._path, header)

        if header.incompatible_features & INCOMPAT_CORRUPT:
            log.warning("Image %r is marked as corrupt", self._path)

        self._header = header
        self._cluster_bits = header.cluster_bits
        self._cluster_size = header.cluster_size
        self._l2_entries = self._cluster_size // 8
        self._l2_table_format = struct.Struct(f">{self._l2_entries}Q")

        # Compressed cluster descriptor, see "Compressed Clusters Descriptor"
        # in qcow2 specification.
        self._csize_shift = 62 - (self._cluster_bits - 8)
        self._csize_mask = (1 << (self._cluster_bits - 8)) - 1
        self._coffset_mask = (1 << self._csize_shift) - 1

        self._l1_table = self._read_l1_table()
        self._l2_cache = collections.OrderedDict()
        self._compressed_cache = None

        backing_format = self._read_extensions()
        if header.backing_file_offset:
            self._open_backing(backing_format)

    # Image reader interface.

    @property
    def name(self):
        return "qcow2"

    def size(self):
        return self._header.size

    def extent(self, offset, length):
        end = min(offset + length, self._header.size)

        try:
            kind, run_end = self._run(offset, end)
        except (OSError, InvalidImage) as e:
            raise errors.ExtentQueryError(offset, length, str(e)) from e

        if kind != UNALLOCATED:
            return Extent(offset, run_end - offset, kind == ZERO_CLUSTER)

        if not self._has_backing:
            return Extent(offset, run_end - offset, True)

        # Unallocated clusters expose the backing image content.
        backing_size = self._backing.size()
        if offset >= backing_size:
            return Extent(offset, run_end - offset, True)

        ext = self._backing.extent(
            offset, min(run_end, backing_size) - offset)
        return Extent(offset, min(ext.length, run_end - offset), ext.zero)

    def readinto(self, offset, buf):
        with memoryview(buf) as view:
            length = min(len(view), self._header.size - offset)
            if length <= 0:
                return 0

            pos = 0
            try:
                while pos < length:
                    with view[pos:length] as v:
                        pos += self._read_clusters(offset + pos, v)
            except (OSError, InvalidImage, zlib.error,
                    zstandard.ZstdError) as e:
                reason = str(e)
                raise errors.ReadError(
                    offset + pos, length - pos, reason) from e

            return length

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
            log.debug("Close path=%r", self._path)
            try:
                if self._backing is not CLOSED:
                    self._backing.close()
            finally:
                self._backing = CLOSED
                try:
                    self._fio.close()
                finally:
                    self._fio = CLOSED

    # Opening.

    def _read_l1_table(self):
        h = self._header
        data = self._pread(h.l1_table_offset, h.l1_size * 8)
        if len(data) < h.l1_size * 8:
            raise InvalidImage("Truncated L1 table")
        return struct.unpack(f">{h.l1_size}Q", data)

    def _read_extensions(self):
        """
        Read header extensions and return the backing format if set.
        """
        backing_format = None
        offset = self._header.header_length
        end = self._cluster_size

        while offset + extension_header.size <= end:
            data = self._pread(offset, extension_header.size)
            if len(data) < extension_header.size:
                break

            ext_type, ext_length = extension_header.unpack(data)
            if ext_type == EXT_END:
                break

            offset += extension_header.size
            if ext_type == EXT_BACKING_FORMAT:
                backing_format = self._pread(offset, ext_length).decode(
                    "utf-8")
            elif ext_type == EXT_EXTERNAL_DATA_FILE:
                raise InvalidImage("External data file is not supported")

            # Extension data is padded to multiple of 8 bytes.
            offset += (ext_length + 7) & ~7

        return backing_format

    def _open_backing(self, backing_format):
        h = self._header
        name = self._pread(h.backing_file_offset, h.backing_file_size)
        if len(name) < h.backing_file_size:
            raise InvalidImage("Truncated backing file name")

        path = name.decode("utf-8")
        if not os.path.isabs(path):
            path = os.path.join(os.path.dirname(self._path), path)

        log.debug("Opening backing file path=%r format=%r",
                  path, backing_format)

        self._backing = backends.open(path, format=backing_format)
        self._has_backing = True

    # Mapping.

    def _l2_table(self, l2_offset):
        table = self._l2_cache.get(l2_offset)
        if table is not None:
            self._l2_cache.move_to_end(l2_offset)
            return table

        data = self._pread(l2_offset, self._cluster_size)
        if len(data) < self._cluster_size:
            raise InvalidImage(f"Truncated L2 table at {l2_offset}")

        table = self._l2_table_format.unpack(data)
        self._l2_cache[l2_offset] = table
        if len(self._l2_cache) > L2_CACHE_SIZE:
            self._l2_cache.popitem(last=False)

        return table

    def _lookup(self, offset):
        """
        Return cluster type, L2 entry, and the end of the range mapped by
        this lookup.

        If the L1 entry is not allocated, the range is the entire range
        mapped by the missing L2 table.
        """
        cluster = offset >> self._cluster_bits
        l1_index, l2_index = divmod(cluster, self._l2_entries)

        l2_offset = self._l1_table[l1_index] & OFFSET_MASK
        if l2_offset == 0:
            end = (l1_index + 1) * self._l2_entries << self._cluster_bits
            return UNALLOCATED, 0, end

        entry = self._l2_table(l2_offset)[l2_index]
        end = (cluster + 1) << self._cluster_bits

        if entry & COMPRESSED:
            return COMPRESSED_CLUSTER, entry, end

        if self._header.version >= 3 and entry & ZERO:
            return ZERO_CLUSTER, entry, end

        if entry & OFFSET_MASK == 0:
            return UNALLOCATED, entry, end

        return DATA, entry, end

    def _run(self, offset, end):
        """
        Return extent type and the end of the run of clusters with the same
        type starting at offset, not exceeding end.
        """
        kind, _, run_end = self._lookup(offset)
        if kind == COMPRESSED_CLUSTER:
            kind = DATA

        while run_end < end:
            next_kind, _, next_end = self._lookup(run_end)
            if next_kind == COMPRESSED_CLUSTER:
                next_kind = DATA
            if next_kind != kind:
                break
            run_end = next_end

        return kind, min(run_end, end)

    # Reading.

    def _read_clusters(self, offset, view):
        """
        Read data from clusters starting at offset into view, and return the
        number of bytes read. Consecutive data clusters are read together.
        """
        kind, entry, end = self._lookup(offset)
        n = min(end - offset, len(view))

        if kind == DATA:
            host = (entry & OFFSET_MASK) + (offset & (self._cluster_size - 1))

            # Extend the read while the next cluster follows this one on the
            # host.
            while n < len(view):
                next_kind, next_entry, next_end = self._lookup(offset + n)
                next_host = next_entry & OFFSET_MASK
                if next_kind != DATA or next_host != host + n:
                    break
                n = min(next_end - offset, len(view))

            with view[:n] as v:
                self._preadinto(host, v)
        elif kind == COMPRESSED_CLUSTER:
            data = self._decompress(offset >> self._cluster_bits, entry)
            start = offset & (self._cluster_size - 1)
            view[:n] = data[start:start + n]
        elif kind == UNALLOCATED and self._has_backing:
            with view[:n] as v:
                self._read_backing(offset, v)
        else:
            view[:n] = bytes(n)

        return n

    def _read_backing(self, offset, view):
        backing_size = self._backing.size()
        pos = 0

        while pos < len(view) and offset + pos < backing_size:
            with view[pos:] as v:
                count = self._backing.readinto(offset + pos, v)
            if count == 0:
                break
            pos += count

        # The backing image may be shorter than this image.
        if pos < len(view):
            view[pos:] = bytes(len(view) - pos)

    def _decompress(self, cluster, entry):
        if self._compressed_cache and self._compressed_cache[0] == cluster:
            return self._compressed_cache[1]

        coffset = entry & self._coffset_mask
        nb_csectors = ((entry >> self._csize_shift) & self._csize_mask) + 1
        csize = nb_csectors * 512 - (coffset & 511)

        # Compressed data of the last cluster may end before csize.
        compressed = self._pread(coffset, csize)

        if self._header.compression_type == COMPRESSION_ZSTD:
            data = self._decompress_zstd(compressed)
        else:
            # Raw deflate stream, no zlib header.
            data = zlib.decompressobj(-12).decompress(
                compressed, self._cluster_size)

        if len(data) != self._cluster_size:
            raise InvalidImage(
                f"Compressed cluster {cluster} decompressed to {len(data)} "
                f"bytes, expected {self._cluster_size} bytes")

        self._compressed_cache = (cluster, data)
        return data

    def _decompress_zstd(self, compressed):
        dctx = zstandard.ZstdDecompressor()
        chunks = []
        todo = self._cluster_size

        with dctx.stream_reader(compressed) as reader:
            while todo:
                chunk = reader.read(todo)
                if not chunk:
                    break
                chunks.append(chunk)
                todo -= len(chunk)

        return b"".join(chunks)

    def _pread(self, offset, length):
        return os.pread(self._fio.fileno(), length, offset)

    def _preadinto(self, offset, view):
        pos = 0
        while pos < len(view):
            with view[pos:] as v:
                n = os.preadv(self._fio.fileno(), [v], offset + pos)
            if n == 0:
                raise InvalidImage(
                    f"Unexpected end of file at host offset {offset + pos}")
            pos += n
