# SPDX-FileCopyrightText: Red Hat, Inc.
# SPDX-License-Identifier: GPL-2.0-or-later

import mmap
import os


def monotonic_time():
    return os.times()[4]


def humansize(n):
    for unit in ("bytes", "KiB", "MiB", "GiB", "TiB", "PiB"):
        if n < 1024:
            break
        n /= 1024
    return "{:.{precision}f} {}".format(
        n, unit, precision=0 if unit == "bytes" else 2)


def round_up(n, size):
    n = n + size - 1
    return n - (n % size)


def aligned_buffer(size):
    """
    Return buffer aligned to page size.

    The buffer is allocated once per operation and reused for all reads, so
    memory usage does not depend on the image size.
    """
    return mmap.mmap(-1, size, mmap.MAP_SHARED)
