# SPDX-FileCopyrightText: Red Hat, Inc.
# SPDX-License-Identifier: GPL-2.0-or-later


class Extent:
    """
    A range of the image logical address space.

    If zero is True, every byte in the range reads as zero, and the range can
    be hashed without reading it.

    The length field is mutable to allow merging consecutive extents and
    clipping extents exceeding the requested range. Since this class is
    mutable, it must not implement __hash__.
    """

    __slots__ = ("start", "length", "zero")

    def __init__(self, start, length, zero):
        self.start = start
        self.length = length
        self.zero = zero

    @property
    def end(self):
        return self.start + self.length

    def __eq__(self, other):
        if not isinstance(other, Extent):
            return NotImplemented
        return (self.start == other.start and
                self.length == other.length and
                self.zero == other.zero)

    __hash__ = None

    def __repr__(self):
        return (f"Extent(start={self.start}, length={self.length}, "
                f"zero={self.zero})")
