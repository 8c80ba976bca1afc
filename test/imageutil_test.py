# SPDX-FileCopyrightText: Red Hat, Inc.
# SPDX-License-Identifier: GPL-2.0-or-later

import pytest

from imgsum._internal import errors
from imgsum._internal import imageutil
from imgsum._internal.backends import memory
from imgsum._internal.extent import Extent


class FakeImage:
    """
    Image returning extents from a list, ignoring the requested range.
    """

    def __init__(self, size, replies):
        self._size = size
        self._replies = list(replies)
        self.requests = []

    def size(self):
        return self._size

    def extent(self, offset, length):
        self.requests.append((offset, length))
        return self._replies.pop(0)


class FailingImage:

    def size(self):
        return 1024

    def extent(self, offset, length):
        raise errors.ExtentQueryError(offset, length, "Input/output error")


def test_single_extent():
    image = memory.Backend(b"x" * 1024)
    assert list(imageutil.extents(image)) == [Extent(0, 1024, False)]


def test_empty_image():
    image = memory.Backend(b"")
    assert list(imageutil.extents(image)) == []


def test_short_replies():
    # Reader returns one extent per call, shorter than the requested range.
    image = FakeImage(300, [
        Extent(0, 100, False),
        Extent(100, 100, True),
        Extent(200, 100, False),
    ])

    assert list(imageutil.extents(image)) == [
        Extent(0, 100, False),
        Extent(100, 100, True),
        Extent(200, 100, False),
    ]

    # The cursor advances by the returned length.
    assert image.requests == [(0, 300), (100, 200), (200, 100)]


def test_merge_same_type():
    image = FakeImage(400, [
        Extent(0, 100, True),
        Extent(100, 100, True),
        Extent(200, 100, False),
        Extent(300, 100, False),
    ])

    assert list(imageutil.extents(image)) == [
        Extent(0, 200, True),
        Extent(200, 200, False),
    ]


def test_clip_last_extent():
    # Reader returns an extent exceeding the requested range.
    image = FakeImage(300, [
        Extent(0, 100, False),
        Extent(100, 500, True),
    ])

    assert list(imageutil.extents(image)) == [
        Extent(0, 100, False),
        Extent(100, 200, True),
    ]


def test_sub_range():
    image = memory.Backend(bytes(1000), extents=[
        Extent(0, 300, False),
        Extent(300, 400, True),
        Extent(700, 300, False),
    ])

    assert list(imageutil.extents(image, 200, 800)) == [
        Extent(200, 100, False),
        Extent(300, 400, True),
        Extent(700, 100, False),
    ]


def test_idempotent():
    image = memory.Backend(bytes(1000), extents=[
        Extent(0, 300, False),
        Extent(300, 400, True),
        Extent(700, 300, False),
    ])

    first = list(imageutil.extents(image))
    second = list(imageutil.extents(image))
    assert first == second


@pytest.mark.parametrize("reply", [
    # Does not start at the requested offset.
    Extent(50, 100, False),
    # Empty extent would loop forever.
    Extent(0, 0, False),
    Extent(0, -1, True),
])
def test_invalid_extent(reply):
    image = FakeImage(300, [reply])
    with pytest.raises(errors.ExtentQueryError):
        list(imageutil.extents(image))


@pytest.mark.parametrize("start,end", [
    (-1, 100),
    (200, 100),
    (0, 2000),
])
def test_invalid_range(start, end):
    image = memory.Backend(bytes(1000))
    with pytest.raises(ValueError):
        list(imageutil.extents(image, start, end))


def test_error_propagated():
    with pytest.raises(errors.ExtentQueryError) as e:
        list(imageutil.extents(FailingImage()))
    assert e.value.offset == 0
    assert e.value.length == 1024


def test_lazy():
    image = FakeImage(200, [
        Extent(0, 100, False),
        Extent(100, 100, True),
    ])
    it = imageutil.extents(image)
    assert image.requests == []

    # First extent is returned only when we find an extent of different type.
    assert next(it) == Extent(0, 100, False)
    assert image.requests == [(0, 200), (100, 100)]
