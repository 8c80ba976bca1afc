# SPDX-FileCopyrightText: Red Hat, Inc.
# SPDX-License-Identifier: GPL-2.0-or-later

"""
I/O helpers.
"""


def is_zero(buf):
    """
    Return True if buffer contains only zero bytes.

    The buffer is compared with itself shifted by one byte, so no zero buffer
    is allocated for the comparison.
    """
    with memoryview(buf) as view:
        if view.nbytes == 0:
            return True

        with view.cast("B") as data:
            return data[0] == 0 and data[1:] == data[:-1]
