# SPDX-FileCopyrightText: Red Hat, Inc.
# SPDX-License-Identifier: GPL-2.0-or-later


class Error(Exception):
    msg = "Overide this in a subclass"

    def __str__(self):
        return self.msg.format(self=self)


class UsageError(Error):
    msg = "{self.reason}"

    def __init__(self, reason):
        self.reason = reason


class ImageOpenError(Error):
    msg = "Cannot open image {self.path!r}: {self.reason}"

    def __init__(self, path, reason):
        self.path = path
        self.reason = reason


class ExtentQueryError(Error):
    msg = ("Cannot get extent offset={self.offset} length={self.length}: "
           "{self.reason}")

    def __init__(self, offset, length, reason):
        self.offset = offset
        self.length = length
        self.reason = reason


class ReadError(Error):
    msg = ("Cannot read offset={self.offset} length={self.length}: "
           "{self.reason}")

    def __init__(self, offset, length, reason):
        self.offset = offset
        self.length = length
        self.reason = reason


class InvalidConfig(Error):
    msg = "Invalid configuration: {self.key} = {self.value}"

    def __init__(self, key, value):
        self.key = key
        self.value = value
