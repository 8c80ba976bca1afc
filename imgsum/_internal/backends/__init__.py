# SPDX-FileCopyrightText: Red Hat, Inc.
# SPDX-License-Identifier: GPL-2.0-or-later

import builtins
import logging

from .. import errors

from . import file
from . import qcow2

log = logging.getLogger("backends")

_modules = {
    "raw": file,
    "qcow2": qcow2,
}


def supports(format):
    return format in _modules


def detect_format(path):
    """
    Return the format of image at path.

    Images starting with the qcow2 magic are qcow2 images, anything else is
    considered a raw image.
    """
    try:
        with builtins.open(path, "rb") as f:
            magic = f.read(len(qcow2.MAGIC))
    except OSError as e:
        raise errors.ImageOpenError(path, e.strerror or str(e)) from e

    return "qcow2" if magic == qcow2.MAGIC else "raw"


def open(path, format=None):
    """
    Open image reader for image at path.

    Arguments:
        path (str): Path to image.
        format (str): "raw" or "qcow2". If not specified, detect the format
            from the image header.

    Raises errors.ImageOpenError if the image cannot be opened.
    """
    if format is None:
        format = detect_format(path)
    elif not supports(format):
        raise errors.ImageOpenError(
            path, f"Unsupported format {format!r}")

    log.debug("Opening image path=%r format=%r", path, format)
    return _modules[format].open(path)
