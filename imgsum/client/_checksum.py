# SPDX-FileCopyrightText: Red Hat, Inc.
# SPDX-License-Identifier: GPL-2.0-or-later

"""
Checksum command.
"""

import logging

from .. _internal import blkhash
from .. _internal import checksum
from .. _internal import errors
from .. _internal.units import KiB, MiB
from . import _options

algorithm = _options.Choices("algorithm", sorted(blkhash.ALGORITHMS))


def register(parser):
    cmd = parser.add_sub_command(
        "checksum",
        help="Compute disk image checksum",
        func=compute_checksum)

    cmd.add_argument(
        "-a", "--algorithm",
        type=algorithm,
        help="Digest algorithm (default from configuration, sha256). "
             "Changing the algorithm changes the checksum.")

    size = _options.Size(minimum=64 * KiB, maximum=16 * MiB)
    cmd.add_argument(
        "--buffer-size",
        type=size,
        help=f"Read buffer size (range: {size.minimum}-{size.maximum}, "
             f"default from configuration, 2m).")

    cmd.add_argument(
        "filenames",
        nargs="*",
        metavar="FILENAME",
        help="Image to checksum.")


def compute_checksum(args):
    if len(args.filenames) == 0:
        raise errors.UsageError("no file was specified")
    if len(args.filenames) > 1:
        raise errors.UsageError("too many files were specified")

    filename = args.filenames[0]
    cfg = args.config.checksum

    res = checksum.checksum(
        filename,
        algorithm=args.algorithm or cfg.algorithm,
        block_size=cfg.block_size,
        buffer_size=args.buffer_size or cfg.buffer_size,
        detect_zeroes=cfg.detect_zeroes,
        log=logging.getLogger("checksum"))

    print(f"{res['checksum']}  {filename}")
