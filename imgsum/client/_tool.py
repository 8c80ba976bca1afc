# SPDX-FileCopyrightText: Red Hat, Inc.
# SPDX-License-Identifier: GPL-2.0-or-later

"""
Tool for computing disk image checksums.
"""

import logging
import signal
import sys

from .. _internal import errors
from . import _checksum
from . import _config
from . import _options

log = logging.getLogger("tool")


def main(args=None):
    parser = _options.Parser()
    _checksum.register(parser)
    _config.register(parser)
    args = parser.parse(args)

    if args.debug:
        level = logging.DEBUG
    else:
        level = args.config.logger.level.upper()

    logging.basicConfig(level=level, format=args.config.logger.format)

    try:
        args.command(args)
    except errors.UsageError as e:
        # Prints usage and exits with status 2.
        args.parser.error(str(e))
    except errors.Error as e:
        # Expected errror, log a clean error.
        log.debug("Command failed", exc_info=True)
        sys.stderr.write(f"imgsum-tool: {e}\n")
        sys.exit(1)
    except KeyboardInterrupt:
        log.info("Interrupted")
        sys.exit(128 + signal.SIGINT)
    except Exception:
        log.exception("Command failed")
        sys.exit(1)
