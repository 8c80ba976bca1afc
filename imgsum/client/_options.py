# SPDX-FileCopyrightText: Red Hat, Inc.
# SPDX-License-Identifier: GPL-2.0-or-later

"""
Tool options.
"""

import argparse
import sys

from .. _internal import config
from .. _internal import errors
from .. _internal import version
from .. _internal.units import KiB, MiB, GiB, TiB


class Choices:

    def __init__(self, name, values):
        self.name = name
        self.values = values

    def __call__(self, s):
        if s not in self.values:
            raise ValueError(
                f"Invalid '{self.name}' value: '{s}', choices: {self}")
        return s

    def __str__(self):
        s = ", ".join(self.values)
        return f"{{{s}}}"

    def __repr__(self):
        return repr(self.name)


class Parser:

    def __init__(self):
        self._parser = argparse.ArgumentParser(
            description="Compute disk image checksum")
        self._parser.set_defaults(command=None)
        self._parser.add_argument(
            '--version',
            action='version',
            version=f'%(prog)s {version.string}')
        self._commands = self._parser.add_subparsers(title="commands")

    def add_sub_command(self, name, help="help", func=lambda x: None):
        cmd = self._commands.add_parser(name, help=help)
        cmd.set_defaults(command=func, parser=cmd)

        cmd.add_argument(
            "--debug",
            action="store_true",
            help="Enable printing debug messages.")

        cmd.add_argument(
            "-c", "--conf-dir",
            default=config.DEFAULT_CONF_DIR,
            help=f"Configuration directory (default "
                 f"{config.DEFAULT_CONF_DIR}). Files in conf.d/*.conf are "
                 f"loaded, followed by {config.user_config_file()}.")

        return cmd

    def parse(self, args=None):
        args = self._parser.parse_args(args=args)
        if not args.command:
            self._parser.print_help()
            sys.exit(2)

        try:
            args.config = config.load(config.config_files(args.conf_dir))
        except errors.InvalidConfig as e:
            args.parser.error(str(e))

        return args


class SizeValue(int):

    SUFFIXES = {"": 1, "k": KiB, "m": MiB, "g": GiB, "t": TiB}

    def __str__(self):
        n = int(self)
        for unit in self.SUFFIXES:
            if n < KiB:
                break
            n //= KiB
        return f"{n}{unit}"


class Size:
    """
    Convert and validate size string.
    """

    def __init__(self, minimum=0, default=None, maximum=None):
        # Minimum value is required since negative size does not make sense.
        self.minimum = SizeValue(minimum)
        self.default = None if default is None else SizeValue(default)
        self.maximum = None if maximum is None else SizeValue(maximum)

    def __call__(self, s):
        if s == "":
            raise ValueError(f"Invalid size: {s!r}")

        unit = SizeValue.SUFFIXES.get(s[-1].lower())
        try:
            if unit:
                value = int(s[:-1]) * unit
            else:
                value = int(s)
        except ValueError:
            raise ValueError(f"Invalid size: {s!r}") from None

        if value < self.minimum:
            raise ValueError(f"Size {s!r} < {self.minimum}")

        if self.maximum is not None and value > self.maximum:
            raise ValueError(f"Size {s!r} > {self.maximum}")

        return value

    def __repr__(self):
        return "size"
