# SPDX-FileCopyrightText: Red Hat, Inc.
# SPDX-License-Identifier: GPL-2.0-or-later

"""
Configuration commands.
"""

import json

from .. _internal import config


def register(parser):
    parser.add_sub_command(
        "show-config",
        help="Show configuration in json format. This is useful for "
             "debugging configuration issues.",
        func=show_config)


def show_config(args):
    print(json.dumps(config.to_dict(args.config), indent=4))
