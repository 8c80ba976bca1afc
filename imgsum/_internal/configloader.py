# SPDX-FileCopyrightText: Red Hat, Inc.
# SPDX-License-Identifier: GPL-2.0-or-later
"""
configloader - simpler configuration loader

This module loads configuration files using ini file format, validates
options and updates given config object.

To load configuration, define the configuration structure in a module,
for example config.py:

    # config.py

    class checksum:

        algorithm = "sha256"
        block_size = 65536

The configuration file should match the class structure:

    # ~/.config/imgsum.conf

    [checksum]
    algorithm = blake2b

To load the configuration use:

    configloader.load(cfg, ["~/.config/imgsum.conf"])
    assert cfg.checksum.algorithm == "blake2b"

Values in the configuration file that do not match the types in the config
object raise errors.InvalidConfig.

Unknown sections and options in the configuration file are ignored.
"""

import configparser

from . import errors


def load(config, files):
    parser = configparser.RawConfigParser()
    parser.read(files, encoding="utf-8")
    for section_name in _public_names(config):
        section = getattr(config, section_name)
        for option in _public_names(section):
            try:
                value = parser.get(section_name, option)
            except configparser.NoSectionError:
                break
            except configparser.NoOptionError:
                continue

            value_type = type(getattr(section, option))
            if value_type not in _validators:
                raise ValueError(
                    f"Unsupported default value type for "
                    f"'{section_name}.{option}': {value_type}")

            validate = _validators[value_type]
            try:
                value = validate(value)
            except ValueError:
                raise errors.InvalidConfig(
                    f"{section_name}.{option}", value) from None

            setattr(section, option, value)


def to_dict(config):
    return {name: _obj_to_dict(getattr(config, name))
            for name in _public_names(config)}


def _public_names(obj):
    return [name for name in dir(obj) if not name.startswith("_")]


def _obj_to_dict(obj):
    return {name: getattr(obj, name) for name in _public_names(obj)}


def _validate_bool(s):
    # Use the same values configparser accepts
    val = s.lower()
    if val in ("true", "yes", "1", "on"):
        return True
    elif val in ("false", "no", "0", "off"):
        return False
    raise ValueError("Invalid boolean value: %r" % s)


_validators = {
    str: str,
    int: int,
    float: float,
    bool: _validate_bool,
}
