# SPDX-FileCopyrightText: Red Hat, Inc.
# SPDX-License-Identifier: GPL-2.0-or-later

import glob
import os

from . import blkhash
from . import configloader
from . import errors

# System wide configuration. Files are loaded in file name sort order, so
# 99-user.conf overrides 50-vendor.conf.
DEFAULT_CONF_DIR = "/etc/imgsum"


class checksum:

    # Digest algorithm name. Any algorithm supported by python hashlib can be
    # used. Changing the algorithm changes the computed checksum.
    algorithm = "sha256"

    # Size of block in bytes. Every block is hashed separately, and the block
    # digests are hashed to compute the image checksum. Changing the block
    # size changes the computed checksum.
    block_size = 64 * 1024

    # Buffer size in bytes for reading image data, rounded up to block_size.
    # Larger buffer decreases the number of reads. Does not change the
    # computed checksum.
    buffer_size = 2 * 1024**2

    # Detect zero blocks in allocated areas, avoiding hashing them. Does not
    # change the computed checksum.
    detect_zeroes = True


class logger:

    # Log level when --debug is not specified.
    level = "warning"

    # Log records format.
    format = ("%(asctime)s %(levelname)-7s (%(threadName)s) [%(name)s] "
              "%(message)s")


class Config:

    def __init__(self):
        self.checksum = checksum()
        self.logger = logger()


def load(files):
    cfg = Config()
    configloader.load(cfg, files)
    validate(cfg)
    return cfg


def validate(cfg):
    if cfg.checksum.algorithm not in blkhash.ALGORITHMS:
        raise errors.InvalidConfig(
            "checksum.algorithm", cfg.checksum.algorithm)

    if cfg.checksum.block_size <= 0:
        raise errors.InvalidConfig(
            "checksum.block_size", cfg.checksum.block_size)

    if cfg.checksum.buffer_size <= 0:
        raise errors.InvalidConfig(
            "checksum.buffer_size", cfg.checksum.buffer_size)

    if cfg.logger.level.lower() not in ("debug", "info", "warning", "error"):
        raise errors.InvalidConfig("logger.level", cfg.logger.level)


def user_config_file():
    # https://specifications.freedesktop.org/basedir-spec
    base_dir = os.environ.get("XDG_CONFIG_HOME")
    if not base_dir:
        base_dir = os.path.expanduser("~/.config")
    return os.path.join(base_dir, "imgsum.conf")


def config_files(conf_dir=DEFAULT_CONF_DIR):
    """
    Return configuration files to load, lowest priority first.

    Missing files are ignored when loading the configuration.
    """
    pattern = os.path.join(conf_dir, "conf.d", "*.conf")
    files = glob.glob(pattern)
    files.sort(key=os.path.basename)
    files.append(user_config_file())
    return files


def to_dict(cfg):
    return configloader.to_dict(cfg)
