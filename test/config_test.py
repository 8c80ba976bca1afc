# SPDX-FileCopyrightText: Red Hat, Inc.
# SPDX-License-Identifier: GPL-2.0-or-later

import os

import pytest

from imgsum._internal import config
from imgsum._internal import errors


def write(path, data):
    with open(path, "w") as f:
        f.write(data)


def test_defaults(user_config):
    cfg = config.load(config.config_files(user_config))
    assert cfg.checksum.algorithm == "sha256"
    assert cfg.checksum.block_size == 64 * 1024
    assert cfg.checksum.buffer_size == 2 * 1024**2
    assert cfg.checksum.detect_zeroes is True
    assert cfg.logger.level == "warning"


def test_config_files_order(user_config):
    conf_d = os.path.join(user_config, "conf.d")
    for name in ("99-user.conf", "50-vendor.conf", "ignored.txt"):
        write(os.path.join(conf_d, name), "")

    assert config.config_files(user_config) == [
        os.path.join(conf_d, "50-vendor.conf"),
        os.path.join(conf_d, "99-user.conf"),
        config.user_config_file(),
    ]


def test_user_config_file(monkeypatch, tmpdir):
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmpdir))
    assert config.user_config_file() == str(tmpdir.join("imgsum.conf"))


def test_user_config_file_default(monkeypatch):
    monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
    assert config.user_config_file() == os.path.expanduser(
        "~/.config/imgsum.conf")


def test_override(user_config):
    conf_d = os.path.join(user_config, "conf.d")
    write(os.path.join(conf_d, "50-vendor.conf"), """
[checksum]
algorithm = sha1
block_size = 4096
""")
    write(os.path.join(conf_d, "99-user.conf"), """
[checksum]
algorithm = blake2b
detect_zeroes = false
""")

    user_file = config.user_config_file()
    os.makedirs(os.path.dirname(user_file))
    write(user_file, """
[logger]
level = debug
""")

    cfg = config.load(config.config_files(user_config))
    assert cfg.checksum.algorithm == "blake2b"
    assert cfg.checksum.block_size == 4096
    assert cfg.checksum.detect_zeroes is False
    assert cfg.logger.level == "debug"


@pytest.mark.parametrize("data,key", [
    ("[checksum]\nalgorithm = no-such\n", "checksum.algorithm"),
    ("[checksum]\nalgorithm = shake_128\n", "checksum.algorithm"),
    ("[checksum]\nblock_size = 0\n", "checksum.block_size"),
    ("[checksum]\nblock_size = -4096\n", "checksum.block_size"),
    ("[checksum]\nbuffer_size = 0\n", "checksum.buffer_size"),
    ("[checksum]\nbuffer_size = 2m\n", "checksum.buffer_size"),
    ("[checksum]\ndetect_zeroes = maybe\n", "checksum.detect_zeroes"),
    ("[logger]\nlevel = verbose\n", "logger.level"),
])
def test_invalid(user_config, data, key):
    write(os.path.join(user_config, "conf.d", "50-test.conf"), data)
    with pytest.raises(errors.InvalidConfig) as e:
        config.load(config.config_files(user_config))
    assert e.value.key == key


def test_to_dict(user_config):
    cfg = config.load(config.config_files(user_config))
    d = config.to_dict(cfg)
    assert d["checksum"] == {
        "algorithm": "sha256",
        "block_size": 64 * 1024,
        "buffer_size": 2 * 1024**2,
        "detect_zeroes": True,
    }
    assert d["logger"]["level"] == "warning"
