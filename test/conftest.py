# SPDX-FileCopyrightText: Red Hat, Inc.
# SPDX-License-Identifier: GPL-2.0-or-later

import logging

import pytest

log = logging.getLogger("test")


@pytest.fixture
def tmpfile(tmpdir):
    """
    Return a path to an empty temporary file.
    """
    f = tmpdir.join("tmpfile")
    f.write("")
    return str(f)


@pytest.fixture
def user_config(tmpdir, monkeypatch):
    """
    Isolate the tests from the user and system configuration.

    Returns the configuration directory. Tests can add configuration files
    in the conf.d sub directory.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmpdir.join("config-home")))
    conf_dir = tmpdir.mkdir("conf")
    conf_dir.mkdir("conf.d")
    return str(conf_dir)
