# SPDX-FileCopyrightText: Red Hat, Inc.
# SPDX-License-Identifier: GPL-2.0-or-later

import pytest

from imgsum._internal import configloader
from imgsum._internal import errors


@pytest.fixture
def config():
    class config:
        class foo:
            string = "old"
            string_nonascii = "א"
            integer = 1
            real = 4.0
            boolean = False

        class bar:
            string = "old"
    return config


def write_conf(tmpdir, data, name="conf"):
    conf = str(tmpdir.join(name))
    with open(conf, "wb") as f:
        f.write(data.encode("utf-8"))
    return conf


def test_empty(tmpdir, config):
    conf = write_conf(tmpdir, "")
    configloader.load(config, [conf])
    assert config.foo.string == "old"
    assert config.foo.string_nonascii == "א"
    assert config.foo.integer == 1
    assert config.foo.real == 4.0
    assert config.foo.boolean is False
    assert config.bar.string == "old"


def test_missing_file(tmpdir, config):
    configloader.load(config, [str(tmpdir.join("missing"))])
    assert config.foo.string == "old"


def test_ignore_unknown_section(tmpdir, config):
    conf = write_conf(tmpdir, """
[foo]
string = new

[unknown]
string = new
""")
    configloader.load(config, [conf])
    assert config.foo.string == "new"
    assert config.bar.string == "old"
    assert not hasattr(config, "unknown")


def test_ignore_unknown_option(tmpdir, config):
    conf = write_conf(tmpdir, """
[foo]
string = new
unknown = 3
""")
    configloader.load(config, [conf])
    assert config.foo.string == "new"
    assert not hasattr(config.foo, "unknown")


def test_full(tmpdir, config):
    conf = write_conf(tmpdir, """
[foo]
string = new
integer = 2
real = 4.1
boolean = true

[bar]
string = new
""")
    configloader.load(config, [conf])
    assert config.foo.string == "new"
    assert config.foo.integer == 2
    assert config.foo.real == 4.1
    assert config.foo.boolean is True
    assert config.bar.string == "new"


def test_later_file_wins(tmpdir, config):
    first = write_conf(tmpdir, """
[foo]
string = first
integer = 2
""", name="first.conf")
    second = write_conf(tmpdir, """
[foo]
string = second
""", name="second.conf")
    configloader.load(config, [first, second])
    assert config.foo.string == "second"
    assert config.foo.integer == 2


@pytest.mark.parametrize("value", [
    "True", "tRue", "true",
    "Yes", "yeS", "yes",
    "On", "oN", "on",
    "1",
])
def test_true(tmpdir, config, value):
    conf = write_conf(tmpdir, "[foo]\nboolean = %s\n" % value)
    configloader.load(config, [conf])
    assert config.foo.boolean is True


@pytest.mark.parametrize("value", [
    "False", "faLse", "false",
    "No", "nO", "no",
    "Off", "ofF", "off",
    "0",
])
def test_false(tmpdir, config, value):
    conf = write_conf(tmpdir, "[foo]\nboolean = %s\n" % value)
    configloader.load(config, [conf])
    assert config.foo.boolean is False


@pytest.mark.parametrize("option", ["integer", "real", "boolean"])
def test_validate(tmpdir, config, option):
    conf = write_conf(tmpdir, "[foo]\n%s = invalid value\n" % option)
    with pytest.raises(errors.InvalidConfig) as e:
        configloader.load(config, [conf])
    assert e.value.key == "foo." + option
    assert e.value.value == "invalid value"


def test_unicode(tmpdir, config):
    conf = write_conf(tmpdir, "[foo]\nstring_nonascii = ב\n")
    configloader.load(config, [conf])
    assert config.foo.string_nonascii == "ב"


def test_unsupported_default_value(tmpdir):

    class config:
        class section:
            value = b"bytes"

    conf = write_conf(tmpdir, "[section]\nvalue = bar\n")

    with pytest.raises(ValueError) as e:
        configloader.load(config, [conf])

    error = str(e.value)
    assert "section.value" in error
    assert str(type(config.section.value)) in error


def test_config_to_dict(tmpdir, config):
    conf = write_conf(tmpdir, """
[foo]
string = new
integer = 2
real = 4.1
boolean = true
""")
    configloader.load(config, [conf])
    assert configloader.to_dict(config) == {
        "foo": {
            "string": "new",
            "string_nonascii": "א",
            "integer": 2,
            "real": 4.1,
            "boolean": True,
        },
        "bar": {
            "string": "old",
        },
    }
