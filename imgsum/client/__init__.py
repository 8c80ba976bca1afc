# SPDX-FileCopyrightText: Red Hat, Inc.
# SPDX-License-Identifier: GPL-2.0-or-later

"""
Command line tool for computing disk image checksums.

Anything in this package is private and should not be used.
"""
