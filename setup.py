# SPDX-FileCopyrightText: Red Hat, Inc.
# SPDX-License-Identifier: GPL-2.0-or-later

from setuptools import setup

# Importing the package requires the runtime dependencies.
version = {}
with open("imgsum/_internal/version.py") as f:
    exec(f.read(), version)

with open("README.md") as f:
    long_description = f.read()

setup(
    author="imgsum Authors",
    description="Compute disk images checksum",
    long_description=long_description,
    long_description_content_type="text/markdown",
    license="GNU GPLv2+",
    name="imgsum",
    packages=[
        "imgsum",
        "imgsum._internal",
        "imgsum._internal.backends",
        "imgsum.client",
    ],
    platforms=["Linux"],
    scripts=["imgsum-tool"],
    version=version["string"],
    python_requires=">=3.7",
    install_requires=[
        "zstandard",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Intended Audience :: System Administrators",
        "Programming Language :: Python :: 3.7",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Topic :: System :: Archiving :: Backup",
        "Topic :: Utilities",
    ],
)
