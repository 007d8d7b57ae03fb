# -*- coding: utf-8 -*-

import os

from setuptools import find_packages, setup

extras_require = {
    "test": [
        "pytest>=6.2.5",
        "pytest-cov>=2.10",
        "pytest-instafail>=0.4",
        "pytest-xdist>=2.5",
        "hypothesis>=5.37.1",
    ],
    "lint": [
        "black==23.12.0",
        "flake8==6.1.0",
        "flake8-bugbear==23.12.2",
        "flake8-use-fstring==1.4",
        "isort==5.13.2",
        "mypy==1.5",
    ],
    "dev": ["ipython", "pre-commit", "twine"],
}

extras_require["dev"] = extras_require["test"] + extras_require["lint"] + extras_require["dev"]

with open("README.md", "r") as f:
    long_description = f.read()


def _read_version():
    # single source of truth for the fallback in safemath/__init__.py
    namespace = {}
    with open(os.path.join("safemath", "version.py")) as f:
        exec(f.read(), namespace)
    return namespace["version"]


setup(
    name="safemath",
    version=_read_version(),
    description="safemath: checked arithmetic for Python functions, by source rewriting",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="safemath contributors",
    author_email="",
    license="Apache License 2.0",
    keywords="arithmetic overflow checked ast rewriting",
    include_package_data=True,
    packages=find_packages(include=["safemath", "safemath.*"]),
    python_requires=">=3.10,<4",
    install_requires=["asttokens>=2.0.5,<4"],
    tests_require=extras_require["test"],
    extras_require=extras_require,
    entry_points={
        "console_scripts": ["safemath-expand=safemath.cli.safemath_expand:_parse_cli_args"]
    },
    classifiers=[
        "Intended Audience :: Developers",
        "License :: OSI Approved :: Apache Software License",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
