#!/usr/bin/env python3
# -*- coding: UTF-8 -*-
from safemath.cli import safemath_expand

if __name__ == "__main__":
    safemath_expand._parse_cli_args()
