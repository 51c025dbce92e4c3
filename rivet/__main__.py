#!/usr/bin/env python3
# -*- coding: UTF-8 -*-
from rivet.cli import rivet_main

if __name__ == "__main__":
    rivet_main._parse_cli_args()
