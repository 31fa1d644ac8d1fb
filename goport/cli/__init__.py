#!/usr/bin/env python3
# CUI // SP-CTI
"""Command-line entry point and terminal formatting."""
