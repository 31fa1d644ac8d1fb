#!/usr/bin/env python3
# CUI // SP-CTI
"""goport: scaffold a Go (Echo + templ + sqlc + goose) project from an
existing Express, Next.js, Django, Flask, FastAPI, Laravel or Rails app.

Pipeline: detect -> ask -> plan -> emit -> report.
"""

__version__ = "0.1.0"
