#!/usr/bin/env python3
# CUI // SP-CTI
"""Go project emitter."""

from goport.builder.go_scaffolder import GoScaffolder, emit_actions

__all__ = ["GoScaffolder", "emit_actions"]
