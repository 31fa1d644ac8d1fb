#!/usr/bin/env python3
# CUI // SP-CTI
"""Shared conversion models used by the detector, planner, emitter and reporter."""

from goport.schemas.conversion import (
    ConversionPlan,
    DetectedStack,
    EmitResult,
    Evidence,
    FileAction,
    Stage,
)

__all__ = [
    "ConversionPlan",
    "DetectedStack",
    "EmitResult",
    "Evidence",
    "FileAction",
    "Stage",
]
