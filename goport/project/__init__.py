#!/usr/bin/env python3
# CUI // SP-CTI
"""Tool and per-project configuration, interactive questionnaire."""

from goport.project.config_loader import load_project_config, load_tool_config
from goport.project.questionnaire import Answers, ask_questions

__all__ = [
    "Answers",
    "ask_questions",
    "load_project_config",
    "load_tool_config",
]
