# CUI // SP-CTI
"""Behave environment configuration for goport BDD tests."""

import os
import shutil
import sys
import tempfile


def before_all(context):
    """Set up global test context."""
    project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    if project_root not in sys.path:
        sys.path.insert(0, project_root)
    context.project_root = project_root


def before_scenario(context, scenario):
    """Give each scenario its own scratch directory for the sample app."""
    context.result = None
    context.workdir = tempfile.mkdtemp(prefix="goport-bdd-")
    context.project_dir = os.path.join(context.workdir, "app")
    os.makedirs(context.project_dir)


def after_scenario(context, scenario):
    shutil.rmtree(context.workdir, ignore_errors=True)
