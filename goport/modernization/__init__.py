#!/usr/bin/env python3
# CUI // SP-CTI
"""Detection, inventory, transforms, planning and reporting."""
