#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Launch script for Obstacle Avoidance Path Planning (Command-line)

Usage:
    python -u run_planning.py [--config scenario.yaml] [--output path_result.svg]
"""

import sys
import os

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from obstacle_planner.cli import main

if __name__ == '__main__':
    sys.exit(main())
