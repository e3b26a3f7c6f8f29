#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Setup script for Nonlinear Obstacle Avoidance Path Planning
"""

from setuptools import setup, find_packages

setup(
    name="nonlinear-obstacle-path-planning",
    version="1.0.0",
    description="Point-robot path planning around nonlinear obstacles using an Augmented Lagrangian method",
    author="Lei He",
    packages=find_packages(exclude=["tests", "tests.*", "scripts"]),
    package_data={"obstacle_planner": ["data/*.yaml"]},
    install_requires=[
        "numpy>=1.20.0",
        "scipy>=1.7.0",
        "matplotlib>=3.3.0",
        "pyyaml>=5.4.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    python_requires=">=3.7",
    entry_points={
        "console_scripts": [
            "obstacle-plan=obstacle_planner.cli:main",
        ],
    },
)
