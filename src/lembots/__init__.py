"""Lembots — program robots, save them all.

Deterministic tile-grid robot puzzles: a tick simulation engine, a
resumable program VM, an evaluator that scores a program on a level, and
a search that finds programs automatically.
"""

__version__ = "0.1.0"
