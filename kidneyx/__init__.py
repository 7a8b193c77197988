"""Cycle, edge and position-indexed integer programming models for kidney exchange with cycles, chains and a budget."""

__version__ = "0.1.0"