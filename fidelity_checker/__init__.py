"""fidelity_checker — visual diff between a design and its implementation."""

__version__ = '0.1.0'
