"""fidelity_checker.core — Foundation layer.

Contains the type definitions, error taxonomy, image codec, settings loader,
and report builder. This module has NO dependencies on
fidelity_checker.stages or fidelity_checker.pipeline.
Only stdlib, numpy, and PIL are allowed here.
"""
