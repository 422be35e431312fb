"""blockdiff.core — Foundation layer.

Contains the block averager, shared types, errors, settings and report builder.
This module has NO dependencies on blockdiff.metrics, blockdiff.registry or blockdiff.fetch.
Only stdlib, numpy, and PIL are allowed here.
"""
