"""Comparators, one per module.

Each public module here defines a `metric` object and is picked up by
blockdiff.registry. Nothing is imported eagerly; the registry imports
modules on first lookup.
"""
