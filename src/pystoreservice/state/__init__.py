"""Composite-state primitives.

Path addressing and depth-bounded diffing over plain nested mappings.
Nothing in this package knows about services, stores or scheduling.
"""
