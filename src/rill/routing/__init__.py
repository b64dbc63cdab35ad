"""Routing — file-discovered routes with specificity-scored matching.

Routes are discovered from the pages directory once, at startup, and
compiled into an immutable manifest that every request resolves against.
"""
