"""Bundled data files for reclaimctl."""
