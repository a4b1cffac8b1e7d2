"""Artifact codec and geometry cache."""
