"""Cluster membership filter: replaces records with cluster membership probabilities."""

__version__ = "1.0.0"
