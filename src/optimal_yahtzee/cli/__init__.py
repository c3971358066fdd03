"""Command line interface for :mod:`optimal_yahtzee`."""
