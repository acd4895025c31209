"""Adapters satisfying railflow's ports with third-party libraries."""
