"""Utility functions for the study planner."""
