"""
Main entry point for the study planner when run as a module.

Allows running with: python -m studyplanner
"""

from studyplanner.cli.main import app

if __name__ == "__main__":
    app()
