"""
Study Planner: study session scheduling and focus tracking.

Plans study sessions around existing commitments, tracks goals and streaks,
and runs a Pomodoro timer that accounts focus time second by second.
"""

__version__ = "1.0.0"
