"""DSA practice tracker: problem progress, streaks, XP and badges"""

__version__ = "0.1.0"
