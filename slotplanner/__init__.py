"""
Appointment slot planning for a student-welfare office.
"""

__version__ = "0.1.0"
