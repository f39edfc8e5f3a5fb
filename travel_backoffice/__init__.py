"""
Travel agency back office: payment schedules.

Templates, concrete payment schedules, the transaction ledger and trip-wide
payment status for a multi-agency travel back office.
"""

__version__ = "1.0.0"
