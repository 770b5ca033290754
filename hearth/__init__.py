"""
Hearth - family expense tracking backend.

Members of a family share transactions, budgets, categories, trips and
subscriptions; what each member may do is decided by their role.
"""

__version__ = "0.1.0"
