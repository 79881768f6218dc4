# Overview: Feature and action constants for the per-worker permission matrix.


class Feature:
    """Features a worker can be granted access to."""
    INVOICE = "invoice"
    INVENTORY = "inventory"
    SALES = "sales"
    CREDITS = "credits"
    CUSTOMERS = "customers"
    EXPENSES = "expenses"
    RECEIVE_PAYMENT = "receive_payment"


class Action:
    """Actions checked against a feature grant."""
    VIEW = "view"
    CREATE = "create"
    EDIT = "edit"
    DELETE = "delete"
