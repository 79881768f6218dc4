# Overview: Feature definitions, navigation items and feature landing routes.
# Each feature is defined as: (code, name, description)

from .categories import Feature, Action


FEATURE_DEFINITIONS = [
    (Feature.INVOICE, "Invoice", "Create invoices and record payment at sale time"),
    (Feature.INVENTORY, "Inventory", "View and manage products"),
    (Feature.SALES, "Sales", "View and delete past invoices"),
    (Feature.CREDITS, "Credits", "Manage customer credits and record credit payments"),
    (Feature.CUSTOMERS, "Customers", "Manage the customer directory"),
    (Feature.EXPENSES, "Expenses", "Record and review business expenses"),
    (Feature.RECEIVE_PAYMENT, "Receive Payment", "Apply customer payments against open invoices"),
]

FEATURES = [definition[0] for definition in FEATURE_DEFINITIONS]

ACTIONS = [Action.VIEW, Action.CREATE, Action.EDIT, Action.DELETE]


# Landing route per feature, in the order a worker is redirected after login
FEATURE_ROUTES = [
    (Feature.INVOICE, "/invoice"),
    (Feature.INVENTORY, "/inventory"),
    (Feature.SALES, "/sales"),
    (Feature.CREDITS, "/credits"),
    (Feature.CUSTOMERS, "/customers"),
]

DEFAULT_ADMIN_ROUTE = "/"
FALLBACK_ROUTE = "/settings"


# Navigation: (path, label, feature, admin_only)
NAV_ITEMS = [
    ("/dashboard", "Dashboard", None, True),
    ("/invoice", "Invoice", Feature.INVOICE, False),
    ("/inventory", "Inventory", Feature.INVENTORY, False),
    ("/sales", "Sales", Feature.SALES, False),
    ("/credits", "Credits", Feature.CREDITS, False),
    ("/credit-management", "Credit Mgmt", Feature.CREDITS, False),
    ("/receive-payment", "Payments", Feature.RECEIVE_PAYMENT, False),
    ("/expenses", "Expenses", Feature.EXPENSES, False),
    ("/customers", "Customers", Feature.CUSTOMERS, False),
    ("/workers", "Workers", None, True),
    ("/settings", "Settings", None, False),
]
