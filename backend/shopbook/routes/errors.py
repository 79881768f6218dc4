# Overview: Maps service-layer exceptions onto JSON error responses for the API blueprints.

from flask import jsonify, current_app

from ..extensions import db
from ..validation import ValidationError, ConflictError
from ..services.credit_service import CreditError, CreditNotFoundError
from ..services.customer_service import CustomerNotFoundError
from ..services.expense_service import ExpenseNotFoundError
from ..services.payment_service import PaymentError
from ..services.sales_service import SaleError, SaleNotFoundError
from ..services.worker_service import WorkerNotFoundError


NOT_FOUND_ERRORS = (
    CreditNotFoundError,
    CustomerNotFoundError,
    ExpenseNotFoundError,
    SaleNotFoundError,
    WorkerNotFoundError,
)

BAD_REQUEST_ERRORS = (ValidationError, CreditError, SaleError, PaymentError)


def json_error(exc: Exception, log_message: str):
    """
    Roll back the request's session and answer with the matching status.

    Anything not raised on purpose by a service is logged with its
    traceback and answered with a generic 500.
    """
    db.session.rollback()

    if isinstance(exc, NOT_FOUND_ERRORS):
        return jsonify({"error": str(exc)}), 404
    if isinstance(exc, ConflictError):
        return jsonify({"error": str(exc)}), 409
    if isinstance(exc, BAD_REQUEST_ERRORS):
        return jsonify({"error": str(exc)}), 400

    current_app.logger.exception(log_message)
    return jsonify({"error": "Internal server error"}), 500
