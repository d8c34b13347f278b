# app/services/pricing_errors.py
"""
Typed failures of the pricing core and the booking/session facade.
Every pricing failure reaches the caller as one of these; none is ever turned
into a zero or default amount. main.py maps them to HTTP responses carrying
the error code so the admin UI can tell them apart.
"""


class PricingError(Exception):
    code = "PRICING_ERROR"
    status_code = 400
    retryable = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NoPlanFound(PricingError):
    code = "NO_PLAN_FOUND"
    status_code = 404


class AmbiguousRuleSet(PricingError):
    code = "AMBIGUOUS_RULE_SET"
    status_code = 422

    def __init__(self, message: str, rule_ids=()):
        super().__init__(message)
        self.rule_ids = tuple(rule_ids)


class NoMatchingRule(PricingError):
    code = "NO_MATCHING_RULE"
    status_code = 422


class InvalidInterval(PricingError):
    code = "INVALID_INTERVAL"
    status_code = 400


class AvailabilityConflict(PricingError):
    code = "AVAILABILITY_CONFLICT"
    status_code = 409


class Unavailable(PricingError):
    """Transient dependency failure (DB timeout, dropped connection)."""
    code = "UNAVAILABLE"
    status_code = 503
    retryable = True


class InvalidStatusTransition(PricingError):
    code = "INVALID_STATUS_TRANSITION"
    status_code = 409


class ResourceNotFound(PricingError):
    code = "NOT_FOUND"
    status_code = 404
