"""
models/errors.py
----------------
Error taxonomy shared by every layer.

    InvalidArgument    - bad amount, unknown interval/field, malformed input.
    InvalidTransition  - illegal state change (e.g. canceling a paid charge).
    NotFound           - unknown charge/client id for the tenant.
    UpstreamFailure    - database or notification provider unavailable.

Handlers and the HTTP API translate these into user-visible messages or
status codes; nothing below them swallows an error silently.
"""


class BillingError(Exception):
    """Base class for all domain errors."""


class InvalidArgument(BillingError):
    pass


class InvalidTransition(BillingError):
    pass


class NotFound(BillingError):
    pass


class UpstreamFailure(BillingError):
    pass
