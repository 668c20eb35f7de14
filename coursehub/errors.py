"""Domain errors raised by the service layer.

Each error carries a short machine-readable ``code`` plus a message meant for
the client. The HTTP layer maps the class to a status code, see
``coursehub.main``.
"""


class ServiceError(Exception):
    status_code = 500

    def __init__(self, code: str, message: str = None):
        self.code = code
        self.message = message or code
        super().__init__(self.message)


class BadRequest(ServiceError):
    status_code = 400


class Unauthorized(ServiceError):
    status_code = 401


class Forbidden(ServiceError):
    status_code = 403


class NotFound(ServiceError):
    status_code = 404


class Conflict(ServiceError):
    status_code = 409


class GatewayError(ServiceError):
    """Failure talking to the payment gateway or the object store."""
    status_code = 500
