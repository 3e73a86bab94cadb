"""
Error taxonomy shared by the JSON API and the server-rendered pages.

Each class is a Werkzeug HTTP exception, so raising one anywhere inside a
request produces the right status code; the API blueprint renders them as
``{"error": ..., "details": ...}``.
"""

from werkzeug.exceptions import BadRequest, Conflict, NotFound, Unauthorized


class PayloadInvalid(BadRequest):
    description = "Invalid payload"

    def __init__(self, details=None, description=None):
        super().__init__(description)
        self.details = details


class NotSignedIn(Unauthorized):
    description = "Unauthorized"


class AdminRequired(Unauthorized):
    description = "Unauthorized"


class RecordNotFound(NotFound):
    description = "Not found"


class OrderConflict(Conflict):
    """Checkout touched items that cannot be ordered right now."""

    def __init__(self, names):
        super().__init__(f"Some items are sold out: {', '.join(names)}")
        self.names = list(names)


class StillReferenced(Conflict):
    """Storage refused a delete because other rows still point at the record."""
