class RosterEngineError(Exception):
    """Base class for errors raised by the roster engine."""
    status_code = 500

    def __init__(self, message, payload=None):
        super().__init__(message)
        self.message = message
        self.payload = payload or {}

    def to_dict(self):
        body = dict(self.payload)
        body['success'] = False
        body['message'] = self.message
        return body


class ScheduleValidationError(RosterEngineError):
    status_code = 400


class ScheduleNotFoundError(RosterEngineError):
    status_code = 404


class UpstreamUnavailableError(RosterEngineError):
    """The roster directory could not be reached or returned garbage."""
    status_code = 503
