class RecordError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class BadRequest(RecordError):
    status_code = 400


class Unauthorized(RecordError):
    status_code = 401


class Forbidden(RecordError):
    status_code = 403


class NotFound(RecordError):
    status_code = 404
