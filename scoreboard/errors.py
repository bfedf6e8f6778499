"""Error taxonomy shared by the services and the HTTP layer."""


class ScoreboardError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInput(ScoreboardError):
    status_code = 400


class Unauthorized(ScoreboardError):
    status_code = 401


class Conflict(ScoreboardError):
    status_code = 409


class StorageFailure(ScoreboardError):
    status_code = 500


class MirrorFailure(ScoreboardError):
    """Raised by mirror backends. Callers log it and carry on."""

    status_code = 503
