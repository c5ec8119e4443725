from abc import ABC


class BaseCustomException(Exception, ABC):
    """
    Base class for all custom exceptions.
    """

    def __init__(self, message: str | None = None):
        self.message = message or self.get_default_message()
        super().__init__(self.message)

    def get_default_message(self) -> str:
        """
        Return default error message.

        Returns
        -------
        str
            Default error message
        """
        return "error.unknown"

    def get_status_code(self) -> int:
        """
        Return HTTP status code for exception.

        Returns
        -------
        int
            HTTP status code
        """
        return 500


class BadRequestException(BaseCustomException):
    """Bad request exception (400)."""

    def get_status_code(self) -> int:
        return 400


class NotFoundException(BaseCustomException):
    """Not found exception (404)."""

    def get_status_code(self) -> int:
        return 404


class UpstreamException(BaseCustomException):
    """Upstream service failure (502)."""

    def get_status_code(self) -> int:
        return 502


class AccountNotFoundException(NotFoundException):
    """Account is not part of the wallet."""

    def get_default_message(self) -> str:
        return "error.account.not_found"


class InvalidTokenIdException(BadRequestException):
    """Token id is not of the form ``contract:token_id``."""

    def get_default_message(self) -> str:
        return "error.token.invalid_id"


class IndexerException(UpstreamException):
    """Indexer query failed."""

    def get_default_message(self) -> str:
        return "error.indexer.failed"


class MalformedResponseException(UpstreamException):
    """Indexer answered with something that is not an operation list."""

    def get_default_message(self) -> str:
        return "error.indexer.malformed_response"


class DomainResolutionException(UpstreamException):
    """Reverse domain lookup failed."""

    def get_default_message(self) -> str:
        return "error.domains.failed"
