from typing import Optional


class ChatVaultError(Exception):
    """Base for every error that is turned into an HTTP response.

    ``code`` is the error kind used to look up the user-facing message, and
    ``context`` optionally narrows that lookup to one operation.
    """

    code = "error"
    status_code = 500

    def __init__(self, detail: str = "", context: Optional[str] = None):
        super().__init__(detail or self.code)
        self.detail = detail
        self.context = context


class ValidationError(ChatVaultError):
    code = "validation"
    status_code = 400


class DuplicateEmail(ChatVaultError):
    code = "duplicate_email"
    status_code = 400


class DuplicateUsername(ChatVaultError):
    code = "duplicate_username"
    status_code = 400


class InvalidCredentials(ChatVaultError):
    code = "invalid_credentials"
    status_code = 400


class Unauthenticated(ChatVaultError):
    code = "unauthenticated"
    status_code = 401


class NotFound(ChatVaultError):
    code = "not_found"
    status_code = 404


class StoreFailure(ChatVaultError):
    code = "store_failure"
    status_code = 500
