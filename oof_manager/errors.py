from __future__ import annotations


class OOFError(Exception):
    """Base class for every fatal error the tool reports to the operator."""


# --- Input list ---
class InputNotFound(OOFError):
    pass


class InputEmpty(OOFError):
    pass


class InputSchemaInvalid(OOFError):
    pass


# --- Config and answers files ---
class ConfigError(OOFError):
    pass


# --- Session ---
class SessionConnectionError(OOFError):
    pass


# --- Configuration collection ---
class InvalidState(OOFError):
    pass


class DateParseError(OOFError):
    pass


class InvalidSchedule(OOFError):
    pass


class MissingAnswer(OOFError):
    pass


class RunCancelled(OOFError):
    """Operator declined a confirmation before any mailbox was touched."""


# --- Remote calls (recovered per identity) ---
class RemoteError(OOFError):
    def __init__(self, message: str, status_code: int | None = None, code: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.code = code


# --- Report ---
class OutputWriteError(OOFError):
    def __init__(self, message: str, success_count: int = 0, failure_count: int = 0):
        super().__init__(message)
        self.success_count = success_count
        self.failure_count = failure_count

    def __str__(self):
        base = super().__str__()
        return f"{base} (processed: {self.success_count} succeeded, {self.failure_count} failed)"
