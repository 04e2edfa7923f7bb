"""Exception taxonomy for FormPilot.

Three families mirror the three stages a command goes through: parsing the
DSL, executing against a page, and orchestrating runs over a domain's test
URLs. Store failures have their own branch.
"""

from __future__ import annotations


class FormPilotError(Exception):
    """Base class for every error raised by FormPilot."""

    pass


# ---------------------------------------------------------------------------
# Parse errors
# ---------------------------------------------------------------------------


class ParseError(FormPilotError):
    """Raised when a DSL command cannot be compiled."""

    def __init__(self, message: str, command: str | None = None) -> None:
        self.command = command
        super().__init__(message)


class InvalidFormat(ParseError):
    def __init__(self, command: str, detail: str = "Expected: action:selector@platform") -> None:
        self.detail = detail
        super().__init__(f"Invalid command format '{command}'. {detail}", command)


class UnknownSelector(ParseError):
    def __init__(self, key: str, command: str | None = None) -> None:
        self.key = key
        super().__init__(f"Unknown selector key: {key}", command)


class PlatformMismatch(ParseError):
    def __init__(self, key: str, expected: str, actual: str, command: str | None = None) -> None:
        self.key = key
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Platform mismatch for selector {key}: registered for '{expected}', command uses '{actual}'",
            command,
        )


class MissingValue(ParseError):
    def __init__(self, action: str, command: str | None = None) -> None:
        self.action = action
        super().__init__(f"{action.capitalize()} command requires a value", command)


class InvalidBoolean(ParseError):
    def __init__(self, value: str, command: str | None = None) -> None:
        self.value = value
        super().__init__(f"Invalid boolean value: {value}", command)


class UnknownActionType(ParseError):
    def __init__(self, action: str, command: str | None = None) -> None:
        self.action = action
        super().__init__(f"Unknown command type: {action}", command)


# ---------------------------------------------------------------------------
# Execution errors
# ---------------------------------------------------------------------------


class ExecutionError(FormPilotError):
    """Raised when a compiled command fails against the page."""

    pass


class NoFillerRegistered(ExecutionError):
    def __init__(self, platform: str) -> None:
        self.platform = platform
        super().__init__(f"No form filler registered for platform: {platform}")


class ElementNotFound(ExecutionError):
    def __init__(self, selector: str, timeout_ms: int | None = None) -> None:
        self.selector = selector
        self.timeout_ms = timeout_ms
        if timeout_ms is None:
            super().__init__(f"Element not found: {selector}")
        else:
            super().__init__(f"Element not found after {timeout_ms}ms: {selector}")


class VerificationFailed(ExecutionError):
    def __init__(self, selector: str, state: str, message: str | None = None) -> None:
        self.selector = selector
        self.state = state
        super().__init__(message or f"Verification '{state}' failed: {selector}")


class NotAnInput(ExecutionError):
    def __init__(self, selector: str) -> None:
        self.selector = selector
        super().__init__(f"Element is not an input: {selector}")


class NotASelect(ExecutionError):
    def __init__(self, selector: str) -> None:
        self.selector = selector
        super().__init__(f"Element is not a select: {selector}")


class NotAFileInput(ExecutionError):
    def __init__(self, selector: str) -> None:
        self.selector = selector
        super().__init__(f"Element is not a file input: {selector}")


# ---------------------------------------------------------------------------
# Orchestration errors
# ---------------------------------------------------------------------------


class OrchestrationError(FormPilotError):
    """Raised when a test run cannot be set up for a domain."""

    pass


class DomainNotFound(OrchestrationError):
    def __init__(self, domain: str) -> None:
        self.domain = domain
        super().__init__(f"No configuration found for domain: {domain}")


class NoTestUrls(OrchestrationError):
    def __init__(self, domain: str) -> None:
        self.domain = domain
        super().__init__(f"No test URLs defined in schema for domain {domain}")


class UrlNotInSchema(OrchestrationError):
    def __init__(self, url: str) -> None:
        self.url = url
        super().__init__(f"URL {url} not found in schema test URLs")


# ---------------------------------------------------------------------------
# Store errors
# ---------------------------------------------------------------------------


class StoreError(FormPilotError):
    """Raised when the document store cannot complete a read or write."""

    pass


class SelectorNotFound(StoreError):
    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"Selector not found: {key}")


class TemplateNotFound(StoreError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Template not found: {name}")
