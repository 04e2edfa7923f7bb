"""Form filler capability consumed by the command interpreter.

A FormFiller wraps one page for one platform. Subclasses supply the element
primitives (lookup, value/state access, events); the form-level operations
the interpreter calls are implemented once here on top of them, so every
platform keeps the same failure kinds and event semantics.

Element handles are opaque to this module: whatever ``find_element`` returns
is passed back into the primitives unchanged.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Literal, Optional

from formpilot import config
from formpilot.errors import ElementNotFound, NotAFileInput, NotAnInput, NotASelect

log = logging.getLogger(__name__)

ElementKind = Literal["input", "textarea", "select", "file", "checkbox", "other"]


class FormFiller(ABC):
    """Abstract DOM capability for one platform."""

    def __init__(
        self,
        default_timeout_ms: int | None = None,
        poll_interval_ms: int | None = None,
    ) -> None:
        if default_timeout_ms is None:
            default_timeout_ms = config.DEFAULTS["wait_timeout_ms"]
        if poll_interval_ms is None:
            poll_interval_ms = config.DEFAULTS["poll_interval_ms"]
        self.default_timeout_ms = default_timeout_ms
        self.poll_interval_ms = poll_interval_ms

    # ------------------------------------------------------------------
    # Element primitives
    # ------------------------------------------------------------------

    @abstractmethod
    def find_element(self, selector: str) -> Optional[Any]:
        """Return the first element matching ``selector``, or None."""
        ...

    @abstractmethod
    def find_elements(self, selector: str) -> list[Any]:
        ...

    @abstractmethod
    def element_kind(self, element: Any) -> ElementKind:
        """Classify an element by what it can hold."""
        ...

    @abstractmethod
    def set_value(self, element: Any, value: str) -> None:
        ...

    @abstractmethod
    def get_value(self, element: Any) -> Optional[str]:
        ...

    @abstractmethod
    def get_text(self, element: Any) -> Optional[str]:
        ...

    @abstractmethod
    def dispatch_event(self, element: Any, event: str) -> None:
        """Fire a bubbling DOM event (``input``, ``change``) on the element."""
        ...

    @abstractmethod
    def attach_file(self, element: Any, file_path: str) -> None:
        ...

    @abstractmethod
    def click_element(self, element: Any) -> None:
        ...

    @abstractmethod
    def set_checked_state(self, element: Any, checked: bool) -> None:
        ...

    @abstractmethod
    def is_displayed(self, element: Any) -> bool:
        """True unless the computed ``display`` is ``none``."""
        ...

    @abstractmethod
    def is_disabled(self, element: Any) -> bool:
        ...

    @abstractmethod
    def is_checked(self, element: Any) -> bool:
        ...

    # ------------------------------------------------------------------
    # Form operations
    # ------------------------------------------------------------------

    def fill_input(self, selector: str, value: str) -> None:
        """Clear then set a text field, firing input/change like a user would."""
        element = self.find_element(selector)
        if element is None:
            raise ElementNotFound(selector)
        if self.element_kind(element) not in ("input", "textarea"):
            raise NotAnInput(selector)

        self.set_value(element, "")
        self.dispatch_event(element, "input")
        self.set_value(element, value)
        self.dispatch_event(element, "input")
        self.dispatch_event(element, "change")

    def select_option(self, selector: str, value: str) -> None:
        element = self.find_element(selector)
        if element is None:
            raise ElementNotFound(selector)
        if self.element_kind(element) != "select":
            raise NotASelect(selector)

        self.set_value(element, value)
        self.dispatch_event(element, "change")

    def upload_file(self, selector: str, file_path: str) -> None:
        element = self.find_element(selector)
        if element is None:
            raise ElementNotFound(selector)
        if self.element_kind(element) != "file":
            raise NotAFileInput(selector)

        self.attach_file(element, file_path)
        self.dispatch_event(element, "change")

    def set_checked(self, element: Any, checked: bool) -> None:
        self.set_checked_state(element, checked)
        self.dispatch_event(element, "change")

    def wait_for_element(self, selector: str, timeout_ms: int | None = None) -> Any:
        """Poll for ``selector`` until it appears or ``timeout_ms`` elapses."""
        timeout_ms = self.default_timeout_ms if timeout_ms is None else timeout_ms
        deadline = time.monotonic() + timeout_ms / 1000
        interval = self.poll_interval_ms / 1000

        while True:
            element = self.find_element(selector)
            if element is not None:
                return element
            if time.monotonic() >= deadline:
                break
            time.sleep(interval)

        log.debug("Gave up waiting for %s after %dms", selector, timeout_ms)
        raise ElementNotFound(selector, timeout_ms)

    def element_exists(self, selector: str) -> bool:
        return self.find_element(selector) is not None

    def get_element_text(self, selector: str) -> Optional[str]:
        element = self.find_element(selector)
        return self.get_text(element) or None if element is not None else None

    def get_input_value(self, selector: str) -> Optional[str]:
        element = self.find_element(selector)
        if element is None or self.element_kind(element) not in ("input", "textarea"):
            return None
        return self.get_value(element)

    def is_element_visible(self, selector: str) -> bool:
        element = self.find_element(selector)
        return element is not None and self.is_displayed(element)
