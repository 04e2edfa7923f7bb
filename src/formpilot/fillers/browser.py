"""Form fillers backed by a Playwright (sync API) page.

Platform differences are expressed as resolver functions that turn a
selector string into an element handle, not as filler subclasses. The
platform map returned by ``build_fillers`` is what the interpreter consumes.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from playwright.sync_api import ElementHandle, Page

from formpilot.fillers.base import ElementKind, FormFiller

log = logging.getLogger(__name__)

Resolver = Callable[[Page, str], Optional[ElementHandle]]

_KIND_JS = "e => [e.tagName.toLowerCase(), (e.getAttribute('type') || '').toLowerCase()]"


def css_resolver(page: Page, selector: str) -> Optional[ElementHandle]:
    """Playwright's own selector engines (css, ``//`` xpath, ``text=``)."""
    return page.query_selector(selector)


def xpath_literal(text: str) -> str:
    """Quote ``text`` as an XPath 1.0 string literal (no escape sequences exist)."""
    if '"' not in text:
        return f'"{text}"'
    if "'" not in text:
        return f"'{text}'"
    parts = text.split('"')
    return "concat(" + ", '\"', ".join(f'"{p}"' for p in parts) + ")"


def text_resolver(page: Page, selector: str) -> Optional[ElementHandle]:
    """Resolve ``text=`` selectors by substring match on an element's own text.

    Greenhouse and Workday label their controls with text that Playwright's
    exact-ish ``text=`` engine often misses inside nested markup.
    """
    if selector.startswith("text="):
        literal = xpath_literal(selector[len("text="):])
        return page.query_selector(f"xpath=//*[contains(text(),{literal})]")
    return page.query_selector(selector)


class PlaywrightFormFiller(FormFiller):
    def __init__(
        self,
        page: Page,
        resolver: Resolver = css_resolver,
        default_timeout_ms: int | None = None,
        poll_interval_ms: int | None = None,
    ) -> None:
        super().__init__(default_timeout_ms, poll_interval_ms)
        self.page = page
        self.resolver = resolver

    def find_element(self, selector: str) -> Optional[ElementHandle]:
        return self.resolver(self.page, selector)

    def find_elements(self, selector: str) -> list[ElementHandle]:
        if self.resolver is css_resolver:
            return self.page.query_selector_all(selector)
        element = self.find_element(selector)
        return [element] if element is not None else []

    def element_kind(self, element: ElementHandle) -> ElementKind:
        tag, input_type = element.evaluate(_KIND_JS)
        if tag == "textarea":
            return "textarea"
        if tag == "select":
            return "select"
        if tag == "input":
            if input_type == "file":
                return "file"
            if input_type in ("checkbox", "radio"):
                return "checkbox"
            return "input"
        return "other"

    def set_value(self, element: ElementHandle, value: str) -> None:
        element.evaluate("(e, v) => { e.value = v; }", value)

    def get_value(self, element: ElementHandle) -> Optional[str]:
        return element.evaluate("e => (e.value === undefined ? null : e.value)")

    def get_text(self, element: ElementHandle) -> Optional[str]:
        return element.text_content()

    def dispatch_event(self, element: ElementHandle, event: str) -> None:
        element.dispatch_event(event)

    def attach_file(self, element: ElementHandle, file_path: str) -> None:
        element.set_input_files(file_path)

    def click_element(self, element: ElementHandle) -> None:
        element.click()

    def set_checked_state(self, element: ElementHandle, checked: bool) -> None:
        element.evaluate("(e, v) => { e.checked = v; }", checked)

    def is_displayed(self, element: ElementHandle) -> bool:
        return element.evaluate("e => getComputedStyle(e).display !== 'none'")

    def is_disabled(self, element: ElementHandle) -> bool:
        return element.is_disabled()

    def is_checked(self, element: ElementHandle) -> bool:
        return bool(element.evaluate("e => !!e.checked"))


# Platform name -> resolver. "default" must always be present.
PLATFORM_RESOLVERS: dict[str, Resolver] = {
    "default": css_resolver,
    "greenhouse": text_resolver,
    "myworkday": text_resolver,
}


def build_fillers(page: Page, **options) -> dict[str, FormFiller]:
    """One filler per known platform, all sharing ``page``."""
    return {
        platform: PlaywrightFormFiller(page, resolver=resolver, **options)
        for platform, resolver in PLATFORM_RESOLVERS.items()
    }
