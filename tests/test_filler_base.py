"""Tests for the form operations FormFiller builds on its primitives.

@file test_filler_base.py
@description Element-kind checks, event order, polling waits and the
             convenience readers. Runs against the in-memory FakeFiller.
"""

from __future__ import annotations

import pytest

from fakes import FakeElement, FakeFiller
from formpilot import config
from formpilot.errors import ElementNotFound, NotAFileInput, NotAnInput, NotASelect


class TestDefaults:
    def test_timeouts_fall_back_to_config(self):
        filler = FakeFiller(poll_interval_ms=None)
        assert filler.default_timeout_ms == config.DEFAULTS["wait_timeout_ms"]
        assert filler.poll_interval_ms == config.DEFAULTS["poll_interval_ms"]

    def test_explicit_timeouts(self):
        filler = FakeFiller(default_timeout_ms=250, poll_interval_ms=5)
        assert filler.default_timeout_ms == 250
        assert filler.poll_interval_ms == 5

    def test_explicit_zero_timeout_is_kept(self):
        filler = FakeFiller(default_timeout_ms=0, poll_interval_ms=0)
        assert filler.default_timeout_ms == 0
        assert filler.poll_interval_ms == 0

    def test_zero_default_timeout_fails_fast(self):
        filler = FakeFiller({}, default_timeout_ms=0)
        with pytest.raises(ElementNotFound) as excinfo:
            filler.wait_for_element("#late")
        assert excinfo.value.timeout_ms == 0
        assert filler.lookups == ["#late"]


# ---------------------------------------------------------------------------
# 1. fill_input
# ---------------------------------------------------------------------------


class TestFillInput:
    def test_clears_then_sets(self, fake_filler, fake_page):
        fake_page["#email"].value = "old@example.com"
        fake_filler.fill_input("#email", "new@example.com")
        assert fake_page["#email"].value == "new@example.com"
        assert fake_page["#email"].events == ["input", "input", "change"]

    def test_textarea_accepted(self, fake_filler, fake_page):
        fake_filler.fill_input("#cover", "Hello")
        assert fake_page["#cover"].value == "Hello"

    @pytest.mark.parametrize("selector", ["#country", "#submit", "#banner"])
    def test_rejects_non_text_elements(self, fake_filler, selector):
        with pytest.raises(NotAnInput) as exc_info:
            fake_filler.fill_input(selector, "x")
        assert exc_info.value.selector == selector

    def test_missing(self, fake_filler):
        with pytest.raises(ElementNotFound):
            fake_filler.fill_input("#nope", "x")


# ---------------------------------------------------------------------------
# 2. select / upload / check
# ---------------------------------------------------------------------------


class TestSelectUploadCheck:
    def test_select_option(self, fake_filler, fake_page):
        fake_filler.select_option("#country", "US")
        assert fake_page["#country"].value == "US"
        assert fake_page["#country"].events == ["change"]

    def test_select_rejects_input(self, fake_filler):
        with pytest.raises(NotASelect):
            fake_filler.select_option("#email", "US")

    def test_upload_file(self, fake_filler, fake_page):
        fake_filler.upload_file("#resume", "/tmp/cv.pdf")
        assert fake_page["#resume"].files == ["/tmp/cv.pdf"]
        assert fake_page["#resume"].events == ["change"]

    def test_upload_rejects_text_input(self, fake_filler):
        with pytest.raises(NotAFileInput):
            fake_filler.upload_file("#email", "/tmp/cv.pdf")

    def test_upload_missing(self, fake_filler):
        with pytest.raises(ElementNotFound):
            fake_filler.upload_file("#nope", "/tmp/cv.pdf")

    def test_set_checked(self, fake_filler, fake_page):
        fake_filler.set_checked(fake_page["#terms"], True)
        assert fake_page["#terms"].checked is True
        assert fake_page["#terms"].events == ["change"]


# ---------------------------------------------------------------------------
# 3. wait_for_element
# ---------------------------------------------------------------------------


class _AppearingFiller(FakeFiller):
    """Element shows up after a number of lookups."""

    def __init__(self, appear_after: int, **options) -> None:
        super().__init__({}, **options)
        self.appear_after = appear_after

    def find_element(self, selector):
        self.lookups.append(selector)
        if len(self.lookups) > self.appear_after:
            return FakeElement()
        return None


class TestWaitForElement:
    def test_returns_present_element_immediately(self, fake_filler, fake_page):
        assert fake_filler.wait_for_element("#email", 1000) is fake_page["#email"]
        assert fake_filler.lookups == ["#email"]

    def test_polls_until_found(self):
        filler = _AppearingFiller(appear_after=2, poll_interval_ms=1)
        assert filler.wait_for_element("#late", 2000) is not None
        assert len(filler.lookups) == 3

    def test_timeout_raises_with_timeout(self, fake_filler):
        with pytest.raises(ElementNotFound, match=r"after 20ms: #never") as exc_info:
            fake_filler.wait_for_element("#never", 20)
        assert exc_info.value.timeout_ms == 20
        assert len(fake_filler.lookups) >= 2

    def test_zero_timeout_checks_once(self, fake_filler):
        with pytest.raises(ElementNotFound):
            fake_filler.wait_for_element("#never", 0)
        assert fake_filler.lookups == ["#never"]

    def test_default_timeout_used(self):
        filler = FakeFiller(default_timeout_ms=10, poll_interval_ms=1)
        with pytest.raises(ElementNotFound) as exc_info:
            filler.wait_for_element("#never")
        assert exc_info.value.timeout_ms == 10


# ---------------------------------------------------------------------------
# 4. Readers
# ---------------------------------------------------------------------------


class TestReaders:
    def test_element_exists(self, fake_filler):
        assert fake_filler.element_exists("#email")
        assert not fake_filler.element_exists("#nope")

    def test_get_element_text(self, fake_filler):
        assert fake_filler.get_element_text("#submit") == "Submit"
        assert fake_filler.get_element_text("#email") is None
        assert fake_filler.get_element_text("#nope") is None

    def test_get_input_value(self, fake_filler, fake_page):
        fake_page["#email"].value = "a@b.com"
        assert fake_filler.get_input_value("#email") == "a@b.com"
        assert fake_filler.get_input_value("#submit") is None

    def test_is_element_visible(self, fake_filler):
        assert fake_filler.is_element_visible("#email")
        assert not fake_filler.is_element_visible("#banner")
        assert not fake_filler.is_element_visible("#nope")
