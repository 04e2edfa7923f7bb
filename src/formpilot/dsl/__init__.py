"""Form-command DSL: selector registry, parser and interpreter."""

from formpilot.dsl.commands import Check, Click, Command, Fill, Select, Upload, Verify, Wait
from formpilot.dsl.interpreter import CommandInterpreter
from formpilot.dsl.parser import CommandParser
from formpilot.dsl.registry import SelectorRegistry

__all__ = [
    "Check",
    "Click",
    "Command",
    "CommandInterpreter",
    "CommandParser",
    "Fill",
    "Select",
    "SelectorRegistry",
    "Upload",
    "Verify",
    "Wait",
]
