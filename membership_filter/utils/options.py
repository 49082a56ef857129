"""
Flat argument option handling.

Filters and clusterers are configured from a flat list of strings such as
``["-W", "em", "-I", "1-2", "--", "-N", "3"]``. Parsing helpers consume the
entries they recognise from the list so that leftovers can be reported.
"""

from dataclasses import dataclass
from typing import List, Optional, Protocol, runtime_checkable

from membership_filter.utils.error_handling import ConfigurationError


@dataclass(frozen=True)
class Option:
    """Description of a single option, used for help output."""

    description: str
    name: str
    num_arguments: int
    synopsis: str


@runtime_checkable
class OptionHandler(Protocol):
    """Anything that can be configured from a flat argument list."""

    def list_options(self) -> List[Option]:
        ...

    def set_options(self, options: List[str]) -> None:
        ...

    def get_options(self) -> List[str]:
        ...


def get_option(flag: str, options: List[str]) -> str:
    """
    Remove ``-flag value`` from the options and return the value.

    Only the part of the list before a ``--`` separator is searched.

    Returns:
        The value, or an empty string if the flag is absent

    Raises:
        ConfigurationError: If the flag is present without a value
    """
    target = f"-{flag}"
    for i, option in enumerate(options):
        if option == "--":
            break
        if option == target:
            if i + 1 >= len(options) or options[i + 1] == "--":
                raise ConfigurationError(
                    f"No value given for {target} option.",
                    details={"flag": flag},
                )
            value = options[i + 1]
            del options[i:i + 2]
            return value
    return ""


def get_flag(flag: str, options: List[str]) -> bool:
    """Remove ``-flag`` from the options and report whether it was present."""
    target = f"-{flag}"
    for i, option in enumerate(options):
        if option == "--":
            break
        if option == target:
            del options[i]
            return True
    return False


def partition_options(options: List[str]) -> List[str]:
    """
    Split off everything after the first ``--``.

    The separator and the returned options are removed from ``options``.
    """
    if "--" not in options:
        return []
    index = options.index("--")
    nested = options[index + 1:]
    del options[index:]
    return nested


def check_for_remaining_options(options: List[str]) -> None:
    """
    Raises:
        ConfigurationError: If any non-empty option was not consumed
    """
    remaining = [option for option in options if option]
    if remaining:
        raise ConfigurationError(
            f"Illegal options: {' '.join(remaining)}",
            details={"options": remaining},
        )


def describe_options(handler: OptionHandler, title: Optional[str] = None) -> str:
    """Format an option handler's options as help text."""
    lines = []
    if title:
        lines.append(title)
    for option in handler.list_options():
        lines.append(option.synopsis)
        lines.append(option.description)
    return "\n".join(lines)
