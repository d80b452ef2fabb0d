"""
Type-safe wrapper classes for group-chat identifiers.

OneBot reports group numbers, account numbers and message ids as integers,
while configuration files and CQ markup carry them as strings. These wrappers
store the canonical string form and compare equal to either representation, so
the rest of the moderation code never has to care which one it was handed.
"""

from __future__ import annotations

import re
from typing import Union

GROUP_ID_PATTERN = re.compile(r"^\d{5,12}$")


class ChatID:
    """
    Base class for numeric chat identifiers.

    Attributes:
        _value (str): The identifier stored as a canonical decimal string.

    Example:
        >>> uid = UserID(10001)
        >>> str(uid)
        '10001'
        >>> uid == "10001"
        True
    """

    __slots__ = ("_value",)

    def __init__(self, value: Union[str, int, "ChatID"]) -> None:
        """
        Initialize the identifier from a string, int, or another identifier.

        Raises:
            ValueError: If the value is not an integer or integer string.
        """
        if isinstance(value, ChatID):
            self._value = value._value
        elif isinstance(value, bool):
            raise ValueError(f"Cannot create {type(self).__name__} from bool: {value}")
        elif isinstance(value, int):
            self._value = str(value)
        elif isinstance(value, str):
            self._value = str(int(value.strip()))
        else:
            raise ValueError(f"Cannot create {type(self).__name__} from {type(value).__name__}: {value}")

    @classmethod
    def from_int(cls, value: int):
        return cls(value)

    def to_int(self) -> int:
        """Convert to an integer for OneBot API calls."""
        return int(self._value)

    def __int__(self) -> int:
        return int(self._value)

    def __str__(self) -> str:
        return self._value

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._value!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ChatID):
            return type(self) is type(other) and self._value == other._value
        if isinstance(other, str):
            return self._value == other
        if isinstance(other, int) and not isinstance(other, bool):
            return self._value == str(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._value)


class GroupID(ChatID):
    """Group number. Configured groups must be 5 to 12 digits long."""

    __slots__ = ()

    def is_configurable(self) -> bool:
        """Return True if the id satisfies the ``^\\d{5,12}$`` config constraint."""
        return bool(GROUP_ID_PATTERN.match(self._value))


class UserID(ChatID):
    """Account number of a group member (the bot's own account included)."""

    __slots__ = ()


class MessageID(ChatID):
    """Message id as assigned by the OneBot implementation (may be negative)."""

    __slots__ = ()
