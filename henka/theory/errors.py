from __future__ import annotations

"""Errors raised by the theory layer.

All of them signal a malformed template or a caller bug; nothing in the
package catches them.
"""


class TheoryError(ValueError):
    """Base class for closed-vocabulary lookup failures."""


class UnknownChordType(TheoryError):
    def __init__(self, chord_type: str) -> None:
        super().__init__(f"Unknown chord type: {chord_type}")
        self.chord_type = chord_type


class UnknownKey(TheoryError):
    def __init__(self, key: str) -> None:
        super().__init__(f"Unknown key: {key}")
        self.key = key


class UnknownRomanNumeral(TheoryError):
    def __init__(self, token: str, reason: str = "") -> None:
        msg = f"Unknown Roman numeral: {token}"
        if reason:
            msg = f"{msg} ({reason})"
        super().__init__(msg)
        self.token = token


class UnknownDifficulty(TheoryError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown difficulty: {name}")
        self.name = name
