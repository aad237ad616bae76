from __future__ import annotations

from dataclasses import dataclass, field

from ..exceptions import InvalidVersion


def _scan_digits(text: str, start: int) -> int:
    pos = start
    while pos < len(text) and text[pos].isascii() and text[pos].isdigit():
        pos += 1
    return pos


def _scan_identifier(text: str, start: int) -> int:
    pos = start
    while pos < len(text) and text[pos].isascii() and text[pos].isalnum():
        pos += 1
    return pos


def _number(text: str, start: int, end: int) -> int:
    if start == end:
        raise InvalidVersion(f"Invalid version {text!r}.")
    return int(text[start:end])


@dataclass(order=True, slots=True)
class ParsedJavaVersion:
    """A Java runtime version in either the legacy or the modern scheme.

    Legacy strings look like ``1.8.0_372`` and modern ones like ``17.0.2``.
    Ordering only looks at ``(major, minor, security)``; the prerelease tag is
    kept for display but two versions that differ only by prerelease compare
    equal.
    """

    major: int
    minor: int = 0
    security: int = 0
    prerelease: str = field(default="", compare=False)

    @classmethod
    def parse(cls, text: str) -> ParsedJavaVersion:
        if text.startswith("1."):
            return cls._parse_from(text, 2, security_separator="_")
        return cls._parse_from(text, 0, security_separator=".")

    @classmethod
    def _parse_from(cls, text: str, pos: int, security_separator: str) -> ParsedJavaVersion:
        end = _scan_digits(text, pos)
        major = _number(text, pos, end)
        pos = end

        minor = 0
        if text.startswith(".", pos):
            end = _scan_digits(text, pos + 1)
            minor = _number(text, pos + 1, end)
            pos = end

        security = 0
        if text.startswith(security_separator, pos):
            end = _scan_digits(text, pos + 1)
            security = _number(text, pos + 1, end)
            pos = end

        prerelease = ""
        if text.startswith("-", pos):
            end = _scan_identifier(text, pos + 1)
            prerelease = text[pos + 1 : end]
            pos = end

        if pos != len(text):
            raise InvalidVersion(f"Invalid version {text!r}.")
        return cls(major=major, minor=minor, security=security, prerelease=prerelease)

    @property
    def is_legacy(self) -> bool:
        return self.major <= 8

    def __str__(self) -> str:
        text = f"1.{self.major}" if self.is_legacy else str(self.major)
        if self.minor or self.security or self.prerelease:
            text += f".{self.minor}"
            if self.security or self.prerelease:
                text += "_" if self.is_legacy else "."
                text += str(self.security)
                if self.prerelease:
                    text += f"-{self.prerelease}"
        return text
