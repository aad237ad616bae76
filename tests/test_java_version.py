import pytest

from mcprovision.exceptions import InvalidVersion
from mcprovision.java import ParsedJavaVersion


@pytest.mark.parametrize(
    "text, expected",
    [
        ("1.8.0_372", (8, 0, 372)),
        ("1.8", (8, 0, 0)),
        ("17.0.2", (17, 0, 2)),
        ("21", (21, 0, 0)),
        ("11.0.20-ea", (11, 0, 20)),
    ],
)
def test_parse_legacy_and_modern_versions(text, expected):
    version = ParsedJavaVersion.parse(text)
    assert (version.major, version.minor, version.security) == expected
    assert str(version) == text


def test_parse_keeps_prerelease_tag():
    assert ParsedJavaVersion.parse("1.8.0_372-b07").prerelease == "b07"


@pytest.mark.parametrize("text", ["", "abc", "17.", "17.0.2+7", "1.8.0.372", "1._1"])
def test_parse_rejects_malformed_versions(text):
    with pytest.raises(InvalidVersion):
        ParsedJavaVersion.parse(text)


def test_invalid_version_is_a_value_error():
    with pytest.raises(ValueError):
        ParsedJavaVersion.parse("java")


def test_versions_order_by_major_minor_security():
    versions = ["17.0.10", "1.8.0_372", "17.0.2", "11.0.1"]
    ordered = sorted(ParsedJavaVersion.parse(text) for text in versions)
    assert [str(version) for version in ordered] == ["1.8.0_372", "11.0.1", "17.0.2", "17.0.10"]


def test_prerelease_does_not_affect_ordering():
    assert ParsedJavaVersion.parse("17.0.2-ea") == ParsedJavaVersion.parse("17.0.2")
    assert not ParsedJavaVersion.parse("17.0.2-ea") < ParsedJavaVersion.parse("17.0.2")
