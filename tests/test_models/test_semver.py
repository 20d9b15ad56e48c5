"""Unit tests for buildkeeper.models.semver module.

Test Coverage:
- Strict parsing of MAJOR.MINOR.PATCH[-LABEL][+META]
- Extraction of versions embedded in tag names
- Mapping (configuration table) round trip
- Metadata-insensitive equality
- Label and metadata derivation helpers
"""

from __future__ import annotations

import pytest

from buildkeeper.exceptions import MalformedVersion
from buildkeeper.models.semver import SemVer, equals, parse, serialize


@pytest.mark.unit
class TestSemVerParse:
    """Tests for SemVer.parse."""

    def test_plain_version(self) -> None:
        """Test a bare MAJOR.MINOR.PATCH string."""
        version = SemVer.parse("1.2.3")

        assert (version.major, version.minor, version.patch) == (1, 2, 3)
        assert version.label is None
        assert version.metadata is None

    def test_label_and_metadata(self) -> None:
        """Test label and metadata are split on the first '-' and '+'."""
        version = SemVer.parse("21.3.0-internal.20210101120000+Bfeaturex.C1a2b3c4d")

        assert version.label == "internal.20210101120000"
        assert version.metadata == "Bfeaturex.C1a2b3c4d"

    def test_metadata_without_label(self) -> None:
        version = SemVer.parse("1.0.0+build.5")

        assert version.label is None
        assert version.metadata == "build.5"

    def test_hyphen_inside_label(self) -> None:
        """Test only the first '-' separates the label."""
        version = SemVer.parse("1.0.0-rc-1")

        assert version.label == "rc-1"

    def test_leading_zeros_are_normalized(self) -> None:
        """Test numeric components lose leading zeros on serialization."""
        version = SemVer.parse("08.01.002")

        assert (version.major, version.minor, version.patch) == (8, 1, 2)
        assert version.serialize() == "8.1.2"

    def test_surrounding_whitespace_ignored(self) -> None:
        assert SemVer.parse("  1.2.3\n") == SemVer(1, 2, 3)

    @pytest.mark.parametrize(
        "text",
        ["", "1.2", "1.2.x", "v1.2.3", "1.2.3.4", "abc", "1.2.3-"],
        ids=["empty", "two-parts", "non-numeric", "prefix", "four-parts", "text", "empty-label"],
    )
    def test_malformed_rejected(self, text: str) -> None:
        """Test strings that are not exactly a SemVer raise MalformedVersion."""
        with pytest.raises(MalformedVersion):
            SemVer.parse(text)

    def test_malformed_keeps_text(self) -> None:
        with pytest.raises(MalformedVersion) as exc_info:
            SemVer.parse("not-a-version")

        assert exc_info.value.details["text"] == "not-a-version"

    def test_module_level_parse(self) -> None:
        assert parse("1.2.3") == SemVer.parse("1.2.3")


@pytest.mark.unit
class TestSemVerSearch:
    """Tests for SemVer.search used on git tag names."""

    @pytest.mark.parametrize(
        "tag,expected",
        [
            ("v2.1.0", "2.1.0"),
            ("release_21.3.0", "21.3.0"),
            ("21.3.0-1-g1a2b3c4", "21.3.0-1-g1a2b3c4"),
        ],
    )
    def test_embedded_version(self, tag: str, expected: str) -> None:
        assert str(SemVer.search(tag)) == expected

    def test_no_version(self) -> None:
        assert SemVer.search("latest") is None

    def test_empty(self) -> None:
        assert SemVer.search("") is None


@pytest.mark.unit
class TestSemVerMapping:
    """Tests for from_dict / to_dict."""

    def test_from_dict_with_rev(self) -> None:
        version = SemVer.from_dict({"major": 21, "minor": 3, "rev": 1})

        assert version == SemVer(21, 3, 1)

    def test_from_dict_accepts_patch_and_strings(self) -> None:
        version = SemVer.from_dict({"major": "1", "minor": "2", "patch": "3"})

        assert version == SemVer(1, 2, 3)

    def test_from_dict_label_and_meta(self) -> None:
        version = SemVer.from_dict(
            {"major": 1, "minor": 0, "rev": 0, "label": "rc1", "meta": "B1"}
        )

        assert str(version) == "1.0.0-rc1+B1"

    def test_from_dict_empty_label_is_none(self) -> None:
        version = SemVer.from_dict({"major": 1, "minor": 0, "rev": 0, "label": ""})

        assert version.label is None

    def test_from_dict_missing_key(self) -> None:
        with pytest.raises(MalformedVersion):
            SemVer.from_dict({"major": 1, "minor": 0})

    def test_from_dict_non_numeric(self) -> None:
        with pytest.raises(MalformedVersion):
            SemVer.from_dict({"major": "x", "minor": 0, "rev": 0})

    def test_to_dict_round_trip(self) -> None:
        original = SemVer.parse("3.4.5-xdaily.20240101000000+C1a2b3c4d")

        assert SemVer.from_dict(original.to_dict()) == original


@pytest.mark.unit
class TestSemVerValidation:
    """Tests for __post_init__ validation."""

    def test_negative_component(self) -> None:
        with pytest.raises(MalformedVersion):
            SemVer(1, -1, 0)

    def test_non_integer_component(self) -> None:
        with pytest.raises(MalformedVersion):
            SemVer(1, "2", 0)  # type: ignore[arg-type]


@pytest.mark.unit
class TestSemVerEquality:
    """Tests for metadata-insensitive equality."""

    def test_metadata_ignored(self) -> None:
        assert SemVer.parse("1.2.3+X").equals(SemVer.parse("1.2.3+Y"))

    def test_label_significant(self) -> None:
        assert not SemVer.parse("1.2.3-rc1").equals(SemVer.parse("1.2.3"))

    def test_patch_significant(self) -> None:
        assert not equals(SemVer(1, 2, 3), SemVer(1, 2, 4))

    def test_dataclass_equality_includes_metadata(self) -> None:
        """Test == stays structural, unlike equals()."""
        assert SemVer.parse("1.2.3+X") != SemVer.parse("1.2.3+Y")


@pytest.mark.unit
class TestSemVerDerivation:
    """Tests for with_label / with_metadata / append_metadata."""

    def test_with_label_replaces(self) -> None:
        version = SemVer.parse("1.2.3-rc1").with_label("xdaily.20240101000000")

        assert version.label == "xdaily.20240101000000"

    def test_with_label_empty_clears(self) -> None:
        assert SemVer.parse("1.2.3-rc1").with_label("").label is None

    def test_with_metadata(self) -> None:
        assert str(SemVer(1, 2, 3).with_metadata("B1")) == "1.2.3+B1"

    def test_append_metadata_to_existing(self) -> None:
        version = SemVer.parse("1.2.3+vendor").append_metadata("C1a2b3c4d")

        assert version.metadata == "vendor.C1a2b3c4d"

    def test_append_metadata_to_empty(self) -> None:
        assert SemVer(1, 2, 3).append_metadata("C1").metadata == "C1"

    def test_append_empty_token_is_noop(self) -> None:
        version = SemVer.parse("1.2.3+X")

        assert version.append_metadata("") is version

    def test_serialize_matches_str(self) -> None:
        version = SemVer.parse("1.2.3-a+b")

        assert serialize(version) == str(version) == "1.2.3-a+b"
