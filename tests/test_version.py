"""Tests for safesentinel.version: Safe version parsing and floor check."""
from __future__ import annotations

import pytest

from safesentinel import version as semver
from safesentinel.errors import UnsupportedVersion


class TestClean:
    def test_strips_l2(self):
        assert semver.clean("1.3.0+L2") == "1.3.0"
        assert semver.clean("1.4.1+L2") == "1.4.1"

    def test_other_suffixes(self):
        assert semver.clean("1.3.0+custom") == "1.3.0"

    def test_no_suffix(self):
        assert semver.clean("0.1.0") == "0.1.0"


class TestCompare:
    @pytest.mark.parametrize("a,b,expected", [
        ("1.3.0", "1.3.0", 0),
        ("1.3.0", "1.2.0", 1),
        ("2.0.0", "1.9.9", 1),
        ("1.3.0", "1.3.1", -1),
        ("0.9.0", "1.0.0", -1),
        ("1.3", "1.3.0", 0),
        ("1.3.0", "1.3", 0),
    ])
    def test_compare(self, a, b, expected):
        assert semver.compare(a, b) == expected

    def test_antisymmetric(self):
        assert semver.compare("1.2.0", "1.4.1") == -semver.compare("1.4.1", "1.2.0")

    def test_suffix_ignored(self):
        assert semver.compare("1.3.0+L2", "1.3.0") == 0

    def test_derived(self):
        assert semver.gte("1.3.0", "1.3.0")
        assert semver.lte("1.2.0", "1.3.0")
        assert semver.lt("0.9.0", "1.0.0")
        assert not semver.lt("1.0.0", "1.0.0")

    def test_non_numeric_component(self):
        with pytest.raises(UnsupportedVersion):
            semver.compare("1.x.0", "1.0.0")


class TestValidate:
    @pytest.mark.parametrize("v", ["0.1.0", "1.0.0", "1.2.0", "1.3.0", "1.4.1", "1.5.0", "1.3.0+L2"])
    def test_supported(self, v):
        semver.validate(v)

    def test_below_floor(self):
        with pytest.raises(UnsupportedVersion, match=r'Safe multisig version "0.0.9" is not supported!'):
            semver.validate("0.0.9")

    def test_empty(self):
        with pytest.raises(UnsupportedVersion, match="No Safe multisig contract found"):
            semver.validate("")

    def test_is_value_error(self):
        with pytest.raises(ValueError):
            semver.validate("0.0.0")
