"""Unit tests for domain enums."""

import pytest

from keystone_di.domain.enums import ContainerKind


class TestContainerKindEnum:
    """Test cases for the ContainerKind enum."""

    def test_values(self):
        """Test that members have the expected string values."""
        assert ContainerKind.DIRECT.value == "direct"
        assert ContainerKind.DEFERRED.value == "deferred"
        assert ContainerKind.UNSUPPORTED.value == "unsupported"

    def test_from_value(self):
        """Test that members can be created from their string values."""
        assert ContainerKind("deferred") == ContainerKind.DEFERRED

    def test_invalid_value_raises_error(self):
        """Test that an unknown value raises ValueError."""
        with pytest.raises(ValueError, match="'lazy' is not a valid ContainerKind"):
            ContainerKind("lazy")

    def test_is_string_enum(self):
        """Test that members compare equal to their string values."""
        assert isinstance(ContainerKind.DIRECT, str)
        assert ContainerKind.DIRECT == "direct"

    def test_string_representation(self):
        """Test that str() returns the value."""
        assert str(ContainerKind.UNSUPPORTED) == "unsupported"

    def test_members(self):
        """Test the full member list."""
        assert [kind.name for kind in ContainerKind] == ["DIRECT", "DEFERRED", "UNSUPPORTED"]
