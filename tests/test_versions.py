"""Tests for the protocol version registry."""

import pytest

from sentry_types.errors import UnsupportedVersion
from sentry_types.protocol.versions import (
    ProtocolVersion,
    TimestampFormat,
    get_policy,
    supported_versions,
)


class TestVersionRegistry:
    """Test cases for get_policy."""

    def test_supported_versions(self):
        """Test the registered versions in ascending order."""
        assert supported_versions() == [ProtocolVersion.V5, ProtocolVersion.V6, ProtocolVersion.V7]

    def test_latest(self):
        """Test that the latest alias points at protocol 7."""
        assert ProtocolVersion.LATEST is ProtocolVersion.V7
        assert get_policy(ProtocolVersion.LATEST).version is ProtocolVersion.V7

    @pytest.mark.parametrize("raw", [7, "7", " 7 ", ProtocolVersion.V7])
    def test_lookup_forms(self, raw):
        """Test looking a version up by number, string or member."""
        assert get_policy(raw).version is ProtocolVersion.V7

    @pytest.mark.parametrize("raw", [4, 8, 0, "latest", "", None, True, 7.0])
    def test_unsupported(self, raw):
        """Test rejecting versions outside of the registry."""
        with pytest.raises(UnsupportedVersion):
            get_policy(raw)

    def test_policy_passthrough(self):
        """Test that a policy is accepted as its own version."""
        policy = get_policy(6)
        assert get_policy(policy) is policy


class TestEncodingPolicy:
    """Test cases for the per-version encoding rules."""

    def test_v5_rules(self):
        """Test the legacy encoding rules."""
        policy = get_policy(5)

        assert policy.exception_key == "sentry.interfaces.Exception"
        assert policy.wrap([1]) == [1]
        assert policy.wire_frames(["outer", "inner"]) == ["inner", "outer"]
        assert policy.timestamp_format is TimestampFormat.RFC3339
        assert policy.timestamp_precision == 0
        assert policy.include_secret is True

    def test_v6_rules(self):
        """Test the intermediate encoding rules."""
        policy = get_policy(6)

        assert policy.exception_key == "exception"
        assert policy.wrap([1]) == {"values": [1]}
        assert policy.wire_frames(["outer", "inner"]) == ["outer", "inner"]
        assert policy.timestamp_format is TimestampFormat.RFC3339
        assert policy.timestamp_precision == 6

    def test_v7_rules(self):
        """Test the current encoding rules."""
        policy = get_policy(7)

        assert policy.exception_key == "exception"
        assert policy.wrap([]) == {"values": []}
        assert policy.timestamp_format is TimestampFormat.EPOCH
        assert policy.include_secret is False

    @pytest.mark.parametrize("version", [5, 6, 7])
    def test_frame_order_inverse(self, version):
        """Test that wire and canonical ordering undo each other."""
        policy = get_policy(version)
        frames = [1, 2, 3]
        assert policy.canonical_frames(policy.wire_frames(frames)) == frames

    def test_policies_are_frozen(self):
        """Test that registry entries cannot be altered."""
        policy = get_policy(7)
        with pytest.raises(AttributeError):
            policy.include_secret = True
