"""
Unit tests for flat option handling.

Tests the option helpers including:
- Consuming flags and values
- Splitting nested options at --
- Reporting leftover options
- Rendering and describing options
"""

import pytest

from membership_filter.filters.remove import RemoveAttributes
from membership_filter.utils.error_handling import ConfigurationError
from membership_filter.utils.options import (
    OptionHandler,
    check_for_remaining_options,
    describe_options,
    get_flag,
    get_option,
    partition_options,
)


@pytest.mark.unit
class TestOptionHelpers:
    """Test suite for option parsing helpers."""

    def test_get_option_consumes(self):
        """Test the flag and its value are removed from the list."""
        options = ["-W", "em", "-I", "1"]

        assert get_option("I", options) == "1"
        assert options == ["-W", "em"]

    def test_get_option_absent(self):
        """Test an absent flag yields an empty string."""
        options = ["-W", "em"]

        assert get_option("I", options) == ""
        assert options == ["-W", "em"]

    def test_get_option_missing_value(self):
        """Test a flag without a value is an error."""
        with pytest.raises(ConfigurationError):
            get_option("W", ["-W"])
        with pytest.raises(ConfigurationError):
            get_option("W", ["-W", "--", "-N", "2"])

    def test_get_option_stops_at_separator(self):
        """Test nested options after -- are not consumed."""
        options = ["-W", "em", "--", "-I", "50"]

        assert get_option("I", options) == ""
        assert options == ["-W", "em", "--", "-I", "50"]

    def test_get_flag(self):
        """Test boolean flags are consumed."""
        options = ["-V", "-R", "1"]

        assert get_flag("V", options) is True
        assert get_flag("V", options) is False
        assert options == ["-R", "1"]

    def test_partition_options(self):
        """Test everything after -- is split off."""
        options = ["-W", "em", "--", "-N", "3"]

        assert partition_options(options) == ["-N", "3"]
        assert options == ["-W", "em"]

    def test_partition_without_separator(self):
        """Test no separator yields no nested options."""
        options = ["-W", "em"]

        assert partition_options(options) == []
        assert options == ["-W", "em"]

    def test_check_for_remaining_options(self):
        """Test leftovers raise and empty strings are ignored."""
        check_for_remaining_options(["", ""])

        with pytest.raises(ConfigurationError, match="-X"):
            check_for_remaining_options(["-X", "1"])

    def test_describe_options(self):
        """Test help text lists synopsis and description."""
        text = describe_options(RemoveAttributes(), title="Options:")

        assert text.startswith("Options:")
        assert "-R <index1,index2-index4,...>" in text
        assert "-V" in text

    def test_option_handler_protocol(self):
        """Test filters satisfy the option handler protocol."""
        assert isinstance(RemoveAttributes(), OptionHandler)
