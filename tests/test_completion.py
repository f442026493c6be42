from datetime import date

import pytest

from cx_core.completion import is_done, is_present, yes_no


class TestIsDone:
    @pytest.mark.parametrize("value", [date(2025, 1, 1), "2025-01-01", {"_seconds": 1700000000}, "Y", "y", " yes ", "YES"])
    def test_done_values(self, value):
        assert is_done(value)

    @pytest.mark.parametrize("value", [None, "", "N", "no", "pending vendor", 0, 1, True, False, float("nan")])
    def test_not_done_values(self, value):
        assert not is_done(value)


class TestIsPresent:
    def test_present(self):
        assert is_present("TBC")
        assert is_present(date(2025, 1, 1))

    @pytest.mark.parametrize("value", [None, "", "  ", float("nan"), {}, False])
    def test_absent(self, value):
        assert not is_present(value)


class TestYesNo:
    def test_normalises(self):
        assert yes_no(" y ") == "Y"
        assert yes_no("n") == "N"

    def test_unknown(self):
        assert yes_no("Yes") is None
        assert yes_no("maybe") is None
        assert yes_no(None) is None
