import pytest

from pantry.crawler.extractor import convert_duration


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("PT1H30M", "1 hr 30 min"),
        ("PT45M", "45 min"),
        ("PT2H", "2 hr"),
        ("P1DT2H", "26 hr"),
        ("PT90M", "1 hr 30 min"),
        ("PT30S", "30 sec"),
        ("PT0S", "0 min"),
        ("pt15m", "15 min"),
    ],
)
def test_convert_iso_durations(value, expected):
    assert convert_duration(value) == expected


def test_non_iso_values_pass_through_stripped():
    assert convert_duration("  25 minutes ") == "25 minutes"
    assert convert_duration("P") == "P"


def test_empty_values_become_empty_string():
    assert convert_duration("") == ""
    assert convert_duration(None) == ""
