"""Tests for free-text parameter helpers."""

from datetime import UTC, date, datetime

import pytest

from hostops.commands import text_helpers as th

TODAY = date(2025, 7, 15)  # Tuesday


class TestParseDate:
    """Test date expression parsing."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("2025-08-01", date(2025, 8, 1)),
            ("2025-08-01T10:30:00Z", date(2025, 8, 1)),
            ("8/1/2025", date(2025, 8, 1)),
            ("today", TODAY),
            ("tomorrow", date(2025, 7, 16)),
            ("friday", date(2025, 7, 18)),
            ("next Friday", date(2025, 7, 18)),
            ("July 20", date(2025, 7, 20)),
            ("Aug 3rd, 2026", date(2026, 8, 3)),
            ("20th July 2025", date(2025, 7, 20)),
        ],
    )
    def test_recognised_expressions(self, value: str, expected: date) -> None:
        assert th.parse_date(value, today=TODAY) == expected

    def test_same_weekday_means_next_week(self) -> None:
        """Naming today's weekday refers to the following week."""
        assert th.parse_date("tuesday", today=TODAY) == date(2025, 7, 22)

    def test_month_day_rolls_forward_to_next_year(self) -> None:
        assert th.parse_date("Jan 5", today=TODAY) == date(2026, 1, 5)

    @pytest.mark.parametrize("value", ["", None, "someday", "2025-02-30", "13/45/2025", "job 42"])
    def test_unrecognised_returns_none(self, value) -> None:
        assert th.parse_date(value, today=TODAY) is None

    def test_normalize_leaves_garbage_unchanged(self) -> None:
        assert th.normalize_date("whenever", today=TODAY) == "whenever"
        assert th.normalize_date("tomorrow", today=TODAY) == "2025-07-16"


class TestDefaults:
    def test_default_check_in_is_tomorrow(self) -> None:
        assert th.default_check_in(TODAY) == "2025-07-16"

    def test_default_check_out_is_a_week_after_check_in(self) -> None:
        assert th.default_check_out("2025-08-01", today=TODAY) == "2025-08-08"
        assert th.default_check_out(None, today=TODAY) == "2025-07-23"


class TestExtractDates:
    """Test check-in, check-out and single date extraction."""

    def test_check_in_and_check_out(self) -> None:
        dates = th.extract_dates("check-in: 2025-08-01 check-out: 2025-08-05", today=TODAY)

        assert dates == {"check_in": "2025-08-01", "check_out": "2025-08-05"}

    def test_single_date(self) -> None:
        dates = th.extract_dates("schedule a cleaning on friday", today=TODAY)

        assert dates == {"single": "2025-07-18"}

    def test_job_reference_is_not_a_date(self) -> None:
        assert th.extract_dates("move staff to job 42", today=TODAY) == {}

    def test_find_date_anywhere(self) -> None:
        assert th.find_date("inspection 2025-09-09 please", today=TODAY) == "2025-09-09"
        assert th.find_date("no dates here", today=TODAY) is None


class TestFieldExtraction:
    """Test extraction of names, counts, times and keywords."""

    def test_property_after_at(self) -> None:
        text = "create job at Villa Sunset on 2025-08-01"
        assert th.extract_property_name(text) == "Villa Sunset"

    def test_quoted_property(self) -> None:
        assert th.extract_property_name('clean the "Ocean View" villa') == "Ocean View"

    def test_property_missing(self) -> None:
        assert th.extract_property_name("approve booking bk-1") is None

    def test_guest_name_stops_at_check_in(self) -> None:
        text = "booking for guest Ana Lopez check-in tomorrow"
        assert th.extract_guest_name(text) == "Ana Lopez"

    def test_email_and_guest_count(self) -> None:
        text = "reservation for ana@example.com with 4 guests"
        assert th.extract_email(text) == "ana@example.com"
        assert th.extract_guest_count(text) == 4
        assert th.extract_guest_count("no count") is None

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("meeting at 2pm", "14:00"),
            ("starts 9:30am", "09:30"),
            ("midnight is 12am", "00:00"),
            ("at 14:45 sharp", "14:45"),
            ("at 13pm", None),
            ("no time", None),
        ],
    )
    def test_extract_time(self, text: str, expected: str | None) -> None:
        assert th.extract_time(text) == expected

    def test_extract_duration(self) -> None:
        assert th.extract_duration("takes 2 hours") == 120
        assert th.extract_duration("about 45 min") == 45
        assert th.extract_duration("quick") is None

    def test_keywords(self) -> None:
        assert th.extract_priority("urgent maintenance needed") == "urgent"
        assert th.extract_job_type("urgent maintenance needed") == "maintenance"
        assert th.extract_event_type("team meeting") == "meeting"
        assert th.extract_notification_type("send a reminder") == "reminder"

    def test_notes(self) -> None:
        assert th.extract_notes("approve it. notes: bring extra towels") == "bring extra towels"

    def test_email_for_guest(self) -> None:
        assert th.email_for_guest("Ana Lopez") == "ana.lopez@example.com"
        assert th.email_for_guest("!!!") == "guest@example.com"


class TestTimeChecks:
    def test_is_past(self) -> None:
        assert th.is_past("2025-07-14", today=TODAY) is True
        assert th.is_past("2025-07-15", today=TODAY) is False
        assert th.is_past("not a date", today=TODAY) is False

    def test_parse_timestamp(self) -> None:
        assert th.parse_timestamp("2025-07-15T12:00:00Z") == datetime(2025, 7, 15, 12, tzinfo=UTC)
        assert th.parse_timestamp("yesterday") is None
        assert th.parse_timestamp(None) is None
