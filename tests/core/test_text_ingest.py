"""Unit tests for report text ingestion - pure functions, no mocks needed."""

import pytest

from readlog.core.errors import RecordParseError
from readlog.core.models import LogType
from readlog.core.text_ingest import (
    clean_lines,
    is_boilerplate,
    normalize_log_type,
    parse_integer_value,
    parse_lines,
    parse_long_date,
    parse_text,
)


class TestParseLongDate:
    """Tests for parse_long_date."""

    def test_valid(self):
        assert parse_long_date("March 5, 2024") == "2024-03-05"
        assert parse_long_date("december 31, 2023") == "2023-12-31"

    def test_unknown_month(self):
        with pytest.raises(RecordParseError, match="Unknown month"):
            parse_long_date("Smarch 5, 2024")

    def test_impossible_day(self):
        with pytest.raises(RecordParseError):
            parse_long_date("February 30, 2024")

    def test_malformed(self):
        with pytest.raises(RecordParseError):
            parse_long_date("2024-03-05")


class TestSmallHelpers:
    """Tests for value, type and boilerplate helpers."""

    def test_integer_value_strips_separators(self):
        assert parse_integer_value("1,234") == 1234

    def test_integer_value_requires_digits(self):
        with pytest.raises(RecordParseError):
            parse_integer_value("--")

    def test_normalize_log_type(self):
        assert normalize_log_type(" Minutes ") is LogType.MINUTES
        assert normalize_log_type("page") is LogType.PAGES
        assert normalize_log_type("chapters") is None
        assert normalize_log_type("") is None

    @pytest.mark.parametrize(
        "line",
        [
            "The Log",
            "Log Value",
            "Summary - Luke Reader",
            "Books Completed: 12",
            "Your Beanstack site is in Sandbox mode",
            "-- 2 of 7 --",
            "Page 3",
        ],
    )
    def test_boilerplate(self, line):
        assert is_boilerplate(line)

    def test_content_is_not_boilerplate(self):
        assert not is_boilerplate("Charlotte's Web")

    def test_clean_lines(self):
        text = "The Log\r\n\x0c  Dune  \n\n-- 1 of 2 --\nFrank Herbert\n"
        assert clean_lines(text) == ["Dune", "Frank Herbert"]


class TestParseLines:
    """Tests for parse_lines record reconstruction."""

    def test_title_author_date_lines(self):
        """Title, author and a date-only line form one record."""
        result = parse_lines(["Some Title", "Some Author", "March 5, 2024 Pages 42"])

        assert result.issues == []
        assert len(result.records) == 1
        record = result.records[0]
        assert record.book_title == "Some Title"
        assert record.book_author == "Some Author"
        assert record.log_date_string == "2024-03-05"
        assert record.log_type is LogType.PAGES
        assert record.value == 42
        assert record.source_row == 3

    def test_wrapped_title(self):
        """Title lines before the author line are joined."""
        result = parse_lines([
            "The Hitchhiker's Guide",
            "to the Galaxy",
            "Douglas Adams",
            "April 1, 2024 Minutes 25",
        ])

        record = result.records[0]
        assert record.book_title == "The Hitchhiker's Guide to the Galaxy"
        assert record.book_author == "Douglas Adams"

    def test_combined_line_as_title(self):
        """With an empty buffer the combined-line prefix is the title."""
        result = parse_lines(["Dune March 5, 2024 Minutes 30"])

        record = result.records[0]
        assert record.book_title == "Dune"
        assert record.book_author is None
        assert record.log_type is LogType.MINUTES

    def test_combined_line_as_author(self):
        """With a buffered title the combined-line prefix is the author."""
        result = parse_lines(["Dune", "Frank Herbert March 5, 2024 Pages 12"])

        record = result.records[0]
        assert record.book_title == "Dune"
        assert record.book_author == "Frank Herbert"

    def test_title_without_author(self):
        result = parse_lines(["Matilda", "May 2, 2024 Books 1"])

        record = result.records[0]
        assert record.book_title == "Matilda"
        assert record.book_author is None

    def test_malformed_line_recovers(self):
        """A bad date line is skipped and its buffers do not leak forward."""
        result = parse_lines([
            "Title A",
            "Author A",
            "Smarch 5, 2024 Pages 10",
            "Title B",
            "Author B",
            "March 6, 2024 Pages 11",
            "Title C",
            "March 7, 2024 Minutes 5",
        ])

        assert [r.book_title for r in result.records] == ["Title B", "Title C"]
        assert result.records[0].book_author == "Author B"
        assert len(result.issues) == 1
        assert result.issues[0].line_number == 3
        assert "Smarch" in result.issues[0].message

    def test_unknown_log_type_between_entries_recovers(self):
        """Skipping an unknown type keeps each neighbour's own title and author."""
        result = parse_lines([
            "Title A",
            "Author A",
            "March 5, 2024 Pages 10",
            "Title B",
            "Author B",
            "March 6, 2024 Hours 3",
            "Title C",
            "Author C",
            "March 7, 2024 Minutes 5",
        ])

        assert [(r.book_title, r.book_author) for r in result.records] == [
            ("Title A", "Author A"),
            ("Title C", "Author C"),
        ]
        assert [r.log_date_string for r in result.records] == ["2024-03-05", "2024-03-07"]
        assert len(result.issues) == 1
        assert result.issues[0].line_number == 6
        assert 'unknown log type "Hours"' in result.issues[0].message

    def test_unknown_log_type_skipped(self):
        result = parse_lines(["Dune", "Frank Herbert", "March 5, 2024 Chapters 3"])

        assert result.records == []
        assert "unknown log type" in result.issues[0].message

    def test_date_without_title_skipped(self):
        result = parse_lines(["March 5, 2024 Pages 3"])

        assert result.records == []
        assert "Missing title" in result.issues[0].message

    def test_trailing_text_reported(self):
        result = parse_lines(["Dune", "March 5, 2024 Pages 3", "Orphan Title"])

        assert len(result.records) == 1
        assert result.issues[0].message == "Trailing text without a date line"
        assert result.issues[0].line == "Orphan Title"

    def test_boilerplate_dropped(self):
        result = parse_lines(["The Log", "", "Dune", "Page 1", "Frank Herbert", "March 5, 2024 Pages 3"])

        assert result.records[0].book_author == "Frank Herbert"


class TestParseText:
    """Tests for parse_text on a whole report."""

    def test_report(self):
        text = (
            "Summary - Luke Reader\n"
            "Title & Author \tAdded On \tLog Type Log Value\n"
            "Charlotte's Web\n"
            "E. B. White\n"
            "January 3, 2024 Pages 1,024\n"
            "-- 1 of 2 --\n"
            "\x0cYour Beanstack site is in Sandbox mode\n"
            "Holes Louis Sachar January 4, 2024 Minutes 45\n"
        )
        result = parse_text(text)

        assert result.issues == []
        assert [(r.book_title, r.value) for r in result.records] == [
            ("Charlotte's Web", 1024),
            ("Holes Louis Sachar", 45),
        ]
