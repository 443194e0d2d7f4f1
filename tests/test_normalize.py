"""Content normalizer tests.

Maps to BDD specs: TestContentNormalization, TestDateNormalization
"""

from __future__ import annotations

import logging

import pytest

from jobstream.normalize import normalize_content, normalize_date, normalize_title


class TestContentNormalization:
    """REQUIREMENT: Raw listing markup becomes canonical plain text.

    WHO: The pagination controller building a record from the detail view
    WHAT: Tags are stripped, script/style blocks vanish with their contents,
          block boundaries survive as line breaks, entities are decoded,
          whitespace is collapsed, non-ASCII is dropped, output is trimmed
    WHY: Stream consumers need stable plain text, and the same markup must
         always produce the same text
    """

    def test_paragraph_with_entity_becomes_trimmed_text(self) -> None:
        """A single paragraph loses its tags and has its entity decoded."""
        assert normalize_content("<p>Hello &amp; welcome</p>") == "Hello & welcome"

    def test_script_and_style_blocks_are_removed_entirely(self) -> None:
        """Script and style contents never leak into the text."""
        markup = (
            "<style>.x { color: red; }</style>"
            "<p>Visible</p>"
            "<script>var tracking = 'secret';</script>"
        )
        assert normalize_content(markup) == "Visible"

    def test_paragraph_and_heading_boundaries_become_line_breaks(self) -> None:
        """Each block element starts a new line."""
        markup = "<h2>Overview</h2><p>First para.</p><p>Second para.</p>"
        assert normalize_content(markup) == "Overview\nFirst para.\nSecond para."

    def test_table_cells_do_not_run_together(self) -> None:
        """Adjacent cells and definition terms land on separate lines."""
        markup = (
            "<table><tr><th>Pay</th><td>Salary</td><td>Redmond</td></tr></table>"
            "<dl><dt>Travel</dt><dd>0-25%</dd></dl>"
        )
        assert normalize_content(markup) == "Pay\nSalary\nRedmond\nTravel\n0-25%"

    def test_br_is_a_line_break(self) -> None:
        """<br> splits a line like a block boundary does."""
        assert normalize_content("one<br>two<br/>three") == "one\ntwo\nthree"

    def test_inline_tags_do_not_break_lines(self) -> None:
        """Inline elements are stripped without introducing line breaks."""
        assert normalize_content("<p>Use <b>Python</b> and <a href='#'>Go</a></p>") == "Use Python and Go"

    @pytest.mark.parametrize(
        ("markup", "expected"),
        [
            ("a&nbsp;b", "a b"),
            ("&lt;tag&gt;", "<tag>"),
            ("say &quot;hi&quot;", 'say "hi"'),
            ("it&#39;s", "it's"),
        ],
    )
    def test_standard_entities_are_decoded(self, markup: str, expected: str) -> None:
        """The standard HTML entities decode to their characters."""
        assert normalize_content(markup) == expected

    def test_whitespace_runs_collapse_within_a_line(self) -> None:
        """Source indentation and newlines inside a block collapse to single spaces."""
        markup = "<p>  lots   of\n\n   space\t here  </p>"
        assert normalize_content(markup) == "lots of space here"

    def test_blank_lines_between_blocks_are_dropped(self) -> None:
        """Empty blocks do not produce empty lines."""
        markup = "<div><p>one</p><p>   </p><div></div><p>two</p></div>"
        assert normalize_content(markup) == "one\ntwo"

    def test_non_ascii_characters_are_dropped(self) -> None:
        """Characters outside printable ASCII are removed."""
        assert normalize_content("<p>Café — rôle \U0001f680</p>") == "Caf rle"

    def test_empty_markup_yields_empty_text(self) -> None:
        """Empty input is not an error."""
        assert normalize_content("") == ""

    def test_output_is_deterministic(self) -> None:
        """Normalizing the same markup twice gives identical text."""
        markup = "<div><h1>Title</h1><ul><li>a</li><li>b</li></ul></div>"
        assert normalize_content(markup) == normalize_content(markup)


class TestTitleNormalization:
    """REQUIREMENT: Titles read from the listing page are single-line ASCII.

    WHO: The controller building a draft from the listing page
    WHAT: Whitespace collapses, non-ASCII is dropped, the result is trimmed
    WHY: Title feeds the identity hash; stray whitespace would split identities
    """

    def test_title_whitespace_collapses(self) -> None:
        """Newlines and repeated spaces in a title collapse to one space."""
        assert normalize_title("  Software\n  Engineer   II ") == "Software Engineer II"

    def test_title_drops_non_ascii(self) -> None:
        """Non-ASCII punctuation is removed and the gap collapsed."""
        assert normalize_title("Engineer – Azure") == "Engineer Azure"


class TestDateNormalization:
    """REQUIREMENT: Posted dates are ISO calendar dates or empty.

    WHO: The controller recording datePosted
    WHAT: Human-readable dates parse to YYYY-MM-DD; absent or unparseable
          input yields "" and logs a warning instead of raising
    WHY: A raw or locale-ambiguous date would make identities unstable
    """

    def test_short_month_date_parses_to_iso(self) -> None:
        """'Jan 5, 2024' becomes '2024-01-05'."""
        assert normalize_date("Jan 5, 2024") == "2024-01-05"

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("January 15, 2024", "2024-01-15"),
            ("Date posted Mar 9, 2023", "2023-03-09"),
            ("Date posted: Dec 31, 2022", "2022-12-31"),
            ("2024-02-29", "2024-02-29"),
            ("07/04/2024", "2024-07-04"),
            ("  Jan   5,  2024 ", "2024-01-05"),
            ("Jan. 5, 2024", "2024-01-05"),
            ("Date posted Feb. 14, 2024", "2024-02-14"),
        ],
    )
    def test_common_formats_parse(self, raw: str, expected: str) -> None:
        """Long and abbreviated month names, a 'Date posted' label, ISO and US numeric forms parse."""
        assert normalize_date(raw) == expected

    def test_unparseable_date_returns_empty_and_warns(self, caplog: pytest.LogCaptureFixture) -> None:
        """'not a date' yields '' with a warning, and nothing is raised."""
        with caplog.at_level(logging.WARNING, logger="jobstream"):
            assert normalize_date("not a date") == ""
        assert any("not a date" in r.getMessage() for r in caplog.records)
        assert all(r.levelno == logging.WARNING for r in caplog.records)

    @pytest.mark.parametrize("raw", [None, "", "   "])
    def test_absent_date_returns_empty_and_warns(
        self, raw: str | None, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Missing date text is a warning-level condition, not an error."""
        with caplog.at_level(logging.WARNING, logger="jobstream"):
            assert normalize_date(raw) == ""
        assert caplog.records

    def test_impossible_calendar_date_is_rejected(self) -> None:
        """Feb 30 is not partially parsed into something else."""
        assert normalize_date("Feb 30, 2024") == ""
