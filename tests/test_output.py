"""Tests for the console output formatter."""

import io
import re

from rich.console import Console

from ftpdeploy.output import OutputFormatter


def make_formatter(**kwargs):
    out, err = io.StringIO(), io.StringIO()
    formatter = OutputFormatter(
        console=Console(file=out, width=200),
        err_console=Console(file=err, width=200),
        **kwargs,
    )
    return formatter, out, err


class TestOutputFormatter:
    def test_lines_are_timestamped(self):
        """Test that status lines start with HH:MM:SS."""
        formatter, out, _ = make_formatter()

        formatter.success("Uploaded /www/index.html")

        assert re.match(r"\d\d:\d\d:\d\d Uploaded /www/index.html", out.getvalue())

    def test_markup_in_messages_is_literal(self):
        """Test that brackets in file names are not treated as markup."""
        formatter, out, _ = make_formatter()

        formatter.info("Uploaded /www/[draft].html")

        assert "[draft].html" in out.getvalue()

    def test_quiet_keeps_warnings_and_errors(self):
        """Test that quiet mode only silences informational lines."""
        formatter, out, err = make_formatter(quiet=True)

        formatter.info("hidden")
        formatter.success("hidden")
        formatter.warning("careful")
        formatter.error("broken")

        assert out.getvalue() == ""
        assert "careful" in err.getvalue()
        assert "broken" in err.getvalue()

    def test_format_size(self):
        formatter, _, _ = make_formatter()
        assert formatter.format_size(512) == "512 B"

    def test_print_summary(self):
        """Test that the summary table lists every row."""
        formatter, out, _ = make_formatter()

        formatter.print_summary("Deployment summary", [("Uploaded", 2), ("Failed", 0)])

        text = out.getvalue()
        assert "Deployment summary" in text
        assert "Uploaded" in text
        assert "2" in text

    def test_print_summary_quiet(self):
        formatter, out, _ = make_formatter(quiet=True)
        formatter.print_summary("Deployment summary", [("Uploaded", 2)])
        assert out.getvalue() == ""
