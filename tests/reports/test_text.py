"""Tests for the text renderer."""

from unitcov.reports.text import TextRenderer


class TestTextRenderer:
    def test_header_and_summary(self, sample) -> None:
        text = TextRenderer().render(sample.model, sample.metrics, sample.options()).text

        assert text.startswith("Code Coverage Report:\n  2026-10-19 12:00:00\n")
        assert " Summary:" in text
        assert "Methods:  50.00% (1/2)" in text
        assert "Lines:    42.86% (3/7)" in text

    def test_per_file_entries_use_display_paths(self, sample) -> None:
        text = TextRenderer().render(sample.model, sample.metrics, sample.options()).text

        lines = text.splitlines()
        assert "src/app.py" in lines
        assert "src/never.py" in lines
        app_entry = lines[lines.index("src/app.py") + 1]
        assert "Lines:  50.00% (3/6)" in app_entry

    def test_uncovered_files_hidden_when_disabled(self, sample) -> None:
        options = sample.options(show_uncovered_files=False)

        text = TextRenderer().render(sample.model, sample.metrics, options).text

        assert "src/app.py" in text
        assert "src/never.py" not in text

    def test_colors(self, sample) -> None:
        plain = TextRenderer().render(sample.model, sample.metrics, sample.options()).text
        colored = TextRenderer().render(
            sample.model, sample.metrics, sample.options(show_colors=True)
        ).text

        assert "\x1b[" not in plain
        assert "\x1b[30;43m" in colored  # medium band
        assert "\x1b[0m" in colored

    def test_artifact_is_single_file(self, sample) -> None:
        artifact = TextRenderer().render(sample.model, sample.metrics, sample.options())

        assert artifact.format_id == "text"
        assert not artifact.is_directory
        assert artifact.destination is None
