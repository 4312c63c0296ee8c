"""Tests for output formatting utilities."""

import json

import yaml

from nimctl.core.output import OutputFormat, OutputFormatter


class TestOutputFormatter:
    """Tests for OutputFormatter class."""

    def test_quiet_mode_suppresses_output(self, capsys):
        formatter = OutputFormatter(quiet=True, color=False)
        formatter.print("test message")
        formatter.print_info("info message")
        formatter.print_warning("warning message")
        formatter.print_success("success message")
        captured = capsys.readouterr()
        assert "test message" not in captured.out
        assert "info message" not in captured.out
        assert "warning message" not in captured.err

    def test_error_always_prints(self, capsys):
        formatter = OutputFormatter(quiet=True, color=False)
        formatter.print_error("error message")
        captured = capsys.readouterr()
        assert "Error: error message" in captured.err

    def test_warning_goes_to_stderr(self, capsys):
        formatter = OutputFormatter(color=False)
        formatter.print_warning("error opening log stream for ns/p/[c]")
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "Warning: error opening log stream for ns/p/[c]" in captured.err

    def test_print_line_is_unadorned(self, capsys):
        formatter = OutputFormatter(quiet=True, color=True)
        formatter.print_line("[pod/main] [INFO] server ready")
        captured = capsys.readouterr()
        assert captured.out == "[pod/main] [INFO] server ready\n"

    def test_json_output(self, capsys):
        formatter = OutputFormatter(format=OutputFormat.JSON, color=False)
        data = {"name": "test", "value": 123}
        formatter.print_data(data)
        captured = capsys.readouterr()
        assert json.loads(captured.out) == data

    def test_yaml_output(self, capsys):
        formatter = OutputFormatter(format=OutputFormat.YAML, color=False)
        data = [{"name": "a"}, {"name": "b"}]
        formatter.print_data(data)
        captured = capsys.readouterr()
        assert yaml.safe_load(captured.out) == data

    def test_raw_output_dict(self, capsys):
        formatter = OutputFormatter(format=OutputFormat.RAW, color=False)
        formatter.print_data({"name": "test", "value": 123})
        captured = capsys.readouterr()
        assert "name: test" in captured.out
        assert "value: 123" in captured.out

    def test_table_output(self, capsys):
        formatter = OutputFormatter(color=False)
        rows = [
            {"Name": "svc-a", "PVC Volume": "pvc-a 10Gi", "Replicas": 1},
            {"Name": "svc-b", "PVC Volume": "", "Replicas": 3},
        ]
        formatter.print_data(rows, headers=["Name", "PVC Volume", "Replicas"])
        lines = capsys.readouterr().out.splitlines()
        assert lines[0].split() == ["NAME", "PVC", "VOLUME", "REPLICAS"]
        assert lines[1].split() == ["svc-a", "pvc-a", "10Gi", "1"]
        assert lines[2].split() == ["svc-b", "3"]

    def test_empty_table(self, capsys):
        formatter = OutputFormatter(color=False)
        formatter.print_data([], headers=["Name"])
        captured = capsys.readouterr()
        assert "No resources found" in captured.out

    def test_paragraph(self, capsys):
        formatter = OutputFormatter(color=False)
        formatter.print_paragraph({"Name": "cache", "Cached NIM Profiles": ["p1", "p2"]})
        lines = capsys.readouterr().out.splitlines()
        assert lines == ["Name: cache", "Cached NIM Profiles:", "  p1", "  p2"]
