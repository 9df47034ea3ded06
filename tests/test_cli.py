import json

from typer.testing import CliRunner

from taskgoblin import actions
from taskgoblin.cli import app

runner = CliRunner()


def test_settings_section(tmp_path, monkeypatch):
    monkeypatch.setenv("TASKGOBLIN_HOME", str(tmp_path))
    result = runner.invoke(app, ["settings", "gesture"])
    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["key"] == "ctrl"
    assert data["taps"] == 3


def test_doctor_reports_paths(tmp_path, monkeypatch):
    monkeypatch.setenv("TASKGOBLIN_HOME", str(tmp_path))
    result = runner.invoke(app, ["doctor"])
    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["paths"]["config"] == str(tmp_path / "config.toml")
    assert "macos" in data


class _Done:
    def join(self, timeout=None):
        pass


def test_whatsapp_uses_configured_focus_delay(tmp_path, monkeypatch):
    monkeypatch.setenv("TASKGOBLIN_HOME", str(tmp_path))
    calls = []

    def schedule(phone, message, delay, *, focus_delay):
        calls.append((phone, message, delay, focus_delay))
        return _Done()

    monkeypatch.setattr(actions, "schedule_whatsapp", schedule)
    result = runner.invoke(app, ["whatsapp", "+34 600", "hola", "5"])
    assert result.exit_code == 0
    assert calls == [("+34 600", "hola", 5.0, 4.0)]


def test_whatsapp_rejects_bad_phone(tmp_path, monkeypatch):
    monkeypatch.setenv("TASKGOBLIN_HOME", str(tmp_path))
    result = runner.invoke(app, ["whatsapp", "+ -", "hola"])
    assert result.exit_code == 1
    assert "contains no digits" in result.output


def test_contacts_prints_json(tmp_path, monkeypatch):
    monkeypatch.setenv("TASKGOBLIN_HOME", str(tmp_path))
    monkeypatch.setattr(actions, "get_contacts", lambda: [actions.Contact("Ana", "+34 600")])
    result = runner.invoke(app, ["contacts"])
    assert result.exit_code == 0
    assert json.loads(result.stdout) == [{"name": "Ana", "phone": "+34 600"}]


def test_open_settings_command(monkeypatch):
    panes = []
    monkeypatch.setattr(actions, "open_settings", panes.append)
    result = runner.invoke(app, ["open-settings", "focus"])
    assert result.exit_code == 0
    assert panes == ["focus"]


def test_pdf_missing_file_reports_progress_then_fails(tmp_path, monkeypatch):
    monkeypatch.setenv("TASKGOBLIN_HOME", str(tmp_path))
    result = runner.invoke(app, ["pdf", str(tmp_path / "missing.pdf"), str(tmp_path)])
    assert result.exit_code == 1
    assert "Initializing converter..." in result.output
    assert "does not exist" in result.output
