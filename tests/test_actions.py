import pytest

from taskgoblin import actions, platform
from taskgoblin.errors import ExternalProcessFailure, InvalidArgument
from taskgoblin.events import PROGRESS, EventBus


def test_sanitize_phone():
    assert actions.sanitize_phone("+34 (600) 123-456") == "+34600123456"


def test_whatsapp_url_encodes_message():
    url = actions.whatsapp_url("+34 600", "Hola & adiós")
    assert url == "whatsapp://send?phone=+34600&text=Hola%20%26%20adi%C3%B3s"


def test_schedule_whatsapp_sends_after_delay(monkeypatch):
    opened, scripts, sleeps = [], [], []
    monkeypatch.setattr(platform, "open_url", opened.append)
    monkeypatch.setattr(platform, "run_applescript", scripts.append)

    thread = actions.schedule_whatsapp("600 123", "hi", 30, focus_delay=4, sleep=sleeps.append)
    thread.join(2.0)
    assert sleeps == [30, 4]
    assert opened == ["whatsapp://send?phone=600123&text=hi"]
    assert len(scripts) == 1
    assert "key code 36" in scripts[0]


@pytest.mark.parametrize("phone, delay", [("+ -", 10), ("600", -1)])
def test_schedule_whatsapp_rejects(phone, delay):
    with pytest.raises(InvalidArgument):
        actions.schedule_whatsapp(phone, "hi", delay, sleep=lambda _s: None)


def test_parse_contacts():
    output = "Ana|+34 600\nmissing value|123\nBroken line\nLuis|\nLuis|+1 555\n\n"
    assert actions.parse_contacts(output) == [
        actions.Contact("Ana", "+34 600"),
        actions.Contact("Luis", "+1 555"),
    ]


def test_parse_contacts_error_report():
    with pytest.raises(ExternalProcessFailure, match="Not authorized"):
        actions.parse_contacts("ERROR|Not authorized to send Apple events")


def test_close_scripts_quote_names():
    script = actions.close_all_script(["Finder", 'Odd "Name"'])
    assert 'set appsToKeep to {"Finder", "Odd \\"Name\\""}' in script
    assert "set bundleIdsToQuit to {}" in script

    script = actions.close_by_name_script(["Spotify"])
    assert 'set appsToQuit to {"Spotify"}' in script


def test_close_apps_by_name_skips_empty(monkeypatch):
    scripts = []
    monkeypatch.setattr(platform, "run_applescript", scripts.append)
    actions.close_apps_by_name([])
    assert scripts == []
    actions.close_leisure_apps(["Steam"])
    assert len(scripts) == 1
    assert '"Steam"' in scripts[0]


def test_convert_pdf_missing_file(tmp_path):
    events = EventBus()
    progress = []
    events.subscribe(PROGRESS, progress.append)
    with pytest.raises(InvalidArgument):
        actions.convert_pdf_to_word(tmp_path / "missing.pdf", tmp_path, events)
    assert [p.progress for p in progress] == [0.1]


def test_get_contacts_runs_script_and_parses(monkeypatch):
    scripts = []

    def run_applescript(script):
        scripts.append(script)
        return platform.CommandResult(("osascript",), 0, "Ana|+34 600\nmissing value|1\n", "")

    monkeypatch.setattr(platform, "IS_MACOS", True)
    monkeypatch.setattr(platform, "run_applescript", run_applescript)
    assert actions.get_contacts() == [actions.Contact("Ana", "+34 600")]
    assert 'tell application "Contacts"' in scripts[0]


def test_get_contacts_elsewhere_is_empty(monkeypatch):
    monkeypatch.setattr(platform, "IS_MACOS", False)
    monkeypatch.setattr(platform, "run_applescript", pytest.fail)
    assert actions.get_contacts() == []


def test_open_settings_delegates_to_platform(monkeypatch):
    panes = []
    monkeypatch.setattr(platform, "open_settings_pane", panes.append)
    actions.open_settings("contacts")
    assert panes == ["contacts"]


def test_request_accessibility_moves_by_zero(monkeypatch):
    moves = []
    monkeypatch.setattr(platform, "IS_MACOS", True)
    actions.request_accessibility(lambda dx, dy: moves.append((dx, dy)))
    assert moves == [(0, 0)]

    monkeypatch.setattr(platform, "IS_MACOS", False)
    actions.request_accessibility(lambda dx, dy: moves.append((dx, dy)))
    assert moves == [(0, 0)]
