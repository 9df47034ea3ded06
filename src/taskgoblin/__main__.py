from taskgoblin.cli import app

app()
