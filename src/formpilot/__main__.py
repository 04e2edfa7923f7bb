from formpilot.cli import app

app()
