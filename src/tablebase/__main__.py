from tablebase.cli import app

app()
