from deltaproxy.cli import app

app()
