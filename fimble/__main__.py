from fimble.cli import app

app(prog_name="fimble")
