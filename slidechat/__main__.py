from slidechat.cli import app

app()
