from ebdeploy.cli.app import app

app()
