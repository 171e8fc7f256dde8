from inkrypt_deploy.main import app

app()
