from app import create_app

app = create_app()

# Served by gunicorn: gunicorn -w 2 wsgi:app
