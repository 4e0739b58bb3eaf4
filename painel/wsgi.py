# painel/wsgi.py
# Ponto de entrada do Gunicorn: gunicorn painel.wsgi:wsgi_app
from painel.main import build_application

wsgi_app = build_application()
