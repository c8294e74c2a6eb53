# backend/wsgi.py
from brokerbook import create_app

app = create_app()
