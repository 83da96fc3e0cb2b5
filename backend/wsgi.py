# backend/wsgi.py
from furnipos import create_app

app = create_app()
