# backend/wsgi.py
from bizledger import create_app

app = create_app()
