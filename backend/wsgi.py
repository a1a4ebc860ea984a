# backend/wsgi.py
from marketledger import create_app

app = create_app()
