# backend/wsgi.py
from accountsforge import create_app

app = create_app()
