# routelock_api/wsgi.py
from routelock_api import create_app

app = create_app()
