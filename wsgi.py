# wsgi.py: gunicorn entry point (gunicorn wsgi:app)
try:
    from assocmanager import create_app
    app = application = create_app()
except Exception as e:
    raise RuntimeError(f"WSGI import error from assocmanager: {e}") from e
