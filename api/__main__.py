"""
Development server: `python -m api`.
Production runs the factory under a WSGI server, e.g. gunicorn "api:create_app()".
"""
import os

from . import create_app

app = create_app()

if __name__ == "__main__":
    app.run(
        host=os.getenv("FLASK_RUN_HOST", "127.0.0.1"),
        port=int(os.getenv("FLASK_RUN_PORT", "8000")),
        # DEBUG comes from the selected config class and is False in production
        debug=app.config["DEBUG"],
    )
