"""
Gunicorn config: bind to 0.0.0.0 and PORT for Railway/Render.
Run with: gunicorn -c gunicorn_config.py wsgi:app
"""
import os

bind = "0.0.0.0:{}".format(os.environ.get("PORT", "8080"))
# More than one worker requires OTP_STORE_BACKEND=database
workers = int(os.environ.get("WEB_CONCURRENCY", "2"))
threads = 2
timeout = 120
accesslog = "-"
loglevel = os.environ.get("LOG_LEVEL", "info").lower()
