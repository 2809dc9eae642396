"""
Gunicorn configuration for the HabitFlow API.

    gunicorn -c gunicorn.conf.py

Env vars that override defaults:
  PORT                        — TCP port to bind
  WORKERS                     — number of worker processes (default: 2)
  LOG_LEVEL                   — shared with the app's own logging (default: info)
  EXTRACTION_TIMEOUT_SECONDS  — habit creation waits this long on the model
"""
import os

wsgi_app = "habitflow.main:app"

bind = f"0.0.0.0:{os.environ.get('PORT', '8000')}"

# Requests are short except POST /habits, which blocks on the extraction model.
workers = int(os.environ.get("WORKERS", "2"))
worker_class = "uvicorn.workers.UvicornWorker"

keepalive = 5

# Must outlive the extraction call so a slow model surfaces as a 502, not a killed worker.
timeout = int(float(os.environ.get("EXTRACTION_TIMEOUT_SECONDS", "30"))) + 30
graceful_timeout = 30

loglevel = os.environ.get("LOG_LEVEL", "info").lower()
accesslog = "-"
errorlog = "-"
access_log_format = '%(h)s "%(r)s" %(s)s %(b)sB %(D)sµs'
